# classroom_qa/reviews.py
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, desc
from sqlalchemy.orm import Session

from .database import get_db
from .deps import get_current_user, require_roles, get_user_or_404
from .models import User, Review, TrustedReviewer
from .questions import get_answer_or_404
from .schemas import ReviewCreate, ReviewOut, ReviewerRank, VoteIn, VoteOut
from .validation import validate_review
from .votes import record_vote

logger = logging.getLogger(__name__)

router = APIRouter()


def get_review_or_404(db: Session, review_id: int) -> Review:
    review = db.query(Review).filter(Review.review_id == review_id).first()
    if not review:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Review not found"
        )
    return review


# ==================== Review Endpoints ====================

@router.post("/answers/{answer_id}/reviews", response_model=ReviewOut, tags=["Reviews"])
def create_review(
    answer_id: int,
    r: ReviewCreate,
    user: User = Depends(require_roles("reviewer")),
    db: Session = Depends(get_db)
):
    """Write a review of an answer (reviewers only)"""
    answer = get_answer_or_404(db, answer_id)
    review = Review(answer_id=answer.answer_id, author_id=user.user_id, body=validate_review(r.body))
    db.add(review)
    db.commit()
    db.refresh(review)
    logger.info(f"Review {review.review_id} on answer {answer_id} by {user.username}")
    return review


@router.get("/answers/{answer_id}/reviews", response_model=List[ReviewOut], tags=["Reviews"])
def list_reviews(answer_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Reviews of an answer, most helpful first"""
    get_answer_or_404(db, answer_id)
    return db.query(Review).filter(Review.answer_id == answer_id).order_by(
        desc(Review.helpful_count - Review.not_helpful_count), Review.review_id
    ).all()


@router.get("/reviews/mine", response_model=List[ReviewOut], tags=["Reviews"])
def my_reviews(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return db.query(Review).filter(Review.author_id == user.user_id).order_by(Review.review_id).all()


@router.put("/reviews/{review_id}", response_model=ReviewOut, tags=["Reviews"])
def update_review(
    review_id: int,
    r: ReviewCreate,
    user: User = Depends(require_roles("reviewer")),
    db: Session = Depends(get_db)
):
    """Edit your own review"""
    review = get_review_or_404(db, review_id)
    if review.author_id != user.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only update your own reviews"
        )
    review.body = validate_review(r.body)
    db.commit()
    db.refresh(review)
    logger.info(f"Review {review_id} updated by {user.username}")
    return review


@router.delete("/reviews/{review_id}", tags=["Reviews"])
def delete_review(review_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Delete a review (its author or staff)"""
    review = get_review_or_404(db, review_id)
    if review.author_id != user.user_id and not user.has_role("staff"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only delete your own reviews"
        )
    db.delete(review)
    db.commit()
    logger.info(f"Review {review_id} deleted by {user.username}")
    return {"detail": "Review deleted"}


@router.post("/reviews/{review_id}/vote", response_model=VoteOut, tags=["Reviews"])
def vote_review(
    review_id: int,
    vote: VoteIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Mark a review helpful (upvote) or not helpful (downvote); repeating withdraws it"""
    review = get_review_or_404(db, review_id)
    action, current = record_vote(db, "review", review, user.user_id, vote.vote_type)
    return VoteOut(action=action, vote_type=current,
                   up_votes=review.helpful_count, down_votes=review.not_helpful_count)


# ==================== Trusted Reviewers ====================

@router.get("/trusted-reviewers", response_model=List[str], tags=["Trusted reviewers"])
def list_trusted_reviewers(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    links = db.query(TrustedReviewer).filter(TrustedReviewer.user_id == user.user_id).order_by(
        TrustedReviewer.created_at, TrustedReviewer.id
    ).all()
    return [link.reviewer.username for link in links]


@router.post("/trusted-reviewers/{username}", tags=["Trusted reviewers"])
def add_trusted_reviewer(username: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Flag a reviewer as trusted; used to filter questions"""
    reviewer = get_user_or_404(db, username)
    if reviewer.user_id == user.user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot trust yourself"
        )
    if not reviewer.has_role("reviewer"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{username} is not a reviewer"
        )

    existing = db.query(TrustedReviewer).filter(
        TrustedReviewer.user_id == user.user_id,
        TrustedReviewer.reviewer_id == reviewer.user_id
    ).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{username} is already a trusted reviewer"
        )

    db.add(TrustedReviewer(user_id=user.user_id, reviewer_id=reviewer.user_id))
    db.commit()
    logger.info(f"{user.username} now trusts reviewer {username}")
    return {"detail": f"{username} added to trusted reviewers"}


@router.delete("/trusted-reviewers/{username}", tags=["Trusted reviewers"])
def remove_trusted_reviewer(username: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    reviewer = get_user_or_404(db, username)
    removed = db.query(TrustedReviewer).filter(
        TrustedReviewer.user_id == user.user_id,
        TrustedReviewer.reviewer_id == reviewer.user_id
    ).delete(synchronize_session=False)
    if not removed:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{username} is not in your trusted reviewers"
        )
    db.commit()
    logger.info(f"{user.username} no longer trusts reviewer {username}")
    return {"detail": f"{username} removed from trusted reviewers"}


@router.delete("/trusted-reviewers", tags=["Trusted reviewers"])
def clear_trusted_reviewers(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    removed = db.query(TrustedReviewer).filter(TrustedReviewer.user_id == user.user_id).delete(
        synchronize_session=False
    )
    db.commit()
    logger.info(f"{user.username} cleared {removed} trusted reviewers")
    return {"detail": "Trusted reviewers cleared", "removed": removed}


@router.get("/reviewers/ranking", response_model=List[ReviewerRank], tags=["Trusted reviewers"])
def reviewer_ranking(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Reviewers ordered by how many users trust them"""
    trust_count = func.count(TrustedReviewer.id).label("trust_count")
    rows = db.query(User.username, trust_count).join(
        TrustedReviewer, TrustedReviewer.reviewer_id == User.user_id
    ).group_by(User.username).order_by(desc(trust_count), User.username).all()
    return [ReviewerRank(username=name, trust_count=count) for name, count in rows]
