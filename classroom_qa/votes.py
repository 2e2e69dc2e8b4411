# classroom_qa/votes.py
"""Vote bookkeeping shared by questions, answers and reviews.

Each target has its own vote table holding one row per (target, user). A
vote is toggled: a first vote is recorded, the opposite vote replaces it,
and repeating the same vote removes it. Counters on the target row are
always recomputed from the vote table rather than incremented.
"""
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from .models import Question, Answer, Review, QuestionVote, AnswerVote, ReviewVote

logger = logging.getLogger(__name__)

# target kind -> (vote model, foreign key column name, up counter, down counter)
VOTE_TARGETS = {
    "question": (QuestionVote, "question_id", "up_votes", "down_votes"),
    "answer": (AnswerVote, "answer_id", "up_votes", "down_votes"),
    "review": (ReviewVote, "review_id", "helpful_count", "not_helpful_count"),
}

TARGET_MODELS = {"question": Question, "answer": Answer, "review": Review}


def get_user_vote(db: Session, kind: str, target_id: int, user_id: int):
    vote_model, fk, _, _ = VOTE_TARGETS[kind]
    vote = db.query(vote_model).filter(
        getattr(vote_model, fk) == target_id,
        vote_model.user_id == user_id,
    ).first()
    return vote.vote_type if vote else None


def count_votes(db: Session, kind: str, target_id: int):
    vote_model, fk, _, _ = VOTE_TARGETS[kind]
    rows = db.query(vote_model.vote_type, func.count()).filter(
        getattr(vote_model, fk) == target_id
    ).group_by(vote_model.vote_type).all()
    counts = dict(rows)
    return counts.get("upvote", 0), counts.get("downvote", 0)


def recalculate(db: Session, kind: str, target):
    """Refresh the target's counters from its vote table."""
    _, fk, up_attr, down_attr = VOTE_TARGETS[kind]
    up, down = count_votes(db, kind, getattr(target, fk))
    setattr(target, up_attr, up)
    setattr(target, down_attr, down)
    return up, down


def record_vote(db: Session, kind: str, target, user_id: int, vote_type: str):
    """
    Toggle ``user_id``'s vote on ``target`` and commit.

    Returns ``(action, current_vote)`` where action is one of
    ``added``, ``changed`` or ``removed``.
    """
    vote_model, fk, _, _ = VOTE_TARGETS[kind]
    target_id = getattr(target, fk)
    existing = db.query(vote_model).filter(
        getattr(vote_model, fk) == target_id,
        vote_model.user_id == user_id,
    ).first()

    if existing is None:
        db.add(vote_model(**{fk: target_id, "user_id": user_id, "vote_type": vote_type}))
        action, current = "added", vote_type
    elif existing.vote_type != vote_type:
        existing.vote_type = vote_type
        action, current = "changed", vote_type
    else:
        db.delete(existing)
        action, current = "removed", None

    db.flush()
    recalculate(db, kind, target)
    db.commit()
    db.refresh(target)
    logger.info(f"Vote {action} on {kind} {target_id} by user {user_id}: {vote_type}")
    return action, current


def targets_voted_by(db: Session, user_id: int):
    """(kind, target_id) pairs for every vote cast by ``user_id``."""
    voted = []
    for kind, (vote_model, fk, _, _) in VOTE_TARGETS.items():
        rows = db.query(getattr(vote_model, fk)).filter(vote_model.user_id == user_id).all()
        voted.extend((kind, target_id) for (target_id,) in rows)
    return voted


def recount_targets(db: Session, voted):
    """Recompute counters after votes vanished outside ``record_vote``; targets gone since are skipped."""
    for kind, target_id in voted:
        model = TARGET_MODELS[kind]
        target = db.get(model, target_id)
        if target is not None:
            recalculate(db, kind, target)
    db.commit()
