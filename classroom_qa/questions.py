# classroom_qa/questions.py
import logging
from typing import List, Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import desc
from sqlalchemy.orm import Session

from . import config
from .database import get_db, like_pattern
from .deps import get_current_user, require_roles
from .models import User, Question, Answer, Review, TrustedReviewer
from .schemas import QuestionCreate, QuestionOut, AnswerCreate, AnswerOut, VoteIn, VoteOut
from .validation import validate_question, validate_answer
from .votes import record_vote
from .ws_manager import manager

logger = logging.getLogger(__name__)

router = APIRouter()


def question_out(question: Question) -> QuestionOut:
    out = QuestionOut.model_validate(question)
    out.answers = [AnswerOut.model_validate(a) for a in question.sorted_answers]
    return out


def get_question_or_404(db: Session, question_id: int) -> Question:
    question = db.query(Question).filter(Question.question_id == question_id).first()
    if not question:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Question not found"
        )
    return question


def get_answer_or_404(db: Session, answer_id: int) -> Answer:
    answer = db.query(Answer).filter(Answer.answer_id == answer_id).first()
    if not answer:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Answer not found"
        )
    return answer


async def notify_webhook(payload: dict):
    if not config.WEBHOOK_URL:
        return
    try:
        async with httpx.AsyncClient() as client:
            await client.post(config.WEBHOOK_URL, json=payload)
    except Exception as e:
        logger.error(f"Webhook failed: {e}")


# ==================== Question Endpoints ====================

@router.post("/questions", response_model=QuestionOut, tags=["Questions"])
async def submit_question(
    q: QuestionCreate,
    user: User = Depends(require_roles("student")),
    db: Session = Depends(get_db)
):
    """
    Submit a new question.
    - Only students may ask
    - Broadcasts to all connected WebSocket clients
    """
    question = Question(body=validate_question(q.body), author_id=user.user_id)
    db.add(question)
    db.commit()
    db.refresh(question)

    out = question_out(question)
    await manager.broadcast({"type": "new_question", "question": out.model_dump(mode="json")})

    logger.info(f"New question submitted: {question.question_id} by {user.username}")
    return out


@router.get("/questions", response_model=List[QuestionOut], tags=["Questions"])
def list_questions(
    search: Optional[str] = Query(None, description="Case-insensitive match on question or answer text"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Get all questions, newest first.
    - Optional search over question bodies and their answers
    """
    query = db.query(Question)

    term = (search or "").strip()
    if term:
        pattern = like_pattern(term)
        answered = db.query(Answer.question_id).filter(Answer.body.ilike(pattern, escape="\\"))
        query = query.filter(Question.body.ilike(pattern, escape="\\") | Question.question_id.in_(answered))

    questions = query.order_by(desc(Question.created_at), desc(Question.question_id)).all()
    return [question_out(q) for q in questions]


@router.get("/questions/trusted", response_model=List[QuestionOut], tags=["Questions"])
def list_trusted_questions(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Questions with at least one answer reviewed by a reviewer the caller trusts"""
    trusted = db.query(TrustedReviewer.reviewer_id).filter(TrustedReviewer.user_id == user.user_id)
    reviewed = db.query(Answer.question_id).join(Review, Review.answer_id == Answer.answer_id).filter(
        Review.author_id.in_(trusted)
    )
    questions = db.query(Question).filter(Question.question_id.in_(reviewed)).order_by(
        desc(Question.created_at), desc(Question.question_id)
    ).all()
    return [question_out(q) for q in questions]


@router.get("/questions/{question_id}", response_model=QuestionOut, tags=["Questions"])
def get_question(question_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Get a single question by ID"""
    return question_out(get_question_or_404(db, question_id))


@router.put("/questions/{question_id}", response_model=QuestionOut, tags=["Questions"])
async def update_question(
    question_id: int,
    q: QuestionCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Edit the text of a question (author only)"""
    question = get_question_or_404(db, question_id)
    if question.author_id != user.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only update questions that you have asked"
        )

    question.body = validate_question(q.body)
    db.commit()
    db.refresh(question)

    out = question_out(question)
    await manager.broadcast({"type": "question_updated", "question": out.model_dump(mode="json")})
    logger.info(f"Question {question_id} updated by {user.username}")
    return out


@router.delete("/questions/{question_id}", tags=["Questions"])
async def delete_question(question_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    Delete a question together with its answers, reviews and votes.
    - Allowed for the author and for staff
    """
    question = get_question_or_404(db, question_id)
    if question.author_id != user.user_id and not user.has_role("staff"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only delete questions that you have asked"
        )

    db.delete(question)
    db.commit()

    await manager.broadcast({"type": "question_deleted", "question": {"question_id": question_id}})
    logger.info(f"Question {question_id} deleted by {user.username}")
    return {"detail": "Question deleted"}


@router.post("/questions/{question_id}/vote", response_model=VoteOut, tags=["Questions"])
def vote_question(
    question_id: int,
    vote: VoteIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Up- or down-vote a question; repeating the same vote withdraws it"""
    question = get_question_or_404(db, question_id)
    action, current = record_vote(db, "question", question, user.user_id, vote.vote_type)
    return VoteOut(action=action, vote_type=current,
                   up_votes=question.up_votes, down_votes=question.down_votes)


# ==================== Answer Endpoints ====================

@router.post("/questions/{question_id}/answers", response_model=AnswerOut, tags=["Answers"])
async def answer_question(
    question_id: int,
    a: AnswerCreate,
    user: User = Depends(require_roles("student")),
    db: Session = Depends(get_db)
):
    """
    Post an answer to a question.
    - Only students may answer
    - Broadcasts the new answer to all clients
    """
    question = get_question_or_404(db, question_id)
    answer = Answer(question_id=question.question_id, author_id=user.user_id, body=validate_answer(a.body))
    db.add(answer)
    db.commit()
    db.refresh(answer)

    out = AnswerOut.model_validate(answer)
    await manager.broadcast({"type": "new_answer", "answer": out.model_dump(mode="json")})
    logger.info(f"Answer {answer.answer_id} posted on question {question_id} by {user.username}")
    return out


@router.delete("/answers/{answer_id}", tags=["Answers"])
async def delete_answer(answer_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Delete an answer (author or staff)"""
    answer = get_answer_or_404(db, answer_id)
    if answer.author_id != user.user_id and not user.has_role("staff"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only delete answers that you have written"
        )

    question_id = answer.question_id
    db.delete(answer)
    db.commit()

    await manager.broadcast({
        "type": "question_updated",
        "question": {"question_id": question_id, "removed_answer_id": answer_id}
    })
    logger.info(f"Answer {answer_id} deleted by {user.username}")
    return {"detail": "Answer deleted"}


@router.post("/answers/{answer_id}/vote", response_model=VoteOut, tags=["Answers"])
def vote_answer(
    answer_id: int,
    vote: VoteIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Up- or down-vote an answer; repeating the same vote withdraws it"""
    answer = get_answer_or_404(db, answer_id)
    action, current = record_vote(db, "answer", answer, user.user_id, vote.vote_type)
    return VoteOut(action=action, vote_type=current,
                   up_votes=answer.up_votes, down_votes=answer.down_votes)


@router.post("/answers/{answer_id}/correct", response_model=AnswerOut, tags=["Answers"])
async def mark_answer_correct(answer_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    Toggle the correct flag on an answer.
    - Only the author of the question may do this
    - Broadcasts update to all clients
    """
    answer = get_answer_or_404(db, answer_id)
    if answer.question.author_id != user.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the author of the question can mark answers as correct"
        )

    answer.is_correct = not answer.is_correct
    db.commit()
    db.refresh(answer)

    await manager.broadcast({
        "type": "question_updated",
        "question": {
            "question_id": answer.question_id,
            "answer_id": answer.answer_id,
            "is_correct": answer.is_correct
        }
    })

    if answer.is_correct:
        await notify_webhook({
            "question_id": answer.question_id,
            "answer_id": answer.answer_id,
            "event": "answer_accepted",
            "accepted_by": user.username
        })

    logger.info(f"Answer {answer_id} marked correct={answer.is_correct} by {user.username}")
    return AnswerOut.model_validate(answer)
