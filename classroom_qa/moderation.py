# classroom_qa/moderation.py
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .database import get_db
from .deps import require_roles, get_user_or_404
from .models import User
from .questions import get_question_or_404, get_answer_or_404
from .schemas import UserBanStatus, SensitivityIn
from .ws_manager import manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/staff", tags=["Staff"])


def set_ban(db: Session, staff: User, username: str, banned: bool) -> UserBanStatus:
    target = get_user_or_404(db, username)
    if target.user_id == staff.user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot change your own ban status"
        )
    target.is_banned = banned
    db.commit()
    logger.info(f"User {username} {'banned' if banned else 'unbanned'} by {staff.username}")
    return UserBanStatus(username=target.username, is_banned=target.is_banned)


@router.get("/users", response_model=List[UserBanStatus])
def list_ban_status(staff: User = Depends(require_roles("staff")), db: Session = Depends(get_db)):
    return [UserBanStatus(username=u.username, is_banned=u.is_banned)
            for u in db.query(User).order_by(User.username).all()]


@router.post("/users/{username}/ban", response_model=UserBanStatus)
def ban_user(username: str, staff: User = Depends(require_roles("staff")), db: Session = Depends(get_db)):
    return set_ban(db, staff, username, True)


@router.post("/users/{username}/unban", response_model=UserBanStatus)
def unban_user(username: str, staff: User = Depends(require_roles("staff")), db: Session = Depends(get_db)):
    return set_ban(db, staff, username, False)


@router.put("/questions/{question_id}/sensitivity")
async def set_question_sensitivity(
    question_id: int,
    s: SensitivityIn,
    staff: User = Depends(require_roles("staff")),
    db: Session = Depends(get_db)
):
    question = get_question_or_404(db, question_id)
    question.is_sensitive = s.is_sensitive
    db.commit()

    await manager.broadcast({
        "type": "question_updated",
        "question": {"question_id": question_id, "is_sensitive": s.is_sensitive}
    })
    logger.info(f"Question {question_id} sensitive={s.is_sensitive} set by {staff.username}")
    return {"question_id": question_id, "is_sensitive": s.is_sensitive}


@router.put("/answers/{answer_id}/sensitivity")
async def set_answer_sensitivity(
    answer_id: int,
    s: SensitivityIn,
    staff: User = Depends(require_roles("staff")),
    db: Session = Depends(get_db)
):
    answer = get_answer_or_404(db, answer_id)
    answer.is_sensitive = s.is_sensitive
    db.commit()

    await manager.broadcast({
        "type": "question_updated",
        "question": {"question_id": answer.question_id, "answer_id": answer_id, "is_sensitive": s.is_sensitive}
    })
    logger.info(f"Answer {answer_id} sensitive={s.is_sensitive} set by {staff.username}")
    return {"answer_id": answer_id, "is_sensitive": s.is_sensitive}
