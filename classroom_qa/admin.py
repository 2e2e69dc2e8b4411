# classroom_qa/admin.py
import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .config import INVITATION_CODE_LENGTH
from .database import get_db, reset_db
from .deps import require_roles, get_user_or_404
from .models import ROLES, User, UserRole, InvitationCode
from .schemas import InvitationOut, UserOut
from .accounts import user_out
from .votes import targets_voted_by, recount_targets

logger = logging.getLogger(__name__)

router = APIRouter()


def count_admins(db: Session) -> int:
    return db.query(UserRole).filter(UserRole.role == "admin").count()


def add_role(db: Session, target: User, role: str):
    if role not in ROLES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown role: {role}"
        )
    if target.has_role(role):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{target.username} already has the '{role}' role"
        )
    if role == "reviewer" and not target.has_role("student"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot add reviewer role to users who are not students. Please add the student role first."
        )
    target.roles.append(UserRole(role=role))
    db.commit()
    db.refresh(target)


def remove_role(db: Session, target: User, role: str):
    if not target.has_role(role):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{target.username} does not have the '{role}' role"
        )
    if len(target.roles) == 1:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot remove role. User must have at least one role."
        )
    if role == "student" and target.has_role("reviewer"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot remove the 'student' role from a user who has the 'reviewer' role. "
                   "Please remove the 'reviewer' role first."
        )
    if role == "admin" and count_admins(db) <= 1:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot remove the admin role. The system must have at least one administrator."
        )
    for r in list(target.roles):
        if r.role == role:
            target.roles.remove(r)
    db.commit()
    db.refresh(target)


# ==================== Admin Endpoints ====================

@router.post("/admin/invitations", response_model=InvitationOut, tags=["Admin"])
def generate_invitation(admin: User = Depends(require_roles("admin")), db: Session = Depends(get_db)):
    """Create a single-use invitation code for a new student account"""
    code = uuid.uuid4().hex[:INVITATION_CODE_LENGTH]
    while db.query(InvitationCode).filter(InvitationCode.code == code).first():
        code = uuid.uuid4().hex[:INVITATION_CODE_LENGTH]

    db.add(InvitationCode(code=code, created_by=admin.user_id))
    db.commit()
    logger.info(f"Invitation code generated by {admin.username}")
    return {"code": code}


@router.get("/admin/users", response_model=List[UserOut], tags=["Admin"])
def list_users(admin: User = Depends(require_roles("admin")), db: Session = Depends(get_db)):
    return [user_out(u) for u in db.query(User).order_by(User.username).all()]


@router.post("/admin/users/{username}/roles/{role}", response_model=UserOut, tags=["Admin"])
def admin_add_role(username: str, role: str, admin: User = Depends(require_roles("admin")),
                   db: Session = Depends(get_db)):
    target = get_user_or_404(db, username)
    add_role(db, target, role)
    logger.info(f"Role '{role}' added to {username} by {admin.username}")
    return user_out(target)


@router.delete("/admin/users/{username}/roles/{role}", response_model=UserOut, tags=["Admin"])
def admin_remove_role(username: str, role: str, admin: User = Depends(require_roles("admin")),
                      db: Session = Depends(get_db)):
    target = get_user_or_404(db, username)
    remove_role(db, target, role)
    logger.info(f"Role '{role}' removed from {username} by {admin.username}")
    return user_out(target)


@router.delete("/admin/users/{username}", tags=["Admin"])
def delete_user(username: str, admin: User = Depends(require_roles("admin")), db: Session = Depends(get_db)):
    """Delete an account and everything it authored"""
    target = get_user_or_404(db, username)
    if target.user_id == admin.user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account"
        )
    if target.has_role("admin") and count_admins(db) <= 1:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete the last administrator"
        )
    # the cascade drops their votes; counters are recomputed afterwards
    voted = targets_voted_by(db, target.user_id)
    db.delete(target)
    db.commit()
    recount_targets(db, voted)
    logger.info(f"User {username} deleted by {admin.username}")
    return {"detail": "User deleted"}


@router.post("/admin/reset", tags=["Admin"])
def reset_database(admin: User = Depends(require_roles("admin")), db: Session = Depends(get_db)):
    """Wipe every table; the next registration becomes the new administrator"""
    username = admin.username
    db.close()
    reset_db()
    logger.warning(f"Database reset by {username}")
    return {"detail": "Database reset"}


# ==================== Instructor Endpoints ====================

@router.get("/instructor/students", response_model=List[UserOut], tags=["Instructor"])
def list_students(instructor: User = Depends(require_roles("instructor")), db: Session = Depends(get_db)):
    students = db.query(User).join(UserRole).filter(UserRole.role == "student").order_by(User.username).all()
    return [user_out(u) for u in students]


@router.post("/instructor/reviewers/{username}", response_model=UserOut, tags=["Instructor"])
def promote_reviewer(username: str, instructor: User = Depends(require_roles("instructor")),
                     db: Session = Depends(get_db)):
    """Give a student the reviewer role"""
    target = get_user_or_404(db, username)
    if not target.has_role("student"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{username} is not a student"
        )
    if target.has_role("reviewer"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This student is already a reviewer."
        )
    add_role(db, target, "reviewer")
    logger.info(f"{username} promoted to reviewer by {instructor.username}")
    return user_out(target)


@router.delete("/instructor/reviewers/{username}", response_model=UserOut, tags=["Instructor"])
def demote_reviewer(username: str, instructor: User = Depends(require_roles("instructor")),
                    db: Session = Depends(get_db)):
    """Take the reviewer role away from a student"""
    target = get_user_or_404(db, username)
    if not target.has_role("student"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{username} is not a student"
        )
    if not target.has_role("reviewer"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This student is not currently a reviewer."
        )
    remove_role(db, target, "reviewer")
    logger.info(f"Reviewer role removed from {username} by {instructor.username}")
    return user_out(target)
