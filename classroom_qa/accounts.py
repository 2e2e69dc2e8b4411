# classroom_qa/accounts.py
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .auth import get_password_hash, verify_password, token_for_user
from .database import get_db
from .deps import get_current_user
from .models import User, UserRole, InvitationCode
from .schemas import UserCreate, UserLogin, Token, UserOut
from .validation import validate_username, validate_password

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


def user_out(user: User) -> UserOut:
    return UserOut(
        user_id=user.user_id,
        username=user.username,
        roles=user.role_names,
        is_banned=user.is_banned,
    )


@router.post("/register", response_model=Token)
def register(user_in: UserCreate, db: Session = Depends(get_db)):
    """
    Register a new user.
    - The very first account becomes the administrator
    - Every later account needs an unused invitation code and starts as a student
    - Returns JWT access token on success
    """
    validate_username(user_in.username)
    validate_password(user_in.password)

    # Check if user already exists
    existing = db.query(User).filter(User.username == user_in.username).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already registered"
        )

    first_user = db.query(User).count() == 0
    if first_user:
        role = "admin"
    else:
        invite = None
        if user_in.invitation_code:
            invite = db.query(InvitationCode).filter(
                InvitationCode.code == user_in.invitation_code,
                InvitationCode.is_used.is_(False)
            ).first()
        if not invite:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Please enter a valid invitation code"
            )
        invite.is_used = True
        role = "student"

    # Create new user
    user = User(
        username=user_in.username,
        password_hash=get_password_hash(user_in.password),
    )
    user.roles.append(UserRole(role=role))
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info(f"User registered: {user.username} (role={role})")
    return {"access_token": token_for_user(user), "token_type": "bearer"}


@router.post("/login", response_model=Token)
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    """
    Login user with username and password.
    - Banned users are refused
    - Returns JWT access token on success
    """
    user = db.query(User).filter(User.username == credentials.username).first()

    if not user or not verify_password(credentials.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password"
        )

    if user.is_banned:
        logger.info(f"Banned user attempted login: {user.username}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This account has been banned"
        )

    logger.info(f"User logged in: {user.username}")
    return {"access_token": token_for_user(user), "token_type": "bearer"}


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    return user_out(user)


@router.get("/users", response_model=List[str], tags=["Users"])
def list_usernames(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Usernames of every account, for picking chat partners and trusted reviewers"""
    return [u.username for u in db.query(User).order_by(User.username).all()]
