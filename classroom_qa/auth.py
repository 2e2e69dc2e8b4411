# classroom_qa/auth.py
"""Password hashing and access tokens.

A token names its account three ways: ``user_id``, ``username`` and the
account's ``created`` timestamp. All three must still match the stored row,
so a token outlives neither the deletion of its account nor a database reset,
even when a later account is handed the same id or name.
"""
from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from .config import SECRET_KEY, ACCESS_TOKEN_EXPIRE_MINUTES

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

ALGORITHM = "HS256"


def verify_password(plain: str, hashed: str) -> bool:
    return PWD_CTX.verify(plain, hashed)


def get_password_hash(password: str) -> str:
    return PWD_CTX.hash(password)


def create_access_token(claims: dict, lifetime: Optional[timedelta] = None) -> str:
    payload = dict(claims)
    payload["exp"] = datetime.utcnow() + (lifetime or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def _account_stamp(user) -> Optional[str]:
    return user.created_at.isoformat() if user.created_at else None


def token_for_user(user) -> str:
    return create_access_token({
        "user_id": user.user_id,
        "username": user.username,
        "created": _account_stamp(user),
        "roles": user.role_names,
    })


def decode_token(token: str) -> Optional[dict]:
    """Verified claims of ``token``, or None when it is forged, malformed or expired."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


def token_matches_user(claims: dict, user) -> bool:
    """True when ``claims`` were issued for this exact account."""
    return (
        claims.get("user_id") == user.user_id
        and claims.get("username") == user.username
        and claims.get("created") == _account_stamp(user)
    )
