# classroom_qa/schemas.py
from pydantic import BaseModel
from typing import Optional, List, Literal
from datetime import datetime


class UserCreate(BaseModel):
    username: str
    password: str
    invitation_code: Optional[str] = None


class UserLogin(BaseModel):
    username: str
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserOut(BaseModel):
    user_id: int
    username: str
    roles: List[str]
    is_banned: bool


class UserBanStatus(BaseModel):
    username: str
    is_banned: bool


class InvitationOut(BaseModel):
    code: str


class QuestionCreate(BaseModel):
    body: str


class AnswerCreate(BaseModel):
    body: str


class AnswerOut(BaseModel):
    answer_id: int
    question_id: int
    author_name: Optional[str]
    body: str
    up_votes: int
    down_votes: int
    is_correct: bool
    is_sensitive: bool
    created_at: datetime

    class Config:
        from_attributes = True


class QuestionOut(BaseModel):
    question_id: int
    author_name: Optional[str]
    body: str
    up_votes: int
    down_votes: int
    is_sensitive: bool
    created_at: datetime
    updated_at: Optional[datetime]
    answers: List[AnswerOut] = []

    class Config:
        from_attributes = True


class VoteIn(BaseModel):
    vote_type: Literal["upvote", "downvote"]


class VoteOut(BaseModel):
    action: Literal["added", "changed", "removed"]
    vote_type: Optional[str]
    up_votes: int
    down_votes: int


class ReviewCreate(BaseModel):
    body: str


class ReviewOut(BaseModel):
    review_id: int
    answer_id: int
    author_name: Optional[str]
    body: str
    helpful_count: int
    not_helpful_count: int
    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class ReviewerRank(BaseModel):
    username: str
    trust_count: int


class SensitivityIn(BaseModel):
    is_sensitive: bool


class ChatCreate(BaseModel):
    username: str


class ChatOut(BaseModel):
    chat_id: int
    other_user: Optional[str]
    last_message: Optional[str] = None
    unread_count: int = 0
    updated_at: Optional[datetime]


class MessageCreate(BaseModel):
    body: str


class MessageOut(BaseModel):
    message_id: int
    chat_id: int
    sender_id: int
    sender_name: Optional[str]
    body: str
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True
