# classroom_qa/models.py
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey, Text, UniqueConstraint, Index
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

ROLES = ("admin", "instructor", "student", "reviewer", "staff")
VOTE_TYPES = ("upvote", "downvote")


class User(Base):
    __tablename__ = "users"
    # ids of deleted users are never handed out again
    __table_args__ = {"sqlite_autoincrement": True}
    user_id = Column(Integer, primary_key=True, index=True)
    username = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    is_banned = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    roles = relationship("UserRole", back_populates="user", cascade="all, delete-orphan",
                         passive_deletes=True, lazy="selectin")

    @property
    def role_names(self):
        return sorted(r.role for r in self.roles)

    def has_role(self, role):
        return any(r.role == role for r in self.roles)


class UserRole(Base):
    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "role", name="uq_user_role"),)
    role_id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    role = Column(String(50), nullable=False)

    user = relationship("User", back_populates="roles")


class InvitationCode(Base):
    __tablename__ = "invitation_codes"
    code = Column(String(16), primary_key=True)
    is_used = Column(Boolean, default=False, nullable=False)
    created_by = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class Question(Base):
    __tablename__ = "questions"
    question_id = Column(Integer, primary_key=True, index=True)
    author_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    body = Column(String(1000), nullable=False)
    up_votes = Column(Integer, default=0, nullable=False)
    down_votes = Column(Integer, default=0, nullable=False)
    is_sensitive = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    author = relationship("User", lazy="joined")
    answers = relationship("Answer", back_populates="question", cascade="all, delete-orphan",
                           passive_deletes=True)
    votes = relationship("QuestionVote", cascade="all, delete-orphan", passive_deletes=True)

    @property
    def author_name(self):
        return self.author.username if self.author else None

    @property
    def sorted_answers(self):
        # Correct answers first, then by score
        return sorted(
            self.answers,
            key=lambda a: (not a.is_correct, -(a.up_votes - a.down_votes), a.answer_id),
        )


class Answer(Base):
    __tablename__ = "answers"
    answer_id = Column(Integer, primary_key=True, index=True)
    question_id = Column(Integer, ForeignKey("questions.question_id", ondelete="CASCADE"),
                         nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    body = Column(String(1000), nullable=False)
    up_votes = Column(Integer, default=0, nullable=False)
    down_votes = Column(Integer, default=0, nullable=False)
    is_correct = Column(Boolean, default=False, nullable=False)
    is_sensitive = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    author = relationship("User", lazy="joined")
    question = relationship("Question", back_populates="answers")
    reviews = relationship("Review", back_populates="answer", cascade="all, delete-orphan",
                           passive_deletes=True)
    votes = relationship("AnswerVote", cascade="all, delete-orphan", passive_deletes=True)

    @property
    def author_name(self):
        return self.author.username if self.author else None


class Review(Base):
    __tablename__ = "reviews"
    review_id = Column(Integer, primary_key=True, index=True)
    answer_id = Column(Integer, ForeignKey("answers.answer_id", ondelete="CASCADE"),
                       nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    body = Column(String(1000), nullable=False)
    helpful_count = Column(Integer, default=0, nullable=False)
    not_helpful_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    author = relationship("User", lazy="joined")
    answer = relationship("Answer", back_populates="reviews")
    votes = relationship("ReviewVote", cascade="all, delete-orphan", passive_deletes=True)

    @property
    def author_name(self):
        return self.author.username if self.author else None

    @property
    def score(self):
        return self.helpful_count - self.not_helpful_count


class QuestionVote(Base):
    __tablename__ = "question_votes"
    __table_args__ = (UniqueConstraint("question_id", "user_id", name="uq_question_vote"),)
    vote_id = Column(Integer, primary_key=True)
    question_id = Column(Integer, ForeignKey("questions.question_id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    vote_type = Column(String(10), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class AnswerVote(Base):
    __tablename__ = "answer_votes"
    __table_args__ = (UniqueConstraint("answer_id", "user_id", name="uq_answer_vote"),)
    vote_id = Column(Integer, primary_key=True)
    answer_id = Column(Integer, ForeignKey("answers.answer_id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    vote_type = Column(String(10), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class ReviewVote(Base):
    __tablename__ = "review_votes"
    __table_args__ = (UniqueConstraint("review_id", "user_id", name="uq_review_vote"),)
    vote_id = Column(Integer, primary_key=True)
    review_id = Column(Integer, ForeignKey("reviews.review_id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    vote_type = Column(String(10), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class TrustedReviewer(Base):
    __tablename__ = "trusted_reviewers"
    __table_args__ = (
        UniqueConstraint("user_id", "reviewer_id", name="uq_trusted_reviewer"),
        Index("idx_trusted_reviewers_user", "user_id"),
    )
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    reviewer_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    reviewer = relationship("User", foreign_keys=[reviewer_id], lazy="joined")


class Chat(Base):
    __tablename__ = "chats"
    chat_id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)

    participants = relationship("ChatParticipant", back_populates="chat", cascade="all, delete-orphan",
                                passive_deletes=True, lazy="selectin")
    messages = relationship("Message", back_populates="chat", cascade="all, delete-orphan",
                            passive_deletes=True, order_by="Message.message_id")

    def participant_ids(self):
        return {p.user_id for p in self.participants}


class ChatParticipant(Base):
    __tablename__ = "chat_participants"
    __table_args__ = (Index("idx_chat_participants_user", "user_id"),)
    chat_id = Column(Integer, ForeignKey("chats.chat_id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), primary_key=True)

    chat = relationship("Chat", back_populates="participants")
    user = relationship("User", lazy="joined")


class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (Index("idx_messages_chat_created", "chat_id", "created_at"),)
    message_id = Column(Integer, primary_key=True, index=True)
    chat_id = Column(Integer, ForeignKey("chats.chat_id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    body = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    chat = relationship("Chat", back_populates="messages")
    sender = relationship("User", lazy="joined")

    @property
    def sender_name(self):
        return self.sender.username if self.sender else None
