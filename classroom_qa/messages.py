# classroom_qa/messages.py
import logging
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import desc
from sqlalchemy.orm import Session

from .database import get_db, like_pattern
from .deps import get_current_user, get_user_or_404
from .models import User, Chat, ChatParticipant, Message
from .schemas import ChatCreate, ChatOut, MessageCreate, MessageOut
from .validation import validate_message
from .ws_manager import manager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Direct messages"])


def find_chat_between(db: Session, user1_id: int, user2_id: int):
    mine = db.query(ChatParticipant.chat_id).filter(ChatParticipant.user_id == user1_id)
    return db.query(Chat).join(ChatParticipant).filter(
        ChatParticipant.user_id == user2_id,
        Chat.chat_id.in_(mine)
    ).first()


def get_chat_for_user(db: Session, chat_id: int, user: User) -> Chat:
    """Load a chat the caller takes part in; 404 otherwise so chat ids are not probed"""
    chat = db.query(Chat).filter(Chat.chat_id == chat_id).first()
    if not chat or user.user_id not in chat.participant_ids():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Chat not found"
        )
    return chat


def unread_query(db: Session, chat_id: int, user_id: int):
    return db.query(Message).filter(
        Message.chat_id == chat_id,
        Message.sender_id != user_id,
        Message.is_read.is_(False)
    )


def chat_out(db: Session, chat: Chat, user: User) -> ChatOut:
    other = next((p.user.username for p in chat.participants if p.user_id != user.user_id), None)
    last = db.query(Message).filter(Message.chat_id == chat.chat_id).order_by(
        desc(Message.created_at), desc(Message.message_id)
    ).first()
    return ChatOut(
        chat_id=chat.chat_id,
        other_user=other,
        last_message=last.body if last else None,
        unread_count=unread_query(db, chat.chat_id, user.user_id).count(),
        updated_at=chat.updated_at,
    )


@router.post("/chats", response_model=ChatOut)
def open_chat(c: ChatCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    Open a chat with another user.
    - Returns the existing chat if the two users already have one
    """
    other = get_user_or_404(db, c.username)
    if other.user_id == user.user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot start a chat with yourself"
        )

    chat = find_chat_between(db, user.user_id, other.user_id)
    if chat is None:
        chat = Chat()
        chat.participants.append(ChatParticipant(user_id=user.user_id))
        chat.participants.append(ChatParticipant(user_id=other.user_id))
        db.add(chat)
        db.commit()
        db.refresh(chat)
        logger.info(f"Chat {chat.chat_id} created between {user.username} and {other.username}")
    return chat_out(db, chat, user)


@router.get("/chats", response_model=List[ChatOut])
def list_chats(
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """The caller's chats, most recently active first"""
    chats = db.query(Chat).join(ChatParticipant).filter(
        ChatParticipant.user_id == user.user_id
    ).order_by(desc(Chat.updated_at), desc(Chat.chat_id)).limit(limit).all()
    return [chat_out(db, chat, user) for chat in chats]


@router.get("/chats/{chat_id}/messages", response_model=List[MessageOut])
def get_messages(chat_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Messages of a chat, oldest first"""
    get_chat_for_user(db, chat_id, user)
    return db.query(Message).filter(Message.chat_id == chat_id).order_by(
        Message.created_at, Message.message_id
    ).all()


@router.post("/chats/{chat_id}/messages", response_model=MessageOut)
async def send_message(
    chat_id: int,
    m: MessageCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Send a message in a chat.
    - The sender must be a participant
    - Pushes the message to the other participant's open sockets
    """
    chat = get_chat_for_user(db, chat_id, user)
    message = Message(chat_id=chat.chat_id, sender_id=user.user_id, body=validate_message(m.body))
    chat.updated_at = datetime.utcnow()
    db.add(message)
    db.commit()
    db.refresh(message)

    out = MessageOut.model_validate(message)
    recipients = chat.participant_ids() - {user.user_id}
    await manager.send_to_users(recipients, {"type": "new_message", "message": out.model_dump(mode="json")})

    logger.info(f"Message {message.message_id} sent in chat {chat_id} by {user.username}")
    return out


@router.post("/chats/{chat_id}/read")
def mark_read(chat_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Mark every message from the other participant as read"""
    get_chat_for_user(db, chat_id, user)
    marked = unread_query(db, chat_id, user.user_id).update(
        {Message.is_read: True}, synchronize_session=False
    )
    db.commit()
    return {"marked_read": marked}


@router.get("/chats/{chat_id}/unread")
def unread_count(chat_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    get_chat_for_user(db, chat_id, user)
    return {"chat_id": chat_id, "unread_count": unread_query(db, chat_id, user.user_id).count()}


@router.delete("/chats/{chat_id}")
def delete_chat(chat_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    chat = get_chat_for_user(db, chat_id, user)
    db.delete(chat)
    db.commit()
    logger.info(f"Chat {chat_id} deleted by {user.username}")
    return {"detail": "Chat deleted"}


@router.get("/messages/search", response_model=List[MessageOut])
def search_messages(
    q: str = Query(..., min_length=1),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Messages in the caller's chats containing ``q``, newest first"""
    my_chats = db.query(ChatParticipant.chat_id).filter(ChatParticipant.user_id == user.user_id)
    return db.query(Message).filter(
        Message.chat_id.in_(my_chats),
        Message.body.ilike(like_pattern(q), escape="\\")
    ).order_by(desc(Message.created_at), desc(Message.message_id)).all()
