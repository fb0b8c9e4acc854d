from __future__ import annotations
import uuid
from datetime import datetime, timezone
from typing import Optional
from sqlmodel import SQLModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


class ChatRoom(SQLModel, table=True):
    __tablename__ = "chat_room"

    id: str = Field(default_factory=_new_id, primary_key=True)
    owner_id: str = Field(index=True)
    name: str
    created_at: datetime = Field(default_factory=_utcnow)
    is_active: bool = True
    most_recent_message: Optional[str] = None
    total_messages: int = 0
    # Highest message seq handed out in this room; never decremented
    last_seq: int = 0


class Message(SQLModel, table=True):
    __tablename__ = "message"

    id: str = Field(default_factory=_new_id, primary_key=True)
    chat_room_id: str = Field(index=True, foreign_key="chat_room.id")
    sender_id: str
    text: str
    timestamp: datetime = Field(default_factory=_utcnow, index=True)
    seq: int = 0


class EventLog(SQLModel, table=True):
    __tablename__ = "event_log"

    id: str = Field(default_factory=_new_id, primary_key=True)
    event_description: str
    timestamp: datetime = Field(default_factory=_utcnow)
