from __future__ import annotations
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class ChatTurn(BaseModel):
    role: str = Field(..., pattern=r"^(user|assistant|system)$")
    content: str


class CompletionRequest(BaseModel):
    model: str
    messages: List[ChatTurn]


class CompletionResponse(BaseModel):
    # Candidate completions, in the order the provider returned them
    choices: List[str] = Field(default_factory=list)


class ChatRoom(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="chatId")
    name: str
    created_at: datetime
    is_active: bool = Field(default=True, alias="isActive")
    most_recent_message: Optional[str] = Field(default=None, alias="mostRecentMessage")
    total_messages: int = Field(default=0, ge=0, alias="totalMessages")


class Message(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="messageId")
    chat_room_id: str = Field(alias="chatRoomId")
    sender_id: str = Field(alias="senderId")
    text: str
    timestamp: datetime
    seq: int = 0
    # Client-side only: the "assistant is typing" bubble
    is_typing_indicator: bool = Field(default=False, alias="isTypingIndicator")


class EventLog(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="logId")
    event_description: str = Field(alias="eventDescription")
    timestamp: datetime


class UsagePoint(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    date: str
    total_messages: int = Field(default=0, alias="totalMessages")


# Request payloads


class CreateRoomRequest(BaseModel):
    name: str = ""


class RoomStatusRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_active: bool = Field(alias="isActive")


class PostMessageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str = ""
    # Defaults to the signed-in user when omitted
    sender_id: Optional[str] = Field(default=None, alias="senderId")


class ReplyRequest(BaseModel):
    text: str = ""


class TitleRequest(BaseModel):
    message: str = ""


class LogRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    event_description: str = Field(default="", alias="eventDescription")
