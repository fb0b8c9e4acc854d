from __future__ import annotations
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from rexchat.schemas.chat import ChatRoom, EventLog, Message


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class _Room:
    id: str
    name: str
    created_at: datetime
    is_active: bool = True
    most_recent_message: Optional[str] = None
    total_messages: int = 0
    last_seq: int = 0
    # message_id -> Message
    messages: Dict[str, Message] = field(default_factory=dict)

    def snapshot(self) -> ChatRoom:
        return ChatRoom(
            id=self.id,
            name=self.name,
            created_at=self.created_at,
            is_active=self.is_active,
            most_recent_message=self.most_recent_message,
            total_messages=self.total_messages,
        )


class MemoryStore:
    """Process-local ChatBackend. All state is lost on restart."""

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._lock = threading.Lock()
        self._clock = clock
        # owner_id -> room_id -> _Room
        self._rooms: Dict[str, Dict[str, _Room]] = {}
        self._logs: Dict[str, EventLog] = {}

    def _room(self, owner_id: str, room_id: str) -> Optional[_Room]:
        return self._rooms.get(owner_id, {}).get(room_id)

    # Rooms
    async def create_room(self, owner_id: str, name: str) -> ChatRoom:
        room = _Room(id=new_id(), name=name, created_at=self._clock())
        with self._lock:
            self._rooms.setdefault(owner_id, {})[room.id] = room
            return room.snapshot()

    async def list_rooms(self, owner_id: str) -> List[ChatRoom]:
        with self._lock:
            return [r.snapshot() for r in self._rooms.get(owner_id, {}).values()]

    async def get_room(self, owner_id: str, room_id: str) -> Optional[ChatRoom]:
        with self._lock:
            room = self._room(owner_id, room_id)
            return room.snapshot() if room else None

    async def set_room_active(self, owner_id: str, room_id: str, is_active: bool) -> bool:
        with self._lock:
            room = self._room(owner_id, room_id)
            if not room:
                return False
            room.is_active = is_active
            return True

    async def delete_room(self, owner_id: str, room_id: str) -> Optional[int]:
        with self._lock:
            rooms = self._rooms.get(owner_id, {})
            room = rooms.get(room_id)
            if not room:
                return None
            removed = len(room.messages)
            room.messages.clear()
            del rooms[room_id]
            return removed

    # Messages
    async def append_message(
        self, owner_id: str, room_id: str, sender_id: str, text: str
    ) -> Optional[Message]:
        with self._lock:
            room = self._room(owner_id, room_id)
            if not room:
                return None
            room.last_seq += 1
            msg = Message(
                id=new_id(),
                chat_room_id=room_id,
                sender_id=sender_id,
                text=text,
                timestamp=self._clock(),
                seq=room.last_seq,
            )
            room.messages[msg.id] = msg
            room.most_recent_message = text
            room.total_messages += 1
            return msg

    async def list_messages(self, owner_id: str, room_id: str) -> List[Message]:
        with self._lock:
            room = self._room(owner_id, room_id)
            if not room:
                return []
            msgs = list(room.messages.values())
        msgs.sort(key=lambda m: (m.timestamp, m.seq))
        return msgs

    async def repair_room_summary(self, owner_id: str, room_id: str) -> Optional[ChatRoom]:
        with self._lock:
            room = self._room(owner_id, room_id)
            if not room:
                return None
            msgs = sorted(room.messages.values(), key=lambda m: (m.timestamp, m.seq))
            room.total_messages = len(msgs)
            room.most_recent_message = msgs[-1].text if msgs else None
            return room.snapshot()

    # Event log
    async def add_log(self, description: str) -> EventLog:
        log = EventLog(id=new_id(), event_description=description, timestamp=self._clock())
        with self._lock:
            self._logs[log.id] = log
        return log

    async def update_log(self, log_id: str, description: str) -> bool:
        with self._lock:
            if log_id not in self._logs:
                return False
            self._logs[log_id] = EventLog(id=log_id, event_description=description, timestamp=self._clock())
            return True

    async def delete_log(self, log_id: str) -> bool:
        with self._lock:
            return self._logs.pop(log_id, None) is not None

    async def get_log(self, log_id: str) -> Optional[EventLog]:
        with self._lock:
            return self._logs.get(log_id)
