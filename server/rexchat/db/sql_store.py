from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional
from sqlmodel import select, update
from sqlmodel.ext.asyncio.session import AsyncSession

from rexchat.db.models import ChatRoom as ChatRoomRow, Message as MessageRow, EventLog as EventLogRow
from rexchat.db.session import Database
from rexchat.schemas.chat import ChatRoom, EventLog, Message

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _room_out(row: ChatRoomRow) -> ChatRoom:
    return ChatRoom(
        id=row.id,
        name=row.name,
        created_at=row.created_at,
        is_active=row.is_active,
        most_recent_message=row.most_recent_message,
        total_messages=row.total_messages,
    )


def _message_out(row: MessageRow) -> Message:
    return Message(
        id=row.id,
        chat_room_id=row.chat_room_id,
        sender_id=row.sender_id,
        text=row.text,
        timestamp=row.timestamp,
        seq=row.seq,
    )


def _log_out(row: EventLogRow) -> EventLog:
    return EventLog(id=row.id, event_description=row.event_description, timestamp=row.timestamp)


class SqlStore:
    """ChatBackend over SQLModel. Each public call is one transaction."""

    def __init__(self, db: Database, clock: Callable[[], datetime] = utcnow) -> None:
        self.db = db
        self._clock = clock

    async def _owned_room(self, session: AsyncSession, owner_id: str, room_id: str) -> Optional[ChatRoomRow]:
        room = await session.get(ChatRoomRow, room_id)
        if room is None or room.owner_id != owner_id:
            return None
        return room

    async def _room_messages(self, session: AsyncSession, room_id: str) -> List[MessageRow]:
        stmt = (
            select(MessageRow)
            .where(MessageRow.chat_room_id == room_id)
            .order_by(MessageRow.timestamp, MessageRow.seq)
        )
        result = await session.exec(stmt)
        return list(result.all())

    # Rooms
    async def create_room(self, owner_id: str, name: str) -> ChatRoom:
        async with self.db.session() as session:
            room = ChatRoomRow(owner_id=owner_id, name=name, created_at=self._clock())
            session.add(room)
            await session.flush()
            await session.refresh(room)
            return _room_out(room)

    async def list_rooms(self, owner_id: str) -> List[ChatRoom]:
        async with self.db.session() as session:
            result = await session.exec(select(ChatRoomRow).where(ChatRoomRow.owner_id == owner_id))
            return [_room_out(row) for row in result.all()]

    async def get_room(self, owner_id: str, room_id: str) -> Optional[ChatRoom]:
        async with self.db.session() as session:
            room = await self._owned_room(session, owner_id, room_id)
            return _room_out(room) if room else None

    async def set_room_active(self, owner_id: str, room_id: str, is_active: bool) -> bool:
        async with self.db.session() as session:
            room = await self._owned_room(session, owner_id, room_id)
            if room is None:
                return False
            room.is_active = is_active
            session.add(room)
            return True

    async def delete_room(self, owner_id: str, room_id: str) -> Optional[int]:
        async with self.db.session() as session:
            room = await self._owned_room(session, owner_id, room_id)
            if room is None:
                return None
            # Messages first (no relationship cascade defined)
            messages = await self._room_messages(session, room_id)
            for m in messages:
                await session.delete(m)
            await session.flush()
            await session.delete(room)
            return len(messages)

    # Messages
    async def _bump_summary(self, session: AsyncSession, owner_id: str, room_id: str, text: str) -> Optional[int]:
        """Advance the room counters in the database; returns the new seq, None if no such room."""
        stmt = (
            update(ChatRoomRow)
            .where(ChatRoomRow.id == room_id, ChatRoomRow.owner_id == owner_id)
            .values(
                total_messages=ChatRoomRow.total_messages + 1,
                last_seq=ChatRoomRow.last_seq + 1,
                most_recent_message=text,
            )
            .returning(ChatRoomRow.last_seq)
        )
        result = await session.exec(stmt)
        return result.scalar_one_or_none()

    async def _insert_message(self, session: AsyncSession, room_id: str, seq: int, sender_id: str, text: str) -> MessageRow:
        msg = MessageRow(
            chat_room_id=room_id,
            sender_id=sender_id,
            text=text,
            timestamp=self._clock(),
            seq=seq,
        )
        session.add(msg)
        await session.flush()
        return msg

    async def append_message(
        self, owner_id: str, room_id: str, sender_id: str, text: str
    ) -> Optional[Message]:
        async with self.db.session() as session:
            # Counters are advanced in SQL so overlapping appends never read stale values
            seq = await self._bump_summary(session, owner_id, room_id, text)
            if seq is None:
                return None
            msg = await self._insert_message(session, room_id, seq, sender_id, text)
            return _message_out(msg)

    async def list_messages(self, owner_id: str, room_id: str) -> List[Message]:
        async with self.db.session() as session:
            room = await self._owned_room(session, owner_id, room_id)
            if room is None:
                return []
            return [_message_out(m) for m in await self._room_messages(session, room_id)]

    async def repair_room_summary(self, owner_id: str, room_id: str) -> Optional[ChatRoom]:
        async with self.db.session() as session:
            room = await self._owned_room(session, owner_id, room_id)
            if room is None:
                return None
            messages = await self._room_messages(session, room_id)
            if room.total_messages != len(messages):
                logger.warning(
                    "room=%s totalMessages drift stored=%d actual=%d", room_id, room.total_messages, len(messages)
                )
            room.total_messages = len(messages)
            room.most_recent_message = messages[-1].text if messages else None
            session.add(room)
            await session.flush()
            return _room_out(room)

    # Event log
    async def add_log(self, description: str) -> EventLog:
        async with self.db.session() as session:
            row = EventLogRow(event_description=description, timestamp=self._clock())
            session.add(row)
            await session.flush()
            return _log_out(row)

    async def update_log(self, log_id: str, description: str) -> bool:
        async with self.db.session() as session:
            row = await session.get(EventLogRow, log_id)
            if row is None:
                return False
            row.event_description = description
            row.timestamp = self._clock()
            session.add(row)
            return True

    async def delete_log(self, log_id: str) -> bool:
        async with self.db.session() as session:
            row = await session.get(EventLogRow, log_id)
            if row is None:
                return False
            await session.delete(row)
            return True

    async def get_log(self, log_id: str) -> Optional[EventLog]:
        async with self.db.session() as session:
            row = await session.get(EventLogRow, log_id)
            return _log_out(row) if row else None
