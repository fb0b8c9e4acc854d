from __future__ import annotations
import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from rexchat.core.errors import ChatError, ModelError
from rexchat.schemas.chat import ChatRoom, Message
from rexchat.services.messages import MessageStore
from rexchat.services.orchestrator import CompletionOrchestrator
from rexchat.services.rooms import RoomStore
from rexchat.services.stats import partition_rooms

logger = logging.getLogger(__name__)

TITLE_SNIPPET_LENGTH = 40


@dataclass
class Alert:
    message: str
    severity: str = "success"


def fallback_title(text: str) -> str:
    text = text.strip()
    if len(text) <= TITLE_SNIPPET_LENGTH:
        return text
    return text[:TITLE_SNIPPET_LENGTH] + "..."


class ChatSession:
    """State behind one chat screen: the selected room and its messages.

    All changes to ``messages`` go through ``_lock`` and sends are handled
    one at a time, so the typing placeholder can neither be duplicated nor
    left behind by interleaved continuations.
    """

    def __init__(self, rooms: RoomStore, messages: MessageStore, orchestrator: CompletionOrchestrator) -> None:
        self.room_store = rooms
        self.message_store = messages
        self.orchestrator = orchestrator
        self.context = rooms.context
        self.rooms: List[ChatRoom] = []
        self.selected_room_id: Optional[str] = None
        self.messages: List[Message] = []
        self.alerts: List[Alert] = []
        self.creating_chat = False
        self._lock = asyncio.Lock()
        self._send_lock = asyncio.Lock()

    @property
    def is_typing(self) -> bool:
        return any(m.is_typing_indicator for m in self.messages)

    def _alert(self, message: str, severity: str = "success") -> None:
        self.alerts.append(Alert(message=message, severity=severity))

    def _fail(self, message: str, error: ChatError) -> None:
        logger.info("%s: %s (%s)", message, error.message, error.code)
        self._alert(message, "error")

    def pop_alerts(self) -> List[Alert]:
        alerts, self.alerts = self.alerts, []
        return alerts

    async def _clear_selection(self) -> None:
        async with self._lock:
            self.selected_room_id = None
            self.messages = []

    # Rooms
    async def load_rooms(self) -> List[ChatRoom]:
        try:
            self.rooms = await self.room_store.list_rooms()
        except ChatError as e:
            self._fail("Error fetching chats", e)
        return self.rooms

    def inbox(self) -> Tuple[List[ChatRoom], List[ChatRoom]]:
        return partition_rooms(self.rooms)

    async def select_room(self, room_id: str) -> List[Message]:
        async with self._lock:
            self.selected_room_id = room_id
            self.messages = []
        try:
            loaded = await self.message_store.list(room_id)
        except ChatError as e:
            self._fail("Error fetching messages", e)
            return self.messages
        async with self._lock:
            # Another selection may have happened while loading
            if self.selected_room_id == room_id:
                self.messages = loaded
        return self.messages

    async def _set_status(self, room_id: str, is_active: bool) -> bool:
        try:
            await self.room_store.set_active(room_id, is_active)
        except ChatError as e:
            self._fail("Error updating chat status", e)
            return False
        self.rooms = [r.model_copy(update={"is_active": is_active}) if r.id == room_id else r for r in self.rooms]
        self._alert("Chat status updated successfully!")
        return True

    async def end_room(self, room_id: str) -> bool:
        ok = await self._set_status(room_id, False)
        if ok and self.selected_room_id == room_id:
            await self._clear_selection()
        return ok

    async def reopen_room(self, room_id: str) -> bool:
        return await self._set_status(room_id, True)

    async def delete_room(self, room_id: str) -> bool:
        try:
            await self.room_store.delete_room(room_id)
        except ChatError as e:
            self._fail("Error deleting chat room", e)
            return False
        self.rooms = [r for r in self.rooms if r.id != room_id]
        if self.selected_room_id == room_id:
            await self._clear_selection()
        self._alert("Chat room deleted successfully!")
        return True

    # Sending
    async def send(self, text: str) -> Optional[Message]:
        """Send ``text``; returns the assistant reply or None on failure."""
        text = (text or "").strip()
        if not text:
            return None
        async with self._send_lock:
            if self.selected_room_id is None:
                room = await self._start_room(text)
                if room is None:
                    return None
            return await self._send_in_room(self.selected_room_id, text)

    async def _start_room(self, first_message: str) -> Optional[ChatRoom]:
        self.creating_chat = True
        try:
            try:
                title = await self.orchestrator.new_chat_title(first_message)
            except ModelError as e:
                logger.info("title generation failed, using message snippet: %s", e.message)
                title = fallback_title(first_message)
            try:
                room = await self.room_store.create_room(title)
            except ChatError as e:
                self._fail("Error creating chat room", e)
                return None
        finally:
            self.creating_chat = False
        self.rooms.append(room)
        async with self._lock:
            self.selected_room_id = room.id
            self.messages = []
        self._alert("Chat room created successfully!")
        return room

    async def _send_in_room(self, room_id: str, text: str) -> Optional[Message]:
        now = datetime.now(timezone.utc)
        sender = self.context.user_id or ""
        optimistic = Message(
            id=f"local-{uuid.uuid4().hex}", chat_room_id=room_id, sender_id=sender, text=text, timestamp=now
        )
        placeholder = Message(
            id=f"typing-{uuid.uuid4().hex}",
            chat_room_id=room_id,
            sender_id=self.orchestrator.assistant_id,
            text="",
            timestamp=now,
            is_typing_indicator=True,
        )
        async with self._lock:
            prior = [m for m in self.messages if not m.is_typing_indicator]
            self.messages.append(optimistic)
            self.messages.append(placeholder)

        reply: Optional[Message] = None
        user_message: Optional[Message] = None
        try:
            exchange = await self.orchestrator.run_exchange(room_id, prior, text)
            reply, user_message = exchange.reply, exchange.user_message
        except ChatError as e:
            self._fail("Error sending message", e)
        finally:
            async with self._lock:
                self.messages = [m for m in self.messages if m.id != placeholder.id]
                if user_message is not None:
                    self.messages = [user_message if m.id == optimistic.id else m for m in self.messages]
                if reply is not None and self.selected_room_id == room_id:
                    self.messages.append(reply)
        return reply
