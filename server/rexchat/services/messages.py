from __future__ import annotations
import logging
from typing import List

from rexchat.core.errors import NotFoundError, StoreError, ValidationError, require
from rexchat.core.identity import SessionContext
from rexchat.db.base import ChatBackend
from rexchat.schemas.chat import ChatRoom, Message

logger = logging.getLogger(__name__)


class MessageStore:
    """Messages of one user's rooms.

    ``append`` writes the message and the parent room's summary fields
    (``mostRecentMessage``, ``totalMessages``) as a single unit of work in
    the backend, so a failure leaves neither change behind. ``reconcile``
    recomputes the summary from the stored messages for rooms written by
    older clients.
    """

    def __init__(self, backend: ChatBackend, context: SessionContext) -> None:
        self.backend = backend
        self.context = context

    async def append(self, room_id: str, text: str, sender_id: str) -> Message:
        user_id = self.context.require_user_id()
        try:
            require(room_id, "ID for chat room")
            require(text, "text")
            require(sender_id, "senderId")
        except ValidationError as e:
            logger.info("append rejected room=%s: %s", room_id, e.message)
            raise
        try:
            msg = await self.backend.append_message(user_id, room_id, sender_id, text)
        except Exception as e:
            logger.warning("append failed room=%s: %s", room_id, e)
            raise StoreError("Failed to add message") from e
        if msg is None:
            logger.info("append: room=%s not found for user=%s", room_id, user_id)
            raise NotFoundError("Chat document doesn't exist")
        return msg

    async def list(self, room_id: str) -> List[Message]:
        user_id = self.context.require_user_id()
        require(room_id, "ID for chat room")
        try:
            messages = await self.backend.list_messages(user_id, room_id)
        except Exception as e:
            logger.warning("list messages failed room=%s: %s", room_id, e)
            raise StoreError("An error occurred while getting the chat messages") from e
        # Backends already order; sorting here keeps the contract backend-independent
        return sorted(messages, key=lambda m: (m.timestamp, m.seq))

    async def reconcile(self, room_id: str) -> ChatRoom:
        user_id = self.context.require_user_id()
        require(room_id, "ID for chat room")
        try:
            room = await self.backend.repair_room_summary(user_id, room_id)
        except Exception as e:
            logger.warning("reconcile failed room=%s: %s", room_id, e)
            raise StoreError("An error occurred while repairing the chat room") from e
        if room is None:
            raise NotFoundError(f"Chat room {room_id} not found")
        return room
