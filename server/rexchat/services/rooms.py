from __future__ import annotations
import logging
from typing import List

from rexchat.core.errors import NotFoundError, StoreError, ValidationError, require
from rexchat.core.identity import SessionContext
from rexchat.db.base import ChatBackend
from rexchat.schemas.chat import ChatRoom

logger = logging.getLogger(__name__)


class RoomStore:
    """Chat rooms of the user currently bound to ``context``."""

    def __init__(self, backend: ChatBackend, context: SessionContext) -> None:
        self.backend = backend
        self.context = context

    async def create_room(self, name: str) -> ChatRoom:
        user_id = self.context.require_user_id()
        if name is None or not name.strip():
            logger.info("create_room rejected: blank name user=%s", user_id)
            raise ValidationError("Required field (name for chat room) is missing")
        try:
            room = await self.backend.create_room(user_id, name.strip())
        except Exception as e:
            logger.warning("create_room failed user=%s: %s", user_id, e)
            raise StoreError("An error occurred while creating the chat room") from e
        logger.info("created room=%s user=%s", room.id, user_id)
        return room

    async def list_rooms(self) -> List[ChatRoom]:
        user_id = self.context.require_user_id()
        try:
            return await self.backend.list_rooms(user_id)
        except Exception as e:
            logger.warning("list_rooms failed user=%s: %s", user_id, e)
            raise StoreError("An error occurred while getting the chat rooms") from e

    async def get_room(self, room_id: str) -> ChatRoom:
        user_id = self.context.require_user_id()
        require(room_id, "ID for chat room")
        try:
            room = await self.backend.get_room(user_id, room_id)
        except Exception as e:
            logger.warning("get_room failed room=%s: %s", room_id, e)
            raise StoreError("An error occurred while getting the chat room") from e
        if room is None:
            logger.info("get_room: room=%s not found for user=%s", room_id, user_id)
            raise NotFoundError(f"Chat room {room_id} not found")
        return room

    async def set_active(self, room_id: str, is_active: bool) -> None:
        user_id = self.context.require_user_id()
        require(room_id, "ID for chat room")
        if is_active is None:
            raise ValidationError("Required field (isActive) is missing")
        try:
            found = await self.backend.set_room_active(user_id, room_id, bool(is_active))
        except Exception as e:
            logger.warning("set_active failed room=%s: %s", room_id, e)
            raise StoreError("An error occurred while updating the chat room status") from e
        if not found:
            logger.info("set_active: room=%s not found for user=%s", room_id, user_id)
            raise NotFoundError(f"Chat room {room_id} not found")
        logger.info("room=%s isActive=%s", room_id, is_active)

    async def delete_room(self, room_id: str) -> int:
        """Delete a room and all of its messages; returns how many messages went."""
        user_id = self.context.require_user_id()
        require(room_id, "ID for chat room")
        try:
            removed = await self.backend.delete_room(user_id, room_id)
        except Exception as e:
            logger.warning("delete_room failed room=%s: %s", room_id, e)
            raise StoreError("An error occurred while deleting the chat room") from e
        if removed is None:
            logger.info("delete_room: room=%s not found for user=%s", room_id, user_id)
            raise NotFoundError(f"Chat room {room_id} not found")
        logger.info("deleted room=%s with %d messages", room_id, removed)
        return removed
