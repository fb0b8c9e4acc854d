from __future__ import annotations
from typing import List, Optional, Protocol

from rexchat.schemas.chat import ChatRoom, EventLog, Message


class ChatBackend(Protocol):
    """Document-store contract: ``users/{owner}/chats/{room}/messages/{id}``.

    Lookups return ``None`` (or ``False``) for absent documents; the service
    layer turns that into NotFoundError.
    """

    async def create_room(self, owner_id: str, name: str) -> ChatRoom:
        ...

    async def list_rooms(self, owner_id: str) -> List[ChatRoom]:
        ...

    async def get_room(self, owner_id: str, room_id: str) -> Optional[ChatRoom]:
        ...

    async def set_room_active(self, owner_id: str, room_id: str, is_active: bool) -> bool:
        ...

    async def delete_room(self, owner_id: str, room_id: str) -> Optional[int]:
        """Delete the room's messages, then the room. Returns messages removed."""
        ...

    async def append_message(
        self, owner_id: str, room_id: str, sender_id: str, text: str
    ) -> Optional[Message]:
        """Insert a message and bump the room summary in one unit of work."""
        ...

    async def list_messages(self, owner_id: str, room_id: str) -> List[Message]:
        ...

    async def repair_room_summary(self, owner_id: str, room_id: str) -> Optional[ChatRoom]:
        ...

    async def add_log(self, description: str) -> EventLog:
        ...

    async def update_log(self, log_id: str, description: str) -> bool:
        ...

    async def delete_log(self, log_id: str) -> bool:
        ...

    async def get_log(self, log_id: str) -> Optional[EventLog]:
        ...
