from __future__ import annotations
import logging

from rexchat.core.errors import NotFoundError, StoreError, require
from rexchat.db.base import ChatBackend
from rexchat.schemas.chat import EventLog

logger = logging.getLogger(__name__)


class EventLogStore:
    """Application event log; not scoped to a user."""

    def __init__(self, backend: ChatBackend) -> None:
        self.backend = backend

    async def post(self, description: str) -> EventLog:
        require(description, "eventDescription")
        try:
            log = await self.backend.add_log(description)
        except Exception as e:
            logger.warning("adding log failed: %s", e)
            raise StoreError("An error occurred while adding the log") from e
        logger.info("log=%s added", log.id)
        return log

    async def update(self, log_id: str, description: str) -> None:
        require(log_id, "logId")
        require(description, "newEventDescription")
        try:
            found = await self.backend.update_log(log_id, description)
        except Exception as e:
            logger.warning("updating log=%s failed: %s", log_id, e)
            raise StoreError("An error occurred while updating the log") from e
        if not found:
            raise NotFoundError("No such document!")

    async def delete(self, log_id: str) -> None:
        require(log_id, "logId")
        try:
            found = await self.backend.delete_log(log_id)
        except Exception as e:
            logger.warning("deleting log=%s failed: %s", log_id, e)
            raise StoreError("An error occurred while deleting the log") from e
        if not found:
            raise NotFoundError("No such document!")

    async def get(self, log_id: str) -> EventLog:
        require(log_id, "logId")
        try:
            log = await self.backend.get_log(log_id)
        except Exception as e:
            logger.warning("getting log=%s failed: %s", log_id, e)
            raise StoreError("An error occurred while getting the log") from e
        if log is None:
            logger.info("log=%s not found", log_id)
            raise NotFoundError("No such document!")
        return log
