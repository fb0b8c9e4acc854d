"""Turns a room's history plus a new user message into an assistant reply.

Per send action an :class:`Exchange` moves ``IDLE -> SENDING ->
AWAITING_REPLY -> RESOLVED``. Model failures never reach the caller: the
reply is replaced by the fallback text and still recorded, so every user
message gets an answer bubble. Only store failures end an exchange in
``FAILED``. Nothing here retries.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from rexchat.config import Settings, get_settings
from rexchat.core.errors import ChatError, ModelError, ValidationError
from rexchat.providers.base import CompletionProvider
from rexchat.schemas.chat import ChatTurn, CompletionRequest, Message
from rexchat.services.messages import MessageStore

logger = logging.getLogger(__name__)


class ExchangeState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    AWAITING_REPLY = "awaiting_reply"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass
class Exchange:
    room_id: str
    text: str
    state: ExchangeState = ExchangeState.IDLE
    user_message: Optional[Message] = None
    reply: Optional[Message] = None
    error: Optional[ChatError] = None


class CompletionOrchestrator:
    def __init__(
        self,
        provider: CompletionProvider,
        messages: MessageStore,
        settings: Optional[Settings] = None,
    ) -> None:
        self.provider = provider
        self.messages = messages
        self.settings = settings or get_settings()

    @property
    def assistant_id(self) -> str:
        return self.settings.assistant_sender_id

    async def _first_choice(self, turns: List[ChatTurn]) -> str:
        request = CompletionRequest(model=self.settings.chat_model, messages=turns)
        try:
            response = await self.provider.complete(request)
        except ModelError:
            raise
        except Exception as e:
            raise ModelError(f"model call failed: {e!s}") from e
        if not response.choices:
            raise ModelError("model returned no choices")
        return response.choices[0]

    async def new_chat_title(self, first_message: str) -> str:
        """Short room title from the opening message. Raises ModelError."""
        turns = [
            ChatTurn(role="system", content=self.settings.title_prompt),
            ChatTurn(role="user", content=first_message),
        ]
        title = (await self._first_choice(turns)).strip()
        if not title:
            raise ModelError("model returned an empty title")
        return title

    def build_prompt(self, prior_messages: Sequence[Message], new_text: str) -> List[ChatTurn]:
        turns = [ChatTurn(role="system", content=self.settings.mentor_prompt)]
        for m in prior_messages:
            if m.is_typing_indicator:
                continue
            role = "assistant" if m.sender_id == self.assistant_id else "user"
            turns.append(ChatTurn(role=role, content=m.text))
        turns.append(ChatTurn(role="user", content=new_text))
        return turns

    async def complete_reply(self, room_id: str, prior_messages: Sequence[Message], new_text: str) -> Message:
        """Ask the model for a reply and persist it under the assistant id.

        A failed model call is logged and answered with the fallback text
        instead; store errors while persisting still propagate.
        """
        turns = self.build_prompt(prior_messages, new_text)
        try:
            text = await self._first_choice(turns)
            if not text.strip():
                raise ModelError("model returned an empty reply")
        except ModelError as e:
            logger.warning("completion failed room=%s: %s", room_id, e.message, exc_info=e.__cause__ is not None)
            text = self.settings.fallback_reply
        return await self.messages.append(room_id, text, self.assistant_id)

    async def run_exchange(self, room_id: str, prior_messages: Sequence[Message], text: str) -> Exchange:
        """Persist the user's message, then the reply. Store errors re-raise."""
        text = (text or "").strip()
        if not text:
            raise ValidationError("Required field (text) is missing")
        exchange = Exchange(room_id=room_id, text=text, state=ExchangeState.SENDING)
        sender = self.messages.context.require_user_id()
        try:
            exchange.user_message = await self.messages.append(room_id, text, sender)
            exchange.state = ExchangeState.AWAITING_REPLY
            exchange.reply = await self.complete_reply(room_id, prior_messages, text)
        except ChatError as e:
            exchange.state = ExchangeState.FAILED
            exchange.error = e
            logger.warning("exchange failed room=%s state=%s: %s", room_id, exchange.state.value, e.message)
            raise
        exchange.state = ExchangeState.RESOLVED
        return exchange
