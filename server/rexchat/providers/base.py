from __future__ import annotations
from typing import Protocol

from rexchat.core.identity import Identity
from rexchat.schemas.chat import CompletionRequest, CompletionResponse


class CompletionProvider(Protocol):
    id: str

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Return every candidate completion; raise ModelError on failure."""
        ...


class IdentityProvider(Protocol):
    id: str

    async def sign_in(self, email: str, password: str) -> Identity:
        ...

    async def register(self, email: str, password: str, display_name: str) -> Identity:
        ...

    async def sign_out(self, identity: Identity) -> None:
        ...

    async def send_reset_email(self, email: str) -> None:
        ...
