from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Union

import pytest

from rexchat.config import Settings
from rexchat.core.errors import ModelError
from rexchat.core.identity import Identity, SessionContext
from rexchat.core.memory_store import MemoryStore
from rexchat.db.session import Database
from rexchat.db.sql_store import SqlStore
from rexchat.schemas.chat import CompletionRequest, CompletionResponse
from rexchat.services.messages import MessageStore
from rexchat.services.orchestrator import CompletionOrchestrator
from rexchat.services.rooms import RoomStore

Scripted = Union[str, List[str], Exception]


class ScriptedProvider:
    """Completion provider that replays canned answers and records requests."""

    id = "scripted"

    def __init__(self, *answers: Scripted) -> None:
        self.answers: List[Scripted] = list(answers)
        self.requests: List[CompletionRequest] = []
        self.on_call: Optional[Callable[[CompletionRequest], None]] = None

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        self.requests.append(request)
        if self.on_call:
            self.on_call(request)
        answer = self.answers.pop(0) if self.answers else "ok"
        if isinstance(answer, Exception):
            raise answer
        if isinstance(answer, str):
            answer = [answer]
        return CompletionResponse(choices=answer)


class StepClock:
    """Hands out the given timestamps in order, then keeps counting up."""

    def __init__(self, *stamps: datetime) -> None:
        self.stamps = list(stamps)
        self.last = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        if self.stamps:
            self.last = self.stamps.pop(0)
        else:
            self.last = self.last + timedelta(seconds=1)
        return self.last


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        memory_mode=True,
        openai_api_key="sk-test",
        firebase_api_key=None,
        _env_file=None,
    )


@pytest.fixture
def user() -> Identity:
    return Identity(uid="u1", display_name="User One", email="u1@example.com")


@pytest.fixture
def context(user) -> SessionContext:
    return SessionContext(user)


@pytest.fixture
async def sql_db(anyio_backend, tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'rexchat-test.db'}")
    await db.init()
    yield db
    await db.dispose()


@pytest.fixture(params=["memory", "sql"])
async def backend(request, anyio_backend, tmp_path):
    if request.param == "memory":
        yield MemoryStore()
        return
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'rexchat-backend.db'}")
    await db.init()
    yield SqlStore(db)
    await db.dispose()


@pytest.fixture
def rooms(backend, context) -> RoomStore:
    return RoomStore(backend, context)


@pytest.fixture
def messages(backend, context) -> MessageStore:
    return MessageStore(backend, context)


@pytest.fixture
def provider() -> ScriptedProvider:
    return ScriptedProvider()


@pytest.fixture
def orchestrator(provider, messages, settings) -> CompletionOrchestrator:
    return CompletionOrchestrator(provider, messages, settings)


def model_failure(message: str = "upstream 500") -> ModelError:
    return ModelError(message, status=500)
