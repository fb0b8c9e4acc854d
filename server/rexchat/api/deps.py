from __future__ import annotations
from fastapi import Depends, Request

from rexchat.config import Settings
from rexchat.core.auth import get_current_identity
from rexchat.core.identity import Identity, SessionContext
from rexchat.db.base import ChatBackend
from rexchat.services.event_log import EventLogStore
from rexchat.services.messages import MessageStore
from rexchat.services.orchestrator import CompletionOrchestrator
from rexchat.services.rooms import RoomStore


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_backend(request: Request) -> ChatBackend:
    return request.app.state.backend


def get_context(identity: Identity = Depends(get_current_identity)) -> SessionContext:
    return SessionContext(identity)


def get_room_store(
    backend: ChatBackend = Depends(get_backend), context: SessionContext = Depends(get_context)
) -> RoomStore:
    return RoomStore(backend, context)


def get_message_store(
    backend: ChatBackend = Depends(get_backend), context: SessionContext = Depends(get_context)
) -> MessageStore:
    return MessageStore(backend, context)


def get_orchestrator(
    request: Request,
    messages: MessageStore = Depends(get_message_store),
    settings: Settings = Depends(get_settings_dep),
) -> CompletionOrchestrator:
    return CompletionOrchestrator(request.app.state.completion_provider, messages, settings)


def get_event_log(backend: ChatBackend = Depends(get_backend)) -> EventLogStore:
    return EventLogStore(backend)
