"""Closed error taxonomy shared by the stores, the orchestrator and the API.

Every failure raised by this package is a :class:`ChatError` carrying one of
the :class:`ErrorKind` members, so callers can branch on ``exc.kind`` instead
of on arbitrary exception types. The HTTP layer turns the kind into a status
code and a short machine-readable code.
"""
from __future__ import annotations
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    VALIDATION = "invalid-argument"
    NOT_FOUND = "not-found"
    STORE = "unknown"
    MODEL = "internal"
    AUTH = "unauthenticated"

    @property
    def code(self) -> str:
        return self.value


HTTP_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTH: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.STORE: 500,
    ErrorKind.MODEL: 502,
}


class ChatError(Exception):
    kind: ErrorKind = ErrorKind.STORE

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def code(self) -> str:
        return self.kind.code

    @property
    def http_status(self) -> int:
        return HTTP_STATUS[self.kind]

    def to_dict(self) -> dict:
        return {"error": {"code": self.code, "message": self.message}}


class ValidationError(ChatError):
    kind = ErrorKind.VALIDATION


class NotFoundError(ChatError):
    kind = ErrorKind.NOT_FOUND


class StoreError(ChatError):
    """Persistence failure; the wrapped exception is kept as ``__cause__``."""

    kind = ErrorKind.STORE


class ModelError(ChatError):
    kind = ErrorKind.MODEL

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class AuthError(ChatError):
    kind = ErrorKind.AUTH

    def __init__(self, message: str, invalid_credentials: bool = False) -> None:
        super().__init__(message)
        self.invalid_credentials = invalid_credentials


def require(value, field: str) -> None:
    """Raise ValidationError when a required field is missing or blank."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"Required field ({field}) is missing")
