"""Identity adapter: the current user and who needs to know about it.

``AuthSession`` wraps an identity provider and republishes every change of
the signed-in identity to registered listeners. ``SessionContext`` is the
value object handed to the stores and the orchestrator; binding it to an
``AuthSession`` keeps its identity current.
"""
from __future__ import annotations
import base64
import hashlib
import hmac
import logging
import os
import threading
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Tuple

from rexchat.core.errors import AuthError, ValidationError

if TYPE_CHECKING:
    from rexchat.providers.base import IdentityProvider

logger = logging.getLogger(__name__)

Listener = Callable[[Optional["Identity"]], None]


@dataclass(frozen=True)
class Identity:
    uid: str
    display_name: str = ""
    email: Optional[str] = None


class SessionContext:
    def __init__(self, identity: Optional[Identity] = None) -> None:
        self.identity = identity

    @property
    def user_id(self) -> Optional[str]:
        return self.identity.uid if self.identity else None

    def require_user_id(self) -> str:
        uid = self.user_id
        if not uid:
            raise ValidationError("Required field (ID for user) is missing")
        return uid

    def update(self, identity: Optional[Identity]) -> None:
        self.identity = identity

    def bind(self, auth: "AuthSession") -> Callable[[], None]:
        """Follow the auth session's identity; returns the unsubscribe hook."""
        self.update(auth.current)
        return auth.on_change(self.update)


class AuthSession:
    def __init__(self, provider: "IdentityProvider", current: Optional[Identity] = None) -> None:
        self.provider = provider
        self._current = current
        self._listeners: List[Listener] = []

    @property
    def current(self) -> Optional[Identity]:
        return self._current

    def on_change(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, identity: Optional[Identity]) -> None:
        self._current = identity
        for listener in list(self._listeners):
            listener(identity)

    async def sign_in(self, email: str, password: str) -> Identity:
        if not email or not password:
            raise AuthError("Email and password are required", invalid_credentials=True)
        try:
            identity = await self.provider.sign_in(email, password)
        except AuthError as e:
            logger.info("sign-in failed for %s: %s", email, e.message)
            raise
        logger.info("signed in uid=%s", identity.uid)
        self._publish(identity)
        return identity

    async def register(self, email: str, password: str, display_name: str) -> Identity:
        if not email or not password:
            raise AuthError("Email and password are required")
        try:
            identity = await self.provider.register(email, password, display_name)
        except AuthError as e:
            logger.info("registration failed for %s: %s", email, e.message)
            raise
        logger.info("registered uid=%s", identity.uid)
        self._publish(identity)
        return identity

    async def sign_out(self) -> None:
        identity = self._current
        # Local identity is cleared even when the provider call fails
        self._publish(None)
        if identity is None:
            return
        try:
            await self.provider.sign_out(identity)
        except AuthError:
            raise
        except Exception as e:
            logger.warning("sign-out failed for uid=%s: %s", identity.uid, e)
            raise AuthError("Sign-out failed") from e

    async def send_reset_email(self, email: str) -> bool:
        try:
            await self.provider.send_reset_email(email)
        except Exception as e:
            logger.warning("password reset failed for %s: %s", email, e)
            return False
        logger.info("password reset email sent to %s", email)
        return True


def _hash_password(password: str, salt: bytes) -> str:
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, 200_000)
    return base64.b64encode(digest).decode("ascii")


class LocalIdentityProvider:
    """In-process accounts, used when no Firebase key is configured."""

    id = "local"

    def __init__(self) -> None:
        self._lock = threading.Lock()
        # email -> (salt, password hash, identity)
        self._accounts: Dict[str, Tuple[bytes, str, Identity]] = {}
        self.reset_requests: List[str] = []

    async def sign_in(self, email: str, password: str) -> Identity:
        with self._lock:
            account = self._accounts.get(email.lower())
        if not account:
            raise AuthError("Invalid email or password", invalid_credentials=True)
        salt, stored, identity = account
        if not hmac.compare_digest(stored, _hash_password(password, salt)):
            raise AuthError("Invalid email or password", invalid_credentials=True)
        return identity

    async def register(self, email: str, password: str, display_name: str) -> Identity:
        if len(password) < 6:
            raise AuthError("Password should be at least 6 characters")
        key = email.lower()
        salt = os.urandom(16)
        identity = Identity(uid=uuid.uuid4().hex, display_name=display_name, email=key)
        with self._lock:
            if key in self._accounts:
                raise AuthError("Email already in use")
            self._accounts[key] = (salt, _hash_password(password, salt), identity)
        return identity

    async def sign_out(self, identity: Identity) -> None:
        return None

    async def send_reset_email(self, email: str) -> None:
        with self._lock:
            if email.lower() not in self._accounts:
                raise AuthError("Email not found")
            self.reset_requests.append(email.lower())
