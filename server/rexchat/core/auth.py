from __future__ import annotations
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt  # PyJWT
from fastapi import Request

from rexchat.config import Settings
from rexchat.core.errors import AuthError
from rexchat.core.identity import Identity

ALGORITHM = "HS256"


class RevokedTokens:
    """Token ids signed out before expiry, kept until their ``exp`` passes."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._expiry: Dict[str, float] = {}

    def _prune(self, now: float) -> None:
        for jti in [j for j, exp in self._expiry.items() if exp <= now]:
            del self._expiry[jti]

    def revoke(self, jti: str, exp: float) -> None:
        now = datetime.now(timezone.utc).timestamp()
        with self._lock:
            self._prune(now)
            if exp > now:
                self._expiry[jti] = exp

    def is_revoked(self, jti: str) -> bool:
        with self._lock:
            return jti in self._expiry

    def __len__(self) -> int:
        with self._lock:
            return len(self._expiry)


def issue_token(identity: Identity, settings: Settings) -> str:
    """Sign a bearer token for an identity the provider has just vouched for."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": identity.uid,
        "name": identity.display_name,
        "email": identity.email,
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": now + timedelta(minutes=settings.token_ttl_minutes),
    }
    return jwt.encode(payload, settings.auth_secret, algorithm=ALGORITHM)


def decode_claims(token: str, settings: Settings) -> Optional[Dict[str, Any]]:
    try:
        payload = jwt.decode(token, settings.auth_secret, algorithms=[ALGORITHM])
    except jwt.PyJWTError:
        return None
    if not payload.get("sub"):
        return None
    return payload


def bearer_token(request: Request) -> Optional[str]:
    auth = request.headers.get("authorization")
    if not auth or not auth.lower().startswith("bearer "):
        return None
    return auth.split(" ", 1)[1].strip() or None


def current_claims(request: Request) -> Dict[str, Any]:
    token = bearer_token(request)
    if not token:
        raise AuthError("Missing bearer token")
    claims = decode_claims(token, request.app.state.settings)
    if claims is None:
        raise AuthError("Invalid or expired token")
    jti = claims.get("jti")
    if jti and request.app.state.revoked_tokens.is_revoked(jti):
        raise AuthError("Token has been signed out")
    return claims


def get_current_identity(request: Request) -> Identity:
    """Resolve the signed-in user from ``Authorization: Bearer <token>``."""
    claims = current_claims(request)
    return Identity(uid=str(claims["sub"]), display_name=claims.get("name") or "", email=claims.get("email"))


def revoke_current_token(request: Request) -> None:
    claims = current_claims(request)
    if claims.get("jti"):
        request.app.state.revoked_tokens.revoke(claims["jti"], float(claims["exp"]))
