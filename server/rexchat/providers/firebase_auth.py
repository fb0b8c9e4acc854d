from __future__ import annotations
import logging
from typing import Any, Dict, Optional
import httpx

from rexchat.core.errors import AuthError
from rexchat.core.identity import Identity

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT = "https://identitytoolkit.googleapis.com/v1"

# Identity Toolkit error codes that mean "wrong email or password"
CREDENTIAL_ERRORS = {
    "EMAIL_NOT_FOUND",
    "INVALID_PASSWORD",
    "INVALID_LOGIN_CREDENTIALS",
    "INVALID_EMAIL",
    "USER_DISABLED",
}

FRIENDLY = {
    "EMAIL_EXISTS": "Email already in use",
    "WEAK_PASSWORD": "Password should be at least 6 characters",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many attempts. Please try again later.",
}


class FirebaseIdentityProvider:
    """Firebase Authentication through the Identity Toolkit REST API."""

    id = "firebase"

    def __init__(self, api_key: str, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.api_key = api_key
        self._transport = transport

    async def _call(self, method: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{IDENTITY_TOOLKIT}/accounts:{method}"
        timeout = httpx.Timeout(connect=10.0, read=30.0, write=10.0, pool=10.0)
        try:
            async with httpx.AsyncClient(timeout=timeout, trust_env=True, transport=self._transport) as client:
                resp = await client.post(url, params={"key": self.api_key}, json=payload)
        except httpx.HTTPError as e:
            logger.warning("identity toolkit %s transport error: %s", method, e)
            raise AuthError("Authentication service unavailable") from e

        if resp.status_code >= 400:
            code = ""
            try:
                code = resp.json().get("error", {}).get("message", "")
            except ValueError:
                pass
            # Codes may carry a suffix, e.g. "WEAK_PASSWORD : Password should be..."
            code = code.split(" ", 1)[0]
            logger.info("identity toolkit %s failed status=%d code=%s", method, resp.status_code, code)
            if code in CREDENTIAL_ERRORS:
                raise AuthError("Invalid email or password", invalid_credentials=True)
            raise AuthError(FRIENDLY.get(code, f"Authentication failed ({code or resp.status_code})"))
        return resp.json()

    async def sign_in(self, email: str, password: str) -> Identity:
        data = await self._call(
            "signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        return Identity(uid=data["localId"], display_name=data.get("displayName") or "", email=data.get("email"))

    async def register(self, email: str, password: str, display_name: str) -> Identity:
        data = await self._call(
            "signUp",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        if display_name:
            await self._call(
                "update",
                {"idToken": data["idToken"], "displayName": display_name, "returnSecureToken": False},
            )
        return Identity(uid=data["localId"], display_name=display_name, email=data.get("email"))

    async def sign_out(self, identity: Identity) -> None:
        # ID tokens are stateless; nothing to revoke without admin credentials
        return None

    async def send_reset_email(self, email: str) -> None:
        await self._call("sendOobCode", {"requestType": "PASSWORD_RESET", "email": email})
