from fastapi import APIRouter, Depends, Request
import logging
from typing import Dict, Any

from rexchat.core.auth import get_current_identity, issue_token, revoke_current_token
from rexchat.core.identity import AuthSession, Identity
from rexchat.schemas.auth import RegisterRequest, ResetRequest, SignInRequest

router = APIRouter()
logger = logging.getLogger(__name__)


def _identity_payload(identity: Identity) -> Dict[str, Any]:
    return {"uid": identity.uid, "displayName": identity.display_name, "email": identity.email}


@router.post("/auth/register")
async def register(body: RegisterRequest, http_request: Request) -> Dict[str, Any]:
    """Create an account and return a bearer token for it."""
    session = AuthSession(http_request.app.state.identity_provider)
    identity = await session.register(body.email, body.password, body.display_name)
    return {
        "status": "Registration Complete",
        "token": issue_token(identity, http_request.app.state.settings),
        "user": _identity_payload(identity),
    }


@router.post("/auth/signin")
async def sign_in(body: SignInRequest, http_request: Request) -> Dict[str, Any]:
    session = AuthSession(http_request.app.state.identity_provider)
    identity = await session.sign_in(body.email, body.password)
    return {
        "status": "Login Complete",
        "token": issue_token(identity, http_request.app.state.settings),
        "user": _identity_payload(identity),
    }


@router.post("/auth/signout")
async def sign_out(http_request: Request, identity: Identity = Depends(get_current_identity)) -> Dict[str, str]:
    """End the session and revoke the bearer token used for this call."""
    session = AuthSession(http_request.app.state.identity_provider, current=identity)
    try:
        await session.sign_out()
    finally:
        revoke_current_token(http_request)
    return {"status": "Logout Complete"}


@router.post("/auth/reset")
async def send_reset_email(body: ResetRequest, http_request: Request) -> Dict[str, Any]:
    """Request a password reset email. Always 200; ``sent`` tells the outcome."""
    session = AuthSession(http_request.app.state.identity_provider)
    sent = await session.send_reset_email(body.email)
    status = "email sent for Password reset" if sent else "Error resetting password"
    return {"status": status, "sent": sent}


@router.get("/auth/me")
async def me(identity: Identity = Depends(get_current_identity)) -> Dict[str, Any]:
    return {"status": "ok", "user": _identity_payload(identity)}
