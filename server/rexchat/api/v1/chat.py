from fastapi import APIRouter, Depends, Request
import logging
from typing import Any, Dict

from rexchat.api.deps import get_orchestrator
from rexchat.api.v1.messages import message_payload
from rexchat.core.ratelimit import enforce_rate_limit
from rexchat.schemas.chat import ReplyRequest, TitleRequest
from rexchat.services.orchestrator import CompletionOrchestrator

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/chats/title")
async def new_chat_title(
    body: TitleRequest, http_request: Request, orchestrator: CompletionOrchestrator = Depends(get_orchestrator)
) -> Dict[str, str]:
    """Suggest a room title for a first message. Model failures surface as 502."""
    settings = http_request.app.state.settings
    enforce_rate_limit(http_request, limit=settings.reply_rate_limit, caller=orchestrator.messages.context.user_id)
    if not body.message.strip():
        return {"status": "empty message", "title": ""}
    title = await orchestrator.new_chat_title(body.message)
    return {"status": "success", "title": title}


@router.post("/chats/{chat_id}/reply")
async def send_and_reply(
    chat_id: str,
    body: ReplyRequest,
    http_request: Request,
    orchestrator: CompletionOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    """Persist the user's message, then the assistant reply (or fallback text)."""
    settings = http_request.app.state.settings
    enforce_rate_limit(http_request, limit=settings.reply_rate_limit, caller=orchestrator.messages.context.user_id)
    prior = await orchestrator.messages.list(chat_id)
    logger.info("reply start room=%s prior=%d", chat_id, len(prior))
    exchange = await orchestrator.run_exchange(chat_id, prior, body.text)
    return {
        "status": exchange.state.value,
        "chatId": chat_id,
        "message": message_payload(exchange.user_message),
        "reply": message_payload(exchange.reply),
    }
