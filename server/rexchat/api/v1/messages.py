from fastapi import APIRouter, Depends
from typing import Any, Dict

from rexchat.api.deps import get_message_store
from rexchat.schemas.chat import Message, PostMessageRequest
from rexchat.services.messages import MessageStore

router = APIRouter()


def message_payload(message: Message) -> Dict[str, Any]:
    return message.model_dump(by_alias=True, mode="json", exclude={"is_typing_indicator"})


@router.get("/chats/{chat_id}/messages")
async def get_chat_messages(chat_id: str, messages: MessageStore = Depends(get_message_store)) -> Dict[str, Any]:
    """Messages of a room, oldest first."""
    result = await messages.list(chat_id)
    return {"status": "successfully got chat messages", "messages": [message_payload(m) for m in result]}


@router.post("/chats/{chat_id}/messages")
async def post_message(
    chat_id: str, body: PostMessageRequest, messages: MessageStore = Depends(get_message_store)
) -> Dict[str, Any]:
    sender_id = body.sender_id or messages.context.require_user_id()
    msg = await messages.append(chat_id, body.text, sender_id)
    return {"status": "success", "chatId": chat_id, "messageId": msg.id, "message": message_payload(msg)}
