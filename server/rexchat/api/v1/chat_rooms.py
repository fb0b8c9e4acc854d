from fastapi import APIRouter, Depends
from typing import Any, Dict

from rexchat.api.deps import get_message_store, get_room_store
from rexchat.schemas.chat import ChatRoom, CreateRoomRequest, RoomStatusRequest
from rexchat.services.messages import MessageStore
from rexchat.services.rooms import RoomStore

router = APIRouter()


def room_payload(room: ChatRoom) -> Dict[str, Any]:
    return room.model_dump(by_alias=True, mode="json")


@router.get("/chats")
async def get_all_chat_rooms(rooms: RoomStore = Depends(get_room_store)) -> Dict[str, Any]:
    """Every chat room of the signed-in user (unordered)."""
    result = await rooms.list_rooms()
    return {"status": "successfully got chat rooms", "chatRooms": [room_payload(r) for r in result]}


@router.post("/chats")
async def create_chat_room(body: CreateRoomRequest, rooms: RoomStore = Depends(get_room_store)) -> Dict[str, Any]:
    room = await rooms.create_room(body.name)
    return {"status": "new chat room has been created", "chatId": room.id, "chatData": room_payload(room)}


@router.get("/chats/{chat_id}")
async def get_a_chat_room(chat_id: str, rooms: RoomStore = Depends(get_room_store)) -> Dict[str, Any]:
    room = await rooms.get_room(chat_id)
    return {"status": "successfully got chat with id: " + chat_id, "chatData": room_payload(room)}


@router.patch("/chats/{chat_id}/status")
async def update_chat_room_status(
    chat_id: str, body: RoomStatusRequest, rooms: RoomStore = Depends(get_room_store)
) -> Dict[str, str]:
    await rooms.set_active(chat_id, body.is_active)
    return {"status": "chat room status has been updated"}


@router.delete("/chats/{chat_id}")
async def delete_chat_room(chat_id: str, rooms: RoomStore = Depends(get_room_store)) -> Dict[str, Any]:
    """Delete a chat room together with all of its messages."""
    removed = await rooms.delete_room(chat_id)
    return {"status": "successfully deleted chat messages", "chatId": chat_id, "deletedMessages": removed}


@router.post("/chats/{chat_id}/reconcile")
async def reconcile_chat_room(chat_id: str, messages: MessageStore = Depends(get_message_store)) -> Dict[str, Any]:
    room = await messages.reconcile(chat_id)
    return {"status": "chat room summary repaired", "chatData": room_payload(room)}
