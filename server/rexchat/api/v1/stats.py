from fastapi import APIRouter, Depends
from typing import Any, Dict

from rexchat.api.deps import get_room_store
from rexchat.services.rooms import RoomStore
from rexchat.services.stats import monthly_usage, partition_rooms

router = APIRouter()


@router.get("/stats/usage")
async def get_usage(rooms: RoomStore = Depends(get_room_store)) -> Dict[str, Any]:
    """Monthly message totals plus active/ended room counts."""
    all_rooms = await rooms.list_rooms()
    active, ended = partition_rooms(all_rooms)
    return {
        "status": "successfully got usage",
        "usage": [p.model_dump(by_alias=True) for p in monthly_usage(all_rooms)],
        "activeChats": len(active),
        "endedChats": len(ended),
    }
