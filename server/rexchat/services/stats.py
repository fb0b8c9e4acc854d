from __future__ import annotations
from typing import Dict, Iterable, List, Tuple

from rexchat.schemas.chat import ChatRoom, UsagePoint


def partition_rooms(rooms: Iterable[ChatRoom]) -> Tuple[List[ChatRoom], List[ChatRoom]]:
    """Split rooms into (active, ended) for the inbox."""
    active: List[ChatRoom] = []
    ended: List[ChatRoom] = []
    for room in rooms:
        (active if room.is_active else ended).append(room)
    return active, ended


def monthly_usage(rooms: Iterable[ChatRoom]) -> List[UsagePoint]:
    """Total messages per month of room creation, oldest month first."""
    buckets: Dict[Tuple[int, int], int] = {}
    for room in rooms:
        key = (room.created_at.year, room.created_at.month)
        buckets[key] = buckets.get(key, 0) + room.total_messages
    return [
        UsagePoint(date=f"{month:02d}/{year}", total_messages=total)
        for (year, month), total in sorted(buckets.items())
    ]
