from fastapi import APIRouter, Depends
from typing import Any, Dict

from rexchat.api.deps import get_event_log
from rexchat.schemas.chat import LogRequest
from rexchat.services.event_log import EventLogStore

router = APIRouter()


@router.post("/logs")
async def post_log(body: LogRequest, logs: EventLogStore = Depends(get_event_log)) -> Dict[str, str]:
    log = await logs.post(body.event_description)
    return {"status": "Log has been successfully added", "logId": log.id}


@router.put("/logs/{log_id}")
async def update_log(log_id: str, body: LogRequest, logs: EventLogStore = Depends(get_event_log)) -> Dict[str, str]:
    await logs.update(log_id, body.event_description)
    return {"status": "Log has been successfully updated"}


@router.delete("/logs/{log_id}")
async def delete_log(log_id: str, logs: EventLogStore = Depends(get_event_log)) -> Dict[str, str]:
    await logs.delete(log_id)
    return {"status": "deleted log event"}


@router.get("/logs/{log_id}")
async def get_log(log_id: str, logs: EventLogStore = Depends(get_event_log)) -> Dict[str, Any]:
    log = await logs.get(log_id)
    return {"status": "Got log event", "log": log.model_dump(by_alias=True, mode="json")}
