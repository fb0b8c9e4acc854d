from __future__ import annotations
import logging
import time
from collections import deque
from typing import Deque, Dict, Optional, Tuple
from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

# Sliding-window limiter for the model-backed routes, kept in process memory.
# Each key holds the monotonic times of the calls still inside the window.
_CALLS: Dict[Tuple[str, str], Deque[float]] = {}


def get_client_ip(request: Request) -> str:
    xff = request.headers.get("x-forwarded-for")
    if xff:
        return xff.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def reset_rate_limits() -> None:
    _CALLS.clear()


def tracked_callers() -> int:
    return len(_CALLS)


def _prune(key: Tuple[str, str], now: float, window_seconds: int) -> Deque[float]:
    calls = _CALLS.get(key)
    if calls is None:
        return deque()
    while calls and now - calls[0] >= window_seconds:
        calls.popleft()
    if not calls:
        del _CALLS[key]
    return calls


def enforce_rate_limit(
    request: Request,
    limit: int = 30,
    window_seconds: int = 60,
    caller: Optional[str] = None,
) -> None:
    """Count one call for ``caller`` (user id, else client IP) on this route."""
    key = (caller or get_client_ip(request), request.url.path)
    now = time.monotonic()
    # Idle callers are forgotten once their window has passed
    for other in [k for k in _CALLS if k != key]:
        _prune(other, now, window_seconds)
    calls = _prune(key, now, window_seconds)

    if len(calls) >= limit:
        retry_after = max(1, int(window_seconds - (now - calls[0])))
        logger.info("rate limit hit caller=%s route=%s", key[0], key[1])
        raise HTTPException(status_code=429, detail="Rate limit exceeded", headers={"Retry-After": str(retry_after)})
    calls.append(now)
    _CALLS[key] = calls
