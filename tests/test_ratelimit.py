import pytest
from fastapi import HTTPException
from starlette.requests import Request

from rexchat.core import ratelimit
from rexchat.core.ratelimit import enforce_rate_limit, reset_rate_limits, tracked_callers


def _request(path: str = "/api/v1/chats/r1/reply", ip: str = "10.0.0.1") -> Request:
    return Request(
        {"type": "http", "method": "POST", "path": path, "query_string": b"", "headers": [], "client": (ip, 5000)}
    )


@pytest.fixture
def clock(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr(ratelimit.time, "monotonic", lambda: now[0])
    reset_rate_limits()
    yield now
    reset_rate_limits()


def test_limit_applies_per_caller_within_window(clock):
    for _ in range(2):
        enforce_rate_limit(_request(), limit=2, caller="u1")
    with pytest.raises(HTTPException) as info:
        enforce_rate_limit(_request(), limit=2, caller="u1")
    assert info.value.status_code == 429
    assert info.value.headers["Retry-After"] == "60"

    enforce_rate_limit(_request(), limit=2, caller="u2")
    clock[0] += 60
    enforce_rate_limit(_request(), limit=2, caller="u1")


def test_idle_callers_are_forgotten(clock):
    for i in range(10):
        enforce_rate_limit(_request(path=f"/api/v1/chats/r{i}/reply"), caller=f"user-{i}")
    assert tracked_callers() == 10

    clock[0] += 61
    enforce_rate_limit(_request(), caller="u1")

    assert tracked_callers() == 1


def test_client_ip_is_used_without_caller(clock):
    enforce_rate_limit(_request(ip="10.0.0.9"), limit=1)
    enforce_rate_limit(_request(ip="10.0.0.8"), limit=1)
    with pytest.raises(HTTPException):
        enforce_rate_limit(_request(ip="10.0.0.9"), limit=1)
