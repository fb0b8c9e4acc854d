import pytest

from rexchat.core.errors import NotFoundError, StoreError, ValidationError
from rexchat.services.event_log import EventLogStore

pytestmark = pytest.mark.anyio


@pytest.fixture
def logs(backend) -> EventLogStore:
    return EventLogStore(backend)


async def test_post_then_get(logs):
    log = await logs.post("user opened the app")

    fetched = await logs.get(log.id)

    assert fetched.event_description == "user opened the app"
    assert fetched.timestamp is not None


async def test_update_replaces_description(logs):
    log = await logs.post("first")
    await logs.update(log.id, "second")
    assert (await logs.get(log.id)).event_description == "second"


async def test_delete_removes_log(logs):
    log = await logs.post("first")
    await logs.delete(log.id)
    with pytest.raises(NotFoundError):
        await logs.get(log.id)


@pytest.mark.parametrize("op", ["update", "delete", "get"])
async def test_missing_log_is_not_found(logs, op):
    call = getattr(logs, op)
    args = ("missing", "text") if op == "update" else ("missing",)
    with pytest.raises(NotFoundError) as info:
        await call(*args)
    assert info.value.message == "No such document!"


async def test_blank_description_is_invalid(logs):
    with pytest.raises(ValidationError):
        await logs.post("  ")
    log = await logs.post("ok")
    with pytest.raises(ValidationError):
        await logs.update(log.id, "")


async def test_backend_failure_is_store_error():
    class BrokenBackend:
        async def add_log(self, description):
            raise RuntimeError("disk full")

    with pytest.raises(StoreError):
        await EventLogStore(BrokenBackend()).post("anything")
