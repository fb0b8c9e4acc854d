import anyio
import pytest

from rexchat.core.errors import StoreError
from rexchat.core.identity import SessionContext
from rexchat.services.messages import MessageStore
from rexchat.services.orchestrator import CompletionOrchestrator
from rexchat.services.rooms import RoomStore
from rexchat.services.session import ChatSession, fallback_title

from conftest import model_failure

pytestmark = pytest.mark.anyio


@pytest.fixture
def session(rooms, messages, orchestrator) -> ChatSession:
    return ChatSession(rooms, messages, orchestrator)


async def _room_with_history(session, rooms, messages):
    room = await rooms.create_room("Career advice")
    await messages.append(room.id, "Hi", "u1")
    await messages.append(room.id, "Hello!", "Rex")
    await session.select_room(room.id)
    return room


async def test_select_room_loads_messages_in_order(session, rooms, messages):
    room = await _room_with_history(session, rooms, messages)

    assert session.selected_room_id == room.id
    assert [m.text for m in session.messages] == ["Hi", "Hello!"]


async def test_send_within_room_replaces_placeholder_with_reply(session, rooms, messages, provider):
    room = await _room_with_history(session, rooms, messages)
    seen_typing = []
    provider.on_call = lambda request: seen_typing.append(session.is_typing)
    provider.answers.append("Update your resume first.")

    reply = await session.send("What should I do?")

    assert seen_typing == [True]
    assert reply.text == "Update your resume first."
    assert not session.is_typing
    assert [m.text for m in session.messages] == ["Hi", "Hello!", "What should I do?", "Update your resume first."]
    assert not session.messages[2].id.startswith("local-")
    # Prior turns exclude the new message and the placeholder
    turns = provider.requests[-1].messages
    assert [t.content for t in turns[1:]] == ["Hi", "Hello!", "What should I do?"]
    assert (await rooms.get_room(room.id)).total_messages == 4


async def test_send_with_model_failure_still_clears_placeholder(session, rooms, messages, provider):
    await _room_with_history(session, rooms, messages)
    provider.answers.append(model_failure())

    reply = await session.send("Help?")

    assert reply.text == "Sorry, something went wrong"
    assert not session.is_typing
    assert session.messages[-1].text == "Sorry, something went wrong"
    assert session.alerts == []


async def test_send_with_store_failure_keeps_optimistic_message(session, rooms, messages, monkeypatch):
    await _room_with_history(session, rooms, messages)

    async def broken_append(room_id, text, sender_id):
        raise StoreError("Failed to add message")

    monkeypatch.setattr(messages, "append", broken_append)
    reply = await session.send("Help?")

    assert reply is None
    assert not session.is_typing
    assert session.messages[-1].text == "Help?"
    assert session.messages[-1].id.startswith("local-")
    assert [a.severity for a in session.pop_alerts()] == ["error"]


async def test_blank_send_is_ignored(session, provider):
    assert await session.send("   ") is None
    assert session.selected_room_id is None
    assert provider.requests == []


async def test_send_without_room_creates_titled_room(session, rooms, provider):
    provider.answers.extend(["Landing a first job", "Start with internships."])

    reply = await session.send("How do I find my first job?")

    created = await rooms.list_rooms()
    assert [r.name for r in created] == ["Landing a first job"]
    assert session.selected_room_id == created[0].id
    assert created[0].total_messages == 2
    assert reply.text == "Start with internships."
    assert [m.text for m in session.messages] == ["How do I find my first job?", "Start with internships."]
    assert session.creating_chat is False
    assert "Chat room created successfully!" in [a.message for a in session.alerts]


async def test_title_failure_falls_back_to_message_snippet(session, rooms, provider):
    text = "I have been a nurse for ten years and want to move into software"
    provider.answers.extend([model_failure(), "Great question."])

    await session.send(text)

    created = await rooms.list_rooms()
    assert created[0].name == fallback_title(text)
    assert created[0].name.endswith("...")


def test_fallback_title_keeps_short_messages():
    assert fallback_title("  Resume tips ") == "Resume tips"


async def test_ending_selected_room_clears_selection(session, rooms, messages):
    room = await _room_with_history(session, rooms, messages)
    await session.load_rooms()

    assert await session.end_room(room.id) is True

    assert session.selected_room_id is None
    assert session.messages == []
    assert (await rooms.get_room(room.id)).is_active is False
    active, ended = session.inbox()
    assert active == [] and [r.id for r in ended] == [room.id]


async def test_ending_other_room_keeps_selection(session, rooms, messages):
    room = await _room_with_history(session, rooms, messages)
    other = await rooms.create_room("Other")

    await session.end_room(other.id)

    assert session.selected_room_id == room.id
    assert len(session.messages) == 2


async def test_reopen_room(session, rooms):
    room = await rooms.create_room("Career advice")
    await session.end_room(room.id)
    assert await session.reopen_room(room.id) is True
    assert (await rooms.get_room(room.id)).is_active is True


async def test_end_missing_room_alerts(session):
    assert await session.end_room("missing") is False
    assert session.alerts[-1].severity == "error"


async def test_deleting_selected_room_clears_selection(session, rooms, messages):
    room = await _room_with_history(session, rooms, messages)
    await session.load_rooms()

    assert await session.delete_room(room.id) is True

    assert session.selected_room_id is None
    assert session.messages == []
    assert session.rooms == []


async def test_overlapping_sends_are_serialised(session, rooms, messages, provider):
    await _room_with_history(session, rooms, messages)
    typing_counts = []
    provider.on_call = lambda request: typing_counts.append(
        sum(1 for m in session.messages if m.is_typing_indicator)
    )
    provider.answers.extend(["first reply", "second reply"])

    async with anyio.create_task_group() as tg:
        tg.start_soon(session.send, "first")
        tg.start_soon(session.send, "second")

    assert typing_counts == [1, 1]
    assert not session.is_typing
    texts = [m.text for m in session.messages[2:]]
    assert sorted(texts) == sorted(["first", "first reply", "second", "second reply"])
    assert len(texts) == 4


async def test_session_without_identity_surfaces_alert(backend, provider, settings):
    context = SessionContext()
    messages = MessageStore(backend, context)
    session = ChatSession(
        RoomStore(backend, context), messages, CompletionOrchestrator(provider, messages, settings)
    )

    assert await session.load_rooms() == []
    assert session.alerts[-1].severity == "error"
