from datetime import datetime, timezone

import pytest

from rexchat.core.errors import ModelError, NotFoundError, StoreError
from rexchat.schemas.chat import Message
from rexchat.services.orchestrator import ExchangeState

from conftest import model_failure

pytestmark = pytest.mark.anyio

MENTOR = "Explain things as if you are a professional career mentor giving advice to someone"


def _msg(sender: str, text: str) -> Message:
    return Message(
        id=f"{sender}-{text}",
        chat_room_id="r1",
        sender_id=sender,
        text=text,
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


def test_build_prompt_tags_roles_and_prepends_mentor_instruction(orchestrator):
    prior = [_msg("u1", "Hi"), _msg("Rex", "Hello!"), _msg("someone-else", "Also me")]

    turns = orchestrator.build_prompt(prior, "What next?")

    assert [(t.role, t.content) for t in turns] == [
        ("system", MENTOR),
        ("user", "Hi"),
        ("assistant", "Hello!"),
        ("user", "Also me"),
        ("user", "What next?"),
    ]


def test_build_prompt_skips_typing_placeholder(orchestrator):
    placeholder = _msg("Rex", "").model_copy(update={"is_typing_indicator": True})
    turns = orchestrator.build_prompt([_msg("u1", "Hi"), placeholder], "Next")
    assert [t.role for t in turns] == ["system", "user", "user"]


async def test_career_advice_scenario(rooms, messages, orchestrator, provider):
    room = await rooms.create_room("Career advice")
    assert room.is_active and room.total_messages == 0

    await messages.append(room.id, "Hi", "u1")
    summary = await rooms.get_room(room.id)
    assert summary.total_messages == 1
    assert summary.most_recent_message == "Hi"

    provider.answers.append("Hello! How can I help your career today?")
    prior = [_msg("u1", "Hi")]
    reply = await orchestrator.complete_reply(room.id, prior, "Hi")

    assert reply.sender_id == "Rex"
    assert reply.text == "Hello! How can I help your career today?"
    summary = await rooms.get_room(room.id)
    assert summary.total_messages == 2
    assert summary.most_recent_message == reply.text

    request = provider.requests[-1]
    assert request.model == "gpt-3.5-turbo"
    assert [t.role for t in request.messages] == ["system", "user", "user"]


async def test_complete_reply_uses_first_choice(rooms, orchestrator, provider):
    room = await rooms.create_room("Career advice")
    provider.answers.append(["first", "second"])
    reply = await orchestrator.complete_reply(room.id, [], "Hi")
    assert reply.text == "first"


@pytest.mark.parametrize(
    "failure",
    [model_failure(), [], "   ", RuntimeError("socket closed")],
    ids=["model-error", "no-choices", "blank", "unexpected"],
)
async def test_complete_reply_falls_back_instead_of_raising(rooms, messages, orchestrator, provider, failure):
    room = await rooms.create_room("Career advice")
    provider.answers.append(failure)

    reply = await orchestrator.complete_reply(room.id, [], "Hi")

    assert reply.text == "Sorry, something went wrong"
    assert reply.sender_id == "Rex"
    assert [m.text for m in await messages.list(room.id)] == ["Sorry, something went wrong"]


async def test_complete_reply_propagates_store_errors(orchestrator, provider):
    provider.answers.append("Hello")
    with pytest.raises(NotFoundError):
        await orchestrator.complete_reply("missing", [], "Hi")


async def test_new_chat_title_trims_first_choice(orchestrator, provider):
    provider.answers.append("  Finding a first job \n")

    title = await orchestrator.new_chat_title("How do I get my first job?")

    assert title == "Finding a first job"
    request = provider.requests[-1]
    assert [t.role for t in request.messages] == ["system", "user"]
    assert request.messages[1].content == "How do I get my first job?"


@pytest.mark.parametrize("failure", [model_failure(), [], "  "], ids=["error", "no-choices", "blank"])
async def test_new_chat_title_raises_model_error(orchestrator, provider, failure):
    provider.answers.append(failure)
    with pytest.raises(ModelError):
        await orchestrator.new_chat_title("Hi")


async def test_run_exchange_resolves(rooms, messages, orchestrator, provider):
    room = await rooms.create_room("Career advice")
    provider.answers.append("Glad to help")

    exchange = await orchestrator.run_exchange(room.id, [], "  Hi  ")

    assert exchange.state is ExchangeState.RESOLVED
    assert exchange.user_message.text == "Hi"
    assert exchange.user_message.sender_id == "u1"
    assert exchange.reply.text == "Glad to help"
    assert [m.sender_id for m in await messages.list(room.id)] == ["u1", "Rex"]


async def test_run_exchange_resolves_even_when_model_fails(rooms, orchestrator, provider):
    room = await rooms.create_room("Career advice")
    provider.answers.append(model_failure())

    exchange = await orchestrator.run_exchange(room.id, [], "Hi")

    assert exchange.state is ExchangeState.RESOLVED
    assert exchange.reply.text == "Sorry, something went wrong"


async def test_run_exchange_store_failure_is_fatal(orchestrator, provider):
    with pytest.raises(NotFoundError):
        await orchestrator.run_exchange("missing", [], "Hi")
    assert provider.requests == []


async def test_run_exchange_reply_persist_failure(rooms, messages, orchestrator, provider, monkeypatch):
    room = await rooms.create_room("Career advice")
    real_append = messages.append

    async def append(room_id, text, sender_id):
        if sender_id == "Rex":
            raise StoreError("Failed to add message")
        return await real_append(room_id, text, sender_id)

    monkeypatch.setattr(messages, "append", append)
    with pytest.raises(StoreError):
        await orchestrator.run_exchange(room.id, [], "Hi")
