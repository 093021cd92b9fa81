import asyncio
import json

import pytest

from roomie.domain.chat.models import ConversationKey, OutgoingMessage, conversation_id_for
from roomie.domain.chat.service import ChatService
from roomie.domain.chat.typing_indicator import TypingIndicator
from roomie.domain.errors import MessagingError
from roomie.infra.redis import redis_client


class StepClock:
    def __init__(self, start: int = 1_000) -> None:
        self.now = start

    def __call__(self) -> int:
        self.now += 1
        return self.now


def test_conversation_id_is_order_independent():
    assert conversation_id_for("u1", "u2") == conversation_id_for("u2", "u1") == "u1_u2"
    key = ConversationKey.from_participants("zed", "amy")
    assert key.participants() == ("amy", "zed")
    assert key.other("amy") == "zed"


@pytest.mark.asyncio
async def test_send_and_history_in_timestamp_order():
    service = ChatService(clock=StepClock())
    cid = await service.open_conversation("u2", "u1")

    first = await service.send(cid, OutgoingMessage(sender_id="u1", text="hi"))
    second = await service.send(cid, OutgoingMessage(sender_id="u2", text=" hello there ", sender_name="Bo"))

    assert first.success and second.success
    history = await service.history(cid)
    assert [message.text for message in history] == ["hi", "hello there"]
    assert [message.id for message in history] == [first.id, second.id]
    assert history[1].sender_name == "Bo"
    assert history[0].timestamp < history[1].timestamp


@pytest.mark.asyncio
async def test_send_rejects_blank_and_oversized_text():
    service = ChatService()

    empty = await service.send("u1_u2", OutgoingMessage(sender_id="u1", text="   "))
    huge = await service.send("u1_u2", OutgoingMessage(sender_id="u1", text="x" * 5000))

    assert (empty.success, empty.error) == (False, "empty_message")
    assert (huge.success, huge.error) == (False, "message_too_long")
    assert await service.history("u1_u2") == []


@pytest.mark.asyncio
async def test_send_store_failure_returns_failed_result(monkeypatch):
    service = ChatService()

    def broken_pipeline(*args, **kwargs):
        raise ConnectionError("redis down")

    monkeypatch.setattr(redis_client.client, "pipeline", broken_pipeline)

    result = await service.send("u1_u2", OutgoingMessage(sender_id="u1", text="hello"))

    assert result.success is False
    assert result.error == "store_unavailable"


@pytest.mark.asyncio
async def test_open_conversation_rejects_self():
    with pytest.raises(MessagingError):
        await ChatService().open_conversation("u1", "u1")


@pytest.mark.asyncio
async def test_create_chat_is_idempotent_and_indexes_users():
    service = ChatService()

    assert await service.create_chat("u1_u2", ["u2", "u1"]) is True
    assert await service.create_chat("u1_u2", ["u1", "u2"]) is False
    assert await service.participants("u1_u2") == ["u1", "u2"]
    assert await service.user_conversations("u2") == ["u1_u2"]


@pytest.mark.asyncio
async def test_verify_consistency_reports_message_count():
    service = ChatService()
    cid = await service.open_conversation("a", "b")

    empty = await service.verify_consistency("b", "a")
    await service.send(cid, OutgoingMessage(sender_id="a", text="yo"))
    report = await service.verify_consistency("b", "a")

    assert empty.exists is False
    assert (report.conversation_id, report.exists, report.message_count) == ("a_b", True, 1)


@pytest.mark.asyncio
async def test_resync_rebuilds_last_message():
    service = ChatService(clock=StepClock())
    cid = await service.open_conversation("a", "b")
    await service.send(cid, OutgoingMessage(sender_id="a", text="one"))
    await service.send(cid, OutgoingMessage(sender_id="b", text="two"))
    await redis_client.hdel(f"chat:{cid}:meta", "lastMessage")

    assert await service.resync_last_messages() == 1
    last = await service.last_message(cid)
    assert last["text"] == "two"
    assert last["senderId"] == "b"


@pytest.mark.asyncio
async def test_corrupt_history_rows_are_skipped():
    service = ChatService()
    await redis_client.zadd("chat:a_b:messages", {"not-json": 1, json.dumps({"id": "m1", "senderId": "a", "text": "ok", "timestamp": 2}): 2})

    history = await service.history("a_b")

    assert [message.id for message in history] == ["m1"]


@pytest.mark.asyncio
async def test_typing_flags():
    service = ChatService()

    await service.set_typing("a_b", "a", True)
    assert list(await service.typing_users("a_b")) == ["a"]
    await service.set_typing("a_b", "a", False)
    assert await service.typing_users("a_b") == {}


@pytest.mark.asyncio
async def test_typing_indicator_clears_after_idle():
    service = ChatService()
    indicator = TypingIndicator(service, "a_b", "a", idle_seconds=0.05)

    await indicator.keystroke()
    await indicator.keystroke()
    assert indicator.typing is True
    assert "a" in await service.typing_users("a_b")

    await asyncio.sleep(0.15)
    assert indicator.typing is False
    assert await service.typing_users("a_b") == {}


@pytest.mark.asyncio
async def test_typing_indicator_clears_on_send():
    service = ChatService()
    indicator = TypingIndicator(service, "a_b", "a", idle_seconds=10)

    await indicator.keystroke()
    await indicator.sent()

    assert indicator.typing is False
    assert await service.typing_users("a_b") == {}
