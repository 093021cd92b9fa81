import json

import pytest

from roomie.domain.chat.models import Message
from roomie.domain.unread.persistence import JsonWatermarkStore, RedisWatermarkStore
from roomie.domain.unread.tracker import UnreadTracker


def _message(message_id: str, sender: str, ts: int) -> Message:
    return Message(id=message_id, sender_id=sender, text=f"msg {message_id}", timestamp=ts)


HISTORY = [_message("m1", "u2", 1_000), _message("m2", "u1", 2_000), _message("m3", "u2", 3_000)]


@pytest.mark.asyncio
async def test_first_observation_does_not_count_history():
    tracker = UnreadTracker("u1", RedisWatermarkStore())
    await tracker.load()

    count = await tracker.observe("u1_u2", HISTORY)

    assert count == 0
    assert tracker.watermark("u1_u2") == 3_000


@pytest.mark.asyncio
async def test_new_messages_from_others_increment_by_one():
    tracker = UnreadTracker("u1", RedisWatermarkStore())
    await tracker.observe("u1_u2", HISTORY)

    batch = HISTORY + [_message("m4", "u2", 4_000)]
    assert await tracker.observe("u1_u2", batch) == 1

    batch = batch + [_message("m5", "u1", 5_000), _message("m6", "u2", 6_000)]
    assert await tracker.observe("u1_u2", batch) == 2
    assert tracker.total_unread() == 2


@pytest.mark.asyncio
async def test_empty_conversation_counts_first_message():
    tracker = UnreadTracker("u1", RedisWatermarkStore())

    assert await tracker.observe("u1_u2", []) == 0
    assert await tracker.observe("u1_u2", [_message("m1", "u2", 10)]) == 1


@pytest.mark.asyncio
async def test_mark_read_zeroes_count_and_notifies():
    totals = []
    tracker = UnreadTracker("u1", RedisWatermarkStore(), clock=lambda: 10_000)
    tracker.on_change(totals.append)
    await tracker.observe("u1_u2", HISTORY[:1])
    await tracker.observe("u1_u2", HISTORY)

    await tracker.mark_read("u1_u2")

    assert tracker.get_unread_count("u1_u2") == 0
    assert tracker.watermark("u1_u2") == 10_000
    assert totals[-1] == 0
    assert 1 in totals


@pytest.mark.asyncio
async def test_mark_all_existing_read_uses_newest_message():
    tracker = UnreadTracker("u1", RedisWatermarkStore())
    await tracker.observe("u1_u2", [])
    await tracker.observe("u1_u2", HISTORY)

    assert await tracker.mark_all_existing_read("u1_u2", HISTORY) is True
    assert tracker.watermark("u1_u2") == 3_000
    assert tracker.get_unread_count("u1_u2") == 0
    assert await tracker.mark_all_existing_read("u1_u2", []) is False


@pytest.mark.asyncio
async def test_watermarks_survive_restart_with_json_store(tmp_path):
    path = tmp_path / "state" / "last_read.json"
    tracker = UnreadTracker("u1", JsonWatermarkStore(path), clock=lambda: 2_500)
    await tracker.observe("u1_u2", HISTORY[:1])
    await tracker.mark_read("u1_u2")

    restarted = UnreadTracker("u1", JsonWatermarkStore(path))
    await restarted.load()
    count = await restarted.observe("u1_u2", HISTORY)

    assert count == 1
    assert json.loads(path.read_text())["u1"]["u1_u2"] == 2_500


@pytest.mark.asyncio
async def test_json_store_tolerates_corrupt_file(tmp_path):
    path = tmp_path / "last_read.json"
    path.write_text("{not json")
    store = JsonWatermarkStore(path)

    assert await store.load("u1") == {}
    await store.save("u1", "c1", 5)
    assert await store.load("u1") == {"c1": 5}


@pytest.mark.asyncio
async def test_redis_store_round_trip_and_clear_all():
    store = RedisWatermarkStore()
    tracker = UnreadTracker("u1", store, clock=lambda: 777)
    await tracker.mark_read("u1_u2")

    assert await store.load("u1") == {"u1_u2": 777}

    await tracker.clear_all()
    assert await store.load("u1") == {}
    assert tracker.total_unread() == 0


class BrokenStore:
    async def load(self, viewer_id):
        raise OSError("disk gone")

    async def save(self, viewer_id, conversation_id, timestamp):
        raise OSError("disk gone")

    async def delete(self, viewer_id, conversation_id=None):
        raise OSError("disk gone")


class FlakyLoadStore(RedisWatermarkStore):
    def __init__(self, failures):
        self.failures = failures

    async def load(self, viewer_id):
        if self.failures:
            self.failures -= 1
            raise OSError("store busy")
        return await super().load(viewer_id)


@pytest.mark.asyncio
async def test_failed_load_is_retried_and_saved_watermark_wins():
    store = FlakyLoadStore(failures=1)
    await store.save("u1", "u1_u2", 1_500)
    await store.save("u1", "u1_u9", 5)
    tracker = UnreadTracker("u1", store)

    await tracker.load()
    assert tracker.loaded is False
    # Baseline taken while the store was unreadable must not overwrite the saved watermark
    assert await tracker.observe("u1_u2", HISTORY) == 0
    await tracker.observe("u1_u3", HISTORY)
    assert await store.load("u1") == {"u1_u2": 1_500, "u1_u9": 5}

    await tracker.load()

    assert tracker.loaded is True
    assert tracker.watermark("u1_u2") == 1_500
    assert await tracker.observe("u1_u2", HISTORY) == 1
    assert await store.load("u1") == {"u1_u2": 1_500, "u1_u3": 3_000, "u1_u9": 5}


@pytest.mark.asyncio
async def test_persistence_failures_keep_in_memory_state():
    tracker = UnreadTracker("u1", BrokenStore(), clock=lambda: 50)
    await tracker.load()
    await tracker.observe("u1_u2", HISTORY[:1])

    await tracker.mark_read("u1_u2")

    assert tracker.watermark("u1_u2") == 50
    assert tracker.get_unread_count("u1_u2") == 0
