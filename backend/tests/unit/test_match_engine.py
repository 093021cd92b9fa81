import asyncio
import json

import pytest

from roomie.domain.chat.models import OutgoingMessage
from roomie.domain.chat.service import ChatService
from roomie.domain.engine import MatchEngine
from roomie.domain.errors import ProfileNotFoundError, StoreUnavailableError
from roomie.domain.profiles.models import Answer, Profile
from roomie.domain.unread.watcher import ConversationWatcher


class StepClock:
    def __init__(self) -> None:
        self.now = 10_000

    def __call__(self) -> int:
        self.now += 10
        return self.now


class UnavailableStore:
    async def get(self, profile_id):
        raise StoreUnavailableError("profile_read_failed")

    async def get_all(self):
        raise StoreUnavailableError("profile_scan_failed")

    async def put(self, profile):
        raise StoreUnavailableError("profile_write_failed")

    async def subscribe(self, on_change):
        raise StoreUnavailableError("subscribe_failed")


def _profile(profile_id, answer="quiet"):
    return Profile(
        id=profile_id,
        name=profile_id.upper(),
        answers=(Answer(question_id="noise", answer_text=answer),),
    )


async def _wait_for(predicate, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


def test_conversation_id_for_is_symmetric():
    assert MatchEngine.conversation_id_for("u2", "u1") == MatchEngine.conversation_id_for("u1", "u2")


@pytest.mark.asyncio
async def test_store_failure_degrades_to_placeholders():
    engine = MatchEngine(store=UnavailableStore())

    records = await engine.matches_for("u1")

    assert records
    assert all(record.is_placeholder for record in records)


@pytest.mark.asyncio
async def test_missing_viewer_profile_raises(engine):
    with pytest.raises(ProfileNotFoundError):
        await engine.matches_for("ghost")


@pytest.mark.asyncio
async def test_unread_messages_lift_candidate_to_top():
    engine = MatchEngine(chat=ChatService(clock=StepClock()))
    for profile in (_profile("u1"), _profile("u2", answer="music"), _profile("u3"), _profile("u4")):
        await engine.store.put(profile)
    cid = await engine.chat.open_conversation("u2", "u1")
    await engine.chat.send(cid, OutgoingMessage(sender_id="u2", text="hey"))

    first = await engine.matches_for("u1")
    assert [record.profile.id for record in first] == ["u2", "u3", "u4"]
    assert first[0].unread_count == 0
    assert first[0].last_activity_at is not None

    await engine.chat.send(cid, OutgoingMessage(sender_id="u2", text="still there?"))
    other = await engine.chat.open_conversation("u4", "u1")
    await engine.chat.send(other, OutgoingMessage(sender_id="u4", text="hello"))
    second = await engine.matches_for("u1")

    # Unread beats the more recent activity with u4
    assert [record.profile.id for record in second] == ["u2", "u4", "u3"]
    assert second[0].unread_count == 1
    assert await engine.get_unread_count("u1", cid) == 1

    await engine.mark_read("u1", cid)
    assert await engine.get_unread_count("u1", cid) == 0


@pytest.mark.asyncio
async def test_pinned_candidate_comes_first(engine):
    for profile in (_profile("u1"), _profile("u2", answer="music"), _profile("u3")):
        await engine.store.put(profile)

    records = await engine.matches_for("u1", pins=["u2"])

    assert [record.profile.id for record in records] == ["u2", "u3"]
    assert records[0].is_pinned is True


@pytest.mark.asyncio
async def test_corrupt_candidate_document_does_not_break_matching(engine):
    from roomie.domain.profiles.store import PROFILES_KEY
    from roomie.infra.redis import redis_client

    await engine.store.put(_profile("u1"))
    await engine.store.put(_profile("u3"))
    await redis_client.hset(PROFILES_KEY, "u2", json.dumps({"id": "u2", "name": "Ben", "answers": 5}))

    records = await engine.matches_for("u1")

    assert [record.profile.id for record in records] == ["u3"]


@pytest.mark.asyncio
async def test_profiles_added_after_start_are_announced(engine):
    await engine.store.put(_profile("u1"))
    events = []
    engine.on_profiles_added(lambda event: events.append(event.added_ids))
    await engine.start()

    await engine.store.put(_profile("u2"))
    await _wait_for(lambda: events)

    assert events == [["u2"]]


@pytest.mark.asyncio
async def test_live_reranks_reach_match_observers(engine):
    await engine.store.put(_profile("u1"))
    results = []
    engine.on_matches_changed("u1", lambda records: results.append([r.profile.id for r in records]))
    await engine.start()

    await engine.store.put(_profile("u2"))
    await _wait_for(lambda: results and results[-1] == ["u2"])


@pytest.mark.asyncio
async def test_conversation_watcher_feeds_unread_tracker():
    engine = MatchEngine(chat=ChatService(clock=StepClock()))
    tracker = await engine.tracker_for("u1")
    cid = await engine.chat.open_conversation("u1", "u2")
    watcher = ConversationWatcher(engine.chat, tracker)

    subscription = await watcher.watch(cid)
    try:
        assert watcher.watching == [cid]
        await engine.chat.send(cid, OutgoingMessage(sender_id="u2", text="ping"))
        await _wait_for(lambda: tracker.get_unread_count(cid) == 1)
    finally:
        await watcher.close()

    assert subscription.active is False
    assert watcher.watching == []


@pytest.mark.asyncio
async def test_disposing_last_match_observer_drops_viewer_state(engine):
    first = engine.on_matches_changed("u1", lambda records: None, pins=["u2"])
    second = engine.on_matches_changed("u1", lambda records: None, pins=["u2"])
    engine.coordinator_for("u1")

    first()
    assert "u1" in engine._match_observers

    second()
    assert "u1" not in engine._match_observers
    assert "u1" not in engine._pins
    assert "u1" not in engine._coordinators


@pytest.mark.asyncio
async def test_unread_trackers_are_capped_but_observed_ones_kept(engine):
    engine.tracker_cache_size = 2
    watched = await engine.tracker_for("u1")
    watched.on_change(lambda total: None)

    await engine.tracker_for("u2")
    await engine.tracker_for("u3")
    await engine.tracker_for("u4")

    assert list(engine._trackers) == ["u1", "u4"]
    assert await engine.tracker_for("u1") is watched
