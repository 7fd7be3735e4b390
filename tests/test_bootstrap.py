from __future__ import annotations

import asyncio
import json
from datetime import date

import pytest

from goalsync.bootstrap import SyncSession, with_timeout
from goalsync.remote import SqlDocumentStore
from goalsync.storage import MemoryKeyValueEngine

TODAY = date(2024, 3, 10)
LEGACY_GOALS = json.dumps(
    [{"id": "g1", "date": "2024-03-09", "exercise": True, "updatedAt": "2024-03-09T10:00:00.000Z"}]
)


class _HangingEngine(MemoryKeyValueEngine):
    async def get(self, key):
        if key == "profile":
            await asyncio.sleep(5)
        return await super().get(key)


@pytest.fixture
def remote(tmp_path):
    store = SqlDocumentStore.from_url(f"sqlite:///{tmp_path / 'remote.sqlite'}")
    yield store
    store.dispose()


@pytest.mark.asyncio
async def test_with_timeout_returns_default_when_timer_wins() -> None:
    assert await with_timeout(asyncio.sleep(1, result="late"), 0.01, "fallback") == "fallback"
    assert await with_timeout(asyncio.sleep(0, result="done"), 1, "fallback") == "done"


@pytest.mark.asyncio
async def test_start_without_user_partitions_by_device_and_migrates(settings) -> None:
    engine = MemoryKeyValueEngine({"daily_goals": LEGACY_GOALS})
    session = SyncSession(engine, settings=settings, today=lambda: TODAY)

    profile = await session.start()

    assert profile is not None
    assert session.resolver.active_user_id == profile.device_id
    snapshot = engine.snapshot()
    assert "daily_goals" not in snapshot
    assert snapshot[f"profile_{profile.device_id}_daily_goals"] == LEGACY_GOALS
    assert [goal.id for goal in session.goals.goals] == ["g1"]
    assert len(session.goals.articles) > 0
    assert f"profile_{profile.device_id}_articles" in snapshot


@pytest.mark.asyncio
async def test_start_with_user_pulls_and_merges_remote(settings, remote) -> None:
    await remote.upsert(
        "goals/u1/daily/2024-03-08",
        {"id": "r1", "date": "2024-03-08", "sleep": True, "updatedAt": "2024-03-08T10:00:00Z"},
    )
    engine = MemoryKeyValueEngine({"daily_goals": LEGACY_GOALS})
    session = SyncSession(engine, remote, settings=settings, today=lambda: TODAY)

    await session.start("u1")

    assert session.resolver.active_user_id == "u1"
    assert sorted(goal.date for goal in session.goals.goals) == ["2024-03-08", "2024-03-09"]
    stored = json.loads(engine.snapshot()["profile_u1_daily_goals"])
    assert {entry["id"] for entry in stored} == {"g1", "r1"}


@pytest.mark.asyncio
async def test_start_continues_offline_when_profile_load_hangs(settings) -> None:
    session = SyncSession(_HangingEngine(), settings=settings, today=lambda: TODAY)

    profile = await session.start("u2")

    assert profile is None
    assert session.resolver.active_user_id == "u2"


@pytest.mark.asyncio
async def test_stop_resets_memory_and_partition(settings, remote) -> None:
    engine = MemoryKeyValueEngine()
    session = SyncSession(engine, remote, settings=settings, today=lambda: TODAY)
    await session.start("u3")
    await session.goals.add_goal({"date": TODAY.isoformat(), "diet": True, "dietRating": 5})

    await session.stop()

    assert not session.resolver.is_partitioned()
    assert session.goals.goals == []
    assert "profile_u3_daily_goals" in engine.snapshot()
    documents = await remote.list_documents("goals/u3/daily")
    assert documents[0]["dietRating"] == 5


@pytest.mark.asyncio
async def test_switching_users_keeps_data_separate(settings) -> None:
    engine = MemoryKeyValueEngine()
    session = SyncSession(engine, settings=settings, today=lambda: TODAY)

    await session.start("alice")
    await session.goals.add_goal({"date": "2024-03-10", "exercise": True})
    await session.stop()

    await session.start("bob")
    assert session.goals.goals == []
    await session.stop()

    await session.start("alice")
    assert [goal.date for goal in session.goals.goals] == ["2024-03-10"]


@pytest.mark.asyncio
async def test_records_written_before_sign_in_follow_the_user(settings, remote, events) -> None:
    engine = MemoryKeyValueEngine()
    session = SyncSession(engine, remote, settings=settings, today=lambda: TODAY)

    profile = await session.start()
    await session.goals.add_goal({"date": TODAY.isoformat(), "sleep": True, "sleepHours": 8})
    await session.stop()

    await session.start("u1")

    record = session.goals.get_goal_by_date(TODAY)
    assert record is not None and record.sleep_hours == 8
    snapshot = engine.snapshot()
    assert f"profile_{profile.device_id}_daily_goals" not in snapshot
    assert "profile_u1_daily_goals" in snapshot
    documents = await remote.list_documents("goals/u1/daily")
    assert [document["date"] for document in documents] == [TODAY.isoformat()]
    assert "device_records_adopted" in [event.name for event in events]


@pytest.mark.asyncio
async def test_sign_in_keeps_the_newer_of_device_and_user_records(settings) -> None:
    older = [{"id": "g8", "date": "2024-03-08", "diet": True, "dietRating": 2, "updatedAt": "2024-03-08T10:00:00Z"}]
    engine = MemoryKeyValueEngine({"profile_u1_daily_goals": json.dumps(older)})
    session = SyncSession(engine, settings=settings, today=lambda: TODAY)

    await session.start()
    await session.goals.add_goal({"date": "2024-03-08", "diet": True, "dietRating": 5})
    await session.goals.add_goal({"date": "2024-03-09", "social": True})
    await session.stop()

    await session.start("u1")

    assert session.goals.get_goal_by_date("2024-03-08").diet_rating == 5
    assert session.goals.get_goal_by_date("2024-03-09") is not None
