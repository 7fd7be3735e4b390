from __future__ import annotations

import json

import pytest

from goalsync.articles import default_articles
from goalsync.errors import StorageFailure
from goalsync.goals import GoalRecord, GoalStats
from goalsync.partition import ProfilePartitionResolver
from goalsync.storage import JsonFileKeyValueEngine, LocalRecordStore, MemoryKeyValueEngine


class _BrokenEngine(MemoryKeyValueEngine):
    def __init__(self, initial=None) -> None:
        super().__init__(initial)
        self.fail_reads = False
        self.fail_writes = False

    async def get(self, key):
        if self.fail_reads:
            raise OSError("disk unavailable")
        return await super().get(key)

    async def set(self, key, value):
        if self.fail_writes:
            raise OSError("disk full")
        await super().set(key, value)


def _goal(goal_date: str, **fields) -> GoalRecord:
    return GoalRecord(id=f"goal_{goal_date}", date=goal_date, updated_at="2024-03-01T10:00:00.000Z", **fields)


@pytest.mark.asyncio
async def test_goals_round_trip_with_camel_case_payload(tmp_path) -> None:
    engine = JsonFileKeyValueEngine(tmp_path / "store.json")
    store = LocalRecordStore(engine, ProfilePartitionResolver("user-1"))
    goal = _goal("2024-03-01", exercise=True, exercise_minutes=30, notes="walk")

    await store.save_daily_goals([goal])

    raw = json.loads(await engine.get("profile_user-1_daily_goals"))
    assert raw[0]["exerciseMinutes"] == 30
    assert raw[0]["updatedAt"] == "2024-03-01T10:00:00.000Z"
    assert "cognitiveMinutes" not in raw[0]
    assert await store.get_daily_goals() == [goal]


@pytest.mark.asyncio
async def test_unknown_fields_survive_a_round_trip() -> None:
    engine = MemoryKeyValueEngine(
        {"daily_goals": json.dumps([{"id": "g1", "date": "2024-03-01", "mood": "great"}])}
    )
    store = LocalRecordStore(engine)

    goals = await store.get_daily_goals()
    await store.save_daily_goals(goals)

    assert json.loads(engine.snapshot()["daily_goals"])[0]["mood"] == "great"


@pytest.mark.asyncio
async def test_absent_goals_read_as_empty() -> None:
    store = LocalRecordStore(MemoryKeyValueEngine())
    assert await store.get_daily_goals() == []
    assert await store.get_goal_stats() is None


@pytest.mark.asyncio
async def test_corrupt_json_is_a_read_failure_not_absence() -> None:
    store = LocalRecordStore(MemoryKeyValueEngine({"daily_goals": "{not json"}))

    with pytest.raises(StorageFailure) as excinfo:
        await store.get_daily_goals()

    assert excinfo.value.operation == "read"
    assert excinfo.value.key == "daily_goals"
    assert excinfo.value.readable_message() == "Unable to load your data. Please try again."


@pytest.mark.asyncio
async def test_malformed_goal_payload_is_a_read_failure() -> None:
    store = LocalRecordStore(MemoryKeyValueEngine({"daily_goals": json.dumps([{"date": "03/01/2024"}])}))
    with pytest.raises(StorageFailure):
        await store.get_daily_goals()


@pytest.mark.asyncio
async def test_write_failure_is_tagged_with_operation_and_key() -> None:
    engine = _BrokenEngine()
    engine.fail_writes = True
    store = LocalRecordStore(engine)

    with pytest.raises(StorageFailure) as excinfo:
        await store.save_daily_goals([_goal("2024-03-01")])

    assert excinfo.value.operation == "write"
    assert excinfo.value.key == "daily_goals"
    assert isinstance(excinfo.value.cause, OSError)


@pytest.mark.asyncio
async def test_corrupt_stats_are_treated_as_absent() -> None:
    store = LocalRecordStore(MemoryKeyValueEngine({"goal_stats": json.dumps({"streak": "many"})}))
    assert await store.get_goal_stats() is None

    await store.save_goal_stats(GoalStats(weekly_completion=50.0, streak=2))
    stats = await store.get_goal_stats()
    assert stats is not None
    assert stats.streak == 2


@pytest.mark.asyncio
async def test_articles_are_seeded_and_persisted_when_absent() -> None:
    engine = MemoryKeyValueEngine()
    store = LocalRecordStore(engine, ProfilePartitionResolver("u1"))

    articles = await store.get_articles()

    assert [article.id for article in articles] == [article.id for article in default_articles()]
    assert "profile_u1_articles" in engine.snapshot()


@pytest.mark.asyncio
async def test_corrupt_articles_fall_back_without_overwriting() -> None:
    engine = MemoryKeyValueEngine({"articles": "[{"})
    store = LocalRecordStore(engine)

    articles = await store.get_articles()

    assert len(articles) == len(default_articles())
    assert engine.snapshot()["articles"] == "[{"


@pytest.mark.asyncio
async def test_partitions_do_not_see_each_other() -> None:
    engine = MemoryKeyValueEngine()
    resolver = ProfilePartitionResolver("alice")
    store = LocalRecordStore(engine, resolver)
    await store.save_daily_goals([_goal("2024-03-01")])

    resolver.set_active_partition("bob")
    assert await store.get_daily_goals() == []

    resolver.clear_active_partition()
    assert await store.get_daily_goals() == []
    assert store.is_profile_storage_enabled() is False


@pytest.mark.asyncio
async def test_weekly_summary_marker() -> None:
    store = LocalRecordStore(MemoryKeyValueEngine(), ProfilePartitionResolver("u1"))
    assert await store.get_weekly_summary_viewed() is None
    await store.mark_weekly_summary_viewed("2024-03-03")
    assert await store.get_weekly_summary_viewed() == "2024-03-03"


@pytest.mark.asyncio
async def test_json_file_engine_survives_reopen(tmp_path) -> None:
    path = tmp_path / "nested" / "store.json"
    first = JsonFileKeyValueEngine(path)
    await first.set("a", "1")
    await first.set("b", "2")
    await first.remove("a")

    second = JsonFileKeyValueEngine(path)
    assert await second.get("a") is None
    assert await second.get("b") == "2"
    assert await second.keys() == ["b"]
    assert [entry.name for entry in path.parent.iterdir()] == ["store.json"]
