"""Profile-aware local record store layered over a key/value engine."""

from __future__ import annotations

import json
import logging
from typing import Any, List, Optional, Sequence

from pydantic import BaseModel, TypeAdapter, ValidationError

from ..articles import Article, default_articles
from ..errors import StorageFailure
from ..goals import GoalRecord, GoalStats
from ..partition import ARTICLES, DAILY_GOALS, GOAL_STATS, WEEKLY_SUMMARY_VIEWED, ProfilePartitionResolver
from .engines import KeyValueEngine

logger = logging.getLogger(__name__)

_GOAL_LIST = TypeAdapter(List[GoalRecord])
_ARTICLE_LIST = TypeAdapter(List[Article])


def _encode(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(value, (list, tuple)):
        return [_encode(item) for item in value]
    if isinstance(value, dict):
        return {key: _encode(item) for key, item in value.items()}
    return value


class LocalRecordStore:
    """Always-available local copy of one profile's goals, stats and articles.

    Every public operation either completes or raises :class:`StorageFailure`
    tagged with the operation kind and the logical key. A value that cannot
    be decoded is a read failure rather than an absent value.
    """

    def __init__(self, engine: KeyValueEngine, resolver: Optional[ProfilePartitionResolver] = None) -> None:
        self._engine = engine
        self._resolver = resolver or ProfilePartitionResolver()

    @property
    def engine(self) -> KeyValueEngine:
        return self._engine

    @property
    def resolver(self) -> ProfilePartitionResolver:
        return self._resolver

    def is_profile_storage_enabled(self) -> bool:
        return self._resolver.is_partitioned()

    # Generic operations

    async def get(self, key: str) -> Any:
        storage_key = self._resolver.resolve_key(key)
        try:
            raw = await self._engine.get(storage_key)
        except Exception as exc:  # noqa: BLE001
            logger.error("Error reading data key=%s storage_key=%s: %s", key, storage_key, exc)
            raise StorageFailure("Failed to read data from storage", "read", key, exc) from exc
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as exc:
            logger.error("Error parsing stored data key=%s storage_key=%s", key, storage_key)
            raise StorageFailure("Failed to parse stored data", "read", key, exc) from exc

    async def set(self, key: str, value: Any) -> None:
        storage_key = self._resolver.resolve_key(key)
        try:
            encoded = json.dumps(_encode(value))
        except (TypeError, ValueError) as exc:
            raise StorageFailure("Failed to serialize data for storage", "write", key, exc) from exc
        try:
            await self._engine.set(storage_key, encoded)
        except Exception as exc:  # noqa: BLE001
            logger.error("Error saving data key=%s storage_key=%s: %s", key, storage_key, exc)
            raise StorageFailure("Failed to save data to storage", "write", key, exc) from exc

    async def remove(self, key: str) -> None:
        storage_key = self._resolver.resolve_key(key)
        try:
            await self._engine.remove(storage_key)
        except Exception as exc:  # noqa: BLE001
            logger.error("Error removing data key=%s storage_key=%s: %s", key, storage_key, exc)
            raise StorageFailure("Failed to remove data from storage", "delete", key, exc) from exc

    async def clear(self) -> None:
        try:
            await self._engine.clear()
        except Exception as exc:  # noqa: BLE001
            logger.error("Error clearing storage: %s", exc)
            raise StorageFailure("Failed to clear storage", "delete", None, exc) from exc

    # Goals

    async def get_daily_goals(self) -> List[GoalRecord]:
        raw = await self.get(DAILY_GOALS)
        if raw is None:
            return []
        try:
            return _GOAL_LIST.validate_python(raw)
        except ValidationError as exc:
            logger.error("Stored daily goals failed validation: %s", exc)
            raise StorageFailure("Stored goals are malformed", "read", DAILY_GOALS, exc) from exc

    async def save_daily_goals(self, goals: Sequence[GoalRecord]) -> None:
        await self.set(DAILY_GOALS, list(goals))

    async def get_goal_stats(self) -> Optional[GoalStats]:
        try:
            raw = await self.get(GOAL_STATS)
        except StorageFailure:
            logger.exception("Error getting goal stats; treating as absent")
            return None
        if raw is None:
            return None
        try:
            return GoalStats.model_validate(raw)
        except ValidationError:
            logger.exception("Stored goal stats are malformed; treating as absent")
            return None

    async def save_goal_stats(self, stats: GoalStats) -> None:
        await self.set(GOAL_STATS, stats)

    # Articles

    async def get_articles(self) -> List[Article]:
        try:
            raw = await self.get(ARTICLES)
        except StorageFailure:
            logger.exception("Error getting articles; serving bundled defaults")
            return default_articles()
        if raw is None:
            articles = default_articles()
            try:
                await self.save_articles(articles)
            except StorageFailure:
                logger.exception("Failed to seed bundled articles")
            return articles
        try:
            return _ARTICLE_LIST.validate_python(raw)
        except ValidationError:
            logger.exception("Stored articles are malformed; serving bundled defaults")
            return default_articles()

    async def save_articles(self, articles: Sequence[Article]) -> None:
        await self.set(ARTICLES, list(articles))

    async def reset_articles(self) -> List[Article]:
        articles = default_articles()
        await self.save_articles(articles)
        return articles

    # Weekly summary "viewed" marker

    async def get_weekly_summary_viewed(self) -> Optional[str]:
        try:
            raw = await self.get(WEEKLY_SUMMARY_VIEWED)
        except StorageFailure:
            logger.exception("Error reading weekly summary marker")
            return None
        return raw if isinstance(raw, str) else None

    async def mark_weekly_summary_viewed(self, week_start: str) -> None:
        await self.set(WEEKLY_SUMMARY_VIEWED, week_start)


__all__ = ["LocalRecordStore"]
