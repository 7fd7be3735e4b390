"""In-memory façade over the local store with optimistic writes and background push."""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import date, timedelta
from typing import Any, Callable, List, Mapping, Optional, Sequence, Set, Union

from .articles import Article
from .errors import StorageFailure
from .goals import (
    GoalRecord,
    GoalStats,
    WeeklySummary,
    field_names,
    format_timestamp,
    parse_date,
    utc_now,
    utc_today,
    week_start_for,
)
from .optimistic import commit_or_revert
from .remote.sync import RemoteSyncAdapter
from .stats import completion_rate, compute_stats, streak, weekly_summary
from .storage.local_store import LocalRecordStore
from .telemetry import SyncEvent, emit_event

logger = logging.getLogger(__name__)

Notifier = Callable[[str, str], None]
DateLike = Union[date, str]


def log_notifier(title: str, message: str) -> None:
    logger.warning("%s: %s", title, message)


def new_goal_id() -> str:
    return f"goal_{int(utc_now().timestamp() * 1000)}_{uuid.uuid4().hex[:8]}"


def _as_date(value: DateLike) -> date:
    return value if isinstance(value, date) else parse_date(value)


class GoalsStore:
    """Holds the active profile's goals, stats and articles.

    Every mutation is applied in memory first and persisted second; when the
    write fails the previous state is restored, the user is notified and the
    :class:`StorageFailure` is re-raised. Pushes run in the background and
    never affect the outcome of a local mutation.
    """

    def __init__(
        self,
        local_store: LocalRecordStore,
        sync: Optional[RemoteSyncAdapter] = None,
        *,
        notifier: Notifier = log_notifier,
        today: Callable[[], date] = utc_today,
    ) -> None:
        self._local = local_store
        self._sync = sync
        self._notify = notifier
        self._today = today
        self._goals: List[GoalRecord] = []
        self._stats = GoalStats()
        self._articles: List[Article] = []
        self._pending: Set[asyncio.Task[None]] = set()
        self.user_id: Optional[str] = None

    @property
    def goals(self) -> List[GoalRecord]:
        return list(self._goals)

    @property
    def stats(self) -> GoalStats:
        return self._stats

    @property
    def articles(self) -> List[Article]:
        return list(self._articles)

    @property
    def sync(self) -> Optional[RemoteSyncAdapter]:
        return self._sync

    async def initialize(self) -> None:
        try:
            goals = await self._local.get_daily_goals()
            stats = await self._local.get_goal_stats()
        except StorageFailure:
            logger.exception("Error initializing goals store")
            self._goals = []
            self._stats = GoalStats()
            self._notify("Data Loading Error", "Unable to load your saved data. Starting with empty state.")
            return

        self._goals = goals
        if stats is None:
            await self._refresh_stats()
        else:
            self._stats = stats

    # Queries

    def get_goal_by_date(self, goal_date: DateLike) -> Optional[GoalRecord]:
        key = _as_date(goal_date).isoformat()
        return next((goal for goal in self._goals if goal.date == key), None)

    def get_weekly_goals(self, week_start: DateLike) -> List[GoalRecord]:
        start = week_start_for(_as_date(week_start))
        end = start + timedelta(days=6)
        week = [goal for goal in self._goals if start <= goal.calendar_date <= end]
        return sorted(week, key=lambda goal: goal.date)

    def calculate_weekly_summary(self, week_start: DateLike) -> WeeklySummary:
        return weekly_summary(_as_date(week_start), self._goals)

    def get_current_streak(self) -> int:
        return streak(self._goals, self._today())

    def get_completion_rate(self, days: int) -> float:
        return completion_rate(self._goals, days, self._today())

    async def has_viewed_weekly_summary(self, week_start: DateLike) -> bool:
        marker = await self._local.get_weekly_summary_viewed()
        return marker == week_start_for(_as_date(week_start)).isoformat()

    async def mark_weekly_summary_viewed(self, week_start: DateLike) -> None:
        await self._local.mark_weekly_summary_viewed(week_start_for(_as_date(week_start)).isoformat())

    # Mutations

    async def add_goal(self, partial: Mapping[str, Any]) -> GoalRecord:
        payload = field_names(partial)
        payload["id"] = new_goal_id()
        payload["updated_at"] = format_timestamp(utc_now())
        record = GoalRecord.model_validate(payload).normalized()
        if self.get_goal_by_date(record.date) is not None:
            raise ValueError(f"A goal already exists for {record.date}")

        await self._commit_goals(self._goals + [record], record.date)
        return record

    async def update_goal(self, goal_id: str, partial: Mapping[str, Any]) -> Optional[GoalRecord]:
        existing = next((goal for goal in self._goals if goal.id == goal_id), None)
        if existing is None:
            logger.error("Attempted to update non-existent goal: %s", goal_id)
            return None

        updated = existing.apply(partial).normalized().touch()
        if updated.date != existing.date and self.get_goal_by_date(updated.date) is not None:
            raise ValueError(f"A goal already exists for {updated.date}")

        goals = [updated if goal.id == goal_id else goal for goal in self._goals]
        await self._commit_goals(goals, updated.date)
        return updated

    async def set_goal_for_date(self, goal_date: DateLike, partial: Mapping[str, Any]) -> GoalRecord:
        key = _as_date(goal_date).isoformat()
        existing = self.get_goal_by_date(key)
        if existing is None:
            return await self.add_goal({**partial, "date": key})
        updated = await self.update_goal(existing.id, partial)
        if updated is None:
            raise LookupError(f"Goal {existing.id} disappeared while updating {key}")
        return updated

    async def apply_merged(self, records: Sequence[GoalRecord]) -> None:
        """Adopt a collection already persisted by a pull."""
        self._goals = list(records)
        await self._refresh_stats()

    async def _commit_goals(self, goals: List[GoalRecord], goal_date: str) -> None:
        def apply() -> None:
            self._goals = goals

        def restore(previous: List[GoalRecord]) -> None:
            self._goals = previous

        try:
            await commit_or_revert(
                lambda: self._goals,
                apply,
                lambda: self._local.save_daily_goals(goals),
                restore,
            )
        except StorageFailure as exc:
            self._notify("Storage Error", exc.readable_message())
            emit_event(SyncEvent.GOAL_MUTATION_REVERTED, date=goal_date, operation=exc.operation, error=exc)
            raise

        if self._sync is not None:
            self._sync.mark_local_mutation(goal_date)
        await self._refresh_stats()
        self._schedule_push()

    async def _refresh_stats(self) -> None:
        stats = compute_stats(self._goals, self._today())

        def apply() -> None:
            self._stats = stats

        def restore(previous: GoalStats) -> None:
            self._stats = previous

        try:
            await commit_or_revert(
                lambda: self._stats,
                apply,
                lambda: self._local.save_goal_stats(stats),
                restore,
            )
        except StorageFailure:
            logger.exception("Failed to persist goal stats; keeping previous stats")

    # Articles

    async def load_articles(self) -> List[Article]:
        self._articles = await self._local.get_articles()
        return self.articles

    async def save_articles(self, articles: Sequence[Article]) -> None:
        updated = list(articles)

        def apply() -> None:
            self._articles = updated

        def restore(previous: List[Article]) -> None:
            self._articles = previous

        try:
            await commit_or_revert(
                lambda: self._articles,
                apply,
                lambda: self._local.save_articles(updated),
                restore,
            )
        except StorageFailure as exc:
            self._notify("Storage Error", exc.readable_message())
            raise

    # Background push

    def _schedule_push(self) -> None:
        if self._sync is None or not self.user_id:
            return
        task = asyncio.get_running_loop().create_task(self._push(self._sync, self.user_id))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _push(self, sync: RemoteSyncAdapter, user_id: str) -> None:
        try:
            await sync.push_today(user_id)
        except Exception:  # noqa: BLE001
            logger.exception("Background push crashed for %s", user_id)

    async def drain(self) -> None:
        """Wait for every scheduled push to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    def reset(self) -> None:
        """Forget in-memory state; durable storage is untouched."""
        self._goals = []
        self._stats = GoalStats()
        self._articles = []
        self.user_id = None
        if self._sync is not None:
            self._sync.reset()


__all__ = ["GoalsStore", "Notifier", "log_notifier", "new_goal_id"]
