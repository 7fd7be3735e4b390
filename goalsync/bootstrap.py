"""Start-up orchestration: profile, partition, migration, sign-in hand-over, load, pull, seed."""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Awaitable, Callable, List, Optional, TypeVar

from .config import Settings, get_settings
from .errors import MigrationFailure, StorageFailure
from .goals import GoalRecord, utc_today
from .goals_store import GoalsStore, Notifier, log_notifier
from .merge import merge_goal_records
from .migration import DataMigrationService
from .partition import DAILY_GOALS, GOAL_STATS, ProfilePartitionResolver
from .profile import Profile, ProfileService
from .remote.document_store import RemoteDocumentStore, SqlDocumentStore
from .remote.sync import RemoteSyncAdapter
from .storage.engines import JsonFileKeyValueEngine, KeyValueEngine
from .storage.local_store import LocalRecordStore
from .telemetry import SyncEvent, emit_event

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_timeout(awaitable: Awaitable[T], seconds: float, default: T) -> T:
    """Race ``awaitable`` against a timer; the timer winning yields ``default``."""
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError:
        logger.warning("Operation timed out after %gs; continuing in offline mode", seconds)
        return default


class SyncSession:
    """Wires the stores together for one device and drives the session lifecycle."""

    def __init__(
        self,
        engine: KeyValueEngine,
        remote: Optional[RemoteDocumentStore] = None,
        *,
        settings: Optional[Settings] = None,
        notifier: Notifier = log_notifier,
        today: Callable[[], date] = utc_today,
    ) -> None:
        self.settings = settings or get_settings()
        self.engine = engine
        self.remote = remote
        self.resolver = ProfilePartitionResolver()
        self.local_store = LocalRecordStore(engine, self.resolver)
        self.sync = RemoteSyncAdapter(self.local_store, remote, settings=self.settings, today=today)
        self.goals = GoalsStore(self.local_store, self.sync, notifier=notifier, today=today)
        self.profiles = ProfileService(engine, settings=self.settings)
        self.profile: Optional[Profile] = None
        self.user_id: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **kwargs) -> "SyncSession":
        settings = settings or get_settings()
        remote = SqlDocumentStore.from_url(settings.database_url) if settings.database_url else None
        return cls(JsonFileKeyValueEngine(settings.local_store_path), remote, settings=settings, **kwargs)

    @property
    def started(self) -> bool:
        return self.resolver.is_partitioned()

    async def start(self, user_id: Optional[str] = None) -> Optional[Profile]:
        self.profile = await with_timeout(
            self.profiles.load_profile(),
            self.settings.bootstrap_timeout_seconds,
            None,
        )
        self.user_id = user_id.strip() if user_id and user_id.strip() else None

        partition = self.user_id or (self.profile.device_id if self.profile else None)
        if partition is None:
            logger.warning("No user id or profile available; using unpartitioned storage")
        else:
            self.resolver.set_active_partition(partition)
            await self._migrate(partition)

        adopted = await self._adopt_device_records(self.user_id) if self.user_id else 0

        await self.goals.initialize()
        self.goals.user_id = self.user_id
        if self.user_id:
            await self.pull()
            if adopted:
                await self.sync.push_today(self.user_id)
        await self.goals.load_articles()
        logger.info("Sync session started (user=%s, partition=%s)", self.user_id, partition)
        return self.profile

    async def _migrate(self, partition: str) -> None:
        migration = DataMigrationService(self.engine, partition)
        if not await migration.needs_migration():
            return
        try:
            await migration.run_once(partition)
        except MigrationFailure:
            logger.exception("Legacy data migration failed; legacy data left in place")

    async def _adopt_device_records(self, user_id: str) -> int:
        """Fold goals written under the device partition before sign-in into the user's.

        Records are merged last-write-wins with the user's existing goals. The
        device copy is removed only after the merged collection is saved.
        """
        if self.profile is None or self.profile.device_id == user_id:
            return 0
        device_store = LocalRecordStore(self.engine, ProfilePartitionResolver(self.profile.device_id))
        try:
            device_goals = await device_store.get_daily_goals()
            if not device_goals:
                return 0
            merged = merge_goal_records(await self.local_store.get_daily_goals(), device_goals)
            await self.local_store.save_daily_goals(merged)
            await self.local_store.remove(GOAL_STATS)
            await device_store.remove(DAILY_GOALS)
            await device_store.remove(GOAL_STATS)
        except StorageFailure:
            logger.exception("Could not move device records into %s; leaving them in place", user_id)
            return 0
        emit_event(
            SyncEvent.DEVICE_RECORDS_ADOPTED,
            user_id=user_id,
            device_id=self.profile.device_id,
            count=len(device_goals),
        )
        return len(device_goals)

    async def pull(self) -> List[GoalRecord]:
        """Pull, merge and adopt the remote collection for the signed-in user."""
        if not self.user_id:
            return self.goals.goals
        try:
            merged = await self.sync.pull_and_merge(self.user_id)
        except StorageFailure:
            logger.exception("Local goals unreadable; skipping merge")
            return self.goals.goals
        await self.goals.apply_merged(merged)
        return merged

    async def stop(self) -> None:
        """Flush pending pushes, then forget in-memory state and the partition."""
        await self.goals.drain()
        self.goals.reset()
        self.resolver.clear_active_partition()
        self.user_id = None
        self.profile = None

    def close(self) -> None:
        if isinstance(self.remote, SqlDocumentStore):
            self.remote.dispose()


__all__ = ["SyncSession", "with_timeout"]
