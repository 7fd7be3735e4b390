"""One-shot restructuring of legacy flat keys into profile-partitioned keys.

The ordering is always copy, then validate, then cleanup. Legacy values are
copied verbatim and are only removed by an explicit :meth:`cleanup` after a
successful validation, so a failed run can simply be retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .errors import MigrationFailure
from .partition import LEGACY_KEYS, partition_key
from .storage.engines import KeyValueEngine
from .telemetry import SyncEvent, emit_event

logger = logging.getLogger(__name__)


@dataclass
class MigrationStatus:
    is_migrated: bool
    has_legacy_data: bool
    migrated_key_count: int
    errors: List[str] = field(default_factory=list)


class DataMigrationService:
    def __init__(self, engine: KeyValueEngine, user_id: Optional[str] = None) -> None:
        self._engine = engine
        self._user_id = user_id

    def _require_user(self, user_id: Optional[str]) -> str:
        target = user_id if user_id is not None else self._user_id
        if target is None or not target.strip():
            raise ValueError("A user id is required to address partitioned keys.")
        self._user_id = target.strip()
        return self._user_id

    async def needs_migration(self) -> bool:
        """True while any legacy (unpartitioned) key still holds a value."""
        try:
            for key in LEGACY_KEYS:
                if await self._engine.get(key) is not None:
                    return True
        except Exception:  # noqa: BLE001
            logger.exception("Error checking for legacy data")
        return False

    async def migrate(self, user_id: Optional[str] = None) -> int:
        """Copy each legacy value into its partitioned key; returns the number copied.

        Partitioned keys that already hold data are left alone, and
        :meth:`cleanup` then keeps the uncopied legacy value. Legacy keys are
        never modified here.
        """
        target = self._require_user(user_id)
        logger.info("Starting legacy data migration for %s", target)
        copied = 0
        for legacy_key in LEGACY_KEYS:
            destination = partition_key(target, legacy_key)
            try:
                raw = await self._engine.get(legacy_key)
                if raw is None:
                    continue
                if await self._engine.get(destination) is not None:
                    logger.info("Partitioned key %s already holds data; leaving it in place", destination)
                    continue
                await self._engine.set(destination, raw)
            except Exception as exc:  # noqa: BLE001
                logger.error("Legacy data migration failed at %s: %s", legacy_key, exc)
                emit_event(SyncEvent.LEGACY_MIGRATION_FAILED, user_id=target, stage="copy", key=legacy_key, error=exc)
                raise MigrationFailure(
                    f"Failed to copy legacy key '{legacy_key}': {exc}", stage="copy", key=legacy_key
                ) from exc
            copied += 1
            logger.info("Migrated %s to %s", legacy_key, destination)
        return copied

    async def validate(self, user_id: Optional[str] = None) -> bool:
        """True when at least one partitioned key for the user holds data."""
        target = self._require_user(user_id)
        try:
            for legacy_key in LEGACY_KEYS:
                if await self._engine.get(partition_key(target, legacy_key)) is not None:
                    return True
        except Exception:  # noqa: BLE001
            logger.exception("Migration validation error for %s", target)
            return False
        logger.warning("No migrated data found during validation for %s", target)
        return False

    async def cleanup(self, user_id: Optional[str] = None) -> List[str]:
        """Remove legacy keys whose value now sits in the partition; returns the keys kept.

        Refuses to run unless validation passes. A legacy value that differs
        from its partitioned counterpart was never copied, so it is kept.
        """
        target = self._require_user(user_id)
        if not await self.validate(target):
            raise MigrationFailure("Refusing to remove legacy keys before validation succeeds.", stage="cleanup")
        logger.info("Cleaning up legacy storage keys")
        retained: List[str] = []
        for legacy_key in LEGACY_KEYS:
            try:
                raw = await self._engine.get(legacy_key)
                if raw is None:
                    continue
                if await self._engine.get(partition_key(target, legacy_key)) != raw:
                    logger.warning("Keeping legacy key %s; its value was not copied for %s", legacy_key, target)
                    emit_event(SyncEvent.LEGACY_KEY_RETAINED, user_id=target, key=legacy_key)
                    retained.append(legacy_key)
                    continue
                await self._engine.remove(legacy_key)
            except Exception as exc:  # noqa: BLE001
                raise MigrationFailure(
                    f"Failed to remove legacy key '{legacy_key}': {exc}", stage="cleanup", key=legacy_key
                ) from exc
        return retained

    async def rollback(self, user_id: Optional[str] = None) -> None:
        """Copy partitioned values back to legacy keys, then drop the partitioned keys."""
        target = self._require_user(user_id)
        logger.info("Rolling back legacy data migration for %s", target)
        for legacy_key in LEGACY_KEYS:
            source = partition_key(target, legacy_key)
            try:
                raw = await self._engine.get(source)
                if raw is not None:
                    await self._engine.set(legacy_key, raw)
            except Exception as exc:  # noqa: BLE001
                raise MigrationFailure(
                    f"Failed to restore '{legacy_key}' during rollback: {exc}", stage="rollback", key=legacy_key
                ) from exc
        for legacy_key in LEGACY_KEYS:
            source = partition_key(target, legacy_key)
            try:
                await self._engine.remove(source)
            except Exception as exc:  # noqa: BLE001
                raise MigrationFailure(
                    f"Failed to remove '{source}' during rollback: {exc}", stage="rollback", key=source
                ) from exc
        logger.info("Migration rollback completed for %s", target)

    async def migrate_all(self, user_id: Optional[str] = None) -> int:
        """Copy then validate; never cleans up."""
        target = self._require_user(user_id)
        copied = await self.migrate(target)
        if not await self.validate(target):
            emit_event(SyncEvent.LEGACY_MIGRATION_FAILED, user_id=target, stage="validate")
            raise MigrationFailure("Migration validation failed", stage="validate")
        return copied

    async def run_once(self, user_id: Optional[str] = None) -> bool:
        """Copy, validate and clean up when legacy data is present; returns whether it ran."""
        target = self._require_user(user_id)
        if not await self.needs_migration():
            return False
        copied = await self.migrate_all(target)
        retained = await self.cleanup(target)
        emit_event(SyncEvent.LEGACY_MIGRATION_COMPLETED, user_id=target, copied=copied, retained=retained)
        logger.info("Data migration completed successfully for %s", target)
        return True

    async def migration_status(self, user_id: Optional[str] = None) -> MigrationStatus:
        target = self._require_user(user_id)
        try:
            has_legacy = await self.needs_migration()
            present = set(await self._engine.keys())
            migrated = sum(1 for legacy_key in LEGACY_KEYS if partition_key(target, legacy_key) in present)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Error getting migration status")
            return MigrationStatus(False, False, 0, [str(exc)])
        return MigrationStatus(
            is_migrated=migrated > 0,
            has_legacy_data=has_legacy,
            migrated_key_count=migrated,
        )


__all__ = ["DataMigrationService", "MigrationStatus"]
