"""Best-effort push/pull between the local record store and the remote document store."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Awaitable, Callable, Dict, Generic, List, Optional, TypeVar, Union

from pydantic import ValidationError

from ..config import Settings, get_settings
from ..errors import RemoteSyncFailure, StorageFailure, SyncOperation
from ..goals import GoalRecord, format_date, utc_today
from ..merge import merge_goal_records
from ..storage.local_store import LocalRecordStore
from ..telemetry import SyncEvent, emit_event
from .document_store import RemoteDocumentStore, collection_path, document_path

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: RemoteSyncFailure

    @property
    def is_ok(self) -> bool:
        return False


SyncResult = Union[Ok[T], Err]


class SyncState(str, Enum):
    LOCAL_ONLY = "local_only"
    SYNCED = "synced"
    LOCAL_DIRTY = "local_dirty"
    MERGED_REMOTE = "merged_remote"


class RemoteSyncAdapter:
    """Pushes today's record and pulls the full remote collection for merge.

    Remote problems never raise: every remote call returns ``Ok`` or ``Err``
    and ``pull_and_merge`` falls back to the local collection. Only today's
    record is ever pushed; history is reconciled by pulling.
    """

    def __init__(
        self,
        local_store: LocalRecordStore,
        remote: Optional[RemoteDocumentStore],
        *,
        settings: Optional[Settings] = None,
        timeout: Optional[float] = None,
        today: Callable[[], date] = utc_today,
    ) -> None:
        self._local = local_store
        self._remote = remote
        self._settings = settings or get_settings()
        self._timeout = timeout if timeout is not None else self._settings.remote_timeout_seconds
        self._today = today
        self._states: Dict[str, SyncState] = {}

    @property
    def remote_enabled(self) -> bool:
        return self._remote is not None

    def sync_state(self, goal_date: str) -> SyncState:
        return self._states.get(goal_date, SyncState.LOCAL_ONLY)

    def mark_local_mutation(self, goal_date: str) -> SyncState:
        current = self.sync_state(goal_date)
        if current in (SyncState.SYNCED, SyncState.MERGED_REMOTE):
            self._states[goal_date] = SyncState.LOCAL_DIRTY
        elif goal_date not in self._states:
            self._states[goal_date] = SyncState.LOCAL_ONLY
        return self._states[goal_date]

    def reset(self) -> None:
        self._states.clear()

    def _document_path(self, user_id: str, goal_date: str) -> str:
        return document_path(
            self._settings.remote_collection,
            user_id,
            self._settings.remote_subcollection,
            goal_date,
        )

    def _collection_path(self, user_id: str) -> str:
        return collection_path(
            self._settings.remote_collection,
            user_id,
            self._settings.remote_subcollection,
        )

    async def _call_remote(self, operation: SyncOperation, call: Callable[[], Awaitable[T]]) -> SyncResult[T]:
        try:
            return Ok(await asyncio.wait_for(call(), timeout=self._timeout))
        except asyncio.TimeoutError as exc:
            return Err(RemoteSyncFailure(f"timed out after {self._timeout:g}s", operation, exc))
        except Exception as exc:  # noqa: BLE001
            return Err(RemoteSyncFailure(str(exc) or type(exc).__name__, operation, exc))

    async def push_today(self, user_id: Optional[str]) -> SyncResult[Optional[GoalRecord]]:
        """Upsert today's local record to ``{collection}/{userId}/{subcollection}/{date}``."""
        if not user_id or self._remote is None:
            return Ok(None)
        today = format_date(self._today())
        try:
            goals = await self._local.get_daily_goals()
        except StorageFailure as exc:
            failure = RemoteSyncFailure("local goals could not be read", "push", exc)
            logger.warning("[sync] Skipping push for %s: %s", user_id, exc)
            emit_event(SyncEvent.GOAL_SYNC_PUSH_FAILED, user_id=user_id, date=today, reason=failure.reason)
            return Err(failure)

        record = next((goal for goal in goals if goal.date == today), None)
        if record is None:
            return Ok(None)

        remote = self._remote
        payload = record.normalized().to_remote_payload()
        result = await self._call_remote(
            "push",
            lambda: remote.upsert(self._document_path(user_id, today), payload, merge=True),
        )
        if isinstance(result, Err):
            logger.warning("[sync] Push of %s for %s failed: %s", today, user_id, result.error.reason)
            emit_event(SyncEvent.GOAL_SYNC_PUSH_FAILED, user_id=user_id, date=today, reason=result.error.reason)
            return result

        self._states[today] = SyncState.SYNCED
        emit_event(SyncEvent.GOAL_SYNC_PUSH_SUCCEEDED, user_id=user_id, date=today)
        return Ok(record)

    async def pull_remote(self, user_id: str) -> SyncResult[List[GoalRecord]]:
        if self._remote is None:
            return Err(RemoteSyncFailure("remote store is not configured", "pull"))
        remote = self._remote
        result = await self._call_remote("pull", lambda: remote.list_documents(self._collection_path(user_id)))
        if isinstance(result, Err):
            return result

        records: List[GoalRecord] = []
        for index, payload in enumerate(result.value):
            try:
                records.append(GoalRecord.model_validate(payload).normalized())
            except ValidationError as exc:
                logger.warning("[sync] Skipping malformed remote goal %d for %s: %s", index, user_id, exc)
        return Ok(records)

    async def pull_and_merge(self, user_id: Optional[str]) -> List[GoalRecord]:
        """Merge the remote collection into the local one and persist the result.

        Any remote failure returns the local collection unchanged. A local
        read failure propagates as :class:`StorageFailure`.
        """
        local_goals = await self._local.get_daily_goals()
        if not user_id or self._remote is None:
            return local_goals

        logger.info("[sync] Pulling goals for %s", user_id)
        result = await self.pull_remote(user_id)
        if isinstance(result, Err):
            logger.warning("[sync] Pull failed, keeping local goals: %s", result.error.reason)
            emit_event(SyncEvent.GOAL_SYNC_PULL_FAILED, user_id=user_id, reason=result.error.reason)
            return local_goals

        remote_goals = result.value
        merged = merge_goal_records(local_goals, remote_goals)
        logger.info(
            "[sync] Found %d local goals, %d remote goals; merged to %d",
            len(local_goals),
            len(remote_goals),
            len(merged),
        )
        try:
            await self._local.save_daily_goals(merged)
        except StorageFailure:
            logger.exception("[sync] Failed to persist merged goals; keeping local goals")
            return local_goals

        self._record_merge_states(local_goals, remote_goals, merged)
        emit_event(
            SyncEvent.GOAL_SYNC_PULL_COMPLETED,
            user_id=user_id,
            local_count=len(local_goals),
            remote_count=len(remote_goals),
            merged_count=len(merged),
        )
        return merged

    def _record_merge_states(
        self,
        local_goals: List[GoalRecord],
        remote_goals: List[GoalRecord],
        merged: List[GoalRecord],
    ) -> None:
        local_by_date = {goal.date: goal for goal in local_goals}
        remote_by_date = {goal.date: goal for goal in remote_goals}
        for record in merged:
            remote_record = remote_by_date.get(record.date)
            if remote_record is None:
                continue
            local_record = local_by_date.get(record.date)
            if record is remote_record and local_record != remote_record:
                self._states[record.date] = SyncState.MERGED_REMOTE
            elif local_record == remote_record:
                self._states[record.date] = SyncState.SYNCED


__all__ = ["Err", "Ok", "RemoteSyncAdapter", "SyncResult", "SyncState"]
