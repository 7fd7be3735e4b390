"""Offline-first daily goal synchronization."""

from .bootstrap import SyncSession, with_timeout
from .errors import MigrationFailure, ProfileIntegrityFailure, RemoteSyncFailure, StorageFailure
from .goals import GoalRecord, GoalStats, WeekComparison, WeeklySummary
from .goals_store import GoalsStore
from .merge import merge_goal_records
from .migration import DataMigrationService, MigrationStatus
from .partition import ProfilePartitionResolver
from .remote import Err, Ok, RemoteSyncAdapter, SqlDocumentStore, SyncState
from .storage import JsonFileKeyValueEngine, LocalRecordStore, MemoryKeyValueEngine
from .telemetry import SyncEvent

__all__ = [
    "DataMigrationService",
    "Err",
    "GoalRecord",
    "GoalStats",
    "GoalsStore",
    "JsonFileKeyValueEngine",
    "LocalRecordStore",
    "MemoryKeyValueEngine",
    "MigrationFailure",
    "MigrationStatus",
    "Ok",
    "ProfileIntegrityFailure",
    "ProfilePartitionResolver",
    "RemoteSyncAdapter",
    "RemoteSyncFailure",
    "SqlDocumentStore",
    "StorageFailure",
    "SyncEvent",
    "SyncSession",
    "SyncState",
    "WeekComparison",
    "WeeklySummary",
    "merge_goal_records",
    "with_timeout",
]
