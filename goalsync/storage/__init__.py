"""On-device persistence for goal records."""

from .engines import JsonFileKeyValueEngine, KeyValueEngine, MemoryKeyValueEngine
from .local_store import LocalRecordStore

__all__ = ["JsonFileKeyValueEngine", "KeyValueEngine", "LocalRecordStore", "MemoryKeyValueEngine"]
