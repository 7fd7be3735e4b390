"""Key/value persistence engines consumed by the local record store."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, List, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class KeyValueEngine(Protocol):
    """Narrow async interface over the on-device key/value store."""

    async def get(self, key: str) -> Optional[str]:  # pragma: no cover - protocol definition
        ...

    async def set(self, key: str, value: str) -> None:  # pragma: no cover - protocol definition
        ...

    async def remove(self, key: str) -> None:  # pragma: no cover - protocol definition
        ...

    async def clear(self) -> None:  # pragma: no cover - protocol definition
        ...

    async def keys(self) -> List[str]:  # pragma: no cover - protocol definition
        ...


class MemoryKeyValueEngine:
    """Process-local engine used for tests and ephemeral sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._values: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    async def set(self, key: str, value: str) -> None:
        self._values[key] = value

    async def remove(self, key: str) -> None:
        self._values.pop(key, None)

    async def clear(self) -> None:
        self._values.clear()

    async def keys(self) -> List[str]:
        return list(self._values)

    def snapshot(self) -> Dict[str, str]:
        return dict(self._values)


class JsonFileKeyValueEngine:
    """JSON-file engine; every write replaces the file atomically."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    def _load_unlocked(self) -> Dict[str, str]:
        if not self._path.exists():
            return {}
        with self._path.open("r", encoding="utf-8") as handle:
            raw = json.load(handle)
        if not isinstance(raw, dict):
            raise ValueError(f"Key/value file {self._path} does not hold a JSON object.")
        return {str(key): value for key, value in raw.items() if isinstance(value, str)}

    def _write_unlocked(self, values: Dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", dir=self._path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(values, handle, indent=2, sort_keys=True)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

    def _get_sync(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load_unlocked().get(key)

    def _set_sync(self, key: str, value: str) -> None:
        with self._lock:
            values = self._load_unlocked()
            values[key] = value
            self._write_unlocked(values)

    def _remove_sync(self, key: str) -> None:
        with self._lock:
            values = self._load_unlocked()
            if key in values:
                del values[key]
                self._write_unlocked(values)

    def _clear_sync(self) -> None:
        with self._lock:
            self._write_unlocked({})

    def _keys_sync(self) -> List[str]:
        with self._lock:
            return list(self._load_unlocked())

    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._get_sync, key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._set_sync, key, value)

    async def remove(self, key: str) -> None:
        await asyncio.to_thread(self._remove_sync, key)

    async def clear(self) -> None:
        await asyncio.to_thread(self._clear_sync)

    async def keys(self) -> List[str]:
        return await asyncio.to_thread(self._keys_sync)


__all__ = ["JsonFileKeyValueEngine", "KeyValueEngine", "MemoryKeyValueEngine"]
