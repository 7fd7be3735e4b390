"""Structured sync telemetry: log lines plus in-process listeners."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from threading import RLock
from typing import Any, Callable, Dict, List, Union

from pydantic import BaseModel

logger = logging.getLogger("goalsync.telemetry")


class SyncEvent(str, Enum):
    """Every event the sync core reports."""

    GOAL_MUTATION_REVERTED = "goal_mutation_reverted"
    GOAL_SYNC_PUSH_SUCCEEDED = "goal_sync_push_succeeded"
    GOAL_SYNC_PUSH_FAILED = "goal_sync_push_failed"
    GOAL_SYNC_PULL_COMPLETED = "goal_sync_pull_completed"
    GOAL_SYNC_PULL_FAILED = "goal_sync_pull_failed"
    LEGACY_MIGRATION_COMPLETED = "legacy_migration_completed"
    LEGACY_MIGRATION_FAILED = "legacy_migration_failed"
    LEGACY_KEY_RETAINED = "legacy_key_retained"
    DEVICE_RECORDS_ADOPTED = "device_records_adopted"
    PROFILE_RECOVERED = "profile_recovered"

    @property
    def is_failure(self) -> bool:
        return self.value.endswith(("_failed", "_reverted"))


@dataclass(frozen=True)
class TelemetryEvent:
    name: str
    payload: Dict[str, Any]


_listeners: List[Callable[[TelemetryEvent], None]] = []
_lock = RLock()


def register_listener(listener: Callable[[TelemetryEvent], None]) -> None:
    """Register an in-process listener (used in tests)."""
    with _lock:
        _listeners.append(listener)


def clear_listeners() -> None:
    with _lock:
        _listeners.clear()


def emit_event(name: Union[SyncEvent, str], **fields: Any) -> None:
    """Emit a structured telemetry event and fan it out to listeners.

    Failure events are logged at WARNING, everything else at INFO. Names
    outside :class:`SyncEvent` are still emitted.
    """
    try:
        kind = SyncEvent(name)
    except ValueError:
        logger.debug("Unregistered telemetry event %s", name)
        kind = None
    event_name = kind.value if kind is not None else str(name)
    payload = _sanitize(fields)
    event = TelemetryEvent(name=event_name, payload=payload)

    with _lock:
        listeners = list(_listeners)

    for listener in listeners:
        try:
            listener(event)
        except Exception:  # noqa: BLE001
            logger.exception("Telemetry listener failed for %s", event_name)

    level = logging.WARNING if kind is not None and kind.is_failure else logging.INFO
    structured = {"event": event_name, **payload}
    logger.log(level, "TELEMETRY %s", json.dumps(structured, default=_json_default))


def _sanitize(fields: Dict[str, Any]) -> Dict[str, Any]:
    sanitized: Dict[str, Any] = {}
    for key, value in fields.items():
        if isinstance(value, (datetime, date)):
            sanitized[key] = value.isoformat()
        elif isinstance(value, BaseException):
            sanitized[key] = f"{type(value).__name__}: {value}"
        elif isinstance(value, Enum):
            sanitized[key] = value.value
        elif isinstance(value, BaseModel):
            sanitized[key] = value.model_dump(mode="json", by_alias=True, exclude_none=True)
        else:
            sanitized[key] = value
    return sanitized


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


__all__ = [
    "SyncEvent",
    "TelemetryEvent",
    "clear_listeners",
    "emit_event",
    "register_listener",
]
