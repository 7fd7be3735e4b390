"""Per-user storage namespaces on a shared device."""

from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)

DAILY_GOALS = "daily_goals"
GOAL_STATS = "goal_stats"
ARTICLES = "articles"
WEEKLY_SUMMARY_VIEWED = "weekly_summary_viewed"

# Keys written before multi-user support; the migration service consumes these.
LEGACY_KEYS: Tuple[str, ...] = (DAILY_GOALS, GOAL_STATS, ARTICLES)
PARTITIONED_KEYS: Tuple[str, ...] = (DAILY_GOALS, GOAL_STATS, ARTICLES, WEEKLY_SUMMARY_VIEWED)

PARTITION_PREFIX = "profile_"


def _normalize_user_id(user_id: str) -> str:
    normalized = user_id.strip() if isinstance(user_id, str) else ""
    if not normalized:
        raise ValueError("User id cannot be empty when resolving partitioned keys.")
    return normalized


def partition_key(user_id: str, logical_key: str) -> str:
    """Physical key for ``logical_key`` inside ``user_id``'s namespace.

    Logical keys outside the known set are not partitioned. The known set has
    no member that is a suffix of another, so the mapping stays injective.
    """
    normalized = _normalize_user_id(user_id)
    if logical_key not in PARTITIONED_KEYS:
        return logical_key
    return f"{PARTITION_PREFIX}{normalized}_{logical_key}"


class ProfilePartitionResolver:
    """Holds the active partition and maps logical keys onto physical ones."""

    def __init__(self, user_id: Optional[str] = None) -> None:
        self._user_id: Optional[str] = None
        if user_id is not None:
            self.set_active_partition(user_id)

    @property
    def active_user_id(self) -> Optional[str]:
        return self._user_id

    def set_active_partition(self, user_id: str) -> None:
        normalized = _normalize_user_id(user_id)
        if normalized != self._user_id:
            logger.info("Profile storage partition activated for %s", normalized)
        self._user_id = normalized

    def clear_active_partition(self) -> None:
        if self._user_id is not None:
            logger.info("Profile storage partition cleared for %s", self._user_id)
        self._user_id = None

    def is_partitioned(self) -> bool:
        return self._user_id is not None

    def resolve_key(self, logical_key: str, user_id: Optional[str] = None) -> str:
        """Resolve against ``user_id`` or the active partition; legacy keys when neither is set."""
        target = user_id if user_id is not None else self._user_id
        if target is None:
            return logical_key
        return partition_key(target, logical_key)

    def physical_keys(self, user_id: Optional[str] = None) -> Dict[str, str]:
        return {logical: self.resolve_key(logical, user_id) for logical in PARTITIONED_KEYS}

    @staticmethod
    def legacy_keys() -> Tuple[str, ...]:
        return LEGACY_KEYS


__all__ = [
    "ARTICLES",
    "DAILY_GOALS",
    "GOAL_STATS",
    "LEGACY_KEYS",
    "PARTITIONED_KEYS",
    "PARTITION_PREFIX",
    "ProfilePartitionResolver",
    "WEEKLY_SUMMARY_VIEWED",
    "partition_key",
]
