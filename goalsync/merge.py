"""Last-write-wins reconciliation of local and remote goal collections."""

from __future__ import annotations

from typing import Dict, Iterable, List

from .goals import GoalRecord


def is_newer(candidate: GoalRecord, incumbent: GoalRecord) -> bool:
    """True when ``candidate`` carries a strictly later ``updatedAt`` than ``incumbent``."""
    return candidate.parsed_updated_at() > incumbent.parsed_updated_at()


def merge_goal_records(local: Iterable[GoalRecord], remote: Iterable[GoalRecord]) -> List[GoalRecord]:
    """Merge two collections keyed by calendar date.

    The newer record replaces the other wholesale; fields are never combined.
    Missing or unparseable timestamps sort as the epoch, and ties keep the
    local record. Inputs are not mutated and output order is unspecified.
    """
    by_date: Dict[str, GoalRecord] = {}
    for record in local:
        by_date[record.date] = record

    for remote_record in remote:
        existing = by_date.get(remote_record.date)
        if existing is None or is_newer(remote_record, existing):
            by_date[remote_record.date] = remote_record

    return list(by_date.values())


__all__ = ["is_newer", "merge_goal_records"]
