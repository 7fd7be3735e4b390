"""Streaks, completion rates and weekly summaries derived from goal records."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from .goals import (
    GOAL_CATEGORIES,
    WEEKLY_EXERCISE_GOAL_MINUTES,
    GoalRecord,
    GoalStats,
    WeekComparison,
    WeeklySummary,
    format_date,
    utc_today,
    week_start_for,
)


def is_complete(record: GoalRecord) -> bool:
    """All five categories checked; partial days never count."""
    return all(record.is_flagged(category) for category in GOAL_CATEGORIES)


def _in_range(records: Iterable[GoalRecord], start: date, end: date) -> List[GoalRecord]:
    return [record for record in records if start <= record.calendar_date <= end]


def completion_rate(records: Sequence[GoalRecord], window_days: int, today: Optional[date] = None) -> float:
    """Percentage of complete records among the ``window_days`` dates ending today.

    The window holds exactly ``window_days`` calendar dates, today included.
    An empty window yields ``0.0``.
    """
    end = today or utc_today()
    recent = _in_range(records, end - timedelta(days=window_days - 1), end)
    if not recent:
        return 0.0
    completed = sum(1 for record in recent if is_complete(record))
    return completed / len(recent) * 100


def streak(records: Sequence[GoalRecord], today: Optional[date] = None) -> int:
    """Consecutive complete days ending today.

    A missing day breaks the streak the same way an incomplete one does.
    Records dated after ``today`` are ignored.
    """
    current = today or utc_today()
    by_date: Dict[date, GoalRecord] = {}
    for record in records:
        if record.calendar_date <= current:
            by_date[record.calendar_date] = record

    count = 0
    while True:
        record = by_date.get(current - timedelta(days=count))
        if record is None or not is_complete(record):
            return count
        count += 1


def _qualifying(records: Sequence[GoalRecord], category: str) -> List[float]:
    values = []
    for record in records:
        metric = record.metric(category)
        if record.is_flagged(category) and metric is not None:
            values.append(float(metric))
    return values


def _total(records: Sequence[GoalRecord], category: str) -> float:
    return round(sum(_qualifying(records, category)), 1)


def _average(records: Sequence[GoalRecord], category: str) -> float:
    values = _qualifying(records, category)
    if not values:
        return 0.0
    return round(sum(values) / len(values), 1)


def compare(current: float, previous: float) -> WeekComparison:
    difference = round(current - previous, 1)
    percent_change = round(difference / previous * 100, 1) if previous else 0.0
    return WeekComparison(
        current=current,
        previous=previous,
        difference=difference,
        percent_change=percent_change,
        improved=difference > 0,
    )


def _week_rate(records: Sequence[GoalRecord]) -> float:
    if not records:
        return 0.0
    return round(sum(1 for record in records if is_complete(record)) / len(records) * 100, 1)


def weekly_summary(week_start: date, records: Sequence[GoalRecord]) -> WeeklySummary:
    """Sunday-to-Saturday totals and averages compared against the prior seven days.

    Comparisons are omitted entirely when the prior week has no records.
    """
    start = week_start_for(week_start)
    end = start + timedelta(days=6)
    current = _in_range(records, start, end)
    previous = _in_range(records, start - timedelta(days=7), start - timedelta(days=1))

    exercise_total = _total(current, "exercise")
    summary = WeeklySummary(
        week_start=format_date(start),
        week_end=format_date(end),
        completion_rate=_week_rate(current),
        exercise_total=exercise_total,
        exercise_goal_met=exercise_total >= WEEKLY_EXERCISE_GOAL_MINUTES,
        cognitive_average=_average(current, "cognitive"),
        social_total=_total(current, "social"),
        diet_average=_average(current, "diet"),
        sleep_average=_average(current, "sleep"),
        is_first_week=not previous,
    )
    if summary.is_first_week:
        return summary

    return summary.model_copy(
        update={
            "exercise_comparison": compare(exercise_total, _total(previous, "exercise")),
            "cognitive_comparison": compare(summary.cognitive_average, _average(previous, "cognitive")),
            "social_comparison": compare(summary.social_total, _total(previous, "social")),
            "diet_comparison": compare(summary.diet_average, _average(previous, "diet")),
            "sleep_comparison": compare(summary.sleep_average, _average(previous, "sleep")),
        }
    )


def compute_stats(records: Sequence[GoalRecord], today: Optional[date] = None) -> GoalStats:
    current = today or utc_today()
    return GoalStats(
        weekly_completion=completion_rate(records, 7, current),
        monthly_completion=completion_rate(records, 30, current),
        streak=streak(records, current),
    )


__all__ = [
    "compare",
    "completion_rate",
    "compute_stats",
    "is_complete",
    "streak",
    "weekly_summary",
]
