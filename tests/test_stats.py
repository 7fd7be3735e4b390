from __future__ import annotations

from datetime import date, timedelta

import pytest

from goalsync.goals import GoalRecord, week_start_for
from goalsync.stats import compare, completion_rate, compute_stats, is_complete, streak, weekly_summary

TODAY = date(2024, 3, 10)
ALL_DONE = {"exercise": True, "cognitive": True, "social": True, "sleep": True, "diet": True}


def _day(offset: int, **fields) -> GoalRecord:
    goal_date = (TODAY - timedelta(days=offset)).isoformat()
    return GoalRecord(id=f"goal_{goal_date}", date=goal_date, **fields)


def test_is_complete_requires_every_category() -> None:
    assert is_complete(_day(0, **ALL_DONE))
    assert not is_complete(_day(0, **{**ALL_DONE, "diet": False}))


def test_streak_counts_consecutive_complete_days() -> None:
    records = [_day(0, **ALL_DONE), _day(1, **ALL_DONE)]
    assert streak(records, TODAY) == 2


def test_incomplete_yesterday_breaks_the_streak() -> None:
    records = [_day(0, **ALL_DONE), _day(1, exercise=True), _day(2, **ALL_DONE)]
    assert streak(records, TODAY) == 1


def test_missing_yesterday_breaks_the_streak() -> None:
    records = [_day(0, **ALL_DONE), _day(2, **ALL_DONE)]
    assert streak(records, TODAY) == 1


def test_streak_is_zero_without_a_complete_today() -> None:
    assert streak([], TODAY) == 0
    assert streak([_day(1, **ALL_DONE)], TODAY) == 0


def test_future_records_do_not_affect_the_streak() -> None:
    records = [_day(-1, exercise=True), _day(0, **ALL_DONE)]
    assert streak(records, TODAY) == 1


def test_completion_rate_empty_window_is_zero() -> None:
    assert completion_rate([], 7, TODAY) == 0.0
    assert completion_rate([_day(30)], 7, TODAY) == 0.0


def test_completion_rate_covers_exactly_window_days_dates() -> None:
    records = [_day(0, **ALL_DONE), _day(3), _day(6, **ALL_DONE), _day(7, **ALL_DONE), _day(8, **ALL_DONE)]
    assert completion_rate(records, 7, TODAY) == pytest.approx(200 / 3)


def test_day_just_outside_the_window_is_ignored() -> None:
    records = [_day(7, **ALL_DONE), _day(0)]
    assert completion_rate(records, 7, TODAY) == 0.0
    assert completion_rate([_day(0, **ALL_DONE)], 1, TODAY) == 100.0


def test_weekly_summary_first_week_omits_comparisons() -> None:
    records = [
        _day(0, exercise=True, exercise_minutes=40, sleep=True, sleep_hours=8),
        _day(-1, exercise=True, exercise_minutes=30, sleep=True, sleep_hours=7),
    ]

    summary = weekly_summary(TODAY, records)

    assert summary.is_first_week is True
    assert summary.week_start == "2024-03-10"
    assert summary.week_end == "2024-03-16"
    assert summary.exercise_total == 70
    assert summary.sleep_average == 7.5
    assert summary.exercise_comparison is None
    assert "exerciseComparison" not in summary.to_payload()


def test_weekly_summary_compares_against_prior_week() -> None:
    records = [
        _day(0, exercise=True, exercise_minutes=100, diet=True, diet_rating=4),
        _day(-2, exercise=True, exercise_minutes=60, diet=True, diet_rating=5),
        _day(7, exercise=True, exercise_minutes=80, diet=True, diet_rating=3),
        # unchecked categories never contribute their metric
        _day(6, exercise=False, exercise_minutes=500),
    ]

    summary = weekly_summary(TODAY + timedelta(days=3), records)

    assert summary.week_start == "2024-03-10"
    assert summary.is_first_week is False
    assert summary.exercise_total == 160
    assert summary.exercise_goal_met is True
    assert summary.diet_average == 4.5
    assert summary.exercise_comparison is not None
    assert summary.exercise_comparison.previous == 80
    assert summary.exercise_comparison.difference == 80
    assert summary.exercise_comparison.percent_change == 100.0
    assert summary.exercise_comparison.improved is True
    assert summary.diet_comparison.difference == 1.5
    assert summary.cognitive_comparison.percent_change == 0.0
    assert summary.cognitive_comparison.improved is False


def test_compare_handles_zero_previous() -> None:
    result = compare(12.0, 0.0)
    assert result.percent_change == 0.0
    assert result.improved is True
    assert compare(5.0, 10.0).percent_change == -50.0


def test_week_start_for_normalizes_to_sunday() -> None:
    assert week_start_for(date(2024, 3, 13)) == date(2024, 3, 10)
    assert week_start_for(date(2024, 3, 10)) == date(2024, 3, 10)
    assert week_start_for(date(2024, 3, 16)) == date(2024, 3, 10)


def test_compute_stats() -> None:
    records = [_day(offset, **ALL_DONE) for offset in range(3)] + [_day(10)]

    stats = compute_stats(records, TODAY)

    assert stats.streak == 3
    assert stats.weekly_completion == 100.0
    assert stats.monthly_completion == 75.0
