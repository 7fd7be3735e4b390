"""Goal record models, wire aliases and calendar helpers."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

GOAL_CATEGORIES: Tuple[str, ...] = ("exercise", "cognitive", "social", "sleep", "diet")
METRIC_FIELDS: Dict[str, str] = {
    "exercise": "exercise_minutes",
    "cognitive": "cognitive_minutes",
    "social": "social_new_contacts",
    "sleep": "sleep_hours",
    "diet": "diet_rating",
}
# Optional fields that can be cleared; pushes spell them out as null.
CLEARABLE_FIELDS: Tuple[str, ...] = tuple(METRIC_FIELDS.values()) + ("notes",)
WEEKLY_EXERCISE_GOAL_MINUTES = 150
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_today() -> date:
    return utc_now().date()


def format_timestamp(value: datetime) -> str:
    """Render an ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(raw: Optional[str]) -> datetime:
    """Parse an ISO-8601 timestamp; anything missing or malformed is the epoch."""
    if not raw or not isinstance(raw, str):
        return EPOCH
    text = raw.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.debug("Treating unparseable timestamp %r as epoch", raw)
        return EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_date(value: date) -> str:
    return value.isoformat()


def parse_date(value: str) -> date:
    return date.fromisoformat(value)


def week_start_for(value: date) -> date:
    """Return the Sunday that opens the Sunday–Saturday week containing ``value``."""
    return value - timedelta(days=(value.weekday() + 1) % 7)


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class GoalRecord(_WireModel):
    """One calendar day's check-in for one user."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str = Field(..., min_length=1)
    date: str
    exercise: bool = False
    cognitive: bool = False
    social: bool = False
    sleep: bool = False
    diet: bool = False
    exercise_minutes: Optional[float] = Field(default=None, ge=0)
    cognitive_minutes: Optional[float] = Field(default=None, ge=0)
    social_new_contacts: Optional[int] = Field(default=None, ge=0)
    sleep_hours: Optional[float] = Field(default=None, ge=0, le=24)
    diet_rating: Optional[int] = Field(default=None, ge=1, le=5)
    notes: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("date")
    @classmethod
    def _validate_date(cls, value: str) -> str:
        try:
            return parse_date(value.strip()).isoformat()
        except ValueError as exc:
            raise ValueError(f"Goal date must be YYYY-MM-DD, got {value!r}") from exc

    @property
    def calendar_date(self) -> date:
        return parse_date(self.date)

    def parsed_updated_at(self) -> datetime:
        return parse_timestamp(self.updated_at)

    def is_flagged(self, category: str) -> bool:
        return bool(getattr(self, category))

    def metric(self, category: str) -> Optional[float]:
        return getattr(self, METRIC_FIELDS[category])

    def touch(self, now: Optional[datetime] = None) -> "GoalRecord":
        return self.model_copy(update={"updated_at": format_timestamp(now or utc_now())})

    def normalized(self) -> "GoalRecord":
        """Drop metrics whose category flag is not set."""
        cleared = {
            METRIC_FIELDS[category]: None
            for category in GOAL_CATEGORIES
            if not self.is_flagged(category) and self.metric(category) is not None
        }
        return self.model_copy(update=cleared) if cleared else self

    def to_remote_payload(self) -> Dict[str, Any]:
        """Wire payload for a field-merging upsert.

        Cleared metrics and notes are sent as explicit nulls so the remote copy
        drops them too instead of keeping its stale values.
        """
        payload = self.to_payload()
        for name in CLEARABLE_FIELDS:
            payload.setdefault(to_camel(name), None)
        return payload

    def apply(self, updates: Mapping[str, Any]) -> "GoalRecord":
        """Return a validated copy with ``updates`` applied; ``id`` never changes."""
        data = self.model_dump()
        data.update(field_names(updates))
        data["id"] = self.id
        return GoalRecord.model_validate(data)


class GoalStats(_WireModel):
    weekly_completion: float = 0.0
    monthly_completion: float = 0.0
    streak: int = 0
    last_updated: str = Field(default_factory=lambda: format_timestamp(utc_now()))


class WeekComparison(_WireModel):
    current: float
    previous: float
    difference: float
    percent_change: float
    improved: bool


class WeeklySummary(_WireModel):
    week_start: str
    week_end: str
    completion_rate: float = 0.0
    exercise_total: float = 0.0
    exercise_goal_met: bool = False
    cognitive_average: float = 0.0
    social_total: float = 0.0
    diet_average: float = 0.0
    sleep_average: float = 0.0
    is_first_week: bool = True
    exercise_comparison: Optional[WeekComparison] = None
    cognitive_comparison: Optional[WeekComparison] = None
    social_comparison: Optional[WeekComparison] = None
    diet_comparison: Optional[WeekComparison] = None
    sleep_comparison: Optional[WeekComparison] = None


_ALIAS_TO_FIELD: Dict[str, str] = {
    (info.alias or name): name for name, info in GoalRecord.model_fields.items()
}


def field_names(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Translate camelCase wire keys to model field names; unknown keys pass through."""
    return {_ALIAS_TO_FIELD.get(key, key): value for key, value in payload.items()}


__all__ = [
    "EPOCH",
    "CLEARABLE_FIELDS",
    "GOAL_CATEGORIES",
    "GoalRecord",
    "GoalStats",
    "METRIC_FIELDS",
    "WEEKLY_EXERCISE_GOAL_MINUTES",
    "WeekComparison",
    "WeeklySummary",
    "field_names",
    "format_date",
    "format_timestamp",
    "parse_date",
    "parse_timestamp",
    "utc_now",
    "utc_today",
    "week_start_for",
]
