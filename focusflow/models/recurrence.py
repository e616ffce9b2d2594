"""Recurrence rule model for FocusFlow.

A rule is built from the verbatim frequency phrase a user (or the language
model) gave for a habit, e.g. "every sunday 9am", "daily", "every 3 weeks".
It is kind-discriminated: weekday rules pin a day-of-week, cadence and
interval rules add a calendar delta, fallback rules keep an unrecognized
habit alive on a daily cycle.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from focusflow.models.constants import DEFAULT_DUE_HOUR, DEFAULT_DUE_MINUTE


class RecurrenceKind(str, Enum):
    WEEKDAY = "weekday"
    CADENCE = "cadence"
    INTERVAL = "interval"
    FALLBACK = "fallback"


class IntervalUnit(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


WEEKDAY_NAMES = ["sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday"]


class RecurrenceRule(BaseModel):
    """Structured recurrence for a habit task.

    Notes:
    - day_of_week uses 0 = Sunday ... 6 = Saturday.
    - hour/minute always hold a time of day; time_explicit records whether the
      phrase named one or the 09:00 default was applied.
    """

    frequency: str = Field(..., description="Frequency phrase, verbatim")
    kind: RecurrenceKind = RecurrenceKind.FALLBACK
    interval: int = Field(1, ge=1, description="Every N units")
    unit: IntervalUnit = IntervalUnit.DAY
    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    hour: int = Field(DEFAULT_DUE_HOUR, ge=0, le=23)
    minute: int = Field(DEFAULT_DUE_MINUTE, ge=0, le=59)
    time_explicit: bool = False

    @model_validator(mode="after")
    def _weekday_rule_has_day(self):
        if self.kind == RecurrenceKind.WEEKDAY and self.day_of_week is None:
            raise ValueError("weekday recurrence requires day_of_week")
        return self

    @property
    def weekday_name(self) -> Optional[str]:
        if self.day_of_week is None:
            return None
        return WEEKDAY_NAMES[self.day_of_week]
