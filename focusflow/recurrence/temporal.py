"""Temporal expression resolver.

Converts natural-language deadline phrases ("in 2 hours", "tomorrow",
"next week") into absolute instants, and pulls day-of-week and time-of-day
out of recurrence phrases ("every sunday 9am").

Nothing in here raises for bad input: an unresolvable deadline is None and
an unresolvable recurrence phrase yields the all-defaults timing.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import List, Optional, Tuple

from dateutil import parser as date_parser

from focusflow.models.constants import (
    DEFAULT_DUE_HOUR,
    DEFAULT_DUE_MINUTE,
    DEFAULT_HOURS,
    DEFAULT_MINUTES,
    END_OF_DAY,
)

logger = logging.getLogger(__name__)


class DueTimePolicy(str, Enum):
    """Time of day applied to day-granular phrases (tomorrow, next week, N days)."""

    END_OF_DAY = "end_of_day"  # deadlines parsed from captured text
    START_OF_DAY = "start_of_day"  # recurrence context and manual deadline edits


@dataclass(frozen=True)
class RecurrenceTiming:
    day_of_week: Optional[int] = None  # 0 = Sunday ... 6 = Saturday
    hour: int = DEFAULT_DUE_HOUR
    minute: int = DEFAULT_DUE_MINUTE
    time_explicit: bool = False


# Units may follow the count directly ("2hrs", "45min").
_HOUR_RE = re.compile(r"(?:\b|(?<=\d))(hours?|hrs?)\b")
_HOUR_COUNT_RE = re.compile(r"(\d+)\s*(?:hours?|hrs?)\b")
_MINUTE_RE = re.compile(r"(?:\b|(?<=\d))(minutes?|mins?)\b")
_MINUTE_COUNT_RE = re.compile(r"(\d+)\s*(?:minutes?|mins?)\b")
_DAY_COUNT_RE = re.compile(r"\b(\d+)\s*days?\b")

_WEEKDAY_PATTERNS: List[Tuple[re.Pattern, int]] = [
    (re.compile(r"\bsundays?\b", re.I), 0),
    (re.compile(r"\bmondays?\b", re.I), 1),
    (re.compile(r"\btuesdays?\b", re.I), 2),
    (re.compile(r"\bwednesdays?\b", re.I), 3),
    (re.compile(r"\bthursdays?\b", re.I), 4),
    (re.compile(r"\bfridays?\b", re.I), 5),
    (re.compile(r"\bsaturdays?\b", re.I), 6),
]

_TIME_12H_RE = re.compile(r"\b(?P<h>\d{1,2})(?::(?P<m>\d{2}))?\s*(?P<ampm>am|pm)\b", re.I)
_TIME_24H_RE = re.compile(r"\b(?P<h>\d{1,2}):(?P<m>\d{2})\b")


def _at_time_of_day(dt: datetime, policy: DueTimePolicy) -> datetime:
    if policy == DueTimePolicy.END_OF_DAY:
        hour, minute, second = END_OF_DAY
        return dt.replace(hour=hour, minute=minute, second=second, microsecond=0)
    return dt.replace(hour=DEFAULT_DUE_HOUR, minute=DEFAULT_DUE_MINUTE, second=0, microsecond=0)


def _leading_count(pattern: re.Pattern, text: str, default: int) -> int:
    m = pattern.search(text)
    return int(m.group(1)) if m else default


def _parse_absolute(phrase: str, reference: datetime, policy: DueTimePolicy) -> Optional[datetime]:
    """Direct parse of an absolute date/time string; None if unparseable."""
    default = _at_time_of_day(reference, policy)
    try:
        parsed = date_parser.parse(phrase, default=default)
    except (ValueError, OverflowError) as e:
        logger.debug(f"Unresolvable temporal expression '{phrase[:50]}': {type(e).__name__}")
        return None
    if parsed.tzinfo is not None:
        # Instants are stored as naive UTC.
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def resolve_deadline(
    phrase: Optional[str],
    reference: datetime,
    policy: DueTimePolicy = DueTimePolicy.END_OF_DAY,
) -> Optional[datetime]:
    """Resolve a deadline phrase against a reference instant.

    Rules are evaluated in order and the first match wins:
    hours, minutes, tomorrow, next week, today, "N days", then a direct
    parse of the phrase as an absolute date/time.

    Args:
        phrase: Deadline phrase, e.g. "in 2 hours"
        reference: Instant the phrase is relative to
        policy: Time of day for tomorrow / next week / N days

    Returns:
        Absolute instant, or None if the phrase cannot be resolved
    """
    text = (phrase or "").strip().lower()
    if not text:
        return None

    if _HOUR_RE.search(text):
        hours = _leading_count(_HOUR_COUNT_RE, text, DEFAULT_HOURS)
        return reference + timedelta(hours=hours)

    if _MINUTE_RE.search(text):
        minutes = _leading_count(_MINUTE_COUNT_RE, text, DEFAULT_MINUTES)
        return reference + timedelta(minutes=minutes)

    if "tomorrow" in text:
        return _at_time_of_day(reference + timedelta(days=1), policy)

    if "next week" in text:
        return _at_time_of_day(reference + timedelta(days=7), policy)

    if "today" in text:
        return _at_time_of_day(reference, DueTimePolicy.END_OF_DAY)

    m = _DAY_COUNT_RE.search(text)
    if m:
        return _at_time_of_day(reference + timedelta(days=int(m.group(1))), policy)

    return _parse_absolute(phrase.strip(), reference, policy)


def extract_day_of_week(text: str) -> Optional[int]:
    """Return the index (0 = Sunday) of the first weekday named in text."""
    found: List[Tuple[int, int]] = []
    for pat, index in _WEEKDAY_PATTERNS:
        m = pat.search(text or "")
        if m:
            found.append((m.start(), index))
    if not found:
        return None
    return min(found)[1]


def extract_time_of_day(text: str) -> Optional[Tuple[int, int]]:
    """Extract an explicit time of day as (hour, minute) in 24h form.

    Accepts "9am", "9:30 pm", "12am" and "17:45". Out-of-range values are
    ignored rather than rejected.
    """
    text = text or ""
    m = _TIME_12H_RE.search(text)
    if m:
        hour = int(m.group("h"))
        minute = int(m.group("m") or "0")
        if 1 <= hour <= 12 and minute <= 59:
            if hour == 12:
                hour = 0
            if m.group("ampm").lower() == "pm":
                hour += 12
            return (hour, minute)

    m = _TIME_24H_RE.search(text)
    if m:
        hour = int(m.group("h"))
        minute = int(m.group("m"))
        if hour <= 23 and minute <= 59:
            return (hour, minute)

    return None


def resolve_recurrence_timing(phrase: Optional[str]) -> RecurrenceTiming:
    """Pull day-of-week and time-of-day out of a recurrence phrase.

    Missing parts fall back to the defaults (no weekday, 09:00).
    """
    text = (phrase or "").lower()
    day_of_week = extract_day_of_week(text)
    time_of_day = extract_time_of_day(text)
    if time_of_day is None:
        return RecurrenceTiming(day_of_week=day_of_week)
    hour, minute = time_of_day
    return RecurrenceTiming(day_of_week=day_of_week, hour=hour, minute=minute, time_explicit=True)
