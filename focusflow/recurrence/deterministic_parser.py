"""Deterministic parser for captured task text.

This is the rule-based fallback used when no language-model draft is
available. It must be deterministic: same input -> same output.

It extracts:
- the recurrence phrase (which makes the task a habit),
- a deadline phrase (single tasks only),
- a priority from urgency words,
- a title with all of the above stripped out.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple

from focusflow.models.draft import TaskDraft
from focusflow.models.recurrence import IntervalUnit, RecurrenceKind, RecurrenceRule
from focusflow.recurrence.temporal import resolve_recurrence_timing

logger = logging.getLogger(__name__)

_WEEKDAY = r"(?:sun|mon|tues|wednes|thurs|fri|satur)days?"
_TIME = r"(?:\d{1,2}(?::\d{2})?\s*(?:am|pm)|\d{1,2}:\d{2})"

# Concrete recurrence expressions, optionally followed by a time of day.
_FREQUENCY_RE = re.compile(
    rf"""\b(?:
        every\s+(?:other\s+|\d+\s+)?(?:days?|weeks?|months?|years?|{_WEEKDAY})
      | every\s*day | everyday | daily
      | bi-?weekly | fortnightly | weekly | monthly | yearly | annually
      | every\s+\w+
      | (?:on\s+)?{_WEEKDAY}
    )(?:\s+(?:at\s+)?{_TIME})?""",
    re.I | re.X,
)
# Bare markers that make a task recurring without saying how often.
_MARKER_RE = re.compile(r"\b(?:repeat(?:ing|s)?|recurring)\b", re.I)

# A weekday after one of these words is a deadline, not a recurrence.
_DEADLINE_WEEKDAY_RE = re.compile(rf"\b(?:by|before|due|until|this|next)\s+{_WEEKDAY}\b", re.I)

_DEADLINE_RE = re.compile(
    rf"""\b(?:
        (?:in|within)\s+(?:\d+|an?)\s*(?:hours?|hrs?|minutes?|mins?|days?)
      | tomorrow | next\s+week | today
      | (?:by|before|due|until)\s+(?:
            {_WEEKDAY}
          | \d{{4}}-\d{{2}}-\d{{2}}(?:[\sT]\d{{1,2}}:\d{{2}})?
          | [a-z]{{3,9}}\.?\s+\d{{1,2}}(?:st|nd|rd|th)?
        )
    )\b""",
    re.I | re.X,
)
_DEADLINE_PREFIX_RE = re.compile(r"^(?:by|before|due|until)\s+", re.I)

# Checked in order; negated and low-urgency forms come before "urgent".
_PRIORITY_PATTERNS: List[Tuple[re.Pattern, Optional[int]]] = [
    (re.compile(r"\b(?:priority\s*|p)([1-5])\b", re.I), None),
    (re.compile(r"\bnot\s+urgent\b", re.I), 4),
    (re.compile(r"\blow[\s-]priority\b", re.I), 4),
    (re.compile(r"\bmedium[\s-]priority\b", re.I), 3),
    (re.compile(r"\b(?:someday|whenever|eventually)\b", re.I), 5),
    (re.compile(r"\b(?:urgent(?:ly)?|asap|critical|top[\s-]priority)\b", re.I), 1),
    (re.compile(r"\b(?:high[\s-]priority|important)\b", re.I), 2),
]

_TRAILING_CONNECTOR_RE = re.compile(r"(?:\s+(?:by|on|at|due|before|until|in|and)\b)+\s*$", re.I)

_CADENCES: List[Tuple[re.Pattern, int, IntervalUnit]] = [
    (re.compile(r"\bbi-?weekly\b|\bfortnightly\b|\bevery\s+(?:2|two|other)\s+weeks?\b"), 2, IntervalUnit.WEEK),
    (re.compile(r"\bevery\s+other\s+day\b"), 2, IntervalUnit.DAY),
    (re.compile(r"\bdaily\b|\beveryday\b|\bevery\s+day\b"), 1, IntervalUnit.DAY),
    (re.compile(r"\bweekly\b|\bevery\s+week\b"), 1, IntervalUnit.WEEK),
    (re.compile(r"\bmonthly\b|\bevery\s+month\b"), 1, IntervalUnit.MONTH),
    (re.compile(r"\byearly\b|\bannually\b|\bevery\s+year\b"), 12, IntervalUnit.MONTH),
]
_GENERIC_INTERVAL_RE = re.compile(r"(\d+)\s*(day|week|month)s?\b")


def _find_frequency(text: str) -> Optional[re.Match]:
    for m in _FREQUENCY_RE.finditer(text):
        # "by friday" names a deadline
        if _DEADLINE_WEEKDAY_RE.search(text, max(0, m.start() - 8), m.end()):
            continue
        return m
    return _MARKER_RE.search(text)


def detect_frequency(text: str) -> Optional[str]:
    """Return the recurrence phrase in text, verbatim, or None for one-off tasks."""
    m = _find_frequency(text or "")
    return m.group(0).strip() if m else None


def extract_deadline_phrase(text: str) -> Optional[str]:
    """Return the deadline phrase in text (without a leading 'by'), or None."""
    m = _DEADLINE_RE.search(text or "")
    if not m:
        return None
    return _DEADLINE_PREFIX_RE.sub("", m.group(0)).strip()


def detect_priority(text: str) -> Optional[int]:
    """Map urgency words to a priority (1 = highest); None when nothing matches."""
    for pat, value in _PRIORITY_PATTERNS:
        m = pat.search(text or "")
        if m:
            return int(m.group(1)) if value is None else value
    return None


def _strip_spans(text: str, spans: List[Tuple[int, int]]) -> str:
    out = text
    for start, end in sorted(spans, reverse=True):
        out = out[:start] + " " + out[end:]
    out = re.sub(r"\s+", " ", out).strip()
    out = _TRAILING_CONNECTOR_RE.sub("", out)
    return out.strip(" ,.;:-")


def extract_title(text: str) -> str:
    """Strip recurrence, deadline and priority words from text.

    Falls back to the stripped input if nothing would be left.
    """
    raw = (text or "").strip()
    spans: List[Tuple[int, int]] = []

    freq = _find_frequency(raw)
    if freq:
        spans.append(freq.span())
    else:
        deadline = _DEADLINE_RE.search(raw)
        if deadline:
            spans.append(deadline.span())
    for pat, _ in _PRIORITY_PATTERNS:
        m = pat.search(raw)
        if m:
            spans.append(m.span())
            break

    # Overlapping spans would cut the same characters twice.
    merged: List[Tuple[int, int]] = []
    for start, end in sorted(spans):
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(end, merged[-1][1]))
        else:
            merged.append((start, end))

    title = _strip_spans(raw, merged)
    return title or raw


def parse_recurrence_rule(frequency: Optional[str]) -> RecurrenceRule:
    """Build a RecurrenceRule from a frequency phrase.

    In priority order: a named weekday, a named cadence (daily, weekly,
    bi-weekly, monthly), a generic "N days/weeks/months", and finally a
    daily fallback that keeps an unrecognized habit alive.
    """
    phrase = (frequency or "").strip()
    text = phrase.lower()
    timing = resolve_recurrence_timing(text)
    time_fields = {
        "hour": timing.hour,
        "minute": timing.minute,
        "time_explicit": timing.time_explicit,
    }

    if timing.day_of_week is not None:
        return RecurrenceRule(
            frequency=phrase,
            kind=RecurrenceKind.WEEKDAY,
            interval=1,
            unit=IntervalUnit.WEEK,
            day_of_week=timing.day_of_week,
            **time_fields,
        )

    for pat, interval, unit in _CADENCES:
        if pat.search(text):
            return RecurrenceRule(
                frequency=phrase, kind=RecurrenceKind.CADENCE, interval=interval, unit=unit, **time_fields
            )

    m = _GENERIC_INTERVAL_RE.search(text)
    if m:
        return RecurrenceRule(
            frequency=phrase,
            kind=RecurrenceKind.INTERVAL,
            interval=max(int(m.group(1)), 1),
            unit=IntervalUnit(m.group(2)),
            **time_fields,
        )

    logger.debug(f"Unrecognized frequency '{phrase[:50]}'. Falling back to a daily cycle.")
    return RecurrenceRule(frequency=phrase, kind=RecurrenceKind.FALLBACK, interval=1, unit=IntervalUnit.DAY, **time_fields)


def parse_task_text(text: str) -> TaskDraft:
    """Rule-based parse of captured text into a draft.

    Produces the same draft shape the language-model collaborator returns,
    so both go through the same validation in the normalizer.
    """
    raw = (text or "").strip()
    frequency = detect_frequency(raw)
    kind = "habit" if frequency else "single"
    return TaskDraft(
        title=extract_title(raw) if raw else None,
        kind=kind,
        frequency=frequency,
        deadline_phrase=None if frequency else extract_deadline_phrase(raw),
        priority=detect_priority(raw),
    )
