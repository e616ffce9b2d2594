"""Next-due computation for habit tasks.

Invoked at normalization time (reference = now) and at completion time
(reference = the completion instant). Rescheduling always starts from the
reference, so a habit completed late moves one cycle past the completion,
never through a backlog of missed cycles.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from focusflow.models.recurrence import IntervalUnit, RecurrenceRule
from focusflow.recurrence.deterministic_parser import parse_recurrence_rule


def _sunday_based_weekday(dt: datetime) -> int:
    # Python weekday: Monday=0 ... Sunday=6
    return (dt.weekday() + 1) % 7


def _calendar_delta(interval: int, unit: IntervalUnit):
    if unit == IntervalUnit.WEEK:
        return timedelta(weeks=interval)
    if unit == IntervalUnit.MONTH:
        # Month ends clamp (Jan 31 + 1 month -> Feb 28/29).
        return relativedelta(months=interval)
    return timedelta(days=interval)


def next_due_at(rule: RecurrenceRule, reference: datetime) -> datetime:
    """Compute the next due instant of a habit strictly after reference.

    Args:
        rule: Recurrence rule of the habit
        reference: Now, or the moment the habit was last completed

    Returns:
        Next due instant (always > reference)
    """
    if rule.day_of_week is not None:
        days_ahead = (rule.day_of_week - _sunday_based_weekday(reference)) % 7
        candidate = (reference + timedelta(days=days_ahead)).replace(
            hour=rule.hour, minute=rule.minute, second=0, microsecond=0
        )
        if candidate <= reference:
            candidate = candidate + timedelta(days=7)
        return candidate

    shifted = reference + _calendar_delta(rule.interval, IntervalUnit(rule.unit))
    return shifted.replace(hour=rule.hour, minute=rule.minute, second=0, microsecond=0)


def next_due_for_frequency(frequency: Optional[str], reference: datetime) -> datetime:
    """Convenience wrapper: parse a frequency phrase and compute its next due instant."""
    return next_due_at(parse_recurrence_rule(frequency), reference)
