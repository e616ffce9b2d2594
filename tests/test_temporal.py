"""Tests for the temporal expression resolver."""

from datetime import datetime

import pytest

from focusflow.recurrence.temporal import (
    DueTimePolicy,
    RecurrenceTiming,
    extract_day_of_week,
    extract_time_of_day,
    resolve_deadline,
    resolve_recurrence_timing,
)

REF = datetime(2024, 1, 1, 10, 0, 0)


class TestResolveDeadline:
    """Relative and absolute deadline phrases."""

    def test_in_two_hours(self):
        assert resolve_deadline("in 2 hours", REF) == datetime(2024, 1, 1, 12, 0, 0)

    def test_hour_without_number_defaults_to_one(self):
        assert resolve_deadline("in an hour", REF) == datetime(2024, 1, 1, 11, 0, 0)

    def test_minutes(self):
        assert resolve_deadline("in 45 minutes", REF) == datetime(2024, 1, 1, 10, 45, 0)

    @pytest.mark.parametrize(
        "phrase, expected",
        [
            ("in 2hrs", datetime(2024, 1, 1, 12, 0, 0)),
            ("3hr", datetime(2024, 1, 1, 13, 0, 0)),
            ("in 45min", datetime(2024, 1, 1, 10, 45, 0)),
            ("10mins", datetime(2024, 1, 1, 10, 10, 0)),
        ],
    )
    def test_abbreviated_units_attached_to_count(self, phrase, expected):
        assert resolve_deadline(phrase, REF) == expected

    def test_minutes_without_number_defaults_to_thirty(self):
        assert resolve_deadline("a few mins", REF) == datetime(2024, 1, 1, 10, 30, 0)

    def test_tomorrow_end_of_day(self):
        assert resolve_deadline("tomorrow", REF) == datetime(2024, 1, 2, 23, 59, 59)

    def test_tomorrow_start_of_day(self):
        assert resolve_deadline("Tomorrow", REF, DueTimePolicy.START_OF_DAY) == datetime(2024, 1, 2, 9, 0, 0)

    def test_next_week(self):
        assert resolve_deadline("next week", REF) == datetime(2024, 1, 8, 23, 59, 59)

    def test_today_is_always_end_of_day(self):
        assert resolve_deadline("today", REF, DueTimePolicy.START_OF_DAY) == datetime(2024, 1, 1, 23, 59, 59)

    def test_n_days(self):
        assert resolve_deadline("in 3 days", REF) == datetime(2024, 1, 4, 23, 59, 59)
        assert resolve_deadline("in 3 days", REF, DueTimePolicy.START_OF_DAY) == datetime(2024, 1, 4, 9, 0, 0)

    def test_absolute_date_takes_policy_time(self):
        assert resolve_deadline("2024-03-15", REF) == datetime(2024, 3, 15, 23, 59, 59)

    def test_absolute_datetime(self):
        assert resolve_deadline("2024-03-15 14:30:00", REF) == datetime(2024, 3, 15, 14, 30, 0)

    def test_aware_datetime_converted_to_naive_utc(self):
        assert resolve_deadline("2024-03-15T14:30:00+02:00", REF) == datetime(2024, 3, 15, 12, 30, 0)

    @pytest.mark.parametrize("phrase", ["", "   ", None, "gibberish words"])
    def test_unresolvable_returns_none(self, phrase):
        assert resolve_deadline(phrase, REF) is None


class TestDayAndTimeExtraction:
    def test_weekday_index_is_sunday_based(self):
        assert extract_day_of_week("every sunday") == 0
        assert extract_day_of_week("on Saturdays") == 6

    def test_first_weekday_named_wins(self):
        assert extract_day_of_week("monday and friday") == 1

    def test_no_weekday(self):
        assert extract_day_of_week("daily") is None

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("9am", (9, 0)),
            ("at 9:30 pm", (21, 30)),
            ("12am", (0, 0)),
            ("12pm", (12, 0)),
            ("17:45", (17, 45)),
            ("no time here", None),
            ("25:00", None),
        ],
    )
    def test_time_of_day(self, text, expected):
        assert extract_time_of_day(text) == expected

    def test_recurrence_timing_with_explicit_time(self):
        assert resolve_recurrence_timing("every sunday 9am") == RecurrenceTiming(
            day_of_week=0, hour=9, minute=0, time_explicit=True
        )

    def test_recurrence_timing_defaults(self):
        assert resolve_recurrence_timing("daily") == RecurrenceTiming()
        assert resolve_recurrence_timing(None) == RecurrenceTiming()
