"""Tests for BusinessCalendar deadline arithmetic."""

from datetime import date, datetime, timezone

import pytest

from ticketflow.domain.errors import InvalidArgumentError
from ticketflow.engine.business_calendar import BusinessCalendar

FRIDAY = datetime(2025, 1, 3, 9, 30)
SATURDAY = datetime(2025, 1, 4, 10, 0)
MONDAY_HOLIDAY = date(2025, 1, 6)


class TestAddBusinessDays:
    def test_friday_plus_one_is_monday(self):
        assert BusinessCalendar().add_business_days(FRIDAY, 1) == datetime(2025, 1, 6, 9, 30)

    def test_skips_monday_holiday(self):
        calendar = BusinessCalendar([MONDAY_HOLIDAY])
        assert calendar.add_business_days(FRIDAY, 1) == datetime(2025, 1, 7, 9, 30)

    def test_zero_days_on_business_day_is_identity(self):
        assert BusinessCalendar().add_business_days(FRIDAY, 0) == FRIDAY

    def test_zero_days_on_weekend_moves_to_next_business_day(self):
        assert BusinessCalendar().add_business_days(SATURDAY, 0) == datetime(2025, 1, 6, 10, 0)

    def test_weekend_start_counts_from_monday(self):
        assert BusinessCalendar().add_business_days(SATURDAY, 2) == datetime(2025, 1, 8, 10, 0)

    def test_accepts_plain_dates(self):
        assert BusinessCalendar().add_business_days(date(2025, 1, 3), 5) == date(2025, 1, 10)

    def test_result_is_always_a_business_day(self):
        calendar = BusinessCalendar([MONDAY_HOLIDAY, date(2025, 1, 7)])
        start = SATURDAY
        for days in range(10):
            assert calendar.is_business_day(calendar.add_business_days(start, days))

    def test_negative_days_rejected(self):
        with pytest.raises(InvalidArgumentError):
            BusinessCalendar().add_business_days(FRIDAY, -1)


class TestAddBusinessHours:
    def test_within_the_same_day(self):
        assert BusinessCalendar().add_business_hours(FRIDAY, 2) == datetime(2025, 1, 3, 11, 30)

    def test_spans_the_weekend(self):
        start = datetime(2025, 1, 3, 20, 0)
        assert BusinessCalendar().add_business_hours(start, 8) == datetime(2025, 1, 6, 4, 0)

    def test_weekend_start_counts_from_monday_midnight(self):
        assert BusinessCalendar().add_business_hours(SATURDAY, 2) == datetime(2025, 1, 6, 2, 0)

    def test_skips_holiday(self):
        start = datetime(2025, 1, 3, 20, 0)
        calendar = BusinessCalendar([MONDAY_HOLIDAY])
        assert calendar.add_business_hours(start, 8) == datetime(2025, 1, 7, 4, 0)

    def test_zero_hours_is_identity_on_business_day(self):
        assert BusinessCalendar().add_business_hours(FRIDAY, 0) == FRIDAY

    def test_keeps_time_zone(self):
        start = datetime(2025, 1, 3, 20, 0, tzinfo=timezone.utc)
        result = BusinessCalendar().add_business_hours(start, 8)
        assert result == datetime(2025, 1, 6, 4, 0, tzinfo=timezone.utc)
        assert result.tzinfo is timezone.utc

    def test_negative_hours_rejected(self):
        with pytest.raises(InvalidArgumentError):
            BusinessCalendar().add_business_hours(FRIDAY, -0.5)


class TestCalendar:
    def test_with_holidays_returns_new_calendar(self):
        base = BusinessCalendar()
        extended = base.with_holidays([MONDAY_HOLIDAY])

        assert base.is_business_day(MONDAY_HOLIDAY)
        assert not extended.is_business_day(MONDAY_HOLIDAY)

    def test_holiday_datetimes_compare_by_date(self):
        calendar = BusinessCalendar([datetime(2025, 1, 6, 15, 0)])
        assert calendar.holidays == frozenset({MONDAY_HOLIDAY})

    def test_from_settings_loads_default_holidays(self):
        calendar = BusinessCalendar.from_settings()
        assert MONDAY_HOLIDAY in calendar.holidays
        assert not calendar.is_business_day(date(2025, 12, 25))
