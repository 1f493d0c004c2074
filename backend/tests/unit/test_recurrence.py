"""
Unit tests for recurrence rules and date expansion.

Covers daily/weekly/biweekly/monthly expansion, month-end clamping, leap
years and rule validation.
"""

import pytest
from datetime import date, timedelta
from hypothesis import given, strategies as st

from core.exceptions import ValidationError
from services.recurrence import add_months, generate_recurrence_dates
from shared_types.availability import Weekday
from shared_types.scheduling import RecurrenceFrequency, RecurrenceRule


def rule(frequency, end_date, interval=1, days_of_week=()):
    return RecurrenceRule(
        frequency=frequency,
        interval=interval,
        end_date=end_date,
        days_of_week=frozenset(days_of_week),
    )


class TestRecurrenceRule:
    """Test rule construction and validation."""

    def test_coerces_frequency_and_end_date(self):
        r = RecurrenceRule(frequency="weekly", interval=1, end_date="2025-07-01")
        assert r.frequency is RecurrenceFrequency.WEEKLY
        assert r.end_date == date(2025, 7, 1)

    def test_unknown_frequency(self):
        with pytest.raises(ValidationError):
            RecurrenceRule(frequency="yearly", interval=1, end_date=date(2025, 7, 1))

    @pytest.mark.parametrize("interval", [0, 53, -1])
    def test_interval_out_of_bounds(self, interval):
        with pytest.raises(ValidationError):
            rule(RecurrenceFrequency.DAILY, date(2025, 7, 1), interval=interval)

    def test_interval_must_be_integer(self):
        with pytest.raises(ValidationError):
            RecurrenceRule(frequency="daily", interval=1.5, end_date=date(2025, 7, 1))  # type: ignore[arg-type]

    def test_days_of_week_only_for_weekly_kinds(self):
        with pytest.raises(ValidationError):
            rule(RecurrenceFrequency.MONTHLY, date(2025, 7, 1), days_of_week=[Weekday.MONDAY])

    def test_days_of_week_accepts_names(self):
        r = rule(RecurrenceFrequency.WEEKLY, date(2025, 7, 1), days_of_week=["monday", 3])
        assert r.days_of_week == frozenset({Weekday.MONDAY, Weekday.THURSDAY})

    def test_dict_round_trip(self):
        r = rule(RecurrenceFrequency.BIWEEKLY, date(2025, 9, 1), interval=2, days_of_week=[Weekday.FRIDAY])
        assert r.to_dict() == {
            "frequency": "biweekly",
            "interval": 2,
            "end_date": "2025-09-01",
            "days_of_week": [4],
        }
        assert RecurrenceRule.from_dict(r.to_dict()) == r


class TestAddMonths:

    def test_clamps_to_month_end(self):
        assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)

    def test_crosses_year(self):
        assert add_months(date(2025, 11, 15), 3) == date(2026, 2, 15)


class TestGenerateRecurrenceDates:
    """Test occurrence expansion."""

    def test_daily(self):
        dates = generate_recurrence_dates(rule(RecurrenceFrequency.DAILY, date(2025, 6, 5)), date(2025, 6, 2))
        assert dates == [date(2025, 6, 3), date(2025, 6, 4), date(2025, 6, 5)]

    def test_daily_with_interval(self):
        dates = generate_recurrence_dates(
            rule(RecurrenceFrequency.DAILY, date(2025, 6, 10), interval=3), date(2025, 6, 2)
        )
        assert dates == [date(2025, 6, 5), date(2025, 6, 8)]

    def test_weekly_defaults_to_start_weekday(self):
        dates = generate_recurrence_dates(rule(RecurrenceFrequency.WEEKLY, date(2025, 6, 23)), date(2025, 6, 2))
        assert dates == [date(2025, 6, 9), date(2025, 6, 16), date(2025, 6, 23)]

    def test_weekly_multiple_days(self):
        """Monday start, Mondays and Thursdays for two weeks."""
        dates = generate_recurrence_dates(
            rule(RecurrenceFrequency.WEEKLY, date(2025, 6, 15), days_of_week=[Weekday.MONDAY, Weekday.THURSDAY]),
            date(2025, 6, 2),
        )
        assert dates == [date(2025, 6, 5), date(2025, 6, 9), date(2025, 6, 12)]

    def test_biweekly(self):
        dates = generate_recurrence_dates(rule(RecurrenceFrequency.BIWEEKLY, date(2025, 7, 14)), date(2025, 6, 2))
        assert dates == [date(2025, 6, 16), date(2025, 6, 30), date(2025, 7, 14)]

    def test_weekly_every_third_week(self):
        dates = generate_recurrence_dates(
            rule(RecurrenceFrequency.WEEKLY, date(2025, 7, 14), interval=3), date(2025, 6, 2)
        )
        assert dates == [date(2025, 6, 23), date(2025, 7, 14)]

    def test_monthly_clamps_without_drift(self):
        """Jan 31 -> Feb 28 -> Mar 31 -> Apr 30: the clamp does not carry over."""
        dates = generate_recurrence_dates(rule(RecurrenceFrequency.MONTHLY, date(2025, 4, 30)), date(2025, 1, 31))
        assert dates == [date(2025, 2, 28), date(2025, 3, 31), date(2025, 4, 30)]

    def test_monthly_leap_year(self):
        dates = generate_recurrence_dates(rule(RecurrenceFrequency.MONTHLY, date(2024, 2, 29)), date(2024, 1, 31))
        assert dates == [date(2024, 2, 29)]

    def test_monthly_31st_into_30_day_month(self):
        dates = generate_recurrence_dates(rule(RecurrenceFrequency.MONTHLY, date(2025, 4, 30)), date(2025, 3, 31))
        assert dates == [date(2025, 4, 30)]

    def test_end_date_not_after_start(self):
        assert generate_recurrence_dates(rule(RecurrenceFrequency.DAILY, date(2025, 6, 2)), date(2025, 6, 2)) == []
        assert generate_recurrence_dates(rule(RecurrenceFrequency.DAILY, date(2025, 6, 1)), date(2025, 6, 2)) == []

    @given(
        st.sampled_from(list(RecurrenceFrequency)),
        st.integers(min_value=1, max_value=6),
        st.dates(min_value=date(2024, 1, 1), max_value=date(2026, 12, 31)),
        st.integers(min_value=0, max_value=400),
    )
    def test_dates_strictly_after_start_and_within_end(self, frequency, interval, start, span):
        end = start + timedelta(days=span)
        dates = generate_recurrence_dates(rule(frequency, end, interval=interval), start)
        assert all(start < d <= end for d in dates)
        assert dates == sorted(set(dates))
