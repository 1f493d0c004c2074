"""
Unit tests for datetime utilities.

Tests date/time parsing and IANA timezone handling.
"""

import pytest
from datetime import date, datetime, time, timezone

from core.exceptions import ValidationError
from utils.datetime_utils import (
    ensure_date,
    format_time,
    format_time_in_zone,
    get_timezone,
    iter_dates,
    parse_date_string,
    parse_time_in_zone,
    parse_time_string,
    utc_now,
)


class TestUtcNow:

    def test_returns_timezone_aware_utc(self):
        now = utc_now()
        assert now.tzinfo is not None
        assert now.utcoffset().total_seconds() == 0


class TestParseDateString:
    """Test date string parsing."""

    def test_iso_format(self):
        assert parse_date_string("2025-06-02") == date(2025, 6, 2)

    def test_slash_format_and_single_digits(self):
        assert parse_date_string("2025/6/2") == date(2025, 6, 2)

    @pytest.mark.parametrize("value", ["", "   ", "2025-13-01", "2025-02-30", "20250602", "2025-06"])
    def test_invalid(self, value):
        with pytest.raises(ValidationError):
            parse_date_string(value)

    def test_ensure_date_accepts_date_datetime_and_string(self):
        assert ensure_date(date(2025, 6, 2)) == date(2025, 6, 2)
        assert ensure_date(datetime(2025, 6, 2, 9, 0)) == date(2025, 6, 2)
        assert ensure_date("2025-06-02") == date(2025, 6, 2)


class TestIterDates:

    def test_inclusive_both_ends(self):
        dates = list(iter_dates(date(2025, 6, 29), date(2025, 7, 2)))
        assert dates == [date(2025, 6, 29), date(2025, 6, 30), date(2025, 7, 1), date(2025, 7, 2)]

    def test_empty_when_inverted(self):
        assert list(iter_dates(date(2025, 6, 2), date(2025, 6, 1))) == []


class TestTimeStrings:

    def test_parse_and_format(self):
        assert parse_time_string("9:30") == time(9, 30)
        assert parse_time_string("09:30:15") == time(9, 30, 15)
        assert format_time(time(9, 30)) == "09:30"
        assert format_time(time(9, 30, 15)) == "09:30:15"

    def test_parse_rejects_non_string(self):
        with pytest.raises(ValidationError):
            parse_time_string(930)  # type: ignore[arg-type]


class TestTimezones:
    """Test IANA timezone handling with pytz."""

    def test_unknown_timezone(self):
        with pytest.raises(ValidationError):
            get_timezone("Mars/Olympus_Mons")

    def test_empty_timezone(self):
        with pytest.raises(ValidationError):
            get_timezone("")

    def test_parse_time_in_zone_standard_time(self):
        value = parse_time_in_zone(date(2025, 1, 15), "09:00", "America/New_York")
        assert value.astimezone(timezone.utc) == datetime(2025, 1, 15, 14, 0, tzinfo=timezone.utc)

    def test_parse_time_in_zone_daylight_time(self):
        value = parse_time_in_zone(date(2025, 7, 15), "09:00", "America/New_York")
        assert value.astimezone(timezone.utc) == datetime(2025, 7, 15, 13, 0, tzinfo=timezone.utc)

    def test_format_time_in_zone_round_trips_wall_clock(self):
        value = parse_time_in_zone(date(2025, 7, 15), "16:45", "Asia/Taipei")
        assert format_time_in_zone(value, "Asia/Taipei") == "16:45"
        assert format_time_in_zone(value, "UTC") == "08:45"
