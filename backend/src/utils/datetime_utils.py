"""
Datetime utilities for consistent timezone handling across the engine.

Dates travel through the engine as ``date`` objects (``YYYY-MM-DD`` at the
edges), times of day as zero-padded ``HH:MM[:SS]`` strings, and absolute
instants as timezone-aware datetimes localized with pytz.
"""

import logging
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator, Optional

import pytz

from core.exceptions import ValidationError

logger = logging.getLogger(__name__)

# HH:MM or HH:MM:SS, one or two digit hour accepted on input
_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


def utc_now() -> datetime:
    """Get the current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def parse_date_string(date_str: str) -> date:
    """
    Parse a date string in YYYY-MM-DD or YYYY/MM/DD format.

    Automatically normalizes single-digit months/days.

    Args:
        date_str: Date string in YYYY-MM-DD or YYYY/MM/DD format

    Returns:
        Date object

    Raises:
        ValidationError: If date string cannot be parsed
    """
    if not date_str or not date_str.strip():
        raise ValidationError("Date string cannot be empty")

    date_str = date_str.strip()

    if '/' in date_str:
        parts = date_str.split('/')
    elif '-' in date_str:
        parts = date_str.split('-')
    else:
        raise ValidationError(f"Invalid date format (expected YYYY-MM-DD or YYYY/MM/DD): {date_str}")

    if len(parts) != 3:
        raise ValidationError(f"Invalid date format (expected YYYY-MM-DD or YYYY/MM/DD): {date_str}")

    year = parts[0].zfill(4)
    month = parts[1].zfill(2)
    day = parts[2].zfill(2)
    normalized = f"{year}-{month}-{day}"

    try:
        return datetime.strptime(normalized, '%Y-%m-%d').date()
    except ValueError as e:
        raise ValidationError(f"Invalid date format (expected YYYY-MM-DD or YYYY/MM/DD): {date_str}") from e


def ensure_date(value: date | str) -> date:
    """Accept a date or a date string and return a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_date_string(value)


def format_date(value: date) -> str:
    """Format a date as YYYY-MM-DD."""
    return value.strftime('%Y-%m-%d')


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield every date from start to end, both inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def parse_time_string(time_str: str) -> time:
    """
    Parse an HH:MM or HH:MM:SS time-of-day string.

    Raises:
        ValidationError: If the string is not a valid time of day
    """
    if not isinstance(time_str, str):
        raise ValidationError(f"Invalid time format: {time_str!r}")

    match = _TIME_PATTERN.match(time_str.strip())
    if not match:
        raise ValidationError(f"Invalid time format: {time_str}")

    hours = int(match.group(1))
    minutes = int(match.group(2))
    seconds = int(match.group(3) or 0)

    if hours > 23 or minutes > 59 or seconds > 59:
        raise ValidationError(f"Invalid time format: {time_str}")

    return time(hours, minutes, seconds)


def format_time(value: time) -> str:
    """
    Format a time of day in the engine's canonical string form.

    HH:MM, or HH:MM:SS when seconds are non-zero.
    """
    if value.second:
        return value.strftime('%H:%M:%S')
    return value.strftime('%H:%M')


def get_timezone(tz_name: Optional[str]) -> pytz.BaseTzInfo:
    """
    Resolve an IANA timezone identifier.

    Raises:
        ValidationError: If the identifier is empty or unknown
    """
    if not tz_name:
        raise ValidationError("Timezone identifier cannot be empty")
    try:
        return pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError as e:
        raise ValidationError(f"Unknown timezone: {tz_name}") from e


def parse_time_in_zone(target_date: date, time_str: str, tz_name: str) -> datetime:
    """
    Combine a local date and time of day in a timezone into an aware datetime.

    Non-existent local times (DST gaps) are resolved the way pytz does for
    ``is_dst=False``; normalize() then maps them onto the real wall clock.

    Args:
        target_date: Local calendar date
        time_str: Local time of day (HH:MM or HH:MM:SS)
        tz_name: IANA timezone identifier (e.g., 'America/New_York')

    Returns:
        Timezone-aware datetime

    Raises:
        ValidationError: If the time string or timezone is invalid
    """
    tz = get_timezone(tz_name)
    local_time = parse_time_string(time_str)
    naive = datetime.combine(target_date, local_time)
    return tz.normalize(tz.localize(naive))


def format_time_in_zone(value: datetime, tz_name: str) -> str:
    """Format an aware datetime as HH:MM on the wall clock of a timezone."""
    tz = get_timezone(tz_name)
    return value.astimezone(tz).strftime('%H:%M')
