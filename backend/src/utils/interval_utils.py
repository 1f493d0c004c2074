"""
Half-open interval helpers for time-of-day strings.

Times are compared as zero-padded ``HH:MM`` / ``HH:MM:SS`` strings. For that
fixed-width format lexicographic order equals chronological order, so no
parsing is needed on the hot path. Times past midnight are never wrapped:
``"23:00"`` is later than ``"01:00"`` on the same day.
"""

import re

from core.exceptions import ValidationError
from utils.datetime_utils import format_time, parse_time_string

_CANONICAL_TIME = re.compile(r"^\d{2}:\d{2}(:\d{2})?$")


def overlaps(start_a: str, end_a: str, start_b: str, end_b: str) -> bool:
    """
    Check if two half-open intervals [start_a, end_a) and [start_b, end_b) overlap.

    Zero-duration (and inverted) intervals never overlap anything, not even
    an identical zero-duration interval.
    """
    if not (start_a < end_a and start_b < end_b):
        return False
    return start_a < end_b and start_b < end_a


def is_valid_time_string(value: object) -> bool:
    """Check that a value is a canonical zero-padded HH:MM[:SS] time of day."""
    if not isinstance(value, str) or not _CANONICAL_TIME.match(value):
        return False
    try:
        parse_time_string(value)
    except ValidationError:
        return False
    return True


def normalize_time_string(value: str) -> str:
    """
    Normalize a time string to its canonical form.

    "9:05" -> "09:05", "10:00:00" -> "10:00", "10:00:30" -> "10:00:30".
    Dropping zero seconds keeps mixed-precision inputs comparable as strings.

    Raises:
        ValidationError: If the value is not a valid time of day
    """
    return format_time(parse_time_string(value))


def window_contains(window_start: str, window_end: str, start: str, end: str) -> bool:
    """Check if [start, end) lies entirely inside [window_start, window_end)."""
    return window_start <= start and end <= window_end


def duration_minutes(start: str, end: str) -> int:
    """
    Whole minutes from start to end on the same day (negative if end < start).

    Raises:
        ValidationError: If either time is malformed
    """
    start_t = parse_time_string(start)
    end_t = parse_time_string(end)
    start_seconds = start_t.hour * 3600 + start_t.minute * 60 + start_t.second
    end_seconds = end_t.hour * 3600 + end_t.minute * 60 + end_t.second
    return (end_seconds - start_seconds) // 60
