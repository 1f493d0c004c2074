"""
Shared types for availability-related functionality.

This module contains shared data classes and types used across availability
services to ensure type safety and consistency.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum, IntEnum
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Union

from core.exceptions import ValidationError
from utils.interval_utils import normalize_time_string


class Weekday(IntEnum):
    """Day of the week (0=Monday, ..., 6=Sunday), matching date.weekday()."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @classmethod
    def of(cls, value: date) -> "Weekday":
        return cls(value.weekday())

    @classmethod
    def parse(cls, value: Union["Weekday", int, str]) -> "Weekday":
        """Accept a Weekday, its integer value, or an English day name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValidationError(f"Invalid weekday: {value}")
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(f"Invalid weekday: {value}")

    @property
    def key(self) -> str:
        """Lowercase day name used at the storage and API boundary."""
        return self.name.lower()


class OverrideType(str, Enum):
    """Kind of date-specific availability change."""

    AVAILABLE = "available"      # Special hours outside normal schedule
    UNAVAILABLE = "unavailable"  # PTO, time off
    BLOCKED = "blocked"          # Meetings, trainings
    TIME_OFF = "time_off"        # Same as unavailable

    @property
    def removes_time(self) -> bool:
        return self is not OverrideType.AVAILABLE


class OverrideRecurrence(str, Enum):
    """Which dates inside an override's range it applies to."""

    NONE = "none"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


@dataclass(frozen=True)
class TimeWindow:
    """A local time-of-day window [start, end)."""

    start: str  # Format: "HH:MM" or "HH:MM:SS"
    end: str

    @classmethod
    def parse(cls, start: str, end: str) -> "TimeWindow":
        """
        Build a validated, normalized window.

        Raises:
            ValidationError: If either time is malformed or end <= start
        """
        window = cls(normalize_time_string(start), normalize_time_string(end))
        if not window.start < window.end:
            raise ValidationError(f"Window end must be after start: {start}-{end}")
        return window

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.start, "end": self.end}

    @classmethod
    def from_dict(cls, data: Mapping[str, str]) -> "TimeWindow":
        return cls.parse(data["start"], data["end"])


@dataclass
class WeeklyAvailabilityTemplate:
    """A practitioner's default weekly schedule."""

    windows: Dict[Weekday, List[TimeWindow]] = field(default_factory=dict)

    def windows_for(self, weekday: Weekday) -> List[TimeWindow]:
        return list(self.windows.get(weekday, []))

    def to_dict(self) -> Dict[str, List[Dict[str, str]]]:
        return {
            day.key: [w.to_dict() for w in self.windows.get(day, [])]
            for day in Weekday
            if self.windows.get(day)
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Iterable[Mapping[str, str]]]) -> "WeeklyAvailabilityTemplate":
        """
        Build a template from a {"monday": [{"start", "end"}, ...]} mapping.

        Raises:
            ValidationError: If a day name or window is invalid
        """
        windows: Dict[Weekday, List[TimeWindow]] = {}
        for day_name, day_windows in data.items():
            day = Weekday.parse(day_name)
            parsed = [TimeWindow.from_dict(w) for w in day_windows]
            windows[day] = sorted(parsed, key=lambda w: w.start)
        return cls(windows=windows)


@dataclass(frozen=True)
class AvailabilityOverrideData:
    """A date-ranged exception to the weekly template."""

    id: Optional[int]
    practitioner_id: int
    start_date: date
    end_date: date
    override_type: OverrideType
    start_time: Optional[str] = None  # None = all day
    end_time: Optional[str] = None
    recurrence: OverrideRecurrence = OverrideRecurrence.NONE
    recurring_weekdays: FrozenSet[Weekday] = frozenset()
    reason: Optional[str] = None

    @property
    def is_all_day(self) -> bool:
        return self.start_time is None or self.end_time is None

    def applies_on(self, target_date: date) -> bool:
        """Check if the override is in effect on a date."""
        if not (self.start_date <= target_date <= self.end_date):
            return False

        if self.recurrence is OverrideRecurrence.NONE:
            return True

        if self.recurrence is OverrideRecurrence.MONTHLY:
            return target_date.day == self.start_date.day

        weekdays = self.recurring_weekdays or frozenset({Weekday.of(self.start_date)})
        if Weekday.of(target_date) not in weekdays:
            return False
        if self.recurrence is OverrideRecurrence.BIWEEKLY:
            # Weeks counted from the Monday of the range start
            week_start = self.start_date - timedelta(days=self.start_date.weekday())
            return ((target_date - week_start).days // 7) % 2 == 0
        return True


@dataclass
class DayAvailability:
    """Effective availability of a practitioner on one date."""

    date: date
    weekday: Weekday
    is_available: bool
    time_slots: List[TimeWindow]
    overrides: List[AvailabilityOverrideData] = field(default_factory=list)
    invalid_windows: List[Dict[str, Any]] = field(default_factory=list)
    """Template/override windows dropped as malformed, with their source and raw start/end."""


@dataclass
class SlotData:
    """
    Represents an available time slot.

    Derived at request time, never stored.
    """
    start_time: str  # Format: "HH:MM"
    end_time: str  # Format: "HH:MM"
    practitioner_id: int
    location_id: Optional[int]
    practitioner_name: str = ""

    def to_dict(self) -> dict[str, str | int | None]:
        """Convert to dictionary format."""
        return {
            "start_time": self.start_time,
            "end_time": self.end_time,
            "practitioner_id": self.practitioner_id,
            "practitioner_name": self.practitioner_name,
            "location_id": self.location_id,
        }
