"""
Shared types for bookings, recurrence and the waitlist.

These dataclasses are the currency between the scheduling services and the
persistence collaborator. ORM rows never leave the store.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from core.constants import MAX_RECURRENCE_INTERVAL, MIN_RECURRENCE_INTERVAL
from core.exceptions import ValidationError
from shared_types.availability import Weekday
from utils.datetime_utils import ensure_date, format_date


class BookingStatus(str, Enum):
    """Booking lifecycle status."""

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"

    @property
    def is_active(self) -> bool:
        return self in ACTIVE_BOOKING_STATUSES


# Statuses that occupy the practitioner's calendar
ACTIVE_BOOKING_STATUSES: FrozenSet[BookingStatus] = frozenset({
    BookingStatus.SCHEDULED,
    BookingStatus.CONFIRMED,
    BookingStatus.CHECKED_IN,
    BookingStatus.IN_PROGRESS,
})


class RecurrenceFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


@dataclass(frozen=True)
class RecurrenceRule:
    """
    Immutable description of how a booking repeats.

    Attributes:
        frequency: daily, weekly, biweekly or monthly
        interval: Step between occurrences, in the frequency's unit (1-52)
        end_date: Last date an occurrence may fall on (inclusive)
        days_of_week: Target weekdays (weekly/biweekly only). Empty means the
            series start date's own weekday.
    """

    frequency: RecurrenceFrequency
    interval: int
    end_date: date
    days_of_week: FrozenSet[Weekday] = frozenset()

    def __post_init__(self) -> None:
        if not isinstance(self.frequency, RecurrenceFrequency):
            try:
                object.__setattr__(self, "frequency", RecurrenceFrequency(self.frequency))
            except ValueError:
                raise ValidationError(f"Invalid recurrence frequency: {self.frequency}")

        if isinstance(self.interval, bool) or not isinstance(self.interval, int):
            raise ValidationError(f"Recurrence interval must be an integer: {self.interval!r}")
        if not MIN_RECURRENCE_INTERVAL <= self.interval <= MAX_RECURRENCE_INTERVAL:
            raise ValidationError(
                f"Recurrence interval must be between {MIN_RECURRENCE_INTERVAL} "
                f"and {MAX_RECURRENCE_INTERVAL}: {self.interval}"
            )

        object.__setattr__(self, "end_date", ensure_date(self.end_date))

        days = frozenset(Weekday.parse(d) for d in self.days_of_week)
        if days and self.frequency not in (RecurrenceFrequency.WEEKLY, RecurrenceFrequency.BIWEEKLY):
            raise ValidationError("days_of_week is only allowed for weekly and biweekly recurrence")
        object.__setattr__(self, "days_of_week", days)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON shape stored on the parent booking."""
        return {
            "frequency": self.frequency.value,
            "interval": self.interval,
            "end_date": format_date(self.end_date),
            "days_of_week": sorted(int(d) for d in self.days_of_week),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RecurrenceRule":
        return cls(
            frequency=data["frequency"],
            interval=data.get("interval", 1),
            end_date=data["end_date"],
            days_of_week=frozenset(data.get("days_of_week") or ()),
        )


@dataclass(frozen=True)
class BookingRequest:
    """Data needed to book one session."""

    tenant_id: int
    practitioner_id: int
    client_id: int
    date: date
    start_time: str
    end_time: str
    location_id: Optional[int] = None
    appointment_type: str = "session"
    notes: Optional[str] = None

    def for_date(self, new_date: date) -> "BookingRequest":
        """Same request moved to another date (used for recurrence children)."""
        return replace(self, date=new_date)


@dataclass
class BookingData:
    """A persisted booking as seen by the services."""

    id: int
    tenant_id: int
    practitioner_id: int
    client_id: int
    date: date
    start_time: str
    end_time: str
    status: BookingStatus
    location_id: Optional[int] = None
    appointment_type: str = "session"
    notes: Optional[str] = None
    is_recurring: bool = False
    recurrence_rule: Optional[RecurrenceRule] = None
    parent_booking_id: Optional[int] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    cancellation_note: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status.is_active

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "practitioner_id": self.practitioner_id,
            "client_id": self.client_id,
            "location_id": self.location_id,
            "date": format_date(self.date),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "status": self.status.value,
            "appointment_type": self.appointment_type,
            "notes": self.notes,
            "is_recurring": self.is_recurring,
            "recurrence_rule": self.recurrence_rule.to_dict() if self.recurrence_rule else None,
            "parent_booking_id": self.parent_booking_id,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
            "cancellation_reason": self.cancellation_reason,
            "cancellation_note": self.cancellation_note,
        }


@dataclass(frozen=True)
class ConflictDetail:
    """One existing booking that overlaps a candidate time range."""

    booking_id: int
    start_time: str
    end_time: str
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "booking_id": self.booking_id,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "reason": self.reason,
        }


@dataclass
class ConflictCheckResult:
    has_conflict: bool
    conflicts: List[ConflictDetail] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "has_conflict": self.has_conflict,
            "conflicts": [c.to_dict() for c in self.conflicts],
        }


@dataclass(frozen=True)
class OccurrenceConflict:
    """Conflicts found for one date of a recurring series."""

    date: date
    conflicts: List[ConflictDetail]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": format_date(self.date),
            "conflicts": [c.to_dict() for c in self.conflicts],
        }


@dataclass(frozen=True)
class FailedOccurrence:
    """An occurrence that passed the conflict check but could not be stored."""

    date: date
    reason: str

    def to_dict(self) -> Dict[str, str]:
        return {"date": format_date(self.date), "reason": self.reason}


@dataclass
class RecurringSeriesResult:
    """
    Outcome of creating a recurring series.

    Storage failures on individual occurrences are reported in ``failed``
    rather than raised; the parent and the other children stay persisted.
    """

    parent: BookingData
    children: List[BookingData] = field(default_factory=list)
    failed: List[FailedOccurrence] = field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        return bool(self.failed)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "parent": self.parent.to_dict(),
            "children": [c.to_dict() for c in self.children],
            "failed": [f.to_dict() for f in self.failed],
        }


class WaitlistPriority(str, Enum):
    STANDARD = "standard"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        """Sort key: lower is served first."""
        return 0 if self is WaitlistPriority.URGENT else 1


class WaitlistStatus(str, Enum):
    WAITING = "waiting"
    NOTIFIED = "notified"
    SCHEDULED = "scheduled"
    EXPIRED = "expired"


@dataclass
class WaitlistEntryData:
    id: int
    tenant_id: int
    client_id: int
    practitioner_id: int
    priority: WaitlistPriority
    status: WaitlistStatus
    added_at: datetime
    preferred_dates: List[date] = field(default_factory=list)
    preferred_times: List[str] = field(default_factory=list)
    notified_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "client_id": self.client_id,
            "practitioner_id": self.practitioner_id,
            "priority": self.priority.value,
            "status": self.status.value,
            "added_at": self.added_at.isoformat(),
            "preferred_dates": [format_date(d) for d in self.preferred_dates],
            "preferred_times": list(self.preferred_times),
            "notified_at": self.notified_at.isoformat() if self.notified_at else None,
        }


@dataclass(frozen=True)
class PractitionerInfo:
    id: int
    tenant_id: int
    name: str
    location_id: Optional[int] = None
