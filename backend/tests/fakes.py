"""
In-memory collaborators for service tests.

InMemorySchedulingStore implements the SchedulingStore protocol on plain
dicts and can be told to fail booking writes on chosen dates. The recording
sender and recorder keep what they were given so tests can assert on it.
"""

import itertools
from collections import Counter
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Set, Tuple

from shared_types.availability import (
    AvailabilityOverrideData,
    TimeWindow,
    Weekday,
    WeeklyAvailabilityTemplate,
)
from shared_types.scheduling import (
    BookingData,
    BookingRequest,
    BookingStatus,
    PractitionerInfo,
    RecurrenceRule,
    WaitlistEntryData,
    WaitlistPriority,
    WaitlistStatus,
)
from utils.datetime_utils import utc_now


class InMemorySchedulingStore:
    """SchedulingStore kept in memory. Returned objects are copies."""

    def __init__(self):
        self._ids = itertools.count(1)
        self.practitioners: Dict[Tuple[int, int], PractitionerInfo] = {}
        self.location_timezones: Dict[Tuple[int, int], str] = {}
        self.templates: Dict[Tuple[int, int], WeeklyAvailabilityTemplate] = {}
        self.overrides: Dict[int, Tuple[int, AvailabilityOverrideData]] = {}
        self.bookings: Dict[int, BookingData] = {}
        self.waitlist: Dict[int, WaitlistEntryData] = {}
        self.fail_booking_dates: Set[date] = set()
        self.calls: Counter = Counter()

    # Setup helpers

    def add_practitioner(self, tenant_id: int, practitioner_id: int, name: str, location_id: Optional[int] = None):
        self.practitioners[(tenant_id, practitioner_id)] = PractitionerInfo(
            id=practitioner_id, tenant_id=tenant_id, name=name, location_id=location_id
        )

    def add_location(self, tenant_id: int, location_id: int, tz_name: str):
        self.location_timezones[(tenant_id, location_id)] = tz_name

    def set_template(self, tenant_id: int, practitioner_id: int, windows: Dict[Weekday, List[Tuple[str, str]]]):
        """Store a template as-is (no validation), like rows read from a database."""
        self.templates[(tenant_id, practitioner_id)] = WeeklyAvailabilityTemplate(windows={
            day: [TimeWindow(start, end) for start, end in day_windows]
            for day, day_windows in windows.items()
        })

    def add_booking(
        self,
        tenant_id: int,
        practitioner_id: int,
        booking_date: date,
        start_time: str,
        end_time: str,
        status: BookingStatus = BookingStatus.SCHEDULED,
        client_id: int = 100,
    ) -> BookingData:
        booking = BookingData(
            id=next(self._ids),
            tenant_id=tenant_id,
            practitioner_id=practitioner_id,
            client_id=client_id,
            date=booking_date,
            start_time=start_time,
            end_time=end_time,
            status=status,
        )
        self.bookings[booking.id] = booking
        return replace(booking)

    def add_waitlist_entry(
        self,
        tenant_id: int,
        practitioner_id: int,
        client_id: int,
        priority: WaitlistPriority = WaitlistPriority.STANDARD,
        added_at: Optional[datetime] = None,
        preferred_dates: Iterable[date] = (),
        preferred_times: Iterable[str] = (),
        status: WaitlistStatus = WaitlistStatus.WAITING,
        notified_at: Optional[datetime] = None,
    ) -> WaitlistEntryData:
        entry = WaitlistEntryData(
            id=next(self._ids),
            tenant_id=tenant_id,
            client_id=client_id,
            practitioner_id=practitioner_id,
            priority=priority,
            status=status,
            added_at=added_at or utc_now(),
            preferred_dates=list(preferred_dates),
            preferred_times=list(preferred_times),
            notified_at=notified_at,
        )
        self.waitlist[entry.id] = entry
        return replace(entry)

    def bookings_for(self, practitioner_id: int) -> List[BookingData]:
        return sorted(
            (b for b in self.bookings.values() if b.practitioner_id == practitioner_id),
            key=lambda b: (b.date, b.start_time, b.id),
        )

    # SchedulingStore

    @asynccontextmanager
    async def booking_transaction(self, tenant_id: int, practitioner_id: int) -> AsyncIterator[None]:
        """Restore the bookings as they were on entry if the block raises."""
        self.calls["booking_transaction"] += 1
        snapshot = {booking_id: replace(b) for booking_id, b in self.bookings.items()}
        try:
            yield
        except BaseException:
            self.bookings = snapshot
            raise

    async def get_weekly_template(self, tenant_id: int, practitioner_id: int) -> WeeklyAvailabilityTemplate:
        self.calls["get_weekly_template"] += 1
        template = self.templates.get((tenant_id, practitioner_id))
        if template is None:
            return WeeklyAvailabilityTemplate()
        return WeeklyAvailabilityTemplate(windows={d: list(w) for d, w in template.windows.items()})

    async def save_weekly_template(
        self, tenant_id: int, practitioner_id: int, template: WeeklyAvailabilityTemplate
    ) -> None:
        self.templates[(tenant_id, practitioner_id)] = template

    async def get_overrides(
        self, tenant_id: int, practitioner_id: int, start_date: date, end_date: date
    ) -> List[AvailabilityOverrideData]:
        self.calls["get_overrides"] += 1
        return [
            override
            for override_id, (owner, override) in sorted(self.overrides.items())
            if owner == tenant_id
            and override.practitioner_id == practitioner_id
            and override.start_date <= end_date
            and override.end_date >= start_date
        ]

    async def create_override(self, tenant_id: int, override: AvailabilityOverrideData) -> AvailabilityOverrideData:
        created = replace(override, id=next(self._ids))
        self.overrides[created.id] = (tenant_id, created)
        return created

    async def delete_override(self, tenant_id: int, override_id: int) -> bool:
        found = self.overrides.get(override_id)
        if found is None or found[0] != tenant_id:
            return False
        del self.overrides[override_id]
        return True

    async def get_active_bookings(
        self, tenant_id: int, practitioner_id: int, target_date: date
    ) -> List[BookingData]:
        self.calls["get_active_bookings"] += 1
        return self._active(tenant_id, practitioner_id, target_date, target_date)

    async def get_active_bookings_in_range(
        self, tenant_id: int, practitioner_id: int, start_date: date, end_date: date
    ) -> List[BookingData]:
        self.calls["get_active_bookings_in_range"] += 1
        return self._active(tenant_id, practitioner_id, start_date, end_date)

    def _active(self, tenant_id: int, practitioner_id: int, start_date: date, end_date: date) -> List[BookingData]:
        return [
            replace(b) for b in self.bookings.values()
            if b.tenant_id == tenant_id
            and b.practitioner_id == practitioner_id
            and start_date <= b.date <= end_date
            and b.is_active
        ]

    async def create_booking(
        self,
        request: BookingRequest,
        *,
        status: BookingStatus = BookingStatus.SCHEDULED,
        is_recurring: bool = False,
        recurrence_rule: Optional[RecurrenceRule] = None,
        parent_booking_id: Optional[int] = None,
    ) -> BookingData:
        self.calls["create_booking"] += 1
        if request.date in self.fail_booking_dates:
            raise RuntimeError("storage unavailable")

        booking = BookingData(
            id=next(self._ids),
            tenant_id=request.tenant_id,
            practitioner_id=request.practitioner_id,
            client_id=request.client_id,
            date=request.date,
            start_time=request.start_time,
            end_time=request.end_time,
            status=status,
            location_id=request.location_id,
            appointment_type=request.appointment_type,
            notes=request.notes,
            is_recurring=is_recurring,
            recurrence_rule=recurrence_rule,
            parent_booking_id=parent_booking_id,
        )
        self.bookings[booking.id] = booking
        return replace(booking)

    async def get_booking(self, tenant_id: int, booking_id: int) -> Optional[BookingData]:
        booking = self.bookings.get(booking_id)
        if booking is None or booking.tenant_id != tenant_id:
            return None
        return replace(booking)

    async def update_booking(self, booking: BookingData) -> BookingData:
        self.bookings[booking.id] = replace(booking)
        return replace(booking)

    async def get_practitioner(self, tenant_id: int, practitioner_id: int) -> Optional[PractitionerInfo]:
        return self.practitioners.get((tenant_id, practitioner_id))

    async def get_location_timezone(self, tenant_id: int, location_id: Optional[int]) -> Optional[str]:
        if location_id is None:
            return None
        return self.location_timezones.get((tenant_id, location_id))

    async def create_waitlist_entry(
        self,
        tenant_id: int,
        client_id: int,
        practitioner_id: int,
        preferred_dates: List[date],
        preferred_times: List[str],
        priority: WaitlistPriority,
    ) -> WaitlistEntryData:
        return self.add_waitlist_entry(
            tenant_id,
            practitioner_id,
            client_id,
            priority=priority,
            preferred_dates=preferred_dates,
            preferred_times=preferred_times,
        )

    async def get_waitlist_entry(self, tenant_id: int, entry_id: int) -> Optional[WaitlistEntryData]:
        entry = self.waitlist.get(entry_id)
        if entry is None or entry.tenant_id != tenant_id:
            return None
        return replace(entry)

    async def get_waiting_entries(self, tenant_id: int, practitioner_id: int) -> List[WaitlistEntryData]:
        # Reverse insertion order so ordering is the service's job
        return [
            replace(e) for e in reversed(list(self.waitlist.values()))
            if e.tenant_id == tenant_id
            and e.practitioner_id == practitioner_id
            and e.status is WaitlistStatus.WAITING
        ]

    async def get_notified_entries(self, tenant_id: int, notified_before: datetime) -> List[WaitlistEntryData]:
        return [
            replace(e) for e in self.waitlist.values()
            if e.tenant_id == tenant_id
            and e.status is WaitlistStatus.NOTIFIED
            and e.notified_at is not None
            and e.notified_at < notified_before
        ]

    async def update_waitlist_entry(self, entry: WaitlistEntryData) -> WaitlistEntryData:
        self.waitlist[entry.id] = replace(entry)
        return replace(entry)


class RecordingNotificationSender:
    """NotificationSender that keeps every message; optionally fails."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[Tuple[int, str, Dict[str, Any]]] = []

    async def notify(self, client_id: int, message: str, metadata: Dict[str, Any]) -> None:
        if self.fail:
            raise ConnectionError("SMS gateway unreachable")
        self.sent.append((client_id, message, metadata))


class RecordingAuditRecorder:
    """AuditRecorder that keeps every event; optionally fails."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.events: List[Dict[str, Any]] = []

    async def record(
        self,
        tenant_id: int,
        action: str,
        resource: str,
        resource_id: Optional[int],
        metadata: Dict[str, Any],
    ) -> None:
        if self.fail:
            raise ConnectionError("audit store unreachable")
        self.events.append({
            "tenant_id": tenant_id,
            "action": action,
            "resource": resource,
            "resource_id": resource_id,
            "metadata": metadata,
        })


def hours_ago(hours: float) -> datetime:
    return utc_now() - timedelta(hours=hours)
