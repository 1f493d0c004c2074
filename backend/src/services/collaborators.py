"""
Interfaces of the collaborators the scheduling services depend on.

Services receive these through their constructors. Persistence, notification
transport and audit storage all live behind them, so the services themselves
hold no ambient state and can be driven by in-memory fakes in tests.
"""

from datetime import date, datetime
from typing import Any, AsyncContextManager, Dict, List, Optional, Protocol

from shared_types.availability import AvailabilityOverrideData, WeeklyAvailabilityTemplate
from shared_types.scheduling import (
    BookingData,
    BookingRequest,
    BookingStatus,
    PractitionerInfo,
    RecurrenceRule,
    WaitlistEntryData,
    WaitlistPriority,
)


class SchedulingStore(Protocol):
    """
    Persistence collaborator for templates, overrides, bookings and the waitlist.

    Contract: ``booking_transaction(tenant, practitioner)`` serializes
    booking writers per practitioner and makes everything inside it one unit:
    the conflict read, the writes that follow and their commit. A failed
    write inside it undoes only itself, so the caller can carry on with the
    rest (recurring series) or let the exception end the whole unit. Writes
    made outside a booking transaction are committed one by one.

    Every lookup is scoped to a tenant; a record belonging to another tenant
    is reported as absent.
    """

    def booking_transaction(self, tenant_id: int, practitioner_id: int) -> AsyncContextManager[None]:
        """Lock the practitioner's calendar; commit on exit, roll back on error."""
        ...

    async def get_weekly_template(self, tenant_id: int, practitioner_id: int) -> WeeklyAvailabilityTemplate:
        """Return the practitioner's weekly template (empty if none). Windows are not validated."""
        ...

    async def save_weekly_template(
        self, tenant_id: int, practitioner_id: int, template: WeeklyAvailabilityTemplate
    ) -> None:
        """Replace the practitioner's whole weekly template."""
        ...

    async def get_overrides(
        self, tenant_id: int, practitioner_id: int, start_date: date, end_date: date
    ) -> List[AvailabilityOverrideData]:
        """Return overrides whose date range intersects [start_date, end_date], in creation order."""
        ...

    async def create_override(self, tenant_id: int, override: AvailabilityOverrideData) -> AvailabilityOverrideData:
        ...

    async def delete_override(self, tenant_id: int, override_id: int) -> bool:
        """Delete an override. Returns False if it does not exist."""
        ...

    async def get_active_bookings(
        self, tenant_id: int, practitioner_id: int, target_date: date
    ) -> List[BookingData]:
        """Return bookings with an active status for one practitioner on one date."""
        ...

    async def get_active_bookings_in_range(
        self, tenant_id: int, practitioner_id: int, start_date: date, end_date: date
    ) -> List[BookingData]:
        """Same as get_active_bookings, for every date in [start_date, end_date]."""
        ...

    async def create_booking(
        self,
        request: BookingRequest,
        *,
        status: BookingStatus = BookingStatus.SCHEDULED,
        is_recurring: bool = False,
        recurrence_rule: Optional[RecurrenceRule] = None,
        parent_booking_id: Optional[int] = None,
    ) -> BookingData:
        ...

    async def get_booking(self, tenant_id: int, booking_id: int) -> Optional[BookingData]:
        ...

    async def update_booking(self, booking: BookingData) -> BookingData:
        """Persist status, time and cancellation fields of an existing booking."""
        ...

    async def get_practitioner(self, tenant_id: int, practitioner_id: int) -> Optional[PractitionerInfo]:
        ...

    async def get_location_timezone(self, tenant_id: int, location_id: Optional[int]) -> Optional[str]:
        """Return the IANA timezone of a location, or None if unknown."""
        ...

    async def create_waitlist_entry(
        self,
        tenant_id: int,
        client_id: int,
        practitioner_id: int,
        preferred_dates: List[date],
        preferred_times: List[str],
        priority: WaitlistPriority,
    ) -> WaitlistEntryData:
        ...

    async def get_waitlist_entry(self, tenant_id: int, entry_id: int) -> Optional[WaitlistEntryData]:
        ...

    async def get_waiting_entries(self, tenant_id: int, practitioner_id: int) -> List[WaitlistEntryData]:
        """Return entries still in 'waiting' status for a practitioner, in any order."""
        ...

    async def get_notified_entries(self, tenant_id: int, notified_before: datetime) -> List[WaitlistEntryData]:
        """Return 'notified' entries whose notified_at is earlier than the cutoff."""
        ...

    async def update_waitlist_entry(self, entry: WaitlistEntryData) -> WaitlistEntryData:
        ...


class NotificationSender(Protocol):
    """Delivers a message to a client. Transport (email, SMS) is not our concern."""

    async def notify(self, client_id: int, message: str, metadata: Dict[str, Any]) -> None:
        ...


class AuditRecorder(Protocol):
    """Records security- and operations-relevant events."""

    async def record(
        self,
        tenant_id: int,
        action: str,
        resource: str,
        resource_id: Optional[int],
        metadata: Dict[str, Any],
    ) -> None:
        ...
