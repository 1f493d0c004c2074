# pyright: reportUnknownMemberType=false
"""
SQLAlchemy implementation of the SchedulingStore collaborator.

ORM rows are converted to shared dataclasses at this boundary, so no session
state leaks into the services.
"""

import logging
from contextlib import asynccontextmanager, contextmanager
from datetime import date, datetime, time, timezone
from typing import AsyncIterator, Dict, Iterator, List, Optional, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.constants import ACTIVE_BOOKING_STATUS_VALUES
from core.exceptions import NotFoundError
from models import (
    AvailabilityOverride,
    Booking,
    Location,
    Practitioner,
    PractitionerAvailability,
    WaitlistEntry,
)
from shared_types.availability import (
    AvailabilityOverrideData,
    OverrideRecurrence,
    OverrideType,
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
from utils.datetime_utils import format_date, format_time, parse_date_string, parse_time_string

logger = logging.getLogger(__name__)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo; every stored timestamp is UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _time_or_none(value: Optional[time]) -> Optional[str]:
    return format_time(value) if value is not None else None


def _override_to_data(row: AvailabilityOverride) -> AvailabilityOverrideData:
    return AvailabilityOverrideData(
        id=row.id,
        practitioner_id=row.practitioner_id,
        start_date=row.start_date,
        end_date=row.end_date,
        override_type=OverrideType(row.override_type),
        start_time=_time_or_none(row.start_time),
        end_time=_time_or_none(row.end_time),
        recurrence=OverrideRecurrence(row.recurrence or OverrideRecurrence.NONE.value),
        recurring_weekdays=frozenset(Weekday(d) for d in (row.recurring_weekdays or [])),
        reason=row.reason,
    )


def _booking_to_data(row: Booking) -> BookingData:
    return BookingData(
        id=row.id,
        tenant_id=row.tenant_id,
        practitioner_id=row.practitioner_id,
        client_id=row.client_id,
        date=row.date,
        start_time=format_time(row.start_time),
        end_time=format_time(row.end_time),
        status=BookingStatus(row.status),
        location_id=row.location_id,
        appointment_type=row.appointment_type,
        notes=row.notes,
        is_recurring=row.is_recurring,
        recurrence_rule=RecurrenceRule.from_dict(row.recurrence_rule) if row.recurrence_rule else None,
        parent_booking_id=row.parent_booking_id,
        cancelled_at=_as_utc(row.cancelled_at),
        cancellation_reason=row.cancellation_reason,
        cancellation_note=row.cancellation_note,
    )


def _waitlist_to_data(row: WaitlistEntry) -> WaitlistEntryData:
    return WaitlistEntryData(
        id=row.id,
        tenant_id=row.tenant_id,
        client_id=row.client_id,
        practitioner_id=row.practitioner_id,
        priority=WaitlistPriority(row.priority),
        status=WaitlistStatus(row.status),
        added_at=cast(datetime, _as_utc(row.added_at)),
        preferred_dates=[parse_date_string(d) for d in (row.preferred_dates or [])],
        preferred_times=list(row.preferred_times or []),
        notified_at=_as_utc(row.notified_at),
    )


class SqlSchedulingStore:
    """
    SchedulingStore backed by a SQLAlchemy session.

    The methods are coroutines so they satisfy the async collaborator
    protocol, but they never await: under asyncio.gather each call runs to
    completion before the next starts, so one session is never used
    concurrently.

    Every write runs in its own savepoint. Inside ``booking_transaction`` the
    writes accumulate and are committed once on exit, under a row lock on the
    practitioner (SELECT ... FOR UPDATE on databases that support it). The
    practitioner row always exists, so the lock also holds on a day with no
    bookings yet. Outside it, each write commits on its own.
    """

    def __init__(self, db: Session):
        self.db = db
        self._transaction_depth = 0

    def _practitioner_lock_query(self, tenant_id: int, practitioner_id: int):
        return self.db.query(Practitioner.id).filter(
            Practitioner.tenant_id == tenant_id,
            Practitioner.id == practitioner_id,
        ).with_for_update()

    @asynccontextmanager
    async def booking_transaction(self, tenant_id: int, practitioner_id: int) -> AsyncIterator[None]:
        self._transaction_depth += 1
        try:
            self._practitioner_lock_query(tenant_id, practitioner_id).first()
            yield
        except BaseException:
            self._transaction_depth -= 1
            if self._transaction_depth == 0:
                self.db.rollback()
            raise
        self._transaction_depth -= 1
        if self._transaction_depth == 0:
            self._commit()

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            logger.exception(f"Commit failed: {e}")
            self.db.rollback()
            raise

    @contextmanager
    def _write(self) -> Iterator[None]:
        """
        Run one write in a savepoint.

        A failing write rolls back to its savepoint only, so the session stays
        usable for the writes after it.
        """
        try:
            with self.db.begin_nested():
                yield
                self.db.flush()
        except Exception as e:
            logger.warning(f"Write rolled back to its savepoint: {e}")
            if self._transaction_depth == 0:
                self.db.rollback()
            raise
        if self._transaction_depth == 0:
            self._commit()

    # Weekly template

    async def get_weekly_template(self, tenant_id: int, practitioner_id: int) -> WeeklyAvailabilityTemplate:
        rows = self.db.query(PractitionerAvailability).filter(
            PractitionerAvailability.tenant_id == tenant_id,
            PractitionerAvailability.practitioner_id == practitioner_id,
        ).order_by(
            PractitionerAvailability.day_of_week,
            PractitionerAvailability.start_time,
        ).all()

        windows: Dict[Weekday, List[TimeWindow]] = {}
        for row in rows:
            windows.setdefault(Weekday(row.day_of_week), []).append(row.to_window())
        return WeeklyAvailabilityTemplate(windows=windows)

    async def save_weekly_template(
        self, tenant_id: int, practitioner_id: int, template: WeeklyAvailabilityTemplate
    ) -> None:
        with self._write():
            self.db.query(PractitionerAvailability).filter(
                PractitionerAvailability.tenant_id == tenant_id,
                PractitionerAvailability.practitioner_id == practitioner_id,
            ).delete(synchronize_session=False)

            for weekday, day_windows in template.windows.items():
                for window in day_windows:
                    self.db.add(PractitionerAvailability(
                        tenant_id=tenant_id,
                        practitioner_id=practitioner_id,
                        day_of_week=int(weekday),
                        start_time=parse_time_string(window.start),
                        end_time=parse_time_string(window.end),
                    ))

    # Overrides

    async def get_overrides(
        self, tenant_id: int, practitioner_id: int, start_date: date, end_date: date
    ) -> List[AvailabilityOverrideData]:
        rows = self.db.query(AvailabilityOverride).filter(
            AvailabilityOverride.tenant_id == tenant_id,
            AvailabilityOverride.practitioner_id == practitioner_id,
            AvailabilityOverride.start_date <= end_date,
            AvailabilityOverride.end_date >= start_date,
        ).order_by(AvailabilityOverride.id).all()
        return [_override_to_data(row) for row in rows]

    async def create_override(self, tenant_id: int, override: AvailabilityOverrideData) -> AvailabilityOverrideData:
        row = AvailabilityOverride(
            tenant_id=tenant_id,
            practitioner_id=override.practitioner_id,
            override_type=override.override_type.value,
            start_date=override.start_date,
            end_date=override.end_date,
            start_time=parse_time_string(override.start_time) if override.start_time else None,
            end_time=parse_time_string(override.end_time) if override.end_time else None,
            recurrence=override.recurrence.value,
            recurring_weekdays=sorted(int(d) for d in override.recurring_weekdays) or None,
            reason=override.reason,
        )
        with self._write():
            self.db.add(row)
        return _override_to_data(row)

    async def delete_override(self, tenant_id: int, override_id: int) -> bool:
        row = self.db.query(AvailabilityOverride).filter(
            AvailabilityOverride.tenant_id == tenant_id,
            AvailabilityOverride.id == override_id,
        ).first()
        if row is None:
            return False
        with self._write():
            self.db.delete(row)
        return True

    # Bookings

    async def get_active_bookings(
        self, tenant_id: int, practitioner_id: int, target_date: date
    ) -> List[BookingData]:
        return await self.get_active_bookings_in_range(tenant_id, practitioner_id, target_date, target_date)

    async def get_active_bookings_in_range(
        self, tenant_id: int, practitioner_id: int, start_date: date, end_date: date
    ) -> List[BookingData]:
        rows = self.db.query(Booking).filter(
            Booking.tenant_id == tenant_id,
            Booking.practitioner_id == practitioner_id,
            Booking.date >= start_date,
            Booking.date <= end_date,
            Booking.status.in_(ACTIVE_BOOKING_STATUS_VALUES),
        ).order_by(Booking.date, Booking.start_time).all()
        return [_booking_to_data(row) for row in rows]

    async def create_booking(
        self,
        request: BookingRequest,
        *,
        status: BookingStatus = BookingStatus.SCHEDULED,
        is_recurring: bool = False,
        recurrence_rule: Optional[RecurrenceRule] = None,
        parent_booking_id: Optional[int] = None,
    ) -> BookingData:
        row = Booking(
            tenant_id=request.tenant_id,
            practitioner_id=request.practitioner_id,
            client_id=request.client_id,
            location_id=request.location_id,
            date=request.date,
            start_time=parse_time_string(request.start_time),
            end_time=parse_time_string(request.end_time),
            status=status.value,
            appointment_type=request.appointment_type,
            notes=request.notes,
            is_recurring=is_recurring,
            recurrence_rule=recurrence_rule.to_dict() if recurrence_rule else None,
            parent_booking_id=parent_booking_id,
        )
        with self._write():
            self.db.add(row)
        return _booking_to_data(row)

    def _get_booking_row(self, tenant_id: int, booking_id: int) -> Optional[Booking]:
        return self.db.query(Booking).filter(
            Booking.tenant_id == tenant_id,
            Booking.id == booking_id,
        ).first()

    async def get_booking(self, tenant_id: int, booking_id: int) -> Optional[BookingData]:
        row = self._get_booking_row(tenant_id, booking_id)
        return _booking_to_data(row) if row else None

    async def update_booking(self, booking: BookingData) -> BookingData:
        row = self._get_booking_row(booking.tenant_id, booking.id)
        if row is None:
            raise NotFoundError("Booking", booking.id)

        with self._write():
            row.date = booking.date
            row.start_time = parse_time_string(booking.start_time)
            row.end_time = parse_time_string(booking.end_time)
            row.status = booking.status.value
            row.notes = booking.notes
            row.cancelled_at = booking.cancelled_at
            row.cancellation_reason = booking.cancellation_reason
            row.cancellation_note = booking.cancellation_note
        return _booking_to_data(row)

    # Practitioners and locations

    async def get_practitioner(self, tenant_id: int, practitioner_id: int) -> Optional[PractitionerInfo]:
        row = self.db.query(Practitioner).filter(
            Practitioner.tenant_id == tenant_id,
            Practitioner.id == practitioner_id,
            Practitioner.is_active == True,  # noqa: E712
        ).first()
        if row is None:
            return None
        return PractitionerInfo(id=row.id, tenant_id=row.tenant_id, name=row.name, location_id=row.location_id)

    async def get_location_timezone(self, tenant_id: int, location_id: Optional[int]) -> Optional[str]:
        if location_id is None:
            return None
        location = self.db.query(Location).filter(
            Location.tenant_id == tenant_id,
            Location.id == location_id,
        ).first()
        return location.timezone if location else None

    # Waitlist

    async def create_waitlist_entry(
        self,
        tenant_id: int,
        client_id: int,
        practitioner_id: int,
        preferred_dates: List[date],
        preferred_times: List[str],
        priority: WaitlistPriority,
    ) -> WaitlistEntryData:
        row = WaitlistEntry(
            tenant_id=tenant_id,
            client_id=client_id,
            practitioner_id=practitioner_id,
            preferred_dates=[format_date(d) for d in preferred_dates] or None,
            preferred_times=list(preferred_times) or None,
            priority=priority.value,
            status=WaitlistStatus.WAITING.value,
        )
        with self._write():
            self.db.add(row)
        return _waitlist_to_data(row)

    def _get_waitlist_row(self, tenant_id: int, entry_id: int) -> Optional[WaitlistEntry]:
        return self.db.query(WaitlistEntry).filter(
            WaitlistEntry.tenant_id == tenant_id,
            WaitlistEntry.id == entry_id,
        ).first()

    async def get_waitlist_entry(self, tenant_id: int, entry_id: int) -> Optional[WaitlistEntryData]:
        row = self._get_waitlist_row(tenant_id, entry_id)
        return _waitlist_to_data(row) if row else None

    async def get_waiting_entries(self, tenant_id: int, practitioner_id: int) -> List[WaitlistEntryData]:
        rows = self.db.query(WaitlistEntry).filter(
            WaitlistEntry.tenant_id == tenant_id,
            WaitlistEntry.practitioner_id == practitioner_id,
            WaitlistEntry.status == WaitlistStatus.WAITING.value,
        ).order_by(WaitlistEntry.added_at, WaitlistEntry.id).all()
        return [_waitlist_to_data(row) for row in rows]

    async def get_notified_entries(self, tenant_id: int, notified_before: datetime) -> List[WaitlistEntryData]:
        rows = self.db.query(WaitlistEntry).filter(
            WaitlistEntry.tenant_id == tenant_id,
            WaitlistEntry.status == WaitlistStatus.NOTIFIED.value,
            WaitlistEntry.notified_at < notified_before,
        ).order_by(WaitlistEntry.notified_at).all()
        return [_waitlist_to_data(row) for row in rows]

    async def update_waitlist_entry(self, entry: WaitlistEntryData) -> WaitlistEntryData:
        row = self._get_waitlist_row(entry.tenant_id, entry.id)
        if row is None:
            raise NotFoundError("Waitlist entry", entry.id)

        with self._write():
            row.status = entry.status.value
            row.notified_at = entry.notified_at
            row.priority = entry.priority.value
        return _waitlist_to_data(row)
