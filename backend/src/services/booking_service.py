"""
Booking service for single-session booking operations.

Create, cancel, reschedule and time updates all go through the conflict
detector first. Recurring series are built on top of this service by
RecurringBookingService.
"""

import logging
from dataclasses import replace
from datetime import date
from typing import Optional

from core.constants import (
    MAX_APPOINTMENT_DURATION_MINUTES,
    MIN_APPOINTMENT_DURATION_MINUTES,
    RESCHEDULE_CANCELLATION_REASON,
)
from core.exceptions import ConflictError, NotFoundError, ValidationError
from services.collaborators import SchedulingStore
from services.conflict_service import ConflictDetector
from shared_types.scheduling import (
    BookingData,
    BookingRequest,
    BookingStatus,
    ConflictCheckResult,
    RecurrenceRule,
)
from utils.datetime_utils import ensure_date, utc_now
from utils.interval_utils import duration_minutes, normalize_time_string

logger = logging.getLogger(__name__)


def validate_booking_request(request: BookingRequest) -> BookingRequest:
    """
    Validate a booking request and return it with normalized times.

    Raises:
        ValidationError: If the date or times are malformed, end is not after
            start, or the duration is outside the allowed bounds
    """
    booking_date = ensure_date(request.date)
    start = normalize_time_string(request.start_time)
    end = normalize_time_string(request.end_time)

    if not start < end:
        raise ValidationError(f"Booking end time {end} must be after start time {start}")

    minutes = duration_minutes(start, end)
    if minutes < MIN_APPOINTMENT_DURATION_MINUTES:
        raise ValidationError(f"Booking must be at least {MIN_APPOINTMENT_DURATION_MINUTES} minutes")
    if minutes > MAX_APPOINTMENT_DURATION_MINUTES:
        raise ValidationError(f"Booking cannot exceed {MAX_APPOINTMENT_DURATION_MINUTES} minutes")

    return replace(request, date=booking_date, start_time=start, end_time=end)


def raise_if_conflicting(result: ConflictCheckResult) -> None:
    """Raise ConflictError carrying the details when a check found conflicts."""
    if result.has_conflict:
        raise ConflictError("Time slot conflicts with an existing appointment", result.conflicts)


class BookingService:
    """Service class for booking operations."""

    def __init__(self, store: SchedulingStore, conflict_detector: Optional[ConflictDetector] = None):
        self.store = store
        self.conflict_detector = conflict_detector or ConflictDetector(store)

    async def create_booking(
        self,
        request: BookingRequest,
        parent_booking_id: Optional[int] = None,
        skip_conflict_check: bool = False,
        recurrence_rule: Optional[RecurrenceRule] = None,
    ) -> BookingData:
        """
        Create a booking with status 'scheduled'.

        Args:
            request: Booking details
            parent_booking_id: Series parent, for recurrence children
            skip_conflict_check: Only for callers that already ran the check
                (recurrence children validated in one batch)
            recurrence_rule: Set when creating the parent of a recurring series

        Returns:
            The persisted booking

        Raises:
            ValidationError: If the request is invalid or the parent is not a series parent
            NotFoundError: If the practitioner or parent booking does not exist
            ConflictError: If the time overlaps an active booking
        """
        request = validate_booking_request(request)

        practitioner = await self.store.get_practitioner(request.tenant_id, request.practitioner_id)
        if practitioner is None:
            raise NotFoundError("Practitioner", request.practitioner_id)

        if parent_booking_id is not None:
            parent = await self.store.get_booking(request.tenant_id, parent_booking_id)
            if parent is None:
                raise NotFoundError("Booking", parent_booking_id)
            if not parent.is_recurring:
                raise ValidationError(f"Booking {parent_booking_id} is not the parent of a recurring series")

        async with self.store.booking_transaction(request.tenant_id, request.practitioner_id):
            if not skip_conflict_check:
                result = await self.conflict_detector.check_conflicts(
                    request.tenant_id,
                    request.practitioner_id,
                    request.date,
                    request.start_time,
                    request.end_time,
                )
                raise_if_conflicting(result)

            booking = await self.store.create_booking(
                request,
                status=BookingStatus.SCHEDULED,
                is_recurring=recurrence_rule is not None,
                recurrence_rule=recurrence_rule,
                parent_booking_id=parent_booking_id,
            )
        logger.info(
            f"Created booking {booking.id} for client {request.client_id} with practitioner "
            f"{request.practitioner_id} on {request.date} {request.start_time}-{request.end_time}"
        )
        return booking

    async def get_booking(self, tenant_id: int, booking_id: int) -> BookingData:
        """
        Get a booking by ID.

        Raises:
            NotFoundError: If the booking does not exist in the tenant
        """
        booking = await self.store.get_booking(tenant_id, booking_id)
        if booking is None:
            raise NotFoundError("Booking", booking_id)
        return booking

    async def cancel_booking(
        self,
        tenant_id: int,
        booking_id: int,
        reason: str,
        note: Optional[str] = None,
    ) -> BookingData:
        """
        Cancel one booking.

        Cancelling a series child leaves its siblings untouched. Cancelling an
        already-cancelled booking is a no-op.

        Raises:
            NotFoundError: If the booking does not exist
            ValidationError: If the booking is completed or a no-show
        """
        booking = await self.get_booking(tenant_id, booking_id)

        if booking.status is BookingStatus.CANCELLED:
            logger.info(f"Booking {booking_id} already cancelled, returning success")
            return booking
        if not booking.is_active:
            raise ValidationError(f"Cannot cancel a booking with status '{booking.status.value}'")

        booking.status = BookingStatus.CANCELLED
        booking.cancelled_at = utc_now()
        booking.cancellation_reason = reason
        booking.cancellation_note = note
        updated = await self.store.update_booking(booking)
        logger.info(f"Cancelled booking {booking_id} (reason: {reason})")
        return updated

    async def reschedule_booking(
        self,
        tenant_id: int,
        booking_id: int,
        new_date: date,
        new_start_time: str,
        new_end_time: str,
        reason: Optional[str] = None,
        note: Optional[str] = None,
    ) -> BookingData:
        """
        Move a booking by creating a replacement and cancelling the original.

        The conflict check at the new time ignores the booking being moved,
        so shifting a session by less than its length is allowed. Both
        changes commit together: if the replacement cannot be stored the
        original booking stays active.

        Returns:
            The new booking

        Raises:
            NotFoundError: If the booking does not exist
            ValidationError: If the booking is not active or the new time is invalid
            ConflictError: If the new time overlaps another active booking
        """
        old = await self.get_booking(tenant_id, booking_id)
        if not old.is_active:
            raise ValidationError(f"Cannot reschedule a booking with status '{old.status.value}'")

        request = validate_booking_request(BookingRequest(
            tenant_id=old.tenant_id,
            practitioner_id=old.practitioner_id,
            client_id=old.client_id,
            date=ensure_date(new_date),
            start_time=new_start_time,
            end_time=new_end_time,
            location_id=old.location_id,
            appointment_type=old.appointment_type,
            notes=old.notes,
        ))

        # The replacement stays in the same series
        series_parent_id = old.id if old.is_recurring else old.parent_booking_id

        async with self.store.booking_transaction(tenant_id, old.practitioner_id):
            result = await self.conflict_detector.check_conflicts(
                tenant_id,
                old.practitioner_id,
                request.date,
                request.start_time,
                request.end_time,
                exclude_booking_id=old.id,
            )
            raise_if_conflicting(result)

            # The original is cancelled only once its replacement is stored
            new_booking = await self.create_booking(
                request,
                parent_booking_id=series_parent_id,
                skip_conflict_check=True,
            )
            await self.cancel_booking(tenant_id, old.id, reason or RESCHEDULE_CANCELLATION_REASON, note)
        logger.info(f"Rescheduled booking {old.id} to {new_booking.id} on {request.date}")
        return new_booking

    async def update_booking_time(
        self,
        tenant_id: int,
        booking_id: int,
        new_date: date,
        new_start_time: str,
        new_end_time: str,
    ) -> BookingData:
        """
        Change a booking's date and time in place.

        Raises:
            NotFoundError: If the booking does not exist
            ValidationError: If the booking is not active or the new time is invalid
            ConflictError: If the new time overlaps another active booking
        """
        booking = await self.get_booking(tenant_id, booking_id)
        if not booking.is_active:
            raise ValidationError(f"Cannot update a booking with status '{booking.status.value}'")

        request = validate_booking_request(BookingRequest(
            tenant_id=booking.tenant_id,
            practitioner_id=booking.practitioner_id,
            client_id=booking.client_id,
            date=ensure_date(new_date),
            start_time=new_start_time,
            end_time=new_end_time,
        ))

        async with self.store.booking_transaction(tenant_id, booking.practitioner_id):
            result = await self.conflict_detector.check_conflicts(
                tenant_id,
                booking.practitioner_id,
                request.date,
                request.start_time,
                request.end_time,
                exclude_booking_id=booking.id,
            )
            raise_if_conflicting(result)

            booking.date = request.date
            booking.start_time = request.start_time
            booking.end_time = request.end_time
            updated = await self.store.update_booking(booking)
        logger.info(f"Updated booking {booking_id} to {request.date} {request.start_time}-{request.end_time}")
        return updated
