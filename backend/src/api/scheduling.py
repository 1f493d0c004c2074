# pyright: reportMissingTypeStubs=false
"""
Scheduling API endpoints.

Availability, slot queries, bookings (single and recurring) and the
waitlist. Routes are thin: they parse input, call one service and map domain
errors to HTTP status codes.
"""

import asyncio
import logging
from datetime import date as date_type
from typing import Dict, List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator

from api.dependencies import (
    get_availability_service,
    get_booking_service,
    get_conflict_detector,
    get_recurring_booking_service,
    get_slot_service,
    get_tenant_id,
    get_waitlist_service,
    to_http_exception,
)
from api.responses import (
    AvailableSlotResponse,
    AvailableSlotsRangeResponse,
    AvailableSlotsResponse,
    BookingResponse,
    CancelBookingResponse,
    ConflictCheckResponse,
    DayAvailabilityResponse,
    RecurringSeriesResponse,
    WaitlistEntryListResponse,
    WaitlistEntryResponse,
)
from core.config import DEFAULT_SLOT_DURATION_MINUTES, RECURRING_BOOKING_TIMEOUT_SECONDS
from core.constants import (
    MAX_APPOINTMENT_DURATION_MINUTES,
    MAX_NOTES_LENGTH,
    MAX_REASON_LENGTH,
    MIN_APPOINTMENT_DURATION_MINUTES,
)
from core.exceptions import SchedulingError
from services import (
    AvailabilityService,
    BookingService,
    RecurringBookingService,
    SlotService,
    WaitlistService,
)
from services.conflict_service import ConflictDetector
from shared_types.availability import (
    OverrideRecurrence,
    OverrideType,
    TimeWindow,
    Weekday,
    WeeklyAvailabilityTemplate,
)
from shared_types.scheduling import BookingRequest, RecurrenceRule, WaitlistPriority
from utils.datetime_utils import parse_date_string
from utils.interval_utils import normalize_time_string

logger = logging.getLogger(__name__)

router = APIRouter()


# ===== Request Models =====

def _validate_time(v: str) -> str:
    try:
        return normalize_time_string(v)
    except SchedulingError:
        raise ValueError(f'Invalid time format (expected HH:MM): {v}')


class TimeWindowRequest(BaseModel):
    start: str  # Format: "HH:MM"
    end: str

    @field_validator('start', 'end')
    @classmethod
    def validate_time(cls, v: str) -> str:
        return _validate_time(v)


class WeeklyTemplateRequest(BaseModel):
    """Full weekly template, keyed by lowercase day name ("monday", ...)."""
    days: Dict[str, List[TimeWindowRequest]]

    @field_validator('days')
    @classmethod
    def validate_days(cls, v: Dict[str, List[TimeWindowRequest]]) -> Dict[str, List[TimeWindowRequest]]:
        valid = {day.key for day in Weekday}
        unknown = [name for name in v if name.lower() not in valid]
        if unknown:
            raise ValueError(f'Unknown day name(s): {", ".join(unknown)}')
        return v


class OverrideCreateRequest(BaseModel):
    start_date: str
    end_date: str
    override_type: OverrideType
    start_time: Optional[str] = None  # None together with end_time = all day
    end_time: Optional[str] = None
    recurrence: OverrideRecurrence = OverrideRecurrence.NONE
    recurring_weekdays: List[Union[int, str]] = []
    reason: Optional[str] = None

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_time(cls, v: Optional[str]) -> Optional[str]:
        return _validate_time(v) if v is not None else None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(v) > MAX_REASON_LENGTH:
            raise ValueError(f'Reason too long (max {MAX_REASON_LENGTH} characters)')
        return v


class ConflictCheckRequest(BaseModel):
    practitioner_id: int
    date: str
    start_time: str
    end_time: str
    exclude_booking_id: Optional[int] = None

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_time(cls, v: str) -> str:
        return _validate_time(v)


class BookingCreateRequest(BaseModel):
    practitioner_id: int
    client_id: int
    date: str  # Format: "YYYY-MM-DD"
    start_time: str  # Format: "HH:MM"
    end_time: str
    location_id: Optional[int] = None
    appointment_type: str = "session"
    notes: Optional[str] = None

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_time(cls, v: str) -> str:
        return _validate_time(v)

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            v = v.strip() or None
            if v and len(v) > MAX_NOTES_LENGTH:
                raise ValueError(f'Notes too long (max {MAX_NOTES_LENGTH} characters)')
        return v

    def to_booking_request(self, tenant_id: int) -> BookingRequest:
        return BookingRequest(
            tenant_id=tenant_id,
            practitioner_id=self.practitioner_id,
            client_id=self.client_id,
            date=parse_date_string(self.date),
            start_time=self.start_time,
            end_time=self.end_time,
            location_id=self.location_id,
            appointment_type=self.appointment_type,
            notes=self.notes,
        )


class RecurrenceRuleRequest(BaseModel):
    frequency: str  # daily | weekly | biweekly | monthly
    interval: int = 1
    end_date: str
    days_of_week: List[Union[int, str]] = []

    def to_rule(self) -> RecurrenceRule:
        return RecurrenceRule(
            frequency=self.frequency,
            interval=self.interval,
            end_date=parse_date_string(self.end_date),
            days_of_week=frozenset(Weekday.parse(d) for d in self.days_of_week),
        )


class RecurringBookingCreateRequest(BookingCreateRequest):
    recurrence: RecurrenceRuleRequest


class CancelBookingRequest(BaseModel):
    reason: str
    note: Optional[str] = None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Cancellation reason is required')
        if len(v) > MAX_REASON_LENGTH:
            raise ValueError(f'Reason too long (max {MAX_REASON_LENGTH} characters)')
        return v


class RescheduleRequest(BaseModel):
    new_date: str
    new_start_time: str
    new_end_time: str
    reason: Optional[str] = None
    note: Optional[str] = None

    @field_validator('new_start_time', 'new_end_time')
    @classmethod
    def validate_time(cls, v: str) -> str:
        return _validate_time(v)


class WaitlistCreateRequest(BaseModel):
    client_id: int
    practitioner_id: int
    preferred_dates: List[str] = []
    preferred_times: List[str] = []
    priority: WaitlistPriority = WaitlistPriority.STANDARD

    @field_validator('preferred_times')
    @classmethod
    def validate_times(cls, v: List[str]) -> List[str]:
        return [_validate_time(t) for t in v]


# ===== Availability =====

@router.get("/practitioners/{practitioner_id}/availability",
            summary="Get a practitioner's effective availability for a date")
async def get_availability(
    practitioner_id: int,
    date: str = Query(..., description="Date in YYYY-MM-DD format"),
    tenant_id: int = Depends(get_tenant_id),
    service: AvailabilityService = Depends(get_availability_service),
) -> DayAvailabilityResponse:
    """
    Get the practitioner's open time windows for a date after applying overrides.

    Windows ignored because they were malformed are listed in invalid_windows.
    """
    try:
        day = await service.get_effective_availability(tenant_id, practitioner_id, parse_date_string(date))
        return DayAvailabilityResponse.from_data(day)
    except SchedulingError as e:
        raise to_http_exception(e)


@router.put("/practitioners/{practitioner_id}/availability/template",
            summary="Replace a practitioner's weekly availability template")
async def update_weekly_template(
    practitioner_id: int,
    request: WeeklyTemplateRequest,
    tenant_id: int = Depends(get_tenant_id),
    service: AvailabilityService = Depends(get_availability_service),
) -> Dict[str, List[Dict[str, str]]]:
    try:
        template = WeeklyAvailabilityTemplate(windows={
            Weekday.parse(day): [TimeWindow(w.start, w.end) for w in windows]
            for day, windows in request.days.items()
        })
        saved = await service.update_weekly_template(tenant_id, practitioner_id, template)
        return saved.to_dict()
    except SchedulingError as e:
        raise to_http_exception(e)


@router.post("/practitioners/{practitioner_id}/availability/overrides",
             summary="Create an availability override",
             status_code=status.HTTP_201_CREATED)
async def create_override(
    practitioner_id: int,
    request: OverrideCreateRequest,
    tenant_id: int = Depends(get_tenant_id),
    service: AvailabilityService = Depends(get_availability_service),
) -> Dict[str, Optional[int]]:
    try:
        override = await service.create_override(
            tenant_id,
            practitioner_id,
            start_date=parse_date_string(request.start_date),
            end_date=parse_date_string(request.end_date),
            override_type=request.override_type,
            start_time=request.start_time,
            end_time=request.end_time,
            recurrence=request.recurrence,
            recurring_weekdays=[Weekday.parse(d) for d in request.recurring_weekdays],
            reason=request.reason,
        )
        return {"id": override.id}
    except SchedulingError as e:
        raise to_http_exception(e)


@router.delete("/availability/overrides/{override_id}",
               summary="Delete an availability override",
               status_code=status.HTTP_204_NO_CONTENT)
async def delete_override(
    override_id: int,
    tenant_id: int = Depends(get_tenant_id),
    service: AvailabilityService = Depends(get_availability_service),
) -> None:
    try:
        await service.delete_override(tenant_id, override_id)
    except SchedulingError as e:
        raise to_http_exception(e)


# ===== Slots =====

@router.get("/practitioners/{practitioner_id}/available-slots",
            summary="Get bookable slots for a date")
async def get_available_slots(
    practitioner_id: int,
    date: str = Query(..., description="Date in YYYY-MM-DD format"),
    duration_minutes: int = Query(
        DEFAULT_SLOT_DURATION_MINUTES,
        ge=MIN_APPOINTMENT_DURATION_MINUTES,
        le=MAX_APPOINTMENT_DURATION_MINUTES,
    ),
    tenant_id: int = Depends(get_tenant_id),
    service: SlotService = Depends(get_slot_service),
) -> AvailableSlotsResponse:
    try:
        target_date = parse_date_string(date)
        slots = await service.get_available_slots(tenant_id, practitioner_id, target_date, duration_minutes)
        return AvailableSlotsResponse(
            date=date,
            slots=[AvailableSlotResponse.from_data(s) for s in slots],
        )
    except SchedulingError as e:
        raise to_http_exception(e)


@router.get("/practitioners/{practitioner_id}/available-slots/range",
            summary="Get bookable slots for a date range")
async def get_available_slots_range(
    practitioner_id: int,
    start_date: str = Query(..., description="First date (YYYY-MM-DD)"),
    end_date: str = Query(..., description="Last date, inclusive (YYYY-MM-DD)"),
    duration_minutes: int = Query(
        DEFAULT_SLOT_DURATION_MINUTES,
        ge=MIN_APPOINTMENT_DURATION_MINUTES,
        le=MAX_APPOINTMENT_DURATION_MINUTES,
    ),
    tenant_id: int = Depends(get_tenant_id),
    service: SlotService = Depends(get_slot_service),
) -> AvailableSlotsRangeResponse:
    try:
        slots_by_date = await service.get_available_slots_range(
            tenant_id,
            practitioner_id,
            parse_date_string(start_date),
            parse_date_string(end_date),
            duration_minutes,
        )
        return AvailableSlotsRangeResponse(slots_by_date={
            day: [AvailableSlotResponse.from_data(s) for s in slots]
            for day, slots in slots_by_date.items()
        })
    except SchedulingError as e:
        raise to_http_exception(e)


# ===== Appointments =====

@router.post("/appointments/check-conflicts",
             summary="Check a time range against existing appointments")
async def check_conflicts(
    request: ConflictCheckRequest,
    tenant_id: int = Depends(get_tenant_id),
    detector: ConflictDetector = Depends(get_conflict_detector),
) -> ConflictCheckResponse:
    try:
        result = await detector.check_conflicts(
            tenant_id,
            request.practitioner_id,
            parse_date_string(request.date),
            request.start_time,
            request.end_time,
            exclude_booking_id=request.exclude_booking_id,
        )
        return ConflictCheckResponse.from_data(result)
    except SchedulingError as e:
        raise to_http_exception(e)


@router.post("/appointments",
             summary="Book an appointment",
             status_code=status.HTTP_201_CREATED)
async def create_appointment(
    request: BookingCreateRequest,
    tenant_id: int = Depends(get_tenant_id),
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await service.create_booking(request.to_booking_request(tenant_id))
        return BookingResponse.from_data(booking)
    except SchedulingError as e:
        raise to_http_exception(e)


@router.post("/appointments/recurring",
             summary="Book a recurring appointment series",
             status_code=status.HTTP_201_CREATED)
async def create_recurring_appointments(
    request: RecurringBookingCreateRequest,
    tenant_id: int = Depends(get_tenant_id),
    service: RecurringBookingService = Depends(get_recurring_booking_service),
) -> RecurringSeriesResponse:
    """
    Create a parent appointment plus one child per occurrence.

    Any scheduling conflict rejects the whole series (409, every conflicting
    date listed). Occurrences that fail to persist are returned in `failed`
    while the rest of the series is kept.
    """
    try:
        result = await asyncio.wait_for(
            service.create_recurring_bookings(
                request.to_booking_request(tenant_id),
                request.recurrence.to_rule(),
            ),
            timeout=RECURRING_BOOKING_TIMEOUT_SECONDS,
        )
        return RecurringSeriesResponse.from_data(result)
    except SchedulingError as e:
        raise to_http_exception(e)
    except asyncio.TimeoutError:
        logger.warning(f"Recurring booking for client {request.client_id} timed out")
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail="Creating the recurring series took too long",
        )


@router.get("/appointments/{booking_id}", summary="Get an appointment")
async def get_appointment(
    booking_id: int,
    tenant_id: int = Depends(get_tenant_id),
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        return BookingResponse.from_data(await service.get_booking(tenant_id, booking_id))
    except SchedulingError as e:
        raise to_http_exception(e)


async def _offer_freed_slot(
    waitlist: WaitlistService, tenant_id: int, practitioner_id: int, freed_date: date_type
) -> Optional[int]:
    """Run the waitlist matcher for a freed date; never fails the calling request."""
    try:
        entry = await waitlist.process_waitlist(tenant_id, practitioner_id, freed_date)
        return entry.id if entry else None
    except Exception as e:
        logger.exception(f"Waitlist processing failed for practitioner {practitioner_id} on {freed_date}: {e}")
        return None


@router.post("/appointments/{booking_id}/cancel", summary="Cancel an appointment")
async def cancel_appointment(
    booking_id: int,
    request: CancelBookingRequest,
    tenant_id: int = Depends(get_tenant_id),
    service: BookingService = Depends(get_booking_service),
    waitlist: WaitlistService = Depends(get_waitlist_service),
) -> CancelBookingResponse:
    """Cancel one appointment and offer the freed time to the waitlist."""
    try:
        booking = await service.cancel_booking(tenant_id, booking_id, request.reason, request.note)
    except SchedulingError as e:
        raise to_http_exception(e)

    notified_id = await _offer_freed_slot(waitlist, tenant_id, booking.practitioner_id, booking.date)
    return CancelBookingResponse(
        booking=BookingResponse.from_data(booking),
        notified_waitlist_entry_id=notified_id,
    )


@router.post("/appointments/{booking_id}/reschedule", summary="Reschedule an appointment")
async def reschedule_appointment(
    booking_id: int,
    request: RescheduleRequest,
    tenant_id: int = Depends(get_tenant_id),
    service: BookingService = Depends(get_booking_service),
    waitlist: WaitlistService = Depends(get_waitlist_service),
) -> BookingResponse:
    """Move an appointment; the old one is cancelled and its time offered to the waitlist."""
    try:
        old = await service.get_booking(tenant_id, booking_id)
        new_booking = await service.reschedule_booking(
            tenant_id,
            booking_id,
            parse_date_string(request.new_date),
            request.new_start_time,
            request.new_end_time,
            reason=request.reason,
            note=request.note,
        )
    except SchedulingError as e:
        raise to_http_exception(e)

    await _offer_freed_slot(waitlist, tenant_id, old.practitioner_id, old.date)
    return BookingResponse.from_data(new_booking)


# ===== Waitlist =====

@router.post("/waitlist",
             summary="Add a client to a practitioner's waitlist",
             status_code=status.HTTP_201_CREATED)
async def add_to_waitlist(
    request: WaitlistCreateRequest,
    tenant_id: int = Depends(get_tenant_id),
    service: WaitlistService = Depends(get_waitlist_service),
) -> WaitlistEntryResponse:
    try:
        entry = await service.add_to_waitlist(
            tenant_id,
            request.client_id,
            request.practitioner_id,
            preferred_dates=[parse_date_string(d) for d in request.preferred_dates],
            preferred_times=request.preferred_times,
            priority=request.priority,
        )
        return WaitlistEntryResponse.from_data(entry)
    except SchedulingError as e:
        raise to_http_exception(e)


@router.post("/waitlist/{entry_id}/accept", summary="Accept a waitlist slot offer")
async def accept_waitlist_notification(
    entry_id: int,
    tenant_id: int = Depends(get_tenant_id),
    service: WaitlistService = Depends(get_waitlist_service),
) -> WaitlistEntryResponse:
    try:
        return WaitlistEntryResponse.from_data(await service.accept_notification(tenant_id, entry_id))
    except SchedulingError as e:
        raise to_http_exception(e)


@router.post("/waitlist/{entry_id}/reject", summary="Reject a waitlist slot offer")
async def reject_waitlist_notification(
    entry_id: int,
    tenant_id: int = Depends(get_tenant_id),
    service: WaitlistService = Depends(get_waitlist_service),
) -> WaitlistEntryResponse:
    try:
        return WaitlistEntryResponse.from_data(await service.reject_notification(tenant_id, entry_id))
    except SchedulingError as e:
        raise to_http_exception(e)


@router.post("/waitlist/expire-stale", summary="Expire unanswered waitlist offers")
async def expire_stale_waitlist_notifications(
    tenant_id: int = Depends(get_tenant_id),
    service: WaitlistService = Depends(get_waitlist_service),
) -> WaitlistEntryListResponse:
    expired = await service.expire_stale_notifications(tenant_id)
    return WaitlistEntryListResponse(entries=[WaitlistEntryResponse.from_data(e) for e in expired])
