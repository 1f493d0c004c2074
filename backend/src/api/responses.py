"""
Shared response models for API endpoints.

This module contains Pydantic response models that are shared across
multiple API endpoints to ensure consistency and reduce duplication.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from shared_types.availability import DayAvailability, SlotData
from shared_types.scheduling import (
    BookingData,
    ConflictCheckResult,
    RecurringSeriesResult,
    WaitlistEntryData,
)
from utils.datetime_utils import format_date


class TimeWindowResponse(BaseModel):
    """Response model for an open time window."""
    start: str  # Format: "HH:MM"
    end: str


class DayAvailabilityResponse(BaseModel):
    """Response model for a practitioner's effective availability on a date."""
    date: str
    weekday: str
    is_available: bool
    time_slots: List[TimeWindowResponse]
    override_ids: List[int]
    invalid_windows: List[Dict[str, Any]]  # Malformed template/override windows that were ignored

    @classmethod
    def from_data(cls, day: DayAvailability) -> "DayAvailabilityResponse":
        return cls(
            date=format_date(day.date),
            weekday=day.weekday.key,
            is_available=day.is_available,
            time_slots=[TimeWindowResponse(start=w.start, end=w.end) for w in day.time_slots],
            override_ids=[o.id for o in day.overrides if o.id is not None],
            invalid_windows=day.invalid_windows,
        )


class AvailableSlotResponse(BaseModel):
    """Response model for a bookable slot."""
    start_time: str
    end_time: str
    practitioner_id: int
    practitioner_name: str
    location_id: Optional[int] = None

    @classmethod
    def from_data(cls, slot: SlotData) -> "AvailableSlotResponse":
        return cls(**slot.to_dict())


class AvailableSlotsResponse(BaseModel):
    """Response model for available slots on one date."""
    date: str
    slots: List[AvailableSlotResponse]


class AvailableSlotsRangeResponse(BaseModel):
    """Response model for available slots over a date range, keyed by YYYY-MM-DD."""
    slots_by_date: Dict[str, List[AvailableSlotResponse]]


class ConflictDetailResponse(BaseModel):
    booking_id: int
    start_time: str
    end_time: str
    reason: str


class ConflictCheckResponse(BaseModel):
    """Response model for a conflict check."""
    has_conflict: bool
    conflicts: List[ConflictDetailResponse]

    @classmethod
    def from_data(cls, result: ConflictCheckResult) -> "ConflictCheckResponse":
        return cls(**result.to_dict())


class BookingResponse(BaseModel):
    """Response model for a booking."""
    id: int
    tenant_id: int
    practitioner_id: int
    client_id: int
    location_id: Optional[int] = None
    date: str
    start_time: str
    end_time: str
    status: str
    appointment_type: str
    notes: Optional[str] = None
    is_recurring: bool
    recurrence_rule: Optional[Dict[str, Any]] = None
    parent_booking_id: Optional[int] = None
    cancelled_at: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancellation_note: Optional[str] = None

    @classmethod
    def from_data(cls, booking: BookingData) -> "BookingResponse":
        return cls(**booking.to_dict())


class CancelBookingResponse(BaseModel):
    """Response model for a cancellation."""
    booking: BookingResponse
    notified_waitlist_entry_id: Optional[int] = None  # Waitlist entry told about the freed slot


class FailedOccurrenceResponse(BaseModel):
    date: str
    reason: str


class RecurringSeriesResponse(BaseModel):
    """Response model for a created recurring series (may be partial)."""
    parent: BookingResponse
    children: List[BookingResponse]
    failed: List[FailedOccurrenceResponse]

    @classmethod
    def from_data(cls, result: RecurringSeriesResult) -> "RecurringSeriesResponse":
        return cls(**result.to_dict())


class WaitlistEntryResponse(BaseModel):
    """Response model for a waitlist entry."""
    id: int
    tenant_id: int
    client_id: int
    practitioner_id: int
    priority: str
    status: str
    added_at: str
    preferred_dates: List[str]
    preferred_times: List[str]
    notified_at: Optional[str] = None

    @classmethod
    def from_data(cls, entry: WaitlistEntryData) -> "WaitlistEntryResponse":
        return cls(**entry.to_dict())


class WaitlistEntryListResponse(BaseModel):
    entries: List[WaitlistEntryResponse]
