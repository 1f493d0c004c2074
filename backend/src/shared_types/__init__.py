"""
Shared type definitions for the scheduling engine.

This module contains dataclasses and types that are used across multiple services.
"""

from shared_types.availability import (
    AvailabilityOverrideData,
    DayAvailability,
    OverrideRecurrence,
    OverrideType,
    SlotData,
    TimeWindow,
    Weekday,
    WeeklyAvailabilityTemplate,
)
from shared_types.scheduling import (
    ACTIVE_BOOKING_STATUSES,
    BookingData,
    BookingRequest,
    BookingStatus,
    ConflictCheckResult,
    ConflictDetail,
    FailedOccurrence,
    OccurrenceConflict,
    PractitionerInfo,
    RecurrenceFrequency,
    RecurrenceRule,
    RecurringSeriesResult,
    WaitlistEntryData,
    WaitlistPriority,
    WaitlistStatus,
)

__all__ = [
    "ACTIVE_BOOKING_STATUSES",
    "AvailabilityOverrideData",
    "BookingData",
    "BookingRequest",
    "BookingStatus",
    "ConflictCheckResult",
    "ConflictDetail",
    "DayAvailability",
    "FailedOccurrence",
    "OccurrenceConflict",
    "OverrideRecurrence",
    "OverrideType",
    "PractitionerInfo",
    "RecurrenceFrequency",
    "RecurrenceRule",
    "RecurringSeriesResult",
    "SlotData",
    "TimeWindow",
    "WaitlistEntryData",
    "WaitlistPriority",
    "WaitlistStatus",
    "Weekday",
    "WeeklyAvailabilityTemplate",
]
