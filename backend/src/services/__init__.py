"""
Services package for scheduling business logic.

This package contains the service classes behind the API endpoints. Services
receive their collaborators (store, notification sender, audit recorder)
through their constructors.
"""

from .availability_service import AvailabilityService
from .slot_service import SlotService
from .conflict_service import ConflictDetector
from .booking_service import BookingService
from .recurring_booking_service import RecurringBookingService
from .waitlist_service import WaitlistService
from .sql_store import SqlSchedulingStore

__all__ = [
    "AvailabilityService",
    "SlotService",
    "ConflictDetector",
    "BookingService",
    "RecurringBookingService",
    "WaitlistService",
    "SqlSchedulingStore",
]
