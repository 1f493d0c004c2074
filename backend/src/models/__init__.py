# Package initialization
# Import all models to ensure relationships are properly established
from .location import Location
from .practitioner import Practitioner
from .practitioner_availability import PractitionerAvailability
from .availability_override import AvailabilityOverride
from .booking import Booking
from .waitlist_entry import WaitlistEntry

__all__ = [
    "Location",
    "Practitioner",
    "PractitionerAvailability",
    "AvailabilityOverride",
    "Booking",
    "WaitlistEntry",
]
