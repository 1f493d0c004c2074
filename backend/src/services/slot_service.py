"""
Slot service for turning open availability windows into bookable slots.

Slot generation is timezone-aware: a window's local start and end are
localized in the practitioner's location timezone, the walk happens on
absolute instants, and slot times are formatted back on the local wall clock.
On a DST transition day this yields slots of real duration, not wall-clock
duration.
"""

import logging
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from core.config import DEFAULT_SLOT_DURATION_MINUTES, DEFAULT_TIMEZONE
from core.exceptions import NotFoundError, ValidationError
from services.availability_service import AvailabilityService
from services.collaborators import SchedulingStore
from shared_types.availability import DayAvailability, SlotData, TimeWindow
from shared_types.scheduling import BookingData, PractitionerInfo
from utils.datetime_utils import format_date, format_time_in_zone, parse_time_in_zone
from utils.interval_utils import overlaps

logger = logging.getLogger(__name__)


def generate_slots_from_window(
    window: TimeWindow,
    slot_duration_minutes: int,
    target_date: date,
    tz_name: str,
) -> List[TimeWindow]:
    """
    Split a time window into consecutive fixed-duration slots.

    A trailing period shorter than one slot is dropped, never rounded. Bad
    input (malformed times, unknown timezone, non-positive duration, end not
    after start) yields an empty list and a warning instead of an exception,
    so one broken window cannot break a whole availability query.

    Args:
        window: Local time window (HH:MM or HH:MM:SS)
        slot_duration_minutes: Length of each slot
        target_date: Local date the window belongs to
        tz_name: IANA timezone of the practitioner's location

    Returns:
        Ordered, contiguous slots with HH:MM local times
    """
    if isinstance(slot_duration_minutes, bool) or not isinstance(slot_duration_minutes, int) \
            or slot_duration_minutes <= 0:
        logger.warning(f"Invalid slot duration {slot_duration_minutes!r}, no slots generated")
        return []

    try:
        window_start = parse_time_in_zone(target_date, window.start, tz_name)
        window_end = parse_time_in_zone(target_date, window.end, tz_name)
    except ValidationError as e:
        logger.warning(
            f"Error generating slots from time range {window.start}-{window.end} "
            f"on {target_date} ({tz_name}): {e}"
        )
        return []

    if window_end <= window_start:
        logger.warning(f"Window {window.start}-{window.end} on {target_date} ends before it starts")
        return []

    step = timedelta(minutes=slot_duration_minutes)
    slots: List[TimeWindow] = []
    emitted = set()
    current = window_start
    while current + step <= window_end:
        slot_end = current + step
        start_label = format_time_in_zone(current, tz_name)
        end_label = format_time_in_zone(slot_end, tz_name)
        # The repeated hour after a fall-back transition maps back onto wall
        # times already emitted, or onto an end that is not after the start
        if start_label < end_label and (start_label, end_label) not in emitted:
            emitted.add((start_label, end_label))
            slots.append(TimeWindow(start_label, end_label))
        current = slot_end

    return slots


def _free_slots_for_day(
    day: DayAvailability,
    bookings: Iterable[BookingData],
    slot_duration_minutes: int,
    tz_name: str,
    practitioner: PractitionerInfo,
) -> List[SlotData]:
    """Generate the day's slots and drop the ones overlapping an active booking."""
    booked = [(b.start_time, b.end_time) for b in bookings if b.is_active]

    seen = set()
    free: List[SlotData] = []
    for window in day.time_slots:
        for slot in generate_slots_from_window(window, slot_duration_minutes, day.date, tz_name):
            # "available" overrides may overlap template windows
            key = (slot.start, slot.end)
            if key in seen:
                continue
            if any(overlaps(slot.start, slot.end, start, end) for start, end in booked):
                continue
            seen.add(key)
            free.append(SlotData(
                start_time=slot.start,
                end_time=slot.end,
                practitioner_id=practitioner.id,
                practitioner_name=practitioner.name,
                location_id=practitioner.location_id,
            ))

    free.sort(key=lambda s: (s.start_time, s.end_time))
    return free


class SlotService:
    """
    Service class for available-slot queries.

    Pipeline: effective availability -> slot generation per window -> drop
    slots overlapping active bookings.
    """

    def __init__(self, store: SchedulingStore, availability_service: Optional[AvailabilityService] = None):
        self.store = store
        self.availability_service = availability_service or AvailabilityService(store)

    async def _get_practitioner_and_timezone(self, tenant_id: int, practitioner_id: int):
        practitioner = await self.store.get_practitioner(tenant_id, practitioner_id)
        if practitioner is None:
            raise NotFoundError("Practitioner", practitioner_id)
        tz_name = await self.store.get_location_timezone(tenant_id, practitioner.location_id)
        return practitioner, tz_name or DEFAULT_TIMEZONE

    async def get_available_slots(
        self,
        tenant_id: int,
        practitioner_id: int,
        target_date: date,
        slot_duration_minutes: int = DEFAULT_SLOT_DURATION_MINUTES,
    ) -> List[SlotData]:
        """
        Get bookable slots for a practitioner on a date.

        Args:
            tenant_id: Tenant ID
            practitioner_id: Practitioner ID
            target_date: Date to query
            slot_duration_minutes: Slot length in minutes

        Returns:
            Free slots sorted by start time

        Raises:
            NotFoundError: If the practitioner does not exist in the tenant
        """
        practitioner, tz_name = await self._get_practitioner_and_timezone(tenant_id, practitioner_id)
        day = await self.availability_service.get_effective_availability(
            tenant_id, practitioner_id, target_date
        )
        if not day.is_available:
            return []

        bookings = await self.store.get_active_bookings(tenant_id, practitioner_id, target_date)
        return _free_slots_for_day(day, bookings, slot_duration_minutes, tz_name, practitioner)

    async def get_available_slots_range(
        self,
        tenant_id: int,
        practitioner_id: int,
        start_date: date,
        end_date: date,
        slot_duration_minutes: int = DEFAULT_SLOT_DURATION_MINUTES,
    ) -> Dict[str, List[SlotData]]:
        """
        Get bookable slots for every date in [start_date, end_date].

        Active bookings for the whole range are fetched in one store call.

        Returns:
            Mapping of YYYY-MM-DD to that date's free slots (empty list for
            dates without availability)

        Raises:
            ValidationError: If the range is inverted or too long
            NotFoundError: If the practitioner does not exist in the tenant
        """
        practitioner, tz_name = await self._get_practitioner_and_timezone(tenant_id, practitioner_id)
        days = await self.availability_service.get_availability_range(
            tenant_id, practitioner_id, start_date, end_date
        )
        bookings = await self.store.get_active_bookings_in_range(
            tenant_id, practitioner_id, start_date, end_date
        )

        bookings_by_date: Dict[date, List[BookingData]] = {}
        for booking in bookings:
            bookings_by_date.setdefault(booking.date, []).append(booking)

        result: Dict[str, List[SlotData]] = {}
        for day in days:
            result[format_date(day.date)] = _free_slots_for_day(
                day,
                bookings_by_date.get(day.date, []),
                slot_duration_minutes,
                tz_name,
                practitioner,
            )
        return result
