"""
Conflict detection for bookings.

Every create, update and reschedule passes through ConflictDetector before
anything is written. The detector only reads; serializing the read with the
following write per (tenant, practitioner, date) is the store's contract.
"""

import asyncio
import logging
from datetime import date
from typing import Dict, Iterable, List, Optional

from core.constants import BOOKING_CONFLICT_REASON
from services.collaborators import SchedulingStore
from shared_types.scheduling import BookingData, ConflictCheckResult, ConflictDetail
from utils.interval_utils import normalize_time_string, overlaps

logger = logging.getLogger(__name__)


def find_conflicts(
    bookings: Iterable[BookingData],
    start_time: str,
    end_time: str,
    exclude_booking_id: Optional[int] = None,
) -> List[ConflictDetail]:
    """
    Find the active bookings that overlap [start_time, end_time).

    Args:
        bookings: Candidate bookings (inactive ones are ignored)
        start_time: Candidate start (HH:MM[:SS])
        end_time: Candidate end (HH:MM[:SS])
        exclude_booking_id: Booking to ignore, e.g. the one being moved

    Returns:
        One ConflictDetail per overlapping booking, in the given order
    """
    conflicts: List[ConflictDetail] = []
    for booking in bookings:
        if not booking.is_active:
            continue
        if exclude_booking_id is not None and booking.id == exclude_booking_id:
            continue
        if overlaps(start_time, end_time, booking.start_time, booking.end_time):
            conflicts.append(ConflictDetail(
                booking_id=booking.id,
                start_time=booking.start_time,
                end_time=booking.end_time,
                reason=BOOKING_CONFLICT_REASON,
            ))
    return conflicts


class ConflictDetector:
    """Checks candidate time ranges against a practitioner's active bookings."""

    def __init__(self, store: SchedulingStore):
        self.store = store

    async def check_conflicts(
        self,
        tenant_id: int,
        practitioner_id: int,
        target_date: date,
        start_time: str,
        end_time: str,
        exclude_booking_id: Optional[int] = None,
    ) -> ConflictCheckResult:
        """
        Check whether [start_time, end_time) overlaps an active booking.

        Cancelled, completed and no-show bookings never conflict.

        Args:
            tenant_id: Tenant ID
            practitioner_id: Practitioner ID
            target_date: Date of the candidate booking
            start_time: Candidate start (HH:MM[:SS])
            end_time: Candidate end (HH:MM[:SS])
            exclude_booking_id: Booking to ignore (reschedule/update in place)

        Returns:
            ConflictCheckResult listing every overlapping booking

        Raises:
            ValidationError: If a time string is malformed
        """
        start = normalize_time_string(start_time)
        end = normalize_time_string(end_time)

        bookings = await self.store.get_active_bookings(tenant_id, practitioner_id, target_date)
        conflicts = find_conflicts(bookings, start, end, exclude_booking_id)
        if conflicts:
            logger.info(
                f"Conflict check for practitioner {practitioner_id} on {target_date} "
                f"{start}-{end}: {len(conflicts)} conflict(s)"
            )
        return ConflictCheckResult(has_conflict=bool(conflicts), conflicts=conflicts)

    async def check_conflicts_batch(
        self,
        tenant_id: int,
        practitioner_id: int,
        dates: Iterable[date],
        start_time: str,
        end_time: str,
    ) -> Dict[date, ConflictCheckResult]:
        """
        Run check_conflicts for many dates concurrently.

        Returns:
            Mapping of each (distinct) date to its result, in input order
        """
        unique_dates = list(dict.fromkeys(dates))
        results = await asyncio.gather(*(
            self.check_conflicts(tenant_id, practitioner_id, d, start_time, end_time)
            for d in unique_dates
        ))
        return dict(zip(unique_dates, results))
