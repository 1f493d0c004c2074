"""
Recurring booking service.

Creating a series is all-or-nothing with respect to scheduling conflicts and
best-effort with respect to storage:

- The parent date and every occurrence are conflict-checked concurrently, as
  one batch, before anything is written. Any conflict aborts the whole series.
- Once the batch is clean, the parent is created, then all children are
  created concurrently without a second conflict check.
- The check, the parent and the children run inside one booking transaction
  that holds the practitioner's calendar lock and commits once at the end.
- A child that fails to persist is undone on its own, reported in the result
  and recorded as a partial-failure audit event after the commit. The parent
  and the other children are kept.

Overall timeouts belong to the caller (asyncio.wait_for). A timeout or
cancellation before the commit rolls back the whole series.
"""

import asyncio
import logging
from datetime import date
from typing import List, Optional, Union

from core.constants import RECURRING_PARTIAL_FAILURE_ACTION
from core.exceptions import NotFoundError, RecurringConflictError, ValidationError
from services.booking_service import BookingService, raise_if_conflicting, validate_booking_request
from services.collaborators import AuditRecorder, SchedulingStore
from services.conflict_service import ConflictDetector
from services.recurrence import generate_recurrence_dates
from shared_types.scheduling import (
    BookingData,
    BookingRequest,
    FailedOccurrence,
    OccurrenceConflict,
    RecurrenceRule,
    RecurringSeriesResult,
)
from utils.datetime_utils import format_date

logger = logging.getLogger(__name__)


class RecurringBookingService:
    """Service class for creating recurring booking series."""

    def __init__(
        self,
        store: SchedulingStore,
        booking_service: Optional[BookingService] = None,
        conflict_detector: Optional[ConflictDetector] = None,
        audit_recorder: Optional[AuditRecorder] = None,
    ):
        self.store = store
        self.conflict_detector = conflict_detector or ConflictDetector(store)
        self.booking_service = booking_service or BookingService(store, self.conflict_detector)
        self.audit_recorder = audit_recorder

    async def create_recurring_bookings(
        self,
        request: BookingRequest,
        rule: RecurrenceRule,
    ) -> RecurringSeriesResult:
        """
        Create a parent booking and one child per recurrence occurrence.

        Args:
            request: Booking details for the first session (the parent's date)
            rule: How the series repeats

        Returns:
            RecurringSeriesResult with the parent, the children that were
            created and the occurrences that failed to persist

        Raises:
            ValidationError: If the request or rule is invalid
            NotFoundError: If the practitioner does not exist
            ConflictError: If the parent's own slot is taken
            RecurringConflictError: If any occurrence conflicts (lists all of them)
        """
        request = validate_booking_request(request)
        if not isinstance(rule, RecurrenceRule):
            raise ValidationError("A recurrence rule is required")
        if rule.end_date <= request.date:
            raise ValidationError(
                f"Recurrence end date {rule.end_date} must be after the first appointment date {request.date}"
            )

        practitioner = await self.store.get_practitioner(request.tenant_id, request.practitioner_id)
        if practitioner is None:
            raise NotFoundError("Practitioner", request.practitioner_id)

        occurrence_dates = generate_recurrence_dates(rule, request.date)

        async with self.store.booking_transaction(request.tenant_id, request.practitioner_id):
            results = await self.conflict_detector.check_conflicts_batch(
                request.tenant_id,
                request.practitioner_id,
                [request.date, *occurrence_dates],
                request.start_time,
                request.end_time,
            )
            raise_if_conflicting(results[request.date])

            occurrence_conflicts = [
                OccurrenceConflict(date=d, conflicts=results[d].conflicts)
                for d in occurrence_dates
                if results[d].has_conflict
            ]
            if occurrence_conflicts:
                logger.info(
                    f"Recurring series for client {request.client_id} rejected: "
                    f"{len(occurrence_conflicts)} of {len(occurrence_dates)} occurrences conflict"
                )
                raise RecurringConflictError(occurrence_conflicts)

            # Parent failure propagates; no children exist yet
            parent = await self.booking_service.create_booking(
                request,
                skip_conflict_check=True,
                recurrence_rule=rule,
            )

            outcomes = await asyncio.gather(*(
                self._create_child(request.for_date(d), parent.id) for d in occurrence_dates
            ))
        children = [o for o in outcomes if isinstance(o, BookingData)]
        failed = [o for o in outcomes if isinstance(o, FailedOccurrence)]

        if failed:
            await self._report_partial_failure(request, parent, len(occurrence_dates), failed)

        logger.info(
            f"Created recurring series {parent.id} with {len(children)} of "
            f"{len(occurrence_dates)} occurrences"
        )
        return RecurringSeriesResult(parent=parent, children=children, failed=failed)

    async def _create_child(
        self, request: BookingRequest, parent_booking_id: int
    ) -> Union[BookingData, FailedOccurrence]:
        try:
            return await self.booking_service.create_booking(
                request,
                parent_booking_id=parent_booking_id,
                skip_conflict_check=True,
            )
        except Exception as e:
            logger.warning(f"Failed to create occurrence on {request.date} for series {parent_booking_id}: {e}")
            return FailedOccurrence(date=request.date, reason=str(e) or type(e).__name__)

    async def _report_partial_failure(
        self,
        request: BookingRequest,
        parent: BookingData,
        total: int,
        failed: List[FailedOccurrence],
    ) -> None:
        failed_dates: List[date] = [f.date for f in failed]
        logger.warning(
            f"Partial failure creating recurring appointments: series {parent.id}, "
            f"{len(failed)} of {total} occurrences failed "
            f"({', '.join(format_date(d) for d in failed_dates)})"
        )
        if self.audit_recorder is None:
            return
        try:
            await self.audit_recorder.record(
                request.tenant_id,
                RECURRING_PARTIAL_FAILURE_ACTION,
                "booking",
                parent.id,
                {
                    "failed": [f.to_dict() for f in failed],
                    "total_occurrences": total,
                    "created_occurrences": total - len(failed),
                },
            )
        except Exception as e:
            # Audit failures never fail the series
            logger.exception(f"Failed to record partial failure audit event for series {parent.id}: {e}")
