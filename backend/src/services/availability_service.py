"""
Availability service for effective-availability resolution.

This module merges a practitioner's weekly availability template with their
date-ranged overrides into the list of open time windows for a date. Slot
generation and conflict filtering build on top of it.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from core.constants import MAX_DATE_RANGE_DAYS
from core.exceptions import NotFoundError, ValidationError
from services.collaborators import SchedulingStore
from shared_types.availability import (
    AvailabilityOverrideData,
    DayAvailability,
    OverrideRecurrence,
    OverrideType,
    TimeWindow,
    Weekday,
    WeeklyAvailabilityTemplate,
)
from utils.datetime_utils import iter_dates
from utils.interval_utils import overlaps, window_contains

logger = logging.getLogger(__name__)


def validate_date_range(start_date: date, end_date: date) -> None:
    """
    Validate a date range used for range queries.

    Raises:
        ValidationError: If end is before start or the range is too long
    """
    if end_date < start_date:
        raise ValidationError(f"End date {end_date} is before start date {start_date}")
    if (end_date - start_date).days + 1 > MAX_DATE_RANGE_DAYS:
        raise ValidationError(f"Date range cannot exceed {MAX_DATE_RANGE_DAYS} days")


def _checked_window(start: Optional[str], end: Optional[str]) -> Optional[TimeWindow]:
    """Return a normalized window, or None if it is malformed or empty."""
    if start is None or end is None:
        return None
    try:
        return TimeWindow.parse(start, end)
    except ValidationError:
        return None


def resolve_day(
    target_date: date,
    template: WeeklyAvailabilityTemplate,
    overrides: Sequence[AvailabilityOverrideData],
) -> DayAvailability:
    """
    Compute the effective availability for one date.

    Overrides are applied in the given order. A removing override (unavailable,
    blocked, time_off) with a time range drops every window that overlaps the
    range; a partially overlapping window is dropped whole, never split.
    Without a time range it clears the day. An ``available`` override appends
    its range as an extra window, without merging.

    Args:
        target_date: Date to resolve
        template: Weekly template (windows are validated here)
        overrides: Candidate overrides; those not in effect on the date are skipped

    Returns:
        DayAvailability with windows sorted by start time
    """
    weekday = Weekday.of(target_date)
    invalid: List[Dict[str, Any]] = []

    windows: List[TimeWindow] = []
    for raw in template.windows_for(weekday):
        window = _checked_window(raw.start, raw.end)
        if window is None:
            logger.warning(
                f"Ignoring malformed template window {raw.start}-{raw.end} "
                f"for {weekday.key} on {target_date}"
            )
            invalid.append({"source": "template", "start": raw.start, "end": raw.end})
            continue
        windows.append(window)

    applied: List[AvailabilityOverrideData] = []
    for override in overrides:
        if not override.applies_on(target_date):
            continue

        if override.is_all_day:
            if override.override_type.removes_time:
                windows = []
                applied.append(override)
            # An all-day "available" override adds nothing concrete
            continue

        override_window = _checked_window(override.start_time, override.end_time)
        if override_window is None:
            logger.warning(
                f"Ignoring override {override.id} with malformed time range "
                f"{override.start_time}-{override.end_time}"
            )
            invalid.append({
                "source": "override",
                "override_id": override.id,
                "start": override.start_time,
                "end": override.end_time,
            })
            continue

        applied.append(override)
        if override.override_type.removes_time:
            windows = [
                w for w in windows
                if not overlaps(w.start, w.end, override_window.start, override_window.end)
            ]
        else:
            windows.append(override_window)

    windows.sort(key=lambda w: (w.start, w.end))
    return DayAvailability(
        date=target_date,
        weekday=weekday,
        is_available=len(windows) > 0,
        time_slots=windows,
        overrides=applied,
        invalid_windows=invalid,
    )


class AvailabilityService:
    """
    Service class for availability operations.

    Resolves effective availability and manages the weekly template and the
    overrides that feed it.
    """

    def __init__(self, store: SchedulingStore):
        self.store = store

    async def _require_practitioner(self, tenant_id: int, practitioner_id: int) -> None:
        practitioner = await self.store.get_practitioner(tenant_id, practitioner_id)
        if practitioner is None:
            raise NotFoundError("Practitioner", practitioner_id)

    async def get_effective_availability(
        self,
        tenant_id: int,
        practitioner_id: int,
        target_date: date,
    ) -> DayAvailability:
        """
        Get the open time windows for a practitioner on a date.

        Args:
            tenant_id: Tenant ID
            practitioner_id: Practitioner ID
            target_date: Date to resolve

        Returns:
            DayAvailability for the date

        Raises:
            NotFoundError: If the practitioner does not exist in the tenant
        """
        await self._require_practitioner(tenant_id, practitioner_id)
        template = await self.store.get_weekly_template(tenant_id, practitioner_id)
        overrides = await self.store.get_overrides(tenant_id, practitioner_id, target_date, target_date)
        return resolve_day(target_date, template, overrides)

    async def get_availability_range(
        self,
        tenant_id: int,
        practitioner_id: int,
        start_date: date,
        end_date: date,
    ) -> List[DayAvailability]:
        """
        Get effective availability for every date in [start_date, end_date].

        The template and overrides are fetched once for the whole range.

        Raises:
            ValidationError: If the range is inverted or too long
            NotFoundError: If the practitioner does not exist in the tenant
        """
        validate_date_range(start_date, end_date)
        await self._require_practitioner(tenant_id, practitioner_id)
        template = await self.store.get_weekly_template(tenant_id, practitioner_id)
        overrides = await self.store.get_overrides(tenant_id, practitioner_id, start_date, end_date)
        return [resolve_day(d, template, overrides) for d in iter_dates(start_date, end_date)]

    async def is_practitioner_available(
        self,
        tenant_id: int,
        practitioner_id: int,
        target_date: date,
        start_time: str,
        end_time: str,
    ) -> bool:
        """
        Check whether [start_time, end_time) fits inside one effective window.

        Existing bookings are not considered; that is the conflict detector's job.
        """
        requested = TimeWindow.parse(start_time, end_time)
        day = await self.get_effective_availability(tenant_id, practitioner_id, target_date)
        return any(
            window_contains(w.start, w.end, requested.start, requested.end)
            for w in day.time_slots
        )

    async def update_weekly_template(
        self,
        tenant_id: int,
        practitioner_id: int,
        template: WeeklyAvailabilityTemplate,
    ) -> WeeklyAvailabilityTemplate:
        """
        Replace a practitioner's weekly template.

        Every window is validated and normalized; windows on the same day may
        not overlap each other.

        Raises:
            ValidationError: If a window is malformed or overlaps another
            NotFoundError: If the practitioner does not exist in the tenant
        """
        cleaned: Dict[Weekday, List[TimeWindow]] = {}
        for weekday, day_windows in template.windows.items():
            day = Weekday.parse(weekday)
            parsed = sorted(
                (TimeWindow.parse(w.start, w.end) for w in day_windows),
                key=lambda w: w.start,
            )
            for previous, current in zip(parsed, parsed[1:]):
                if overlaps(previous.start, previous.end, current.start, current.end):
                    raise ValidationError(
                        f"Overlapping windows on {day.key}: "
                        f"{previous.start}-{previous.end} and {current.start}-{current.end}"
                    )
            if parsed:
                cleaned[day] = parsed

        await self._require_practitioner(tenant_id, practitioner_id)
        result = WeeklyAvailabilityTemplate(windows=cleaned)
        await self.store.save_weekly_template(tenant_id, practitioner_id, result)
        logger.info(f"Updated weekly template for practitioner {practitioner_id} (tenant {tenant_id})")
        return result

    async def create_override(
        self,
        tenant_id: int,
        practitioner_id: int,
        start_date: date,
        end_date: date,
        override_type: OverrideType,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
        recurrence: OverrideRecurrence = OverrideRecurrence.NONE,
        recurring_weekdays: Sequence[Weekday] = (),
        reason: Optional[str] = None,
    ) -> AvailabilityOverrideData:
        """
        Create a date-ranged availability override.

        Args:
            start_time/end_time: Both set for a partial-day override, both None for all day

        Raises:
            ValidationError: If the date or time range is invalid
            NotFoundError: If the practitioner does not exist in the tenant
        """
        if end_date < start_date:
            raise ValidationError(f"Override end date {end_date} is before start date {start_date}")

        time_range: Tuple[Optional[str], Optional[str]] = (None, None)
        if (start_time is None) != (end_time is None):
            raise ValidationError("Override start and end time must be given together")
        if start_time is not None and end_time is not None:
            window = TimeWindow.parse(start_time, end_time)
            time_range = (window.start, window.end)
        elif OverrideType(override_type) is OverrideType.AVAILABLE:
            raise ValidationError("An 'available' override needs a time range")

        recurrence = OverrideRecurrence(recurrence)
        weekdays = frozenset(Weekday.parse(d) for d in recurring_weekdays)
        if weekdays and recurrence not in (OverrideRecurrence.WEEKLY, OverrideRecurrence.BIWEEKLY):
            raise ValidationError("recurring_weekdays is only allowed for weekly and biweekly overrides")

        await self._require_practitioner(tenant_id, practitioner_id)
        override = await self.store.create_override(
            tenant_id,
            AvailabilityOverrideData(
                id=None,
                practitioner_id=practitioner_id,
                start_date=start_date,
                end_date=end_date,
                override_type=OverrideType(override_type),
                start_time=time_range[0],
                end_time=time_range[1],
                recurrence=recurrence,
                recurring_weekdays=weekdays,
                reason=reason,
            ),
        )
        logger.info(
            f"Created {override.override_type.value} override {override.id} for practitioner "
            f"{practitioner_id}: {start_date}..{end_date}"
        )
        return override

    async def delete_override(self, tenant_id: int, override_id: int) -> None:
        """
        Delete an availability override.

        Raises:
            NotFoundError: If the override does not exist in the tenant
        """
        if not await self.store.delete_override(tenant_id, override_id):
            raise NotFoundError("Availability override", override_id)
        logger.info(f"Deleted availability override {override_id} (tenant {tenant_id})")
