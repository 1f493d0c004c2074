"""
Unit tests for booking conflict detection.
"""

import pytest
from datetime import date

from core.constants import BOOKING_CONFLICT_REASON
from core.exceptions import ValidationError
from services.conflict_service import ConflictDetector, find_conflicts
from shared_types.scheduling import BookingStatus

MONDAY = date(2025, 6, 2)


class TestConflictDetector:

    @pytest.mark.asyncio
    async def test_overlap_is_a_conflict(self, store):
        existing = store.add_booking(1, 1, MONDAY, "09:00", "10:30")

        result = await ConflictDetector(store).check_conflicts(1, 1, MONDAY, "10:00", "11:00")

        assert result.has_conflict
        assert [c.booking_id for c in result.conflicts] == [existing.id]
        assert result.conflicts[0].reason == BOOKING_CONFLICT_REASON
        assert result.conflicts[0].start_time == "09:00"
        assert result.conflicts[0].end_time == "10:30"

    @pytest.mark.asyncio
    async def test_back_to_back_is_not_a_conflict(self, store):
        store.add_booking(1, 1, MONDAY, "09:00", "10:00")

        result = await ConflictDetector(store).check_conflicts(1, 1, MONDAY, "10:00", "11:00")

        assert not result.has_conflict
        assert result.conflicts == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("booking_status", [
        BookingStatus.CANCELLED,
        BookingStatus.COMPLETED,
        BookingStatus.NO_SHOW,
    ])
    async def test_inactive_bookings_never_conflict(self, store, booking_status):
        store.add_booking(1, 1, MONDAY, "09:00", "10:30", status=booking_status)

        result = await ConflictDetector(store).check_conflicts(1, 1, MONDAY, "10:00", "11:00")

        assert not result.has_conflict

    @pytest.mark.asyncio
    async def test_other_practitioner_and_date_ignored(self, store):
        store.add_practitioner(1, 2, "Dr. Chen")
        store.add_booking(1, 2, MONDAY, "10:00", "11:00")
        store.add_booking(1, 1, date(2025, 6, 3), "10:00", "11:00")

        result = await ConflictDetector(store).check_conflicts(1, 1, MONDAY, "10:00", "11:00")

        assert not result.has_conflict

    @pytest.mark.asyncio
    async def test_all_conflicts_listed(self, store):
        store.add_booking(1, 1, MONDAY, "09:00", "10:00")
        store.add_booking(1, 1, MONDAY, "11:00", "12:00")

        result = await ConflictDetector(store).check_conflicts(1, 1, MONDAY, "09:30", "11:30")

        assert len(result.conflicts) == 2

    @pytest.mark.asyncio
    async def test_mixed_precision_times(self, store):
        store.add_booking(1, 1, MONDAY, "09:00", "10:00")

        result = await ConflictDetector(store).check_conflicts(1, 1, MONDAY, "10:00:00", "11:00:00")

        assert not result.has_conflict

    @pytest.mark.asyncio
    async def test_exclude_booking(self, store):
        existing = store.add_booking(1, 1, MONDAY, "09:00", "10:00")

        result = await ConflictDetector(store).check_conflicts(
            1, 1, MONDAY, "09:30", "10:30", exclude_booking_id=existing.id
        )

        assert not result.has_conflict

    @pytest.mark.asyncio
    async def test_malformed_time(self, store):
        with pytest.raises(ValidationError):
            await ConflictDetector(store).check_conflicts(1, 1, MONDAY, "nine", "10:00")

    @pytest.mark.asyncio
    async def test_batch_checks_each_date_once(self, store):
        tuesday = date(2025, 6, 3)
        store.add_booking(1, 1, tuesday, "10:00", "11:00")

        results = await ConflictDetector(store).check_conflicts_batch(
            1, 1, [MONDAY, tuesday, MONDAY], "10:00", "11:00"
        )

        assert list(results) == [MONDAY, tuesday]
        assert not results[MONDAY].has_conflict
        assert results[tuesday].has_conflict
        assert store.calls["get_active_bookings"] == 2


class TestFindConflicts:

    def test_zero_duration_candidate(self, store):
        booking = store.add_booking(1, 1, MONDAY, "09:00", "10:00")
        assert find_conflicts([booking], "09:30", "09:30") == []
