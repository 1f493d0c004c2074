"""
Unit tests for single-booking operations.

Covers create, cancel, reschedule and in-place time updates, each guarded by
the conflict detector.
"""

import pytest
from datetime import date

from core.constants import RESCHEDULE_CANCELLATION_REASON
from core.exceptions import ConflictError, NotFoundError, ValidationError
from services.booking_service import BookingService, validate_booking_request
from shared_types.scheduling import BookingRequest, BookingStatus, RecurrenceFrequency, RecurrenceRule

MONDAY = date(2025, 6, 2)
TUESDAY = date(2025, 6, 3)


def request(start="10:00", end="11:00", booking_date=MONDAY, practitioner_id=1, client_id=200):
    return BookingRequest(
        tenant_id=1,
        practitioner_id=practitioner_id,
        client_id=client_id,
        date=booking_date,
        start_time=start,
        end_time=end,
        location_id=10,
    )


class TestValidateBookingRequest:

    def test_normalizes_times(self):
        validated = validate_booking_request(request("9:00", "10:00:00"))
        assert validated.start_time == "09:00"
        assert validated.end_time == "10:00"

    @pytest.mark.parametrize("start,end", [
        ("10:00", "10:00"),   # zero duration
        ("11:00", "10:00"),   # inverted
        ("10:00", "10:10"),   # below minimum
        ("08:00", "16:30"),   # above maximum
        ("ten", "11:00"),
    ])
    def test_rejects(self, start, end):
        with pytest.raises(ValidationError):
            validate_booking_request(request(start, end))

    def test_bounds_are_inclusive(self):
        validate_booking_request(request("10:00", "10:15"))
        validate_booking_request(request("08:00", "16:00"))


class TestCreateBooking:

    @pytest.mark.asyncio
    async def test_create(self, store):
        booking = await BookingService(store).create_booking(request())

        assert booking.status is BookingStatus.SCHEDULED
        assert booking.start_time == "10:00"
        assert not booking.is_recurring
        assert store.bookings[booking.id].client_id == 200

    @pytest.mark.asyncio
    async def test_conflict_rejected_with_details(self, store):
        existing = store.add_booking(1, 1, MONDAY, "09:00", "10:30")

        with pytest.raises(ConflictError) as exc_info:
            await BookingService(store).create_booking(request("10:00", "11:00"))

        assert [c.booking_id for c in exc_info.value.conflicts] == [existing.id]
        assert exc_info.value.to_dict()["conflicts"][0]["booking_id"] == existing.id
        assert len(store.bookings) == 1

    @pytest.mark.asyncio
    async def test_unknown_practitioner(self, store):
        with pytest.raises(NotFoundError):
            await BookingService(store).create_booking(request(practitioner_id=77))

    @pytest.mark.asyncio
    async def test_child_requires_series_parent(self, store):
        single = store.add_booking(1, 1, TUESDAY, "10:00", "11:00")

        with pytest.raises(NotFoundError):
            await BookingService(store).create_booking(request(), parent_booking_id=9999)
        with pytest.raises(ValidationError):
            await BookingService(store).create_booking(request(), parent_booking_id=single.id)

    @pytest.mark.asyncio
    async def test_parent_stores_rule(self, store):
        rule = RecurrenceRule(frequency=RecurrenceFrequency.WEEKLY, interval=1, end_date=date(2025, 6, 30))

        parent = await BookingService(store).create_booking(request(), recurrence_rule=rule)

        assert parent.is_recurring
        assert parent.recurrence_rule == rule

    @pytest.mark.asyncio
    async def test_skip_conflict_check(self, store):
        store.add_booking(1, 1, MONDAY, "10:00", "11:00")

        booking = await BookingService(store).create_booking(request(), skip_conflict_check=True)

        assert booking.id in store.bookings


class TestCancelBooking:

    @pytest.mark.asyncio
    async def test_cancel(self, store):
        booking = store.add_booking(1, 1, MONDAY, "10:00", "11:00")

        cancelled = await BookingService(store).cancel_booking(1, booking.id, "client request", "Moving away")

        assert cancelled.status is BookingStatus.CANCELLED
        assert cancelled.cancelled_at is not None
        assert cancelled.cancellation_reason == "client request"
        assert cancelled.cancellation_note == "Moving away"
        assert store.bookings[booking.id].status is BookingStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_cancel_is_idempotent(self, store):
        booking = store.add_booking(1, 1, MONDAY, "10:00", "11:00")
        service = BookingService(store)

        first = await service.cancel_booking(1, booking.id, "client request")
        second = await service.cancel_booking(1, booking.id, "again")

        assert second.cancellation_reason == "client request"
        assert second.cancelled_at == first.cancelled_at

    @pytest.mark.asyncio
    async def test_completed_booking_cannot_be_cancelled(self, store):
        booking = store.add_booking(1, 1, MONDAY, "10:00", "11:00", status=BookingStatus.COMPLETED)

        with pytest.raises(ValidationError):
            await BookingService(store).cancel_booking(1, booking.id, "oops")

    @pytest.mark.asyncio
    async def test_cancel_frees_the_slot(self, store):
        booking = store.add_booking(1, 1, MONDAY, "10:00", "11:00")
        service = BookingService(store)

        await service.cancel_booking(1, booking.id, "client request")
        replacement = await service.create_booking(request("10:00", "11:00"))

        assert replacement.status is BookingStatus.SCHEDULED

    @pytest.mark.asyncio
    async def test_cancel_other_tenant(self, store):
        booking = store.add_booking(1, 1, MONDAY, "10:00", "11:00")

        with pytest.raises(NotFoundError):
            await BookingService(store).cancel_booking(2, booking.id, "client request")


class TestRescheduleBooking:

    @pytest.mark.asyncio
    async def test_reschedule_cancels_old_and_creates_new(self, store):
        old = store.add_booking(1, 1, MONDAY, "10:00", "11:00")

        new = await BookingService(store).reschedule_booking(1, old.id, TUESDAY, "14:00", "15:00")

        assert new.id != old.id
        assert new.date == TUESDAY
        assert new.start_time == "14:00"
        assert new.status is BookingStatus.SCHEDULED
        assert store.bookings[old.id].status is BookingStatus.CANCELLED
        assert store.bookings[old.id].cancellation_reason == RESCHEDULE_CANCELLATION_REASON

    @pytest.mark.asyncio
    async def test_shift_overlapping_itself_allowed(self, store):
        old = store.add_booking(1, 1, MONDAY, "10:00", "11:00")

        new = await BookingService(store).reschedule_booking(1, old.id, MONDAY, "10:30", "11:30")

        assert new.start_time == "10:30"

    @pytest.mark.asyncio
    async def test_conflict_keeps_old_booking(self, store):
        old = store.add_booking(1, 1, MONDAY, "10:00", "11:00")
        store.add_booking(1, 1, TUESDAY, "14:00", "15:00", client_id=300)

        with pytest.raises(ConflictError):
            await BookingService(store).reschedule_booking(1, old.id, TUESDAY, "14:30", "15:30")

        assert store.bookings[old.id].status is BookingStatus.SCHEDULED
        assert len(store.bookings) == 2

    @pytest.mark.asyncio
    async def test_failed_replacement_keeps_old_booking(self, store):
        old = store.add_booking(1, 1, MONDAY, "10:00", "11:00")
        store.fail_booking_dates.add(TUESDAY)

        with pytest.raises(RuntimeError):
            await BookingService(store).reschedule_booking(1, old.id, TUESDAY, "14:00", "15:00")

        assert store.bookings[old.id].status is BookingStatus.SCHEDULED
        assert list(store.bookings) == [old.id]

    @pytest.mark.asyncio
    async def test_reschedule_wraps_replacement_in_booking_transaction(self, store):
        old = store.add_booking(1, 1, MONDAY, "10:00", "11:00")

        await BookingService(store).reschedule_booking(1, old.id, TUESDAY, "14:00", "15:00")

        # Outer transaction plus the nested one opened by create_booking
        assert store.calls["booking_transaction"] == 2

    @pytest.mark.asyncio
    async def test_reschedule_keeps_series_membership(self, store):
        service = BookingService(store)
        rule = RecurrenceRule(frequency=RecurrenceFrequency.WEEKLY, interval=1, end_date=date(2025, 6, 30))
        parent = await service.create_booking(request(), recurrence_rule=rule)
        child = await service.create_booking(request(booking_date=date(2025, 6, 9)), parent_booking_id=parent.id)

        moved = await service.reschedule_booking(1, child.id, date(2025, 6, 10), "10:00", "11:00")

        assert moved.parent_booking_id == parent.id

    @pytest.mark.asyncio
    async def test_cancelled_booking_cannot_be_rescheduled(self, store):
        old = store.add_booking(1, 1, MONDAY, "10:00", "11:00", status=BookingStatus.CANCELLED)

        with pytest.raises(ValidationError):
            await BookingService(store).reschedule_booking(1, old.id, TUESDAY, "10:00", "11:00")


class TestUpdateBookingTime:

    @pytest.mark.asyncio
    async def test_update_in_place(self, store):
        booking = store.add_booking(1, 1, MONDAY, "10:00", "11:00")

        updated = await BookingService(store).update_booking_time(1, booking.id, MONDAY, "10:30", "11:30")

        assert updated.id == booking.id
        assert (updated.start_time, updated.end_time) == ("10:30", "11:30")
        assert len(store.bookings) == 1

    @pytest.mark.asyncio
    async def test_update_into_conflict(self, store):
        booking = store.add_booking(1, 1, MONDAY, "10:00", "11:00")
        store.add_booking(1, 1, MONDAY, "12:00", "13:00", client_id=300)

        with pytest.raises(ConflictError):
            await BookingService(store).update_booking_time(1, booking.id, MONDAY, "11:30", "12:30")

        assert store.bookings[booking.id].start_time == "10:00"
