"""
Waitlist service for matching freed slots to waiting clients.

Called synchronously by whoever frees a slot (cancellation, reschedule). There
is no background scheduler; stale notifications are expired on request.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Sequence

from core.config import WAITLIST_NOTIFICATION_TTL_HOURS
from core.exceptions import NotFoundError, ValidationError
from services.collaborators import NotificationSender, SchedulingStore
from services.notification_service import LoggingNotificationSender, build_waitlist_message
from services.slot_service import SlotService
from shared_types.availability import SlotData
from shared_types.scheduling import WaitlistEntryData, WaitlistPriority, WaitlistStatus
from utils.datetime_utils import ensure_date, format_date, utc_now
from utils.interval_utils import normalize_time_string

logger = logging.getLogger(__name__)


def find_matching_slot(
    entry: WaitlistEntryData,
    target_date: date,
    slots: Sequence[SlotData],
) -> Optional[SlotData]:
    """
    Find the first slot that satisfies an entry's preferences.

    A missing preference matches anything. A preferred time matches a slot
    that contains it (slot start <= time < slot end).
    """
    if entry.preferred_dates and target_date not in entry.preferred_dates:
        return None
    if not entry.preferred_times:
        return slots[0] if slots else None

    for slot in slots:
        for preferred in entry.preferred_times:
            if slot.start_time <= preferred < slot.end_time:
                return slot
    return None


def order_waiting_entries(entries: Iterable[WaitlistEntryData]) -> List[WaitlistEntryData]:
    """Urgent entries first, then oldest first."""
    return sorted(entries, key=lambda e: (e.priority.rank, e.added_at, e.id))


class WaitlistService:
    """Service class for waitlist operations."""

    def __init__(
        self,
        store: SchedulingStore,
        slot_service: Optional[SlotService] = None,
        notification_sender: Optional[NotificationSender] = None,
    ):
        self.store = store
        self.slot_service = slot_service or SlotService(store)
        self.notification_sender = notification_sender or LoggingNotificationSender()

    async def add_to_waitlist(
        self,
        tenant_id: int,
        client_id: int,
        practitioner_id: int,
        preferred_dates: Optional[Iterable[date]] = None,
        preferred_times: Optional[Iterable[str]] = None,
        priority: WaitlistPriority = WaitlistPriority.STANDARD,
    ) -> WaitlistEntryData:
        """
        Put a client on a practitioner's waitlist.

        Args:
            preferred_dates: Acceptable dates; None or empty means any
            preferred_times: Acceptable times of day (HH:MM); None or empty means any
            priority: 'urgent' entries are served first

        Returns:
            The new entry, in 'waiting' status

        Raises:
            ValidationError: If a date, time or priority is malformed
            NotFoundError: If the practitioner does not exist in the tenant
        """
        dates = sorted({ensure_date(d) for d in (preferred_dates or [])})
        times = sorted({normalize_time_string(t) for t in (preferred_times or [])})
        try:
            priority = WaitlistPriority(priority)
        except ValueError:
            raise ValidationError(f"Invalid waitlist priority: {priority}")

        practitioner = await self.store.get_practitioner(tenant_id, practitioner_id)
        if practitioner is None:
            raise NotFoundError("Practitioner", practitioner_id)

        entry = await self.store.create_waitlist_entry(
            tenant_id, client_id, practitioner_id, dates, times, priority
        )
        logger.info(
            f"Added client {client_id} to waitlist for practitioner {practitioner_id} "
            f"(entry {entry.id}, priority {priority.value})"
        )
        return entry

    async def process_waitlist(
        self,
        tenant_id: int,
        practitioner_id: int,
        target_date: date,
    ) -> Optional[WaitlistEntryData]:
        """
        Notify the next eligible waiting client about a free slot on a date.

        At most one entry is notified per call.

        Returns:
            The notified entry, or None when nobody waits, nothing is free or
            no entry's preferences match
        """
        entries = await self.store.get_waiting_entries(tenant_id, practitioner_id)
        if not entries:
            return None

        slots = await self.slot_service.get_available_slots(tenant_id, practitioner_id, target_date)
        if not slots:
            logger.debug(f"No free slots for practitioner {practitioner_id} on {target_date}, waitlist untouched")
            return None

        for entry in order_waiting_entries(entries):
            slot = find_matching_slot(entry, target_date, slots)
            if slot is None:
                continue

            entry.status = WaitlistStatus.NOTIFIED
            entry.notified_at = utc_now()
            updated = await self.store.update_waitlist_entry(entry)
            logger.info(
                f"Waitlist entry {entry.id} notified for practitioner {practitioner_id} "
                f"on {target_date} {slot.start_time}-{slot.end_time}"
            )
            await self._send_notification(updated, target_date, slot)
            return updated

        return None

    async def _send_notification(self, entry: WaitlistEntryData, target_date: date, slot: SlotData) -> None:
        message = build_waitlist_message(slot.practitioner_name, target_date, slot.start_time, slot.end_time)
        try:
            await self.notification_sender.notify(
                entry.client_id,
                message,
                {
                    "type": "waitlist_slot_available",
                    "waitlist_entry_id": entry.id,
                    "practitioner_id": entry.practitioner_id,
                    "date": format_date(target_date),
                    "start_time": slot.start_time,
                    "end_time": slot.end_time,
                },
            )
        except Exception as e:
            # Entry stays notified
            logger.warning(f"Failed to send waitlist notification for entry {entry.id}: {e}")

    async def _get_notified_entry(self, tenant_id: int, entry_id: int) -> WaitlistEntryData:
        entry = await self.store.get_waitlist_entry(tenant_id, entry_id)
        if entry is None or entry.status is not WaitlistStatus.NOTIFIED:
            raise NotFoundError(
                "Waitlist entry", entry_id, f"Notification {entry_id} not found or already processed"
            )
        return entry

    async def accept_notification(self, tenant_id: int, entry_id: int) -> WaitlistEntryData:
        """
        Mark a notified entry as scheduled.

        Raises:
            NotFoundError: If the entry does not exist or is not in 'notified' status
        """
        entry = await self._get_notified_entry(tenant_id, entry_id)
        entry.status = WaitlistStatus.SCHEDULED
        updated = await self.store.update_waitlist_entry(entry)
        logger.info(f"Waitlist entry {entry_id} accepted")
        return updated

    async def reject_notification(self, tenant_id: int, entry_id: int) -> WaitlistEntryData:
        """
        Put a notified entry back in line.

        Raises:
            NotFoundError: If the entry does not exist or is not in 'notified' status
        """
        entry = await self._get_notified_entry(tenant_id, entry_id)
        entry.status = WaitlistStatus.WAITING
        entry.notified_at = None
        updated = await self.store.update_waitlist_entry(entry)
        logger.info(f"Waitlist entry {entry_id} rejected, back to waiting")
        return updated

    async def expire_stale_notifications(
        self,
        tenant_id: int,
        older_than: Optional[datetime] = None,
    ) -> List[WaitlistEntryData]:
        """
        Expire notified entries the client never answered.

        Args:
            older_than: Cutoff for notified_at; defaults to now minus
                WAITLIST_NOTIFICATION_TTL_HOURS

        Returns:
            The entries that were expired
        """
        cutoff = older_than or utc_now() - timedelta(hours=WAITLIST_NOTIFICATION_TTL_HOURS)
        expired: List[WaitlistEntryData] = []
        for entry in await self.store.get_notified_entries(tenant_id, cutoff):
            entry.status = WaitlistStatus.EXPIRED
            expired.append(await self.store.update_waitlist_entry(entry))

        if expired:
            logger.info(f"Expired {len(expired)} stale waitlist notification(s) for tenant {tenant_id}")
        return expired
