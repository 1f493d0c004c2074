"""
Notification message building and the default notification sender.

Delivery (email, SMS) belongs to an external transport. The default sender
only logs, so the engine runs end to end without one.
"""

import logging
from datetime import date
from typing import Any, Dict

from core.config import WAITLIST_NOTIFICATION_TTL_HOURS
from utils.datetime_utils import format_date

logger = logging.getLogger(__name__)


def build_waitlist_message(practitioner_name: str, slot_date: date, start_time: str, end_time: str) -> str:
    """Build the message telling a waitlisted client about an opening."""
    return (
        f"A slot with {practitioner_name} is available on {format_date(slot_date)} "
        f"from {start_time} to {end_time}. Please respond within "
        f"{WAITLIST_NOTIFICATION_TTL_HOURS} hours to secure this appointment."
    )


class LoggingNotificationSender:
    """NotificationSender that writes notifications to the log."""

    async def notify(self, client_id: int, message: str, metadata: Dict[str, Any]) -> None:
        logger.info(f"Notification for client {client_id}: {message} ({metadata})")
