"""
Waitlist entry model.

Represents a client waiting for an opening with a specific practitioner,
optionally restricted to preferred dates and times of day.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import ForeignKey, Index, JSON, String, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from core.database import Base
from utils.datetime_utils import utc_now


class WaitlistEntry(Base):
    """
    Waitlist entry entity.

    Status transitions: waiting -> notified on a slot match, notified ->
    scheduled on confirmation, notified -> waiting on rejection, and
    notified -> expired when the client does not respond in time.
    """

    __tablename__ = "waitlist_entries"

    id: Mapped[int] = mapped_column(primary_key=True)
    """Unique identifier for the entry."""

    tenant_id: Mapped[int] = mapped_column()
    """Owning tenant (practice)."""

    client_id: Mapped[int] = mapped_column()
    """Client waiting for an opening."""

    practitioner_id: Mapped[int] = mapped_column(ForeignKey("practitioners.id"))
    """Practitioner the client wants to see."""

    # Stored as JSON: ["2024-01-15", ...]
    preferred_dates: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    """Acceptable dates (YYYY-MM-DD). NULL or empty means any date."""

    # Stored as JSON: ["09:00", "14:30", ...]
    preferred_times: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    """Acceptable start times of day (HH:MM). NULL or empty means any time."""

    priority: Mapped[str] = mapped_column(String(20), default="standard")
    """'urgent' entries are served before 'standard' ones."""

    status: Mapped[str] = mapped_column(String(20), default="waiting")
    """Valid values: 'waiting', 'notified', 'scheduled', 'expired'."""

    added_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utc_now)
    """When the client joined the waitlist. Ties within a priority are served oldest first."""

    notified_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    """When the client was last told about an opening."""

    created_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index('idx_waitlist_practitioner_status', 'tenant_id', 'practitioner_id', 'status'),
    )

    def __repr__(self) -> str:
        return f"<WaitlistEntry(id={self.id}, client_id={self.client_id}, status={self.status}, priority={self.priority})>"
