"""
Booking model representing a scheduled therapy session.

A recurring series is stored as one parent booking that holds the recurrence
rule plus one child booking per generated occurrence. Children are ordinary
bookings for conflict and cancellation purposes.
"""

from datetime import date as date_type, datetime, time
from typing import Any, Dict, List, Optional

from sqlalchemy import Boolean, Date, ForeignKey, Index, JSON, String, TIMESTAMP, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from core.constants import MAX_NOTES_LENGTH, MAX_REASON_LENGTH
from core.database import Base


class Booking(Base):
    """
    Booking entity: one session between a client and a practitioner.

    Only bookings whose status is active (scheduled, confirmed, checked_in,
    in_progress) occupy the practitioner's calendar.
    """

    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the booking."""

    tenant_id: Mapped[int] = mapped_column()
    """Owning tenant (practice)."""

    practitioner_id: Mapped[int] = mapped_column(ForeignKey("practitioners.id"))
    """Practitioner running the session."""

    client_id: Mapped[int] = mapped_column()
    """Client attending the session. Client records live outside scheduling."""

    location_id: Mapped[Optional[int]] = mapped_column(ForeignKey("locations.id"), nullable=True)
    """Location of the session, if in person."""

    date: Mapped[date_type] = mapped_column(Date)
    """Local calendar date of the session."""

    start_time: Mapped[time] = mapped_column(Time)
    """Local start time."""

    end_time: Mapped[time] = mapped_column(Time)
    """Local end time (exclusive)."""

    status: Mapped[str] = mapped_column(String(20), default="scheduled")
    """
    Current status. Valid values: 'scheduled', 'confirmed', 'checked_in',
    'in_progress', 'completed', 'cancelled', 'no_show'.
    """

    appointment_type: Mapped[str] = mapped_column(String(50), default="session")
    """Kind of session (e.g., 'session', 'intake')."""

    notes: Mapped[Optional[str]] = mapped_column(String(MAX_NOTES_LENGTH), nullable=True)
    """Optional scheduling notes."""

    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    """True only on the parent of a recurring series."""

    recurrence_rule: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    """Serialized RecurrenceRule, stored on the series parent."""

    parent_booking_id: Mapped[Optional[int]] = mapped_column(ForeignKey("bookings.id"), nullable=True)
    """Series parent, set on every child occurrence."""

    cancelled_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    """Timestamp when the booking was cancelled (if applicable)."""

    cancellation_reason: Mapped[Optional[str]] = mapped_column(String(MAX_REASON_LENGTH), nullable=True)
    cancellation_note: Mapped[Optional[str]] = mapped_column(String(MAX_NOTES_LENGTH), nullable=True)

    created_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    parent: Mapped[Optional["Booking"]] = relationship(
        "Booking", remote_side=[id], back_populates="children"
    )
    children: Mapped[List["Booking"]] = relationship("Booking", back_populates="parent")

    # Table indexes for performance
    __table_args__ = (
        # Conflict checks: active bookings for one practitioner on one date
        Index('idx_bookings_practitioner_date_status', 'tenant_id', 'practitioner_id', 'date', 'status'),
        Index('idx_bookings_parent', 'parent_booking_id'),
        Index('idx_bookings_client', 'tenant_id', 'client_id'),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, practitioner_id={self.practitioner_id}, date={self.date}, {self.start_time}-{self.end_time}, status={self.status})>"
