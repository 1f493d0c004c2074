"""
Availability override model representing date-specific schedule changes.

Overrides either remove time from the weekly template (time off, blocked
periods such as trainings) or add special hours outside it. They are created
and deleted independently of the template and only take effect inside their
date range.
"""

from datetime import date, datetime, time
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Date, ForeignKey, Index, JSON, String, TIMESTAMP, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from core.constants import MAX_REASON_LENGTH
from core.database import Base

if TYPE_CHECKING:
    from models.practitioner import Practitioner


class AvailabilityOverride(Base):
    """
    Date-ranged exception to a practitioner's weekly availability.

    Multiple overrides per day are allowed, and they are applied in creation
    (id) order.
    """

    __tablename__ = "availability_overrides"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the override."""

    tenant_id: Mapped[int] = mapped_column()
    """Owning tenant (practice)."""

    practitioner_id: Mapped[int] = mapped_column(ForeignKey("practitioners.id"))
    """Practitioner whose availability is changed."""

    override_type: Mapped[str] = mapped_column(String(20))
    """Valid values: 'available', 'unavailable', 'blocked', 'time_off'."""

    start_date: Mapped[date] = mapped_column(Date)
    """First date of the range (inclusive)."""

    end_date: Mapped[date] = mapped_column(Date)
    """Last date of the range (inclusive)."""

    start_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    """Start of the affected time range. NULL together with end_time means all day."""

    end_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    """End of the affected time range."""

    recurrence: Mapped[str] = mapped_column(String(20), default="none", nullable=False)
    """Which dates in the range are affected: 'none', 'weekly', 'biweekly' or 'monthly'."""

    recurring_weekdays: Mapped[Optional[List[int]]] = mapped_column(JSON, nullable=True)
    """Weekdays (0=Monday) for weekly/biweekly recurrence."""

    reason: Mapped[Optional[str]] = mapped_column(String(MAX_REASON_LENGTH), nullable=True)
    """Optional free-text reason (e.g., 'Vacation')."""

    created_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    practitioner: Mapped["Practitioner"] = relationship("Practitioner", back_populates="overrides")

    __table_args__ = (
        Index('idx_availability_overrides_range', 'tenant_id', 'practitioner_id', 'start_date', 'end_date'),
    )

    @property
    def is_all_day(self) -> bool:
        """Check if this override covers the whole day."""
        return self.start_time is None or self.end_time is None

    def __repr__(self) -> str:
        return f"<AvailabilityOverride(id={self.id}, type={self.override_type}, {self.start_date}..{self.end_date})>"
