"""
Weekly availability template rows.

A practitioner's template is the set of rows sharing their tenant and
practitioner id: one row per working window, several rows per weekday allowed
(a morning block and an afternoon block, for instance). Times are wall-clock
times at the practitioner's location.
"""

from datetime import time, datetime
from typing import TYPE_CHECKING, Optional
from sqlalchemy import Time, TIMESTAMP, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from core.database import Base
from shared_types.availability import TimeWindow
from utils.datetime_utils import format_time

if TYPE_CHECKING:
    from models.practitioner import Practitioner


class PractitionerAvailability(Base):
    """
    One recurring working window on one weekday.

    Rows are written only by replacing the whole template, so a practitioner
    never sees a half-updated week. Rows are not validated on read: an end
    before its start survives storage and is reported by the resolver.
    """

    __tablename__ = "practitioner_availability"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    tenant_id: Mapped[int] = mapped_column()
    """Owning tenant (practice)."""

    practitioner_id: Mapped[int] = mapped_column(ForeignKey("practitioners.id"))

    day_of_week: Mapped[int] = mapped_column()
    """Weekday number, Monday is 0 and Sunday is 6."""

    start_time: Mapped[time] = mapped_column(Time)
    end_time: Mapped[time] = mapped_column(Time)

    created_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    practitioner: Mapped["Practitioner"] = relationship("Practitioner", back_populates="availability")

    __table_args__ = (
        Index('idx_practitioner_availability_practitioner_day', 'tenant_id', 'practitioner_id', 'day_of_week'),
    )

    def to_window(self) -> TimeWindow:
        """Row as an ``HH:MM`` window, unvalidated."""
        return TimeWindow(format_time(self.start_time), format_time(self.end_time))

    def __repr__(self) -> str:
        return f"<PractitionerAvailability(practitioner_id={self.practitioner_id}, day={self.day_of_week}, {self.start_time}-{self.end_time})>"
