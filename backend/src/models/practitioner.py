"""
Practitioner model representing a therapist whose calendar is scheduled.

Profile details (credentials, specialties, client matching data) live in other
subsystems; this table only holds what scheduling needs.
"""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, ForeignKey, Index, String, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from core.constants import MAX_STRING_LENGTH
from core.database import Base

if TYPE_CHECKING:
    from models.availability_override import AvailabilityOverride
    from models.location import Location
    from models.practitioner_availability import PractitionerAvailability


class Practitioner(Base):
    """
    Practitioner (therapist) entity.

    The practitioner's location decides which timezone their weekly template
    and overrides are expressed in.
    """

    __tablename__ = "practitioners"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the practitioner."""

    tenant_id: Mapped[int] = mapped_column()
    """Owning tenant (practice)."""

    name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    """Display name used in slot listings and waitlist notifications."""

    location_id: Mapped[Optional[int]] = mapped_column(ForeignKey("locations.id"), nullable=True)
    """Primary location. NULL means the tenant default timezone applies."""

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    """Inactive practitioners are invisible to scheduling."""

    created_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    location: Mapped[Optional["Location"]] = relationship("Location", back_populates="practitioners")

    availability: Mapped[List["PractitionerAvailability"]] = relationship(
        "PractitionerAvailability",
        back_populates="practitioner",
        cascade="all, delete-orphan",
        order_by="PractitionerAvailability.start_time",
    )
    """Default weekly schedule (one row per working period)."""

    overrides: Mapped[List["AvailabilityOverride"]] = relationship(
        "AvailabilityOverride",
        back_populates="practitioner",
        cascade="all, delete-orphan",
        order_by="AvailabilityOverride.id",
    )

    __table_args__ = (
        Index('idx_practitioners_tenant', 'tenant_id', 'is_active'),
    )

    def __repr__(self) -> str:
        return f"<Practitioner(id={self.id}, tenant_id={self.tenant_id}, name='{self.name}')>"
