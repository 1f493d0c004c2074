"""
Location model representing a physical practice site.

Each location carries the IANA timezone that its practitioners' local
schedule times are interpreted in.
"""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String, TIMESTAMP, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from core.constants import MAX_STRING_LENGTH
from core.database import Base

if TYPE_CHECKING:
    from models.practitioner import Practitioner


class Location(Base):
    """Practice location (office) belonging to one tenant."""

    __tablename__ = "locations"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the location."""

    tenant_id: Mapped[int] = mapped_column()
    """Owning tenant (practice)."""

    name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    """Display name of the location."""

    timezone: Mapped[str] = mapped_column(String(64), default="America/New_York")
    """IANA timezone identifier (e.g., 'America/Chicago')."""

    created_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    practitioners: Mapped[List["Practitioner"]] = relationship("Practitioner", back_populates="location")

    __table_args__ = (
        Index('idx_locations_tenant', 'tenant_id'),
    )

    def __repr__(self) -> str:
        return f"<Location(id={self.id}, name='{self.name}', timezone='{self.timezone}')>"
