"""
Domain exceptions for the scheduling engine.

Services raise these instead of HTTP errors; the API layer maps them to
status codes.
"""

from typing import TYPE_CHECKING, Any, Dict, List, Optional

if TYPE_CHECKING:
    from shared_types.scheduling import ConflictDetail, OccurrenceConflict


class SchedulingError(Exception):
    """Base exception for scheduling operations."""
    pass


class ValidationError(SchedulingError, ValueError):
    """Raised for malformed dates, times, timezones or rule parameters."""
    pass


class NotFoundError(SchedulingError):
    """Raised when a referenced booking, practitioner or waitlist entry is absent."""

    def __init__(self, resource: str, resource_id: Any, message: Optional[str] = None):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(message or f"{resource} {resource_id} not found")


class ConflictError(SchedulingError):
    """Raised when a requested time range overlaps an active booking."""

    def __init__(self, message: str, conflicts: Optional[List["ConflictDetail"]] = None):
        self.conflicts = list(conflicts or [])
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": str(self),
            "conflicts": [c.to_dict() for c in self.conflicts],
        }


class RecurringConflictError(ConflictError):
    """
    Raised when one or more occurrences of a recurring series conflict.

    Carries every conflicting date with its conflicts so the caller can show
    the complete picture instead of the first failure only.
    """

    def __init__(self, occurrence_conflicts: List["OccurrenceConflict"]):
        self.occurrence_conflicts = list(occurrence_conflicts)
        details = "; ".join(
            f"{oc.date.isoformat()}: {', '.join(c.reason for c in oc.conflicts)}"
            for oc in self.occurrence_conflicts
        )
        flattened = [c for oc in self.occurrence_conflicts for c in oc.conflicts]
        super().__init__(
            f"Cannot create recurring appointments. Conflicts found: {details}",
            flattened,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": str(self),
            "occurrences": [oc.to_dict() for oc in self.occurrence_conflicts],
        }
