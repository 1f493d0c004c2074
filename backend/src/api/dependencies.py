# pyright: reportMissingTypeStubs=false
"""
FastAPI dependencies for the scheduling API.

Authentication and authorization happen upstream; by the time a request
reaches this API the tenant has been established and is passed in the
X-Tenant-ID header.
"""

import logging

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from core.constants import TENANT_HEADER
from core.database import get_db
from core.exceptions import (
    ConflictError,
    NotFoundError,
    SchedulingError,
    ValidationError,
)
from services import (
    AvailabilityService,
    BookingService,
    RecurringBookingService,
    SlotService,
    SqlSchedulingStore,
    WaitlistService,
)
from services.audit_service import LoggingAuditRecorder
from services.collaborators import AuditRecorder, NotificationSender, SchedulingStore
from services.conflict_service import ConflictDetector
from services.notification_service import LoggingNotificationSender

logger = logging.getLogger(__name__)


def get_tenant_id(x_tenant_id: str = Header(..., alias=TENANT_HEADER)) -> int:
    """Read and validate the tenant ID header."""
    try:
        tenant_id = int(x_tenant_id)
    except ValueError:
        tenant_id = 0
    if tenant_id <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {TENANT_HEADER} header",
        )
    return tenant_id


def get_store(db: Session = Depends(get_db)) -> SchedulingStore:
    """Provide the request-scoped persistence collaborator."""
    return SqlSchedulingStore(db)


def get_notification_sender() -> NotificationSender:
    return LoggingNotificationSender()


def get_audit_recorder() -> AuditRecorder:
    return LoggingAuditRecorder()


def get_availability_service(store: SchedulingStore = Depends(get_store)) -> AvailabilityService:
    return AvailabilityService(store)


def get_slot_service(store: SchedulingStore = Depends(get_store)) -> SlotService:
    return SlotService(store)


def get_conflict_detector(store: SchedulingStore = Depends(get_store)) -> ConflictDetector:
    return ConflictDetector(store)


def get_booking_service(store: SchedulingStore = Depends(get_store)) -> BookingService:
    return BookingService(store)


def get_recurring_booking_service(
    store: SchedulingStore = Depends(get_store),
    audit_recorder: AuditRecorder = Depends(get_audit_recorder),
) -> RecurringBookingService:
    return RecurringBookingService(store, audit_recorder=audit_recorder)


def get_waitlist_service(
    store: SchedulingStore = Depends(get_store),
    notification_sender: NotificationSender = Depends(get_notification_sender),
) -> WaitlistService:
    return WaitlistService(store, notification_sender=notification_sender)


def to_http_exception(exc: SchedulingError) -> HTTPException:
    """
    Map a domain exception to an HTTPException.

    ValidationError -> 400, NotFoundError -> 404, ConflictError -> 409 (with
    conflict details in the body).
    """
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, ConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.to_dict())
    logger.exception(f"Unmapped scheduling error: {exc}")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
