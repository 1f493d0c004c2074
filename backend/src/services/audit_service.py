"""Default audit recorder."""

import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class LoggingAuditRecorder:
    """
    AuditRecorder that writes events to a dedicated logger.

    Audit storage is external; deployments replace this with a recorder that
    persists events.
    """

    async def record(
        self,
        tenant_id: int,
        action: str,
        resource: str,
        resource_id: Optional[int],
        metadata: Dict[str, Any],
    ) -> None:
        logger.info(f"Audit tenant={tenant_id} action={action} resource={resource}:{resource_id} metadata={metadata}")
