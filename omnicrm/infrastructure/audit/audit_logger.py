"""
Audit trail for changes to contact identifiers.

Merging or removing identities changes which patient record an email or
phone number points at. Each such change lands in the audit_logs table and
is echoed to the structured log stream.

    from omnicrm.infrastructure.audit import audit_logger

    await audit_logger.log(user_id, "identities_merged", resource_id="contact-b")

A failed write is logged and reported as False; the request carries on.
"""

import json
from typing import Any
from uuid import UUID

from omnicrm.config import settings
from omnicrm.db.helpers import DatabaseError, execute_query
from omnicrm.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

_AUDIT_COLUMNS = (
    "user_id",
    "action",
    "resource_type",
    "resource_id",
    "resource_count",
    "ip_address",
    "user_agent",
    "request_id",
    "metadata",
)

_INSERT_AUDIT_ROW = "INSERT INTO audit_logs ({}) VALUES ({})".format(
    ", ".join(_AUDIT_COLUMNS), ", ".join(["%s"] * len(_AUDIT_COLUMNS))
)


class AuditLogger:
    @staticmethod
    async def log(
        user_id: str | UUID,
        action: str,
        resource_type: str | None = None,
        resource_id: str | None = None,
        resource_count: int | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        request_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        """
        Record one audit event.

        Args:
            user_id: Tenant that made the change
            action: What happened, e.g. "identities_merged" or "identity_removed"
            metadata: Extra JSON-serializable context, stored as jsonb

        Returns:
            False when the row could not be written, True otherwise
        """
        row = {
            "user_id": str(user_id),
            "action": action,
            "resource_type": resource_type,
            "resource_id": resource_id,
            "resource_count": resource_count,
            "ip_address": ip_address,
            "user_agent": user_agent,
            "request_id": request_id,
            "metadata": json.dumps(metadata or {}),
        }
        summary = {
            "audit_action": action,
            "user_id": row["user_id"],
            "resource_type": resource_type,
            "resource_id": resource_id,
            "resource_count": resource_count,
            "request_id": request_id,
        }
        logger.info("Audit event", **summary)

        if not settings.AUDIT_LOG_ENABLED:
            return True

        try:
            await execute_query(_INSERT_AUDIT_ROW, tuple(row[col] for col in _AUDIT_COLUMNS))
        except DatabaseError as e:
            logger.error(
                "Audit row not written", error=str(e), error_type=type(e).__name__, **summary
            )
            return False
        return True


audit_logger = AuditLogger()
