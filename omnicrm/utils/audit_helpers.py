"""
Route-level shortcut for the audit trail.

Client details come from request.state, which RequestContextMiddleware fills in.
"""

from typing import Any

from fastapi import Request

from omnicrm.infrastructure.audit.audit_logger import audit_logger


def _client_context(request: Request) -> dict[str, str | None]:
    state = request.state
    return {
        key: getattr(state, key, None) for key in ("ip_address", "user_agent", "request_id")
    }


async def audit_data_modification(
    request: Request,
    user_id: str,
    action: str,
    resource_type: str,
    resource_id: str | None = None,
    resource_count: int | None = None,
    changes: dict[str, Any] | None = None,
) -> bool:
    """Audit an identity write made by the current request."""
    return await audit_logger.log(
        user_id,
        action,
        resource_type=resource_type,
        resource_id=resource_id,
        resource_count=resource_count,
        metadata={"changes": changes} if changes else None,
        **_client_context(request),
    )
