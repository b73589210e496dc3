"""
Audit logging infrastructure for changes to contact identifiers.
"""

from omnicrm.infrastructure.audit.audit_logger import AuditLogger, audit_logger

__all__ = ["AuditLogger", "audit_logger"]
