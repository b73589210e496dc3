"""
Error taxonomy shared by the identity and calendar features.

Callers (routers, jobs) catch these and decide user-facing messaging.
Missing rows are not errors here: lookups return None / False instead.
"""


class CrmError(Exception):
    """Base class for failures reported by OmniCRM components."""


class ValidationError(CrmError):
    """Malformed input, detected before any store call is attempted."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class StoreError(CrmError):
    """The row store failed (connectivity, constraint, timeout)."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = False):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


class InsertError(StoreError):
    """An insert was rejected or could not reach the store."""
