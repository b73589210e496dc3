"""
Middleware components for request processing.
"""

from omnicrm.middleware.request_context import RequestContextMiddleware

__all__ = ["RequestContextMiddleware"]
