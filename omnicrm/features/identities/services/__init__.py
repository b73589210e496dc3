"""
Service layer for contact identity resolution.
"""

from .identity_resolver import IdentityResolver, identity_resolver

__all__ = ["IdentityResolver", "identity_resolver"]
