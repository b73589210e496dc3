"""
Domain subpackage for contact identity resolution.
"""

from .models import (
    RESOLUTION_ORDER,
    DuplicateIdentityGroup,
    Identity,
    IdentityKind,
    IdentityQuery,
)

__all__ = [
    "RESOLUTION_ORDER",
    "DuplicateIdentityGroup",
    "Identity",
    "IdentityKind",
    "IdentityQuery",
]
