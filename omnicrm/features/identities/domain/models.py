"""
Domain models for contact identity resolution.

Identities are the normalized identifiers (email, phone, social handle,
provider id) that tie raw inbound data back to a contact within one tenant.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from omnicrm.core.errors import ValidationError


class IdentityKind(str, Enum):
    EMAIL = "email"
    PHONE = "phone"
    HANDLE = "handle"
    PROVIDER_ID = "provider_id"

    @property
    def requires_provider(self) -> bool:
        return self in (IdentityKind.HANDLE, IdentityKind.PROVIDER_ID)


# Order in which resolve() tries the supplied identifiers.
RESOLUTION_ORDER: tuple[IdentityKind, ...] = (
    IdentityKind.EMAIL,
    IdentityKind.PHONE,
    IdentityKind.HANDLE,
    IdentityKind.PROVIDER_ID,
)


def check_provider(kind: IdentityKind, provider: str | None) -> None:
    """Provider must be present exactly for handle / provider_id kinds."""
    if kind.requires_provider and not provider:
        raise ValidationError(
            f"provider is required for {kind.value} identities", field="provider"
        )
    if not kind.requires_provider and provider is not None:
        raise ValidationError(
            f"provider is not allowed for {kind.value} identities", field="provider"
        )


@dataclass(slots=True)
class Identity:
    """Represents a contact_identities row."""

    id: str
    user_id: str
    contact_id: str
    kind: IdentityKind
    value: str
    provider: str | None
    created_at: datetime

    def __post_init__(self) -> None:
        check_provider(self.kind, self.provider)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "contact_id": self.contact_id,
            "kind": self.kind.value,
            "value": self.value,
            "provider": self.provider,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(slots=True)
class IdentityQuery:
    """Raw identifiers to resolve; any subset may be supplied."""

    email: str | None = None
    phone: str | None = None
    handle: str | None = None
    provider: str | None = None
    provider_id: str | None = None

    def supplied(self) -> dict[IdentityKind, str]:
        """Raw value per kind, in resolution order, for the identifiers that can be looked up."""
        raw = {
            IdentityKind.EMAIL: self.email,
            IdentityKind.PHONE: self.phone,
            IdentityKind.HANDLE: self.handle if self.provider else None,
            IdentityKind.PROVIDER_ID: self.provider_id if self.provider else None,
        }
        return {kind: raw[kind] for kind in RESOLUTION_ORDER if raw[kind]}


@dataclass(slots=True)
class DuplicateIdentityGroup:
    """One normalized identifier shared by more than one contact."""

    kind: IdentityKind
    value: str
    provider: str | None
    contact_ids: list[str]

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "value": self.value,
            "provider": self.provider,
            "contact_ids": list(self.contact_ids),
        }
