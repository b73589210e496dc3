# omnicrm/models/api/identity_request.py
"""
Identity API request models.
Used by routes for input validation; normalization happens in the service.
"""

from pydantic import BaseModel, Field

from omnicrm.features.identities.domain import IdentityKind


class AddIdentityRequest(BaseModel):
    """Attach one identifier to a contact."""

    kind: IdentityKind = Field(..., description="email, phone, handle or provider_id")
    value: str = Field(..., min_length=1, max_length=320, description="Raw identifier value")
    provider: str | None = Field(
        default=None, max_length=64, description="Required for handle and provider_id"
    )


class ResolveIdentityRequest(BaseModel):
    """Identifiers to resolve to a contact; any subset may be given."""

    email: str | None = Field(default=None, max_length=320)
    phone: str | None = Field(default=None, max_length=64)
    handle: str | None = Field(default=None, max_length=255)
    provider: str | None = Field(default=None, max_length=64)
    provider_id: str | None = Field(default=None, max_length=255)


class MergeIdentitiesRequest(BaseModel):
    """Move all identities of one contact to another."""

    from_contact_id: str = Field(..., min_length=1, description="Contact being merged away")
    to_contact_id: str = Field(..., min_length=1, description="Surviving contact")
