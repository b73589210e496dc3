# omnicrm/models/api/identity_response.py
"""
Identity API response models.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class IdentityResponse(BaseModel):
    id: str
    contact_id: str
    kind: str
    value: str
    provider: str | None = None
    created_at: datetime


class ContactIdentitiesResponse(BaseModel):
    contact_id: str
    identities: list[IdentityResponse]


class ResolveIdentityResponse(BaseModel):
    contact_id: str | None = Field(None, description="Matched contact, null when nothing matches")


class ContactLookupResponse(BaseModel):
    contact_ids: list[str]


class DuplicateIdentityResponse(BaseModel):
    kind: str
    value: str
    provider: str | None = None
    contact_ids: list[str]


class DuplicatesListResponse(BaseModel):
    duplicates: list[DuplicateIdentityResponse]
    total_count: int


class MergeIdentitiesResponse(BaseModel):
    from_contact_id: str
    to_contact_id: str
    moved: int = Field(..., description="Number of identities reassigned")


class RemovedIdentitiesResponse(BaseModel):
    contact_id: str
    removed: int


class IdentityStatsResponse(BaseModel):
    stats: dict[str, int] = Field(..., description="Identity count per kind; empty kinds omitted")
    total: int
