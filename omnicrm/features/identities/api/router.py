"""
Contact identity routes.

Thin HTTP layer over IdentityResolver: the tenant is the JWT subject,
validation failures map to 422 and store failures to 503 (retryable) or 500.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status

from omnicrm.auth.verify import current_user_id
from omnicrm.core.errors import StoreError, ValidationError
from omnicrm.features.identities.domain import Identity, IdentityKind, IdentityQuery
from omnicrm.features.identities.services.identity_resolver import identity_resolver
from omnicrm.infrastructure.observability.logging import get_logger
from omnicrm.models.api.identity_request import (
    AddIdentityRequest,
    MergeIdentitiesRequest,
    ResolveIdentityRequest,
)
from omnicrm.models.api.identity_response import (
    ContactIdentitiesResponse,
    ContactLookupResponse,
    DuplicateIdentityResponse,
    DuplicatesListResponse,
    IdentityResponse,
    IdentityStatsResponse,
    MergeIdentitiesResponse,
    RemovedIdentitiesResponse,
    ResolveIdentityResponse,
)
from omnicrm.utils.audit_helpers import audit_data_modification

logger = get_logger(__name__)

router = APIRouter(prefix="/identities", tags=["identities"])


def _http_error(e: Exception, user_id: str, action: str) -> HTTPException:
    if isinstance(e, ValidationError):
        return HTTPException(status_code=422, detail=str(e))

    logger.error(
        "Identity request failed",
        user_id=user_id,
        action=action,
        error=str(e),
        error_type=type(e).__name__,
    )
    if isinstance(e, StoreError) and e.recoverable:
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Identity store temporarily unavailable",
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to {action}"
    )


def _to_response(identity: Identity) -> IdentityResponse:
    return IdentityResponse(
        id=identity.id,
        contact_id=identity.contact_id,
        kind=identity.kind.value,
        value=identity.value,
        provider=identity.provider,
        created_at=identity.created_at,
    )


@router.post(
    "/contacts/{contact_id}",
    response_model=IdentityResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_identity(
    contact_id: str, payload: AddIdentityRequest, user_id: str = Depends(current_user_id)
):
    """Attach a normalized identifier to a contact."""
    try:
        identity = await identity_resolver.add_identity(
            user_id, contact_id, payload.kind, payload.value, payload.provider
        )
    except (ValidationError, StoreError) as e:
        raise _http_error(e, user_id, "add identity") from e

    return _to_response(identity)


@router.get("/contacts/{contact_id}", response_model=ContactIdentitiesResponse)
async def list_contact_identities(contact_id: str, user_id: str = Depends(current_user_id)):
    try:
        identities = await identity_resolver.get_contact_identities(user_id, contact_id)
    except StoreError as e:
        raise _http_error(e, user_id, "list identities") from e

    return ContactIdentitiesResponse(
        contact_id=contact_id,
        identities=[_to_response(identity) for identity in identities],
    )


@router.delete("/contacts/{contact_id}", response_model=RemovedIdentitiesResponse)
async def remove_contact_identities(
    request: Request, contact_id: str, user_id: str = Depends(current_user_id)
):
    try:
        removed = await identity_resolver.remove_contact_identities(user_id, contact_id)
    except StoreError as e:
        raise _http_error(e, user_id, "remove identities") from e

    await audit_data_modification(
        request=request,
        user_id=user_id,
        action="contact_identities_removed",
        resource_type="contact_identities",
        resource_id=contact_id,
        resource_count=removed,
    )
    return RemovedIdentitiesResponse(contact_id=contact_id, removed=removed)


@router.post("/resolve", response_model=ResolveIdentityResponse)
async def resolve_identity(
    payload: ResolveIdentityRequest, user_id: str = Depends(current_user_id)
):
    """Resolve a contact from any mix of email, phone, handle and provider id."""
    query = IdentityQuery(
        email=payload.email,
        phone=payload.phone,
        handle=payload.handle,
        provider=payload.provider,
        provider_id=payload.provider_id,
    )
    try:
        contact_id = await identity_resolver.resolve(user_id, query)
    except (ValidationError, StoreError) as e:
        raise _http_error(e, user_id, "resolve identity") from e

    return ResolveIdentityResponse(contact_id=contact_id)


@router.get("/lookup", response_model=ContactLookupResponse)
async def lookup_contacts(
    kind: IdentityKind = Query(..., description="Identifier kind"),
    value: str = Query(..., min_length=1, description="Raw identifier value"),
    provider: str | None = Query(default=None, description="Provider for handle / provider_id"),
    user_id: str = Depends(current_user_id),
):
    """Every contact sharing one identifier."""
    try:
        contact_ids = await identity_resolver.find_contacts_by_identity(
            user_id, kind, value, provider
        )
    except (ValidationError, StoreError) as e:
        raise _http_error(e, user_id, "look up contacts") from e

    return ContactLookupResponse(contact_ids=contact_ids)


@router.get("/duplicates", response_model=DuplicatesListResponse)
async def list_duplicate_identities(user_id: str = Depends(current_user_id)):
    """Identifiers shared by more than one contact, for manual review."""
    try:
        groups = await identity_resolver.find_duplicate_identities(user_id)
    except StoreError as e:
        raise _http_error(e, user_id, "find duplicates") from e

    return DuplicatesListResponse(
        duplicates=[DuplicateIdentityResponse(**group.to_dict()) for group in groups],
        total_count=len(groups),
    )


@router.post("/merge", response_model=MergeIdentitiesResponse)
async def merge_identities(
    request: Request, payload: MergeIdentitiesRequest, user_id: str = Depends(current_user_id)
):
    try:
        moved = await identity_resolver.merge_identities(
            user_id, payload.from_contact_id, payload.to_contact_id
        )
    except StoreError as e:
        raise _http_error(e, user_id, "merge identities") from e

    await audit_data_modification(
        request=request,
        user_id=user_id,
        action="identities_merged",
        resource_type="contact_identities",
        resource_id=payload.to_contact_id,
        resource_count=moved,
        changes={"from_contact_id": payload.from_contact_id},
    )
    return MergeIdentitiesResponse(
        from_contact_id=payload.from_contact_id,
        to_contact_id=payload.to_contact_id,
        moved=moved,
    )


@router.get("/stats", response_model=IdentityStatsResponse)
async def identity_stats(user_id: str = Depends(current_user_id)):
    try:
        stats = await identity_resolver.get_identity_stats(user_id)
    except StoreError as e:
        raise _http_error(e, user_id, "load identity stats") from e

    return IdentityStatsResponse(stats=stats, total=sum(stats.values()))


@router.delete("/{identity_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_identity(
    request: Request, identity_id: str, user_id: str = Depends(current_user_id)
):
    try:
        removed = await identity_resolver.remove_identity(user_id, identity_id)
    except StoreError as e:
        raise _http_error(e, user_id, "remove identity") from e

    if not removed:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Identity not found")

    await audit_data_modification(
        request=request,
        user_id=user_id,
        action="identity_removed",
        resource_type="contact_identities",
        resource_id=identity_id,
        resource_count=1,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
