"""
Identity resolution service.

Maps raw, user-supplied identifiers to contacts within one tenant: adds
normalized identities, resolves a contact from any mix of identifiers,
surfaces duplicates and merges one contact's identities into another.

Validation runs before any store call. Database failures are re-raised as
StoreError (InsertError for writes that add identities).
"""

from contextlib import contextmanager

from omnicrm.core.errors import InsertError, StoreError
from omnicrm.db.helpers import DatabaseError
from omnicrm.features.identities.domain import (
    DuplicateIdentityGroup,
    Identity,
    IdentityKind,
    IdentityQuery,
)
from omnicrm.features.identities.domain.normalization import normalize_identity
from omnicrm.features.identities.repository.identity_repository import IdentityRepository
from omnicrm.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


@contextmanager
def _store_errors(operation: str, error_cls: type[StoreError] = StoreError):
    try:
        yield
    except DatabaseError as e:
        logger.error(
            "Identity store operation failed",
            operation=operation,
            error=str(e),
            recoverable=e.recoverable,
        )
        raise error_cls(str(e), operation=operation, recoverable=e.recoverable) from e


class IdentityResolver:
    """Tenant-scoped identity bookkeeping on top of IdentityRepository."""

    def __init__(self, repository=IdentityRepository):
        self.repository = repository

    async def add_email(self, user_id: str, contact_id: str, raw_email: str) -> Identity:
        return await self.add_identity(user_id, contact_id, IdentityKind.EMAIL, raw_email)

    async def add_phone(self, user_id: str, contact_id: str, raw_phone: str) -> Identity:
        return await self.add_identity(user_id, contact_id, IdentityKind.PHONE, raw_phone)

    async def add_handle(
        self, user_id: str, contact_id: str, provider: str, raw_handle: str
    ) -> Identity:
        return await self.add_identity(
            user_id, contact_id, IdentityKind.HANDLE, raw_handle, provider
        )

    async def add_provider_id(
        self, user_id: str, contact_id: str, provider: str, provider_id: str
    ) -> Identity:
        return await self.add_identity(
            user_id, contact_id, IdentityKind.PROVIDER_ID, provider_id, provider
        )

    async def add_identity(
        self,
        user_id: str,
        contact_id: str,
        kind: IdentityKind,
        raw_value: str,
        provider: str | None = None,
    ) -> Identity:
        """Normalize, validate and store one identifier for a contact."""
        value = normalize_identity(kind, raw_value, provider)

        with _store_errors(f"add_{kind.value}", InsertError):
            return await self.repository.insert_identity(user_id, contact_id, kind, value, provider)

    async def resolve(self, user_id: str, query: IdentityQuery) -> str | None:
        """
        Resolve a contact id from any supplied identifiers.

        Kinds are tried in RESOLUTION_ORDER with one lookup each; the first
        hit wins. Handles and provider ids are only tried alongside a provider.

        Returns:
            The matching contact id, or None when nothing matches.
        """
        # Normalize everything first so a malformed identifier fails before any lookup
        lookups = []
        for kind, raw in query.supplied().items():
            provider = query.provider if kind.requires_provider else None
            lookups.append((kind, normalize_identity(kind, raw, provider), provider))

        with _store_errors("resolve"):
            for kind, value, provider in lookups:
                contact_id = await self.repository.find_contact_id(user_id, kind, value, provider)
                if contact_id:
                    logger.debug(
                        "Identity resolved",
                        user_id=user_id,
                        contact_id=contact_id,
                        matched_kind=kind.value,
                    )
                    return contact_id

        return None

    async def get_contact_identities(self, user_id: str, contact_id: str) -> list[Identity]:
        with _store_errors("get_contact_identities"):
            return await self.repository.list_for_contact(user_id, contact_id)

    async def find_contacts_by_identity(
        self,
        user_id: str,
        kind: IdentityKind,
        value: str,
        provider: str | None = None,
    ) -> list[str]:
        """All distinct contacts sharing one identifier; the basis for duplicate review."""
        normalized = normalize_identity(kind, value, provider)

        with _store_errors("find_contacts_by_identity"):
            return await self.repository.find_contact_ids(user_id, kind, normalized, provider)

    async def find_duplicate_identities(self, user_id: str) -> list[DuplicateIdentityGroup]:
        with _store_errors("find_duplicate_identities"):
            groups = await self.repository.find_duplicates(user_id)

        if groups:
            logger.info("Duplicate identities detected", user_id=user_id, group_count=len(groups))
        return groups

    async def merge_identities(self, user_id: str, from_contact_id: str, to_contact_id: str) -> int:
        """
        Reassign every identity of `from_contact_id` to `to_contact_id`.

        No identity rows are deleted and the source contact itself is left
        alone. Running the merge again moves nothing, so it is idempotent.

        Returns:
            Number of identities moved
        """
        if from_contact_id == to_contact_id:
            return 0

        with _store_errors("merge_identities"):
            moved = await self.repository.reassign_contact(user_id, from_contact_id, to_contact_id)

        logger.info(
            "Contact identities merged",
            user_id=user_id,
            from_contact_id=from_contact_id,
            to_contact_id=to_contact_id,
            moved=moved,
        )
        return moved

    async def remove_identity(self, user_id: str, identity_id: str) -> bool:
        with _store_errors("remove_identity"):
            return await self.repository.delete_identity(user_id, identity_id)

    async def remove_contact_identities(self, user_id: str, contact_id: str) -> int:
        with _store_errors("remove_contact_identities"):
            return await self.repository.delete_for_contact(user_id, contact_id)

    async def get_identity_stats(self, user_id: str) -> dict[str, int]:
        with _store_errors("get_identity_stats"):
            stats = await self.repository.count_by_kind(user_id)
        return {kind: count for kind, count in stats.items() if count > 0}


identity_resolver = IdentityResolver()
