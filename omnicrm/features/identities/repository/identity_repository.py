"""
Repository helpers for contact identity storage.

Every statement is scoped by user_id; callers pass already-normalized
values. Duplicate (kind, value, provider) rows across contacts are allowed
and surfaced through find_duplicate_identities.
"""

from omnicrm.core.errors import ValidationError
from omnicrm.db.helpers import (
    DatabaseError,
    execute_query,
    fetch_all,
    fetch_one,
    with_db_retry,
)
from omnicrm.features.identities.domain import DuplicateIdentityGroup, Identity, IdentityKind
from omnicrm.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class IdentityRepository:
    """Persistence helpers for contact identities."""

    SELECT_COLUMNS = "id, user_id, contact_id, kind, value, provider, created_at"

    @classmethod
    def _row_to_identity(cls, row: dict) -> Identity:
        """A row that breaks the Identity invariants is a store fault, not caller input."""
        try:
            return Identity(
                id=str(row["id"]),
                user_id=str(row["user_id"]),
                contact_id=str(row["contact_id"]),
                kind=IdentityKind(row["kind"]),
                value=row["value"],
                provider=row.get("provider"),
                created_at=row["created_at"],
            )
        except (ValueError, ValidationError) as e:
            logger.error("Malformed identity row in store", identity_id=str(row["id"]))
            raise DatabaseError(
                f"Stored identity {row['id']} is malformed: {e}",
                operation="read_identity",
                recoverable=False,
            ) from e

    @staticmethod
    def _provider_clause(provider: str | None) -> tuple[str, tuple]:
        if provider is None:
            return "AND provider IS NULL", ()
        return "AND provider = %s", (provider,)

    @classmethod
    async def insert_identity(
        cls,
        user_id: str,
        contact_id: str,
        kind: IdentityKind,
        value: str,
        provider: str | None = None,
    ) -> Identity:
        query = f"""
            INSERT INTO contact_identities (user_id, contact_id, kind, value, provider)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING {cls.SELECT_COLUMNS}
        """
        row = await fetch_one(query, (user_id, contact_id, kind.value, value, provider))
        identity = cls._row_to_identity(row)

        logger.info(
            "Contact identity inserted",
            user_id=user_id,
            contact_id=contact_id,
            identity_id=identity.id,
            kind=kind.value,
        )
        return identity

    @classmethod
    @with_db_retry()
    async def find_contact_id(
        cls,
        user_id: str,
        kind: IdentityKind,
        value: str,
        provider: str | None = None,
    ) -> str | None:
        """First contact owning (kind, value, provider), oldest identity wins."""
        provider_sql, provider_params = cls._provider_clause(provider)
        query = f"""
            SELECT contact_id
            FROM contact_identities
            WHERE user_id = %s
              AND kind = %s
              AND value = %s
              {provider_sql}
            ORDER BY created_at ASC, id ASC
            LIMIT 1
        """
        row = await fetch_one(query, (user_id, kind.value, value, *provider_params))
        return str(row["contact_id"]) if row else None

    @classmethod
    @with_db_retry()
    async def find_contact_ids(
        cls,
        user_id: str,
        kind: IdentityKind,
        value: str,
        provider: str | None = None,
    ) -> list[str]:
        provider_sql, provider_params = cls._provider_clause(provider)
        query = f"""
            SELECT DISTINCT contact_id
            FROM contact_identities
            WHERE user_id = %s
              AND kind = %s
              AND value = %s
              {provider_sql}
            ORDER BY contact_id
        """
        rows = await fetch_all(query, (user_id, kind.value, value, *provider_params))
        return [str(row["contact_id"]) for row in rows]

    @classmethod
    @with_db_retry()
    async def list_for_contact(cls, user_id: str, contact_id: str) -> list[Identity]:
        query = f"""
            SELECT {cls.SELECT_COLUMNS}
            FROM contact_identities
            WHERE user_id = %s AND contact_id = %s
            ORDER BY created_at ASC, id ASC
        """
        rows = await fetch_all(query, (user_id, contact_id))
        return [cls._row_to_identity(row) for row in rows]

    @classmethod
    @with_db_retry()
    async def find_duplicates(cls, user_id: str) -> list[DuplicateIdentityGroup]:
        query = """
            SELECT kind, value, provider,
                   array_agg(DISTINCT contact_id ORDER BY contact_id) AS contact_ids
            FROM contact_identities
            WHERE user_id = %s
            GROUP BY kind, value, provider
            HAVING count(DISTINCT contact_id) > 1
            ORDER BY kind, value
        """
        rows = await fetch_all(query, (user_id,))
        return [
            DuplicateIdentityGroup(
                kind=IdentityKind(row["kind"]),
                value=row["value"],
                provider=row.get("provider"),
                contact_ids=[str(contact_id) for contact_id in row["contact_ids"]],
            )
            for row in rows
        ]

    @classmethod
    async def reassign_contact(cls, user_id: str, from_contact_id: str, to_contact_id: str) -> int:
        """Move every identity of one contact to another in a single statement."""
        query = """
            UPDATE contact_identities
            SET contact_id = %s
            WHERE user_id = %s AND contact_id = %s
        """
        return await execute_query(query, (to_contact_id, user_id, from_contact_id))

    @classmethod
    async def delete_identity(cls, user_id: str, identity_id: str) -> bool:
        query = """
            DELETE FROM contact_identities
            WHERE id = %s AND user_id = %s
        """
        return await execute_query(query, (identity_id, user_id)) > 0

    @classmethod
    async def delete_for_contact(cls, user_id: str, contact_id: str) -> int:
        query = """
            DELETE FROM contact_identities
            WHERE user_id = %s AND contact_id = %s
        """
        return await execute_query(query, (user_id, contact_id))

    @classmethod
    @with_db_retry()
    async def count_by_kind(cls, user_id: str) -> dict[str, int]:
        query = """
            SELECT kind, count(*) AS count
            FROM contact_identities
            WHERE user_id = %s
            GROUP BY kind
        """
        rows = await fetch_all(query, (user_id,))
        return {row["kind"]: int(row["count"]) for row in rows}
