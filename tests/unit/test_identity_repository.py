from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from omnicrm.core.errors import StoreError, ValidationError
from omnicrm.db.helpers import DatabaseError
from omnicrm.features.identities.domain import IdentityKind
from omnicrm.features.identities.repository.identity_repository import IdentityRepository
from omnicrm.features.identities.services.identity_resolver import IdentityResolver

MODULE = "omnicrm.features.identities.repository.identity_repository"


def _row(**overrides):
    row = {
        "id": "id-1",
        "user_id": "user-123",
        "contact_id": "c1",
        "kind": "email",
        "value": "a@b.com",
        "provider": None,
        "created_at": datetime(2025, 1, 1, tzinfo=UTC),
    }
    row.update(overrides)
    return row


@pytest.mark.asyncio
async def test_insert_identity_returns_model(monkeypatch):
    fetch_one_mock = AsyncMock(return_value=_row(kind="handle", value="jane", provider="twitter"))
    monkeypatch.setattr(f"{MODULE}.fetch_one", fetch_one_mock)

    identity = await IdentityRepository.insert_identity(
        "user-123", "c1", IdentityKind.HANDLE, "jane", "twitter"
    )

    assert identity.kind == IdentityKind.HANDLE
    assert identity.provider == "twitter"
    query, params = fetch_one_mock.await_args.args
    assert "INSERT INTO contact_identities" in query
    assert params == ("user-123", "c1", "handle", "jane", "twitter")


@pytest.mark.asyncio
async def test_find_contact_id_without_provider_uses_is_null(monkeypatch):
    fetch_one_mock = AsyncMock(return_value={"contact_id": "c1"})
    monkeypatch.setattr(f"{MODULE}.fetch_one", fetch_one_mock)

    contact_id = await IdentityRepository.find_contact_id("user-123", IdentityKind.EMAIL, "a@b.com")

    assert contact_id == "c1"
    query, params = fetch_one_mock.await_args.args
    assert "provider IS NULL" in query
    assert "LIMIT 1" in query
    assert params == ("user-123", "email", "a@b.com")


@pytest.mark.asyncio
async def test_find_contact_id_with_provider_binds_it(monkeypatch):
    fetch_one_mock = AsyncMock(return_value=None)
    monkeypatch.setattr(f"{MODULE}.fetch_one", fetch_one_mock)

    contact_id = await IdentityRepository.find_contact_id(
        "user-123", IdentityKind.PROVIDER_ID, "AbC", "google"
    )

    assert contact_id is None
    query, params = fetch_one_mock.await_args.args
    assert "provider = %s" in query
    assert params == ("user-123", "provider_id", "AbC", "google")


@pytest.mark.asyncio
async def test_find_duplicates_maps_groups(monkeypatch):
    fetch_all_mock = AsyncMock(
        return_value=[
            {"kind": "email", "value": "x@y.com", "provider": None, "contact_ids": ["c1", "c2"]}
        ]
    )
    monkeypatch.setattr(f"{MODULE}.fetch_all", fetch_all_mock)

    groups = await IdentityRepository.find_duplicates("user-123")

    assert len(groups) == 1
    assert groups[0].kind == IdentityKind.EMAIL
    assert groups[0].contact_ids == ["c1", "c2"]
    query, params = fetch_all_mock.await_args.args
    assert "HAVING count(DISTINCT contact_id) > 1" in query
    assert params == ("user-123",)


@pytest.mark.asyncio
async def test_reassign_contact_is_one_tenant_scoped_update(monkeypatch):
    execute_mock = AsyncMock(return_value=3)
    monkeypatch.setattr(f"{MODULE}.execute_query", execute_mock)

    moved = await IdentityRepository.reassign_contact("user-123", "from-c", "to-c")

    assert moved == 3
    execute_mock.assert_awaited_once()
    query, params = execute_mock.await_args.args
    assert query.strip().startswith("UPDATE contact_identities")
    assert "DELETE" not in query
    assert params == ("to-c", "user-123", "from-c")


@pytest.mark.asyncio
async def test_delete_identity_scoped_by_user(monkeypatch):
    execute_mock = AsyncMock(return_value=0)
    monkeypatch.setattr(f"{MODULE}.execute_query", execute_mock)

    deleted = await IdentityRepository.delete_identity("other-user", "id-1")

    assert deleted is False
    query, params = execute_mock.await_args.args
    assert "user_id = %s" in query
    assert params == ("id-1", "other-user")


@pytest.mark.asyncio
async def test_list_for_contact_orders_by_creation(monkeypatch):
    fetch_all_mock = AsyncMock(return_value=[_row(id="id-1"), _row(id="id-2", kind="phone")])
    monkeypatch.setattr(f"{MODULE}.fetch_all", fetch_all_mock)

    identities = await IdentityRepository.list_for_contact("user-123", "c1")

    assert [i.id for i in identities] == ["id-1", "id-2"]
    assert "ORDER BY created_at ASC, id ASC" in fetch_all_mock.await_args.args[0]


@pytest.mark.asyncio
async def test_count_by_kind(monkeypatch):
    monkeypatch.setattr(
        f"{MODULE}.fetch_all",
        AsyncMock(return_value=[{"kind": "email", "count": 4}, {"kind": "phone", "count": 1}]),
    )

    assert await IdentityRepository.count_by_kind("user-123") == {"email": 4, "phone": 1}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "corruption", [{"provider": "google"}, {"kind": "handle"}, {"kind": "fax"}]
)
async def test_malformed_stored_row_is_a_store_fault(monkeypatch, corruption):
    fetch_all_mock = AsyncMock(return_value=[_row(**corruption)])
    monkeypatch.setattr(f"{MODULE}.fetch_all", fetch_all_mock)

    with pytest.raises(DatabaseError) as exc_info:
        await IdentityRepository.list_for_contact("user-123", "c1")

    assert exc_info.value.recoverable is False
    assert fetch_all_mock.await_count == 1


@pytest.mark.asyncio
async def test_malformed_stored_row_reaches_resolver_as_store_error(monkeypatch):
    monkeypatch.setattr(
        f"{MODULE}.fetch_all", AsyncMock(return_value=[_row(provider="google")])
    )

    with pytest.raises(StoreError) as exc_info:
        await IdentityResolver().get_contact_identities("user-123", "c1")

    assert not isinstance(exc_info.value, ValidationError)
    assert exc_info.value.recoverable is False
