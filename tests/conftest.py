import uuid
from collections import Counter
from datetime import UTC, datetime, timedelta

import pytest

from omnicrm.auth.verify import current_user_id
from omnicrm.features.identities.domain import DuplicateIdentityGroup, Identity

TEST_USER_ID = "user-123"


@pytest.fixture
def auth_override():
    def _override():
        return TEST_USER_ID

    return _override


@pytest.fixture
def apply_auth_override(auth_override):
    applied = []

    def _apply(app):
        app.dependency_overrides[current_user_id] = auth_override
        applied.append(app)

    yield _apply

    for app in applied:
        app.dependency_overrides.clear()


class FakeIdentityRepository:
    """In-memory stand-in for IdentityRepository with the same async surface."""

    def __init__(self):
        self.rows: list[Identity] = []
        self.calls: list[str] = []
        self._clock = datetime(2025, 1, 1, tzinfo=UTC)

    def _next_created_at(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    async def insert_identity(self, user_id, contact_id, kind, value, provider=None):
        self.calls.append("insert_identity")
        identity = Identity(
            id=str(uuid.uuid4()),
            user_id=user_id,
            contact_id=contact_id,
            kind=kind,
            value=value,
            provider=provider,
            created_at=self._next_created_at(),
        )
        self.rows.append(identity)
        return identity

    def _matching(self, user_id, kind, value, provider):
        return [
            row
            for row in self.rows
            if row.user_id == user_id
            and row.kind == kind
            and row.value == value
            and row.provider == provider
        ]

    async def find_contact_id(self, user_id, kind, value, provider=None):
        self.calls.append(f"find_contact_id:{kind.value}")
        matches = self._matching(user_id, kind, value, provider)
        return matches[0].contact_id if matches else None

    async def find_contact_ids(self, user_id, kind, value, provider=None):
        self.calls.append("find_contact_ids")
        return sorted({row.contact_id for row in self._matching(user_id, kind, value, provider)})

    async def list_for_contact(self, user_id, contact_id):
        self.calls.append("list_for_contact")
        return [
            row for row in self.rows if row.user_id == user_id and row.contact_id == contact_id
        ]

    async def find_duplicates(self, user_id):
        self.calls.append("find_duplicates")
        groups: dict[tuple, set[str]] = {}
        for row in self.rows:
            if row.user_id == user_id:
                groups.setdefault((row.kind, row.value, row.provider), set()).add(row.contact_id)
        return [
            DuplicateIdentityGroup(
                kind=kind, value=value, provider=provider, contact_ids=sorted(contact_ids)
            )
            for (kind, value, provider), contact_ids in groups.items()
            if len(contact_ids) > 1
        ]

    async def reassign_contact(self, user_id, from_contact_id, to_contact_id):
        self.calls.append("reassign_contact")
        moved = 0
        for row in self.rows:
            if row.user_id == user_id and row.contact_id == from_contact_id:
                row.contact_id = to_contact_id
                moved += 1
        return moved

    async def delete_identity(self, user_id, identity_id):
        self.calls.append("delete_identity")
        before = len(self.rows)
        self.rows = [
            row for row in self.rows if not (row.user_id == user_id and row.id == identity_id)
        ]
        return len(self.rows) < before

    async def delete_for_contact(self, user_id, contact_id):
        self.calls.append("delete_for_contact")
        before = len(self.rows)
        self.rows = [
            row
            for row in self.rows
            if not (row.user_id == user_id and row.contact_id == contact_id)
        ]
        return before - len(self.rows)

    async def count_by_kind(self, user_id):
        self.calls.append("count_by_kind")
        counts = Counter(row.kind.value for row in self.rows if row.user_id == user_id)
        return dict(counts)


class FakeCalendarRepository:
    """Returns canned busy intervals and records the window it was asked for."""

    def __init__(self, busy_intervals=None, error: Exception | None = None):
        self.busy_intervals = list(busy_intervals or [])
        self.error = error
        self.requests: list[tuple] = []

    async def get_busy_intervals(self, user_id, start, end):
        self.requests.append((user_id, start, end))
        if self.error:
            raise self.error
        return list(self.busy_intervals)


@pytest.fixture
def fake_identity_repository():
    return FakeIdentityRepository()


@pytest.fixture
def make_calendar_repository():
    def _make(busy_intervals=None, error=None):
        return FakeCalendarRepository(busy_intervals, error)

    return _make
