"""
Tests for the database helper layer: error wrapping and retry behaviour.
"""

from unittest.mock import AsyncMock

import psycopg
import pytest

from omnicrm.db import helpers
from omnicrm.db.helpers import DatabaseError, fetch_val, with_db_retry
from omnicrm.db.pool import DatabasePoolManager, PoolUnavailableError


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    sleep_mock = AsyncMock()
    monkeypatch.setattr(helpers.asyncio, "sleep", sleep_mock)
    return sleep_mock


class TestWithDbRetry:
    @pytest.mark.asyncio
    async def test_recoverable_errors_are_retried(self, no_sleep):
        operation = AsyncMock(
            side_effect=[DatabaseError("timeout", recoverable=True), {"ok": 1}]
        )
        operation.__name__ = "lookup"
        wrapped = with_db_retry(max_retries=3, base_delay=0.1)(operation)

        result = await wrapped("user-123")

        assert result == {"ok": 1}
        assert operation.await_count == 2
        no_sleep.assert_awaited_once_with(0.1)

    @pytest.mark.asyncio
    async def test_permanent_errors_are_not_retried(self):
        operation = AsyncMock(side_effect=DatabaseError("constraint", recoverable=False))
        operation.__name__ = "insert"
        wrapped = with_db_retry()(operation)

        with pytest.raises(DatabaseError) as exc_info:
            await wrapped()

        assert operation.await_count == 1
        assert exc_info.value.recoverable is False

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, no_sleep):
        operation = AsyncMock(side_effect=DatabaseError("down", recoverable=True))
        operation.__name__ = "lookup"
        wrapped = with_db_retry(max_retries=2, base_delay=0.5)(operation)

        with pytest.raises(DatabaseError) as exc_info:
            await wrapped()

        assert operation.await_count == 3
        assert [call.args[0] for call in no_sleep.await_args_list] == [0.5, 1.0]
        assert exc_info.value.operation == "lookup"
        assert exc_info.value.recoverable is True


class TestQueryHelpers:
    @pytest.mark.asyncio
    async def test_fetch_val_returns_first_column(self, monkeypatch):
        monkeypatch.setattr(helpers, "fetch_one", AsyncMock(return_value={"count": 7}))

        assert await fetch_val("SELECT count(*) AS count FROM contact_identities") == 7

    @pytest.mark.asyncio
    async def test_fetch_val_none_when_no_row(self, monkeypatch):
        monkeypatch.setattr(helpers, "fetch_one", AsyncMock(return_value=None))

        assert await fetch_val("SELECT 1 WHERE false") is None

    @pytest.mark.asyncio
    async def test_operational_error_is_recoverable(self, monkeypatch):
        async def failing_connection():
            raise psycopg.OperationalError("connection refused")

        monkeypatch.setattr(helpers, "get_db_connection", failing_connection)

        with pytest.raises(DatabaseError) as exc_info:
            await helpers.execute_query("DELETE FROM calendar_events WHERE id = %s", ("e",))

        assert exc_info.value.recoverable is True
        assert exc_info.value.operation == "execute"


    @pytest.mark.asyncio
    @pytest.mark.parametrize("closed", [False, True])
    async def test_unusable_pool_is_a_recoverable_database_error(self, monkeypatch, closed):
        pool = DatabasePoolManager()
        pool._closed = closed
        monkeypatch.setattr(helpers, "get_db_connection", AsyncMock(return_value=pool.connection()))

        with pytest.raises(DatabaseError) as exc_info:
            await helpers.fetch_all("SELECT id FROM contact_identities WHERE user_id = %s", ("u",))

        assert exc_info.value.recoverable is True
        assert exc_info.value.operation == "fetch_all"
        assert isinstance(exc_info.value.__cause__, PoolUnavailableError)

    @pytest.mark.asyncio
    async def test_retry_gives_up_on_pool_that_never_started(self, no_sleep):
        @with_db_retry(max_retries=2)
        async def count_identities():
            return await fetch_val("SELECT count(*) FROM contact_identities")

        with pytest.raises(DatabaseError) as exc_info:
            await count_identities()

        assert exc_info.value.recoverable is True
        assert no_sleep.await_count == 2
