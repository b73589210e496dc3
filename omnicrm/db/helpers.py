# omnicrm/db/helpers.py
"""
Query helpers used by every repository.

This is the row store the identity and calendar features sit on: plain SQL
with %s placeholders in, dict rows or row counts out. psycopg errors and an
unusable pool never escape this module; they are re-raised as DatabaseError.
"""

import asyncio
import functools
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import psycopg

from omnicrm.db.pool import PoolUnavailableError, get_db_connection
from omnicrm.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

_STORE_FAILURES = (psycopg.Error, PoolUnavailableError)


class DatabaseError(Exception):
    """A query failed; `recoverable` marks failures worth retrying later."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


def _wrap_store_failure(e: Exception, operation: str) -> DatabaseError:
    # Connectivity, timeouts and a pool that is not open yet are worth retrying;
    # constraint and data errors are not
    recoverable = isinstance(e, (psycopg.OperationalError, PoolUnavailableError))
    return DatabaseError(f"Query failed: {e}", operation=operation, recoverable=recoverable)


@asynccontextmanager
async def _borrow(
    connection: psycopg.AsyncConnection | None,
) -> AsyncGenerator[psycopg.AsyncConnection, None]:
    """Use the caller's connection when given, otherwise check one out of the pool."""
    if connection is not None:
        yield connection
        return

    async with await get_db_connection() as conn:
        yield conn


async def fetch_one(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> dict[str, Any] | None:
    """
    Run a query and return its first row.

    Returns:
        The row as a dict, or None when the query matched nothing
    """
    try:
        async with _borrow(connection) as conn:
            cursor = await conn.execute(query, params)
            return await cursor.fetchone()
    except _STORE_FAILURES as e:
        logger.error("Database fetch_one error", query=query[:100], error=str(e))
        raise _wrap_store_failure(e, "fetch_one") from e


async def fetch_all(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> list[dict[str, Any]]:
    try:
        async with _borrow(connection) as conn:
            cursor = await conn.execute(query, params)
            return await cursor.fetchall()
    except _STORE_FAILURES as e:
        logger.error("Database fetch_all error", query=query[:100], error=str(e))
        raise _wrap_store_failure(e, "fetch_all") from e


async def fetch_val(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> Any:
    """First column of the first row, or None."""
    row = await fetch_one(query, params, connection=connection)
    return next(iter(row.values())) if row else None


async def execute_query(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> int:
    """Run an INSERT / UPDATE / DELETE and return the affected row count."""
    try:
        async with _borrow(connection) as conn:
            cursor = await conn.execute(query, params)
            return cursor.rowcount
    except _STORE_FAILURES as e:
        logger.error("Database execute error", query=query[:100], error=str(e))
        raise _wrap_store_failure(e, "execute") from e


def with_db_retry(max_retries: int = 3, base_delay: float = 0.1):
    """
    Retry a coroutine that raises recoverable DatabaseErrors.

    Non-recoverable errors propagate immediately. Delays grow as
    base_delay * 2**attempt.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except DatabaseError as e:
                    if not e.recoverable:
                        raise
                    if attempt == max_retries:
                        logger.error(
                            "Database operation failed after all retries",
                            operation=func.__name__,
                            attempts=attempt + 1,
                            error=str(e),
                        )
                        # Still a connectivity failure, so callers may answer 503
                        raise DatabaseError(
                            f"Operation failed after {max_retries} retries: {e}",
                            operation=func.__name__,
                            recoverable=True,
                        ) from e

                    delay = base_delay * (2**attempt)
                    attempt += 1
                    logger.warning(
                        "Database operation failed, retrying",
                        operation=func.__name__,
                        attempt=attempt,
                        max_retries=max_retries,
                        delay=delay,
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator
