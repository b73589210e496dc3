# omnicrm/db/pool.py
"""
PostgreSQL connection pool manager using psycopg_pool.
Sized for a Supabase-hosted practice database.
"""

import asyncio
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from omnicrm.config import settings
from omnicrm.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

POOL_CLOSE_TIMEOUT_S = 30.0
HIGH_UTILIZATION_PERCENT = 80
UNHEALTHY_UTILIZATION_PERCENT = 90


class PoolUnavailableError(RuntimeError):
    """The pool was never opened, or has already been closed."""


class DatabasePoolManager:
    """
    Owns the single AsyncConnectionPool for the process.

    Every connection handed out uses dict rows, UTC and autocommit; the
    repositories never see a raw pool.
    """

    def __init__(self):
        self.pool: AsyncConnectionPool | None = None
        self._initialized = False
        self._closed = False

    def _ensure_usable(self) -> None:
        if self._closed:
            raise PoolUnavailableError("Database pool is closed")
        if not self._initialized:
            raise PoolUnavailableError("Database pool not initialized. Call initialize() first.")

    async def initialize(self) -> None:
        """Open the pool and prove one connection works; called from the app lifespan."""
        if self._closed:
            raise RuntimeError("Cannot reinitialize closed pool")
        if self._initialized:
            logger.warning("Database pool already initialized")
            return

        pool_config = self._get_pool_config()
        pool = AsyncConnectionPool(conninfo=settings.DATABASE_URL, open=False, **pool_config)

        try:
            await pool.open(wait=True)
            self.pool = pool
            # connection() refuses to hand out connections until this flag is set
            self._initialized = True
            await self._test_pool_connections()
        except Exception as e:
            logger.error("Database pool failed to start", error=str(e))
            self._initialized = False
            self.pool = None
            await pool.close()
            raise RuntimeError(f"Database pool initialization failed: {e}") from e

        logger.info(
            "Database pool ready",
            min_size=pool_config["min_size"],
            max_size=pool_config["max_size"],
            timeout=pool_config["timeout"],
        )

    def _get_pool_config(self) -> dict[str, Any]:
        config = settings.get_db_pool_config()
        config["check"] = AsyncConnectionPool.check_connection
        config["configure"] = self._configure_connection
        return config

    async def _configure_connection(self, conn: psycopg.AsyncConnection) -> None:
        conn.row_factory = dict_row

        # Autocommit keeps pooled connections out of INTRANS state
        await conn.set_autocommit(True)

        app_name = f"omnicrm-{settings.environment}"
        await conn.execute(sql.SQL("SET application_name = {}").format(sql.Literal(app_name)))
        await conn.execute("SET timezone = 'UTC'")
        await conn.execute("SET statement_timeout = '30s'")

    async def _test_pool_connections(self) -> None:
        async with self.connection() as conn:
            cursor = await conn.execute("SELECT 1 AS ok")
            row = await cursor.fetchone()

        if not row or row["ok"] != 1:
            raise RuntimeError("Database smoke query returned an unexpected result")

    async def close(self) -> None:
        """Close the pool on shutdown; a no-op if it never opened."""
        if not self._initialized or self._closed:
            return

        self._initialized = False
        self._closed = True
        try:
            await asyncio.wait_for(self.pool.close(), timeout=POOL_CLOSE_TIMEOUT_S)
        except TimeoutError:
            logger.warning("Database pool close timed out", timeout_s=POOL_CLOSE_TIMEOUT_S)
        else:
            logger.info("Database pool closed")

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """
        Borrow a connection from the pool.

        Usage:
            async with db_pool.connection() as conn:
                cursor = await conn.execute("SELECT 1")
        """
        self._ensure_usable()

        try:
            async with self.pool.connection() as conn:
                yield conn
        except psycopg.Error as e:
            logger.error("Database connection error", error=str(e), error_type=type(e).__name__)
            raise

    async def health_check(self) -> dict[str, Any]:
        """
        Pool health for /readyz.

        Returns:
            dict with "healthy", connection latency, pool stats and any warnings
        """
        try:
            self._ensure_usable()
        except PoolUnavailableError:
            error = "Pool is closed" if self._closed else "Pool not initialized"
            return {"healthy": False, "error": error, "service": "database_pool"}

        try:
            stats = self.pool.get_stats()
            started = time.time()
            await self._test_pool_connections()
            connection_time_ms = (time.time() - started) * 1000
        except (psycopg.Error, RuntimeError) as e:
            logger.error("Database pool health check failed", error=str(e))
            return {
                "healthy": False,
                "service": "database_pool",
                "error": str(e),
                "error_type": type(e).__name__,
            }

        pool_size = stats.get("pool_size", 0)
        pool_available = stats.get("pool_available", 0)
        requests_waiting = stats.get("requests_waiting", 0)
        utilization = (pool_size - pool_available) / pool_size * 100 if pool_size else 0

        warnings = []
        if utilization > HIGH_UTILIZATION_PERCENT:
            warnings.append(f"High pool utilization: {utilization:.1f}%")
        if requests_waiting:
            warnings.append(f"Requests waiting for connections: {requests_waiting}")

        result = {
            "healthy": utilization < UNHEALTHY_UTILIZATION_PERCENT,
            "service": "database_pool",
            "connection_time_ms": round(connection_time_ms, 2),
            "pool_stats": {
                "pool_size": pool_size,
                "pool_available": pool_available,
                "pool_utilization_percent": round(utilization, 2),
                "requests_waiting": requests_waiting,
            },
        }
        if warnings:
            result["warnings"] = warnings
        return result


# Global pool instance
db_pool = DatabasePoolManager()


async def get_db_connection():
    """Get database connection from pool."""
    return db_pool.connection()


async def db_health_check() -> dict[str, Any]:
    return await db_pool.health_check()
