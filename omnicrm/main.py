"""
OmniCRM API: identity resolution and calendar availability for a practice.

Run locally with `python -m omnicrm.main` or `uvicorn omnicrm.main:app`.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from omnicrm.config import settings
from omnicrm.db.pool import db_pool
from omnicrm.features.calendar import calendar_router
from omnicrm.features.identities import identity_router
from omnicrm.infrastructure.observability.logging import get_logger, setup_logging
from omnicrm.middleware import RequestContextMiddleware
from omnicrm.routes import health

setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)

# Probes hit these every few seconds
_UNLOGGED_PATHS = frozenset({"/healthz", "/readyz"})


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("OmniCRM starting", environment=settings.environment, debug=settings.debug)

    # A failed initialize() has already closed its partial pool
    await db_pool.initialize()

    yield

    logger.info("OmniCRM shutting down")
    try:
        await db_pool.close()
    except Exception as e:
        logger.error("Database pool did not close cleanly", error=str(e))


app = FastAPI(
    title="OmniCRM",
    description="Contact identity resolution and calendar availability",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(RequestContextMiddleware)

for router in (health.router, identity_router, calendar_router):
    app.include_router(router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)

    if request.url.path not in _UNLOGGED_PATHS:
        logger.info(
            "HTTP request completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT)
