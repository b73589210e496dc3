"""
structlog configuration for OmniCRM.

One JSON object per line on stdout. Request-scoped values bound through
structlog.contextvars (request_id) are merged into every event.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import LoggerFactory

# Contact identifiers are PHI for a practice; never ship them to log sinks.
_REDACTED_KEYS = frozenset({"email", "phone", "handle", "value", "raw_value"})

_NOISY_LOGGERS = ("psycopg.pool", "uvicorn.access")


def _drop_identifier_values(logger, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Redact identifier values that slipped into a log call."""
    for key in _REDACTED_KEYS.intersection(event_dict):
        event_dict[key] = "[redacted]"
    return event_dict


def setup_logging(log_level: str = "INFO") -> None:
    """Configure structlog and the stdlib root logger; call once at startup."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _drop_identifier_values,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.getLevelName(log_level.upper()),
    )

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def log_health_check(
    service: str, healthy: bool, latency_ms: float, error: str | None = None
) -> None:
    """Emit one readiness result; failures at error level."""
    logger = get_logger("health")
    fields = {"service": service, "healthy": healthy, "latency_ms": latency_ms}
    if error:
        fields["error"] = error

    if healthy:
        logger.info("Health check passed", **fields)
    else:
        logger.error("Health check failed", **fields)
