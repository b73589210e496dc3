"""
Tests for health check endpoints.
"""

from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from omnicrm.main import app

client = TestClient(app)


def test_healthz_endpoint():
    """Test the basic health check endpoint."""
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_readyz_database_healthy():
    db_health = {
        "healthy": True,
        "service": "database_pool",
        "connection_time_ms": 1.2,
        "pool_stats": {"pool_size": 5, "pool_available": 4, "pool_utilization_percent": 20.0},
    }
    with patch("omnicrm.routes.health.db_health_check", AsyncMock(return_value=db_health)):
        response = client.get("/readyz")

    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is True
    assert data["checks"]["database"]["pool_size"] == 5
    assert isinstance(data["checks"]["database"]["latency_ms"], (int, float))


def test_readyz_pool_not_initialized():
    """Without the lifespan the pool is never opened, so readiness fails."""
    response = client.get("/readyz")

    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is False
    assert data["checks"]["database"]["error"] == "Pool not initialized"


def test_readyz_missing_database_url():
    db_health = {"healthy": True, "service": "database_pool"}
    with (
        patch("omnicrm.routes.health.db_health_check", AsyncMock(return_value=db_health)),
        patch("omnicrm.routes.health.settings.DATABASE_URL", ""),
    ):
        response = client.get("/readyz")

    data = response.json()
    assert data["overall_ok"] is False
    assert data["checks"]["configuration"]["issues"] == ["DATABASE_URL not set"]


def test_request_id_is_echoed():
    response = client.get("/healthz", headers={"X-Request-ID": "req-42"})

    assert response.headers["X-Request-ID"] == "req-42"
