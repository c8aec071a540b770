import pytest
from unittest.mock import AsyncMock, MagicMock
from fastapi.testclient import TestClient

from src.app import create_app
from src.infra.config.settings import settings

client = TestClient(create_app())


def test_health_check_contract():
    """Contract test for health check endpoint
    Verifies the response schema and format matches the API contract
    """
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    data = response.json()

    # Schema validation
    assert isinstance(data, dict)
    for key in ("status", "service", "version", "services", "timestamp"):
        assert key in data

    # Value validation
    assert data["status"] in ["healthy", "degraded"]
    assert data["service"] == settings.APP_NAME
    assert data["services"]["api_gateway"] == "healthy"


def test_health_check_without_database():
    """Startup never ran, so the engine does not exist"""
    data = client.get("/api/v1/health").json()

    assert data["status"] == "degraded"
    assert data["services"]["database"] == "not_connected"


@pytest.mark.parametrize("ping, expected", [
    (AsyncMock(return_value=True), ("healthy", "healthy")),
    (AsyncMock(side_effect=ConnectionError("refused")), ("degraded", "unhealthy")),
])
def test_health_check_with_database(ping, expected):
    db_manager = MagicMock()
    db_manager.get_engine.return_value = object()
    db_manager.ping = ping

    data = TestClient(create_app(db_manager=db_manager)).get("/api/v1/health").json()

    assert (data["status"], data["services"]["database"]) == expected
