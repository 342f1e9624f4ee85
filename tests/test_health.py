"""Tests for health endpoints."""

from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from src import main
from src.schemas.calendar import CalendarProvider
from src.services.calendar_providers import ProviderNotConfiguredError
from src.services.calendar_sync import PROVIDER_FACTORIES


def test_root(client: TestClient):
    """Test root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Trainer Calendar API"
    assert data["version"] == "0.1.0"


def test_health_check(client: TestClient):
    """Test basic health check."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_db_health_check(client: TestClient):
    """Test database health check."""
    response = client.get("/health/db")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["database"] == "connected"


def test_calendar_health_check(client: TestClient):
    """Test provider configuration report."""

    def not_configured():
        raise ProviderNotConfiguredError("missing credentials")

    with patch.dict(
        PROVIDER_FACTORIES,
        {CalendarProvider.GOOGLE: lambda: object(), CalendarProvider.OUTLOOK: not_configured},
    ):
        response = client.get("/health/calendar")

    assert response.status_code == 200
    assert response.json() == {"google": True, "outlook": False}


def test_run_uses_configured_server():
    """Test that the entry point serves on the configured host and port."""
    config = MagicMock(server={"host": "127.0.0.1", "port": "9000"})
    with patch.object(main, "get_app_config", return_value=config), patch.object(
        main.uvicorn, "run"
    ) as mock_run:
        main.run()

    mock_run.assert_called_once_with("src.main:app", host="127.0.0.1", port=9000)
