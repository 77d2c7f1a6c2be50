"""
Tests for application wiring: root, health and metrics endpoints.
"""

from unittest.mock import AsyncMock

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from calculator_api.config import settings


class TestRoot:
    """Tests for GET /."""

    def test_service_info(self, client: TestClient):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json() == {
            "service": settings.api_title,
            "version": settings.api_version,
            "status": "running",
        }


class TestHealth:
    """Tests for GET /health."""

    def test_healthy(self, client: TestClient, db_session: AsyncMock):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["database"] == "connected"
        assert response.json()["version"] == settings.api_version
        db_session.execute.assert_awaited_once()

    def test_database_down_is_503(self, client: TestClient, db_session: AsyncMock):
        db_session.execute = AsyncMock(
            side_effect=OperationalError("SELECT 1", {}, Exception("connection refused"))
        )

        response = client.get("/health")

        assert response.status_code == 503
        detail = response.json()["detail"]
        assert detail["status"] == "unhealthy"
        assert detail["database"] == "disconnected"


class TestMetrics:
    """Tests for GET /metrics."""

    def test_exposes_prometheus_text(self, client: TestClient):
        client.get("/api/tokens/tiers")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "calculator_http_requests_total" in response.text

    def test_disabled(self, client: TestClient, monkeypatch):
        monkeypatch.setattr(settings, "metrics_enabled", False)

        assert client.get("/metrics").status_code == 404


class TestValidation:
    """Tests for the request validation handler."""

    def test_validation_errors_are_422(self, client: TestClient):
        response = client.post(
            "/api/paypal/create-order",
            json={},
            headers={"Cookie": "session_token=session-abc"},
        )

        assert response.status_code == 422
        assert response.json()["detail"][0]["loc"] == ["body", "tier"]


class TestRequestId:
    """Tests for request id propagation."""

    def test_echoes_incoming_id(self, client: TestClient):
        response = client.get("/", headers={"X-Request-ID": "req-42"})
        assert response.headers["X-Request-ID"] == "req-42"

    def test_generates_missing_id(self, client: TestClient):
        response = client.get("/")
        assert len(response.headers["X-Request-ID"]) == 32
