"""Tests for the health and readiness endpoints."""

import pytest
from fastapi.testclient import TestClient

pytestmark = pytest.mark.integration


def test_health(api_client: TestClient):
    response = api_client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "secondchance-backend"}


def test_health_during_shutdown(api_client: TestClient):
    api_client.app.state.shutting_down = True

    response = api_client.get("/api/health")

    assert response.status_code == 503
    assert response.json()["status"] == "shutting_down"


def test_ready_without_redis(api_client: TestClient):
    response = api_client.get("/api/ready")

    assert response.status_code == 200
    assert response.json() == {"status": "ready", "checks": {"database": True, "redis": False}}


def test_unknown_route_uses_error_envelope(api_client: TestClient):
    response = api_client.get("/api/does-not-exist")

    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "http_error"
