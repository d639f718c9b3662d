from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient
from pymongo.errors import PyMongoError

from job_intake.core.database import db_manager
from job_intake.main import app


def test_root_endpoint():
    client = TestClient(app)
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Job Intake Service is running!"
    assert data["api_version"] == "v1"


def test_router_inclusion():
    routes = [route.path for route in app.routes]

    assert "/v1/applications/apply" in routes
    assert "/v1/applications/my" in routes
    assert "/v1/applications/job/{job_id}" in routes
    assert "/v1/applications" in routes
    assert "/v1/applications/{application_id}/resume" in routes
    assert "/v1/applications/{application_id}/status" in routes
    assert "/health" in routes
    assert "/metrics" in routes


def test_liveness_probe():
    response = TestClient(app).get("/health/live")
    assert response.status_code == 200
    assert response.json()["status"] == "alive"


def test_readiness_follows_mongodb(services, monkeypatch):
    monkeypatch.setattr(app.state, "services", services, raising=False)
    monkeypatch.setattr(db_manager, "ensure_indexes", AsyncMock())
    client = TestClient(app)

    with patch.object(db_manager, "ping", AsyncMock(return_value=True)):
        assert client.get("/health/ready").status_code == 200

    with patch.object(db_manager, "ping", AsyncMock(return_value=False)):
        response = client.get("/health/ready")
        assert response.status_code == 503
        assert response.json()["detail"]["checks"] == {
            "mongodb": False,
            "indexes": False,
            "services": True,
        }


def test_readiness_creates_indexes_missed_at_startup(services, monkeypatch):
    monkeypatch.setattr(app.state, "services", services, raising=False)
    ensure_indexes = AsyncMock(side_effect=[PyMongoError("not primary"), None])
    monkeypatch.setattr(db_manager, "ensure_indexes", ensure_indexes)
    client = TestClient(app)

    with patch.object(db_manager, "ping", AsyncMock(return_value=True)):
        first = client.get("/health/ready")
        second = client.get("/health/ready")

    assert first.status_code == 503
    assert first.json()["detail"]["checks"]["indexes"] is False
    assert second.status_code == 200
    assert ensure_indexes.await_count == 2


def test_not_ready_before_services_are_built(monkeypatch):
    monkeypatch.setattr(db_manager, "ensure_indexes", AsyncMock())

    with patch.object(db_manager, "ping", AsyncMock(return_value=True)):
        response = TestClient(app).get("/health/ready")

    assert response.status_code == 503
    assert response.json()["detail"]["checks"]["services"] is False


def test_metrics_endpoint():
    client = TestClient(app)
    client.get("/health/live")

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "job_intake_http_requests_total" in response.text


def test_security_headers_and_correlation_id():
    response = TestClient(app).get("/", headers={"X-Correlation-ID": "abc-123"})

    assert response.headers["X-Correlation-ID"] == "abc-123"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"


def test_unhandled_error_is_generic_500():
    client = TestClient(app, raise_server_exceptions=False)

    with patch.object(
        db_manager, "ping", AsyncMock(side_effect=RuntimeError("mongodb://admin:hunter2@db"))
    ):
        response = client.get("/health")

    assert response.status_code == 500
    assert "hunter2" not in response.text
