"""Tests for the assembled application: health, metrics and middleware."""

from __future__ import annotations

import pytest

from crane_crm.app.main import create_app
from crane_crm.infra.pdf import generator as pdf_generator_module


@pytest.mark.unit
class TestHealth:
    """Tests for /api/health."""

    async def test_liveness(self, client):
        """The liveness probe needs no dependencies."""
        response = await client.get("/api/health/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"

    async def test_degraded_without_providers(self, client, monkeypatch):
        """Unconfigured SMTP and SMS make the service degraded, not unhealthy."""
        monkeypatch.setattr(pdf_generator_module, "_load_engine", lambda: None)

        response = await client.get("/api/health/")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "degraded"
        assert body["checks"] == {"database": True, "email": False, "sms": False, "pdf": False}
        assert body["service"] == "crane-crm"
        assert body["environment"] == "test"

    async def test_healthy_when_everything_is_available(self, client, monkeypatch):
        """All dependencies available reports healthy."""
        monkeypatch.setenv("EMAIL_ENABLED", "true")
        monkeypatch.setenv("EMAIL_SMTP_HOST", "smtp.aspcranes.com")
        monkeypatch.setenv("SMS_ENABLED", "true")
        monkeypatch.setenv("SMS_ACCOUNT_SID", "AC123")
        monkeypatch.setenv("SMS_AUTH_TOKEN", "secret")
        monkeypatch.setattr(pdf_generator_module, "_load_engine", lambda: object())

        response = await client.get("/api/health/")
        assert response.json()["status"] == "healthy"

    async def test_unhealthy_without_database(self, app, client):
        """A failing database probe returns 503."""
        from crane_crm.core.dependencies import get_db_session

        class BrokenSession:
            async def execute(self, *args, **kwargs):
                raise ConnectionRefusedError("db down")

        async def broken_session():
            yield BrokenSession()

        app.dependency_overrides[get_db_session] = broken_session

        response = await client.get("/api/health/")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"


@pytest.mark.unit
class TestMiddleware:
    """Tests for request id and metrics middleware."""

    async def test_request_id_generated(self, client):
        """Responses carry a generated request id and process time."""
        response = await client.get("/api/health/live")
        assert len(response.headers["X-Request-ID"]) == 36
        assert float(response.headers["X-Process-Time"]) >= 0

    async def test_request_id_propagated(self, client):
        """An incoming request id is echoed back and put in problem bodies."""
        response = await client.get("/api/notifications/", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"
        assert response.status_code == 401
        assert response.json()["request_id"] == "req-123"

    async def test_metrics_use_route_template(self, client, user_headers):
        """Request metrics are labelled with the route template."""
        await client.get("/api/templates/999", headers=user_headers)

        response = await client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert 'endpoint="/api/templates/{template_id}"' in response.text
        assert "http_requests_total" in response.text


@pytest.mark.unit
class TestCreateApp:
    """Tests for application assembly."""

    def test_docs_toggle(self, monkeypatch):
        """APP_DOCS_ENABLED=false hides the OpenAPI endpoints."""
        assert create_app().openapi_url == "/openapi.json"

        monkeypatch.setenv("APP_DOCS_ENABLED", "false")
        from crane_crm.core.settings import clear_all_caches

        clear_all_caches()
        app = create_app()
        assert app.openapi_url is None
        assert app.docs_url is None

    def test_realtime_router_follows_settings(self, monkeypatch):
        """The socket routes are mounted only when WebSockets are enabled."""
        paths = {route.path for route in create_app().routes}
        assert "/api/ws/notifications" in paths

        monkeypatch.setenv("WS_ENABLED", "false")
        from crane_crm.core.settings import clear_all_caches

        clear_all_caches()
        paths = {route.path for route in create_app().routes}
        assert "/api/ws/notifications" not in paths
        assert "/api/templates/" in paths
