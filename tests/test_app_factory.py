"""Tests for app factory and role-based routing."""

from fastapi.testclient import TestClient

from salonbot.api.factory import create_app


class TestPublicRole:
    """Tests for APP_ROLE=public."""

    def test_health_available(self):
        client = TestClient(create_app(role="public"))
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "service": "salonbot"}

    def test_webhook_mounted(self, monkeypatch):
        monkeypatch.setenv("META_VERIFY_TOKEN", "t")
        client = TestClient(create_app(role="public"))
        response = client.get(
            "/webhooks/whatsapp",
            params={"hub.mode": "subscribe", "hub.verify_token": "t", "hub.challenge": "c"},
        )
        assert response.status_code == 200

    def test_docs_disabled(self):
        client = TestClient(create_app(role="public"))
        assert client.get("/docs").status_code == 404


class TestWebhooksRole:
    """Tests for APP_ROLE=webhooks."""

    def test_health_not_mounted(self):
        client = TestClient(create_app(role="webhooks"))
        assert client.get("/health").status_code == 404

    def test_role_from_env(self, monkeypatch):
        monkeypatch.setenv("APP_ROLE", "webhooks")
        client = TestClient(create_app())
        assert client.get("/health").status_code == 404

    def test_correlation_id_generated(self):
        client = TestClient(create_app(role="public"))
        response = client.get("/health")
        assert response.headers["X-Correlation-ID"]
