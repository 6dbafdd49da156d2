# tests/test_auth.py
"""
Tests for API key auth.

These tests set MOCK_AUTH=false and configure a test API key. They use
monkeypatch to control the auth module's settings so they don't interfere
with other tests (which run with MOCK_AUTH=true by default).
"""
import pytest
from fastapi.testclient import TestClient

from tracker.app import app
from tracker import app as app_module
from tracker import auth as authmod


@pytest.fixture
def client():
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture(autouse=True)
def setup_auth(monkeypatch):
    monkeypatch.setattr(authmod, "MOCK_AUTH", False)
    monkeypatch.setattr(authmod, "API_KEYS", {"test-key-123"})
    # no remote sources: reads are served from seed data
    monkeypatch.setattr(app_module.orchestrator, "readers", [])
    yield


def test_missing_api_key_rejected(client):
    r = client.get("/api/requests")
    assert r.status_code == 401


def test_wrong_api_key_rejected(client):
    r = client.put("/api/requests", headers={"x-api-key": "wrong-key"}, json={"id": "dummy-1"})
    assert r.status_code == 401


def test_valid_key_accepted(client):
    r = client.get("/api/requests", headers={"x-api-key": "test-key-123"})
    assert r.status_code == 200
    assert r.headers["x-data-source"] == "seed"


def test_no_configured_keys_rejects_everything(monkeypatch):
    monkeypatch.setattr(authmod, "API_KEYS", set())
    assert authmod.is_key_allowed("test-key-123") is False


def test_mock_auth_allows_anything(monkeypatch):
    monkeypatch.setattr(authmod, "MOCK_AUTH", True)
    assert authmod.is_key_allowed(None) is True


def test_health_does_not_need_key(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_metrics_does_not_need_key(client):
    r = client.get("/metrics")
    assert r.status_code in (200, 404)  # 200 if prometheus enabled, 404 if not
