from fastapi.testclient import TestClient

from perf360.api import create_app
from perf360.config import Settings
from perf360.models import Role


def _settings(**overrides):
    values = {"database_url": "sqlite://", "bcrypt_rounds": 4, "jwt_secret": "test-secret"}
    values.update(overrides)
    return Settings(**values)


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "OK"
    assert "T" in resp.json()["timestamp"]


def test_unknown_route(client):
    resp = client.get("/api/does-not-exist")
    assert resp.status_code == 404
    assert resp.json() == {"message": "Route not found"}


def test_unhandled_error_does_not_leak(app):
    @app.get("/boom")
    def boom():
        raise RuntimeError("kaboom secret detail")

    client = TestClient(app, raise_server_exceptions=False)
    resp = client.get("/boom")
    assert resp.status_code == 500
    assert resp.json() == {"message": "Internal server error"}
    assert "kaboom" not in resp.text


def test_metrics_exposed(client):
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "api_requests_total" in resp.text


def test_responses_use_camel_case(client, make_user, auth_headers):
    user = make_user(Role.MANAGER)
    data = client.get("/api/users/me", headers=auth_headers(user)).json()
    assert {"firstName", "lastName", "isActive", "createdAt"} <= set(data)
    assert "first_name" not in data


def test_permissive_cors_outside_production(client):
    resp = client.get("/health", headers={"Origin": "http://anything.example.org"})
    assert resp.headers["access-control-allow-origin"] == "http://anything.example.org"


def test_restricted_cors_in_production(session_factory):
    app = create_app(
        _settings(node_env="production", frontend_url="https://perf.company.com"),
        session_factory,
    )
    client = TestClient(app)
    allowed = client.get("/health", headers={"Origin": "https://perf.company.com"})
    assert allowed.headers["access-control-allow-origin"] == "https://perf.company.com"
    denied = client.get("/health", headers={"Origin": "https://evil.example.org"})
    assert "access-control-allow-origin" not in denied.headers


def test_wildcard_origins_in_production(session_factory):
    app = create_app(_settings(node_env="production", allowed_origins="*"), session_factory)
    resp = TestClient(app).get("/health", headers={"Origin": "https://any.example.org"})
    assert resp.headers["access-control-allow-origin"] == "https://any.example.org"


def test_maintenance_routes_hidden_in_production(session_factory):
    app = create_app(_settings(node_env="production"), session_factory)
    resp = TestClient(app).post(
        "/api/test-cleanup/create-user",
        json={"email": "e2e@company.com", "password": "x"},
    )
    assert resp.status_code == 404


def test_maintenance_routes_force_enabled(session_factory):
    app = create_app(
        _settings(node_env="production", enable_test_routes=True), session_factory
    )
    resp = TestClient(app).post(
        "/api/test-cleanup/create-user",
        json={"email": "e2e@company.com", "password": "x"},
    )
    assert resp.status_code == 201


def test_settings_properties():
    settings = _settings(
        node_env="production",
        allowed_origins="https://a.company.com, https://b.company.com",
        frontend_url="https://app.company.com",
    )
    assert settings.is_production
    assert not settings.allow_all_origins
    assert not settings.test_routes_enabled
    assert settings.cors_origins == [
        "https://a.company.com",
        "https://b.company.com",
        "https://app.company.com",
    ]
    assert _settings(node_env="development").test_routes_enabled
