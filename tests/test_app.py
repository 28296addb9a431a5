from fastapi import FastAPI
from fastapi.testclient import TestClient

from conftest import auth_headers, make_tenant, make_user
from modulyn.core.errors import AppError, register_exception_handlers
from modulyn.models import UserRole


def make_app():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/boom")
    def boom():
        raise RuntimeError("database exploded")

    @app.get("/teapot")
    def teapot():
        raise AppError("No coffee here", 418, hint="try tea")

    return app


def test_unhandled_errors_get_an_error_id():
    client = TestClient(make_app(), raise_server_exceptions=False)

    response = client.get("/boom")

    assert response.status_code == 500
    body = response.json()
    assert body["status"] == "error"
    assert body["message"] == "Internal server error"
    assert body["error_id"].startswith("err_")
    assert "database exploded" not in response.text


def test_app_errors_carry_extra_fields():
    response = TestClient(make_app()).get("/teapot")

    assert response.status_code == 418
    assert response.json() == {"status": "error", "message": "No coffee here", "hint": "try tea"}


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/nope")

    assert response.status_code == 404
    assert response.json() == {"status": "error", "message": "Not Found", "path": "/api/nope"}


def test_health_and_headers(client):
    response = client.get("/health", headers={"x-request-id": "abc123"})

    assert response.json() == {"status": "ok"}
    assert response.headers["x-request-id"] == "abc123"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_audit_log_is_admin_only(client, db, tenant, master_headers, agent_headers):
    client.post("/api/properties", json={"name": "Unit 1", "type": "Studio", "current_price": 1}, headers=master_headers)

    logs = client.get("/api/audit", headers=master_headers).json()["data"]["auditLogs"]
    assert [entry["action"] for entry in logs] == ["property_create"]

    assert client.get("/api/audit", headers=agent_headers).status_code == 403


def test_audit_log_is_tenant_scoped(client, db, master_headers):
    outsider = make_user(db, make_tenant(db, "Other Realty"), "owner@otherrealty.com", role=UserRole.master)
    client.post("/api/properties", json={"name": "Unit 1", "type": "Studio", "current_price": 1}, headers=auth_headers(outsider))

    assert client.get("/api/audit", headers=master_headers).json()["data"]["auditLogs"] == []
