"""Middleware Tests — fault recovery, access logging and CORS.

Invariants:
    - A route exception becomes a 500 envelope and the next request still succeeds
    - Every request is access-logged with method, path, status, latency and client
"""

import logging

import pytest
from fastapi.testclient import TestClient

from app_server.config import Settings
from app_server.main import create_app


@pytest.fixture
def faulty_client(settings):
    app = create_app(settings)

    @app.get("/api/v1/boom")
    async def boom():
        raise RuntimeError("secret internal detail")

    @app.post("/api/v1/boom-sync")
    def boom_sync():
        raise KeyError("missing")

    with TestClient(app) as client:
        yield client


# -- Recovery ----------------------------------------------------------------


def test_handler_fault_becomes_500_envelope(faulty_client):
    response = faulty_client.get("/api/v1/boom")
    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Internal server error"
    assert "secret" not in response.text


def test_server_keeps_serving_after_fault(faulty_client):
    assert faulty_client.get("/api/v1/boom").status_code == 500
    assert faulty_client.post("/api/v1/boom-sync").status_code == 500
    response = faulty_client.get("/api/v1/hello", params={"name": "again"})
    assert response.status_code == 200
    assert response.json()["message"] == "Hello, again!"


def test_fault_is_logged_with_traceback(faulty_client, caplog):
    caplog.set_level(logging.ERROR, logger="app_server.api.middleware")
    faulty_client.get("/api/v1/boom")
    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert errors
    assert errors[0].exc_info is not None
    assert errors[0].error_code == "INTERNAL_ERROR"


# -- Access log --------------------------------------------------------------


def _access_records(caplog):
    return [r for r in caplog.records if hasattr(r, "latency_ms")]


def test_access_log_records_request_fields(client, caplog):
    caplog.set_level(logging.INFO, logger="app_server.api.middleware")
    client.get("/api/v1/hello", params={"name": "Log"})
    records = _access_records(caplog)
    assert len(records) == 1
    record = records[0]
    assert record.method == "GET"
    assert record.path == "/api/v1/hello"
    assert record.status == 200
    assert record.latency_ms >= 0
    assert record.client_ip == "testclient"


def test_access_log_sees_recovered_500(faulty_client, caplog):
    caplog.set_level(logging.INFO, logger="app_server.api.middleware")
    faulty_client.get("/api/v1/boom")
    statuses = [r.status for r in _access_records(caplog)]
    assert statuses == [500]


def test_access_log_records_validation_failures(client, caplog):
    caplog.set_level(logging.INFO, logger="app_server.api.middleware")
    client.post("/api/v1/echo")
    assert [r.status for r in _access_records(caplog)] == [400]


# -- CORS --------------------------------------------------------------------


def test_wildcard_origin_by_default(client):
    response = client.get("/health", headers={"Origin": "http://example.com"})
    assert response.headers["access-control-allow-origin"] == "*"


def test_preflight_allows_configured_origin():
    settings = Settings(server={"allowOrigins": ["http://localhost:5173"]})
    with TestClient(create_app(settings)) as client:
        response = client.options(
            "/api/v1/echo",
            headers={
                "Origin": "http://localhost:5173",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Content-Type",
            },
        )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"
    assert "POST" in response.headers["access-control-allow-methods"]


def test_preflight_rejects_unknown_origin():
    settings = Settings(server={"allowOrigins": ["http://localhost:5173"]})
    with TestClient(create_app(settings)) as client:
        response = client.options(
            "/api/v1/echo",
            headers={
                "Origin": "http://evil.example",
                "Access-Control-Request-Method": "POST",
            },
        )
    assert response.status_code == 400
    assert "access-control-allow-origin" not in response.headers
