"""Tests for middleware, CORS and the health endpoint."""

import logging

from masmaa.main import LOG_FORMAT
from masmaa.middleware import RequestIDFilter, request_id_var, resolve_request_id


async def test_security_headers(client, content_store):
    resp = await client.get("/api/masmaa/health")
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert resp.headers["X-Frame-Options"] == "DENY"
    assert resp.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"


async def test_request_id_generated(client, content_store):
    resp = await client.get("/api/masmaa/health")
    assert len(resp.headers["X-Request-ID"]) == 36


async def test_request_id_echoed(client, content_store):
    resp = await client.get("/api/masmaa/health", headers={"X-Request-ID": "trace-123"})
    assert resp.headers["X-Request-ID"] == "trace-123"


async def test_malformed_request_id_replaced(client, content_store):
    resp = await client.get(
        "/api/masmaa/health", headers={"X-Request-ID": "bad id with spaces"}
    )
    assert resp.headers["X-Request-ID"] != "bad id with spaces"
    assert len(resp.headers["X-Request-ID"]) == 36


def test_resolve_request_id():
    assert resolve_request_id("req.42:a-b_c") == "req.42:a-b_c"
    assert len(resolve_request_id("x" * 129)) == 36
    assert len(resolve_request_id(None)) == 36


async def test_cors_preflight(client, content_store):
    resp = await client.options(
        "/api/masmaa/blog",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "PUT",
            "Access-Control-Request-Headers": "Authorization",
        },
    )
    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "http://localhost:5173"


async def test_cors_unknown_origin(client, content_store):
    resp = await client.get("/api/masmaa/blog", headers={"Origin": "https://evil.example"})
    assert "access-control-allow-origin" not in resp.headers


async def test_health_ok(client, content_store):
    resp = await client.get("/api/masmaa/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["service"] == "masmaa-api"
    assert data["checks"] == {"config": "ok", "storage": "ok"}


async def test_health_degraded_still_200(client, mock_settings, monkeypatch):
    def unreachable():
        raise RuntimeError("no network")

    monkeypatch.setattr("masmaa.services.blob_storage._get_container_client", unreachable)
    mock_settings.auth_jwt_secret = ""
    resp = await client.get("/api/masmaa/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "degraded"
    assert resp.json()["checks"] == {"config": "fail", "storage": "fail"}


def test_log_records_carry_request_id():
    token = request_id_var.set("abc-123")
    try:
        record = logging.LogRecord("masmaa", logging.INFO, __file__, 1, "hello", (), None)
        RequestIDFilter().filter(record)
        assert logging.Formatter(LOG_FORMAT).format(record).endswith("[abc-123] masmaa: hello")
    finally:
        request_id_var.reset(token)


def test_log_records_outside_requests():
    token = request_id_var.set("")
    try:
        record = logging.LogRecord("masmaa", logging.INFO, __file__, 1, "boot", (), None)
        RequestIDFilter().filter(record)
        assert record.request_id == "-"
    finally:
        request_id_var.reset(token)
