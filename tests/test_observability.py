"""JSON log lines, request ids and upstream counters."""

from __future__ import annotations

import json
import logging

import pytest
from httpx import AsyncClient
from prometheus_client import REGISTRY

from cma_builder.core.logging import JsonFormatter, RequestIdFilter, redact, request_id_var
from cma_builder.core.metrics import record_upstream


def _record(msg: str = "hello") -> logging.LogRecord:
    return logging.LogRecord("cma_builder.test", logging.INFO, __file__, 1, msg, None, None)


def test_json_formatter_includes_request_id():
    token = request_id_var.set("req-123")
    try:
        record = _record()
        RequestIdFilter().filter(record)
    finally:
        request_id_var.reset(token)

    line = json.loads(JsonFormatter().format(record))
    assert line["ts"].endswith("+00:00")
    assert {k: line[k] for k in ("level", "msg", "logger", "request_id")} == {
        "level": "INFO", "msg": "hello", "logger": "cma_builder.test", "request_id": "req-123",
    }


def test_json_formatter_outside_a_request():
    record = _record()
    RequestIdFilter().filter(record)
    assert "request_id" not in json.loads(JsonFormatter().format(record))


@pytest.mark.parametrize("status, outcome", [(200, "ok"), (404, "client_error"), (503, "server_error"), (None, "error")])
def test_record_upstream_outcomes(status, outcome):
    labels = {"provider": "repliers", "outcome": outcome}
    before = REGISTRY.get_sample_value("upstream_requests_total", labels) or 0
    record_upstream("repliers", status)
    assert REGISTRY.get_sample_value("upstream_requests_total", labels) == before + 1


@pytest.mark.asyncio
async def test_request_id_is_propagated(client: AsyncClient):
    response = await client.get("/v1/ping", headers={"x-request-id": "abc-1"})
    assert response.json() == {"pong": True}
    assert response.headers["x-request-id"] == "abc-1"


@pytest.mark.asyncio
async def test_metrics_endpoint(client: AsyncClient):
    await client.get("/v1/health")
    response = await client.get("/v1/metrics")
    assert response.status_code == 200
    assert "http_requests_total" in response.text


def test_oauth_material_is_redacted():
    line = "GET /auth/callback?code=abc123&state=eyJ2.sig&foo=bar Authorization: Bearer tok.en-1"
    assert redact(line) == (
        "GET /auth/callback?code=[redacted]&state=[redacted]&foo=bar Authorization: Bearer [redacted]"
    )


def test_formatter_redacts_messages():
    record = _record("token exchange sent code_verifier=xyz refresh_token=r1")
    msg = json.loads(JsonFormatter().format(record))["msg"]
    assert "xyz" not in msg
    assert "r1" not in msg
