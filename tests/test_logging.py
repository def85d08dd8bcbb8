"""Tests for the JSON log formatter and the request id middleware."""

import json
import logging
import os
import sys
from pathlib import Path

from fastapi import FastAPI
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from upstream.core.logging import JsonLogFormatter
from upstream.middlewares import RequestIdMiddleware, request_id_ctx_var


def _record(message, **extra_data):
    record = logging.LogRecord("upstream.test", logging.INFO, __file__, 1, message, None, None)
    if extra_data:
        record.extra_data = extra_data
    return record


def test_formatter_tags_service_request_and_extra():
    token = request_id_ctx_var.set("req-1")
    try:
        line = JsonLogFormatter(service="UpStream").format(_record("milestone.deleted", milestone_id=7))
    finally:
        request_id_ctx_var.reset(token)

    payload = json.loads(line)
    assert payload["message"] == "milestone.deleted"
    assert payload["service"] == "UpStream"
    assert payload["request_id"] == "req-1"
    assert payload["milestone_id"] == 7
    assert payload["timestamp"].endswith("Z")


def test_formatter_serializes_unknown_types_as_strings():
    payload = json.loads(JsonLogFormatter().format(_record("x", path=Path("/tmp/a"))))
    assert payload["path"] == "/tmp/a"
    assert "service" not in payload


def _app():
    app = FastAPI()
    app.add_middleware(RequestIdMiddleware)

    @app.get("/ok")
    async def ok():
        return {"ok": True}

    @app.get("/boom")
    async def boom():
        raise RuntimeError("boom")

    return app


def test_request_id_is_echoed_or_generated():
    client = TestClient(_app())

    response = client.get("/ok", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"
    assert response.headers["X-Response-Time"].endswith("ms")

    generated = client.get("/ok").headers["X-Request-ID"]
    assert len(generated) == 32


def test_failed_request_is_logged_with_its_id(caplog):
    client = TestClient(_app(), raise_server_exceptions=False)

    with caplog.at_level(logging.INFO, logger="upstream.request"):
        response = client.get("/boom", headers={"X-Request-ID": "fail-1"})

    assert response.status_code == 500
    failed = [record for record in caplog.records if record.getMessage() == "request.failed"]
    assert len(failed) == 1
    assert failed[0].extra_data["request_id"] == "fail-1"
    assert failed[0].exc_info is not None
