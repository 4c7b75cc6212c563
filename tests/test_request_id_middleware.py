from __future__ import annotations

import logging

from fastapi.testclient import TestClient

from faucet.main import app


client = TestClient(app)


def test_preserves_incoming_request_id_header():
    incoming_id = "test-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": incoming_id})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == incoming_id


def test_generates_request_id_when_missing():
    resp = client.get("/health")

    assert resp.status_code == 200
    generated = resp.headers.get("X-Request-ID")
    assert generated
    assert isinstance(generated, str)
    assert len(generated) > 0

    duration = resp.headers.get("X-Request-Duration-ms")
    assert duration is not None


def test_cors_preflight_allows_configured_origin():
    resp = client.options(
        "/api/faucet/request",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "POST",
        },
    )

    assert resp.status_code == 200
    assert resp.headers.get("access-control-allow-origin") == "http://localhost:3000"


def test_request_id_included_in_domain_error_body():
    resp = client.post(
        "/api/faucet/request",
        json={"address": "0xZZZZ", "proofToken": "tok"},
        headers={"X-Request-ID": "faucet-req-7"},
    )

    assert resp.status_code == 400
    assert resp.headers.get("X-Request-ID") == "faucet-req-7"
    error = resp.json()["error"]
    assert error["code"] == "invalid_address"
    assert error["request_id"] == "faucet-req-7"


def test_access_log_line_emitted(caplog):
    with caplog.at_level(logging.INFO, logger="faucet.core.middleware"):
        resp = client.get("/api/faucet/cooldown/0x123")

    assert resp.status_code == 400
    records = [r for r in caplog.records if r.getMessage() == "http.request"]
    assert records
    assert records[-1].method == "GET"
    assert records[-1].path == "/api/faucet/cooldown/0x123"
    assert records[-1].status == 400
