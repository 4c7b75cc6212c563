"""HTTP tests for the public faucet API."""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from faucet.adapters.captcha.base import CaptchaResult
from faucet.core.app_factory import create_app
from faucet.core.config import settings
from faucet.core.errors import ChainAppError
from faucet.core.rate_limit import reset_burst_store

from conftest import RECIPIENT, TREASURY_ADDRESS


@pytest.fixture
def client(service):
    reset_burst_store()
    with TestClient(create_app(service)) as test_client:
        yield test_client


def request_tokens(client: TestClient, address: str = RECIPIENT, **extra):
    return client.post("/api/faucet/request", json={"address": address, "proofToken": "tok", **extra})


class TestRequestEndpoint:
    def test_success_envelope(self, client: TestClient, captcha) -> None:
        response = request_tokens(client)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["address"] == RECIPIENT
        assert body["data"]["amount"] == "10"
        assert body["data"]["txHash"].startswith("0x")
        assert "timestamp" in body["data"]
        assert captcha.calls == [("tok", "testclient")]

    def test_captcha_token_alias_accepted(self, client: TestClient, captcha) -> None:
        response = client.post(
            "/api/faucet/request", json={"address": RECIPIENT, "captchaToken": "legacy-tok"}
        )

        assert response.status_code == 200
        assert captcha.calls[0][0] == "legacy-tok"

    def test_invalid_address_returns_400(self, client: TestClient, chain) -> None:
        response = request_tokens(client, address="0x123")

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "invalid_address"
        assert chain.sent == []

    def test_missing_address_returns_400(self, client: TestClient) -> None:
        response = client.post("/api/faucet/request", json={"proofToken": "tok"})

        assert response.status_code == 400
        body = response.json()
        assert body["error"]["code"] == "invalid_request"
        assert "body.address" in body["error"]["details"]["fields"]

    def test_captcha_failure_returns_400(self, client: TestClient, captcha) -> None:
        captcha.result = CaptchaResult(success=False, error_codes=["timeout-or-duplicate"])

        response = request_tokens(client)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "captcha_failed"

    def test_second_request_same_address_is_rate_limited(self, client: TestClient) -> None:
        first = request_tokens(client)
        second = request_tokens(client)

        assert first.status_code == 200
        assert first.json()["data"]["amount"] == "10"
        assert second.status_code == 429
        assert second.headers["Retry-After"] == "86400"
        error = second.json()["error"]
        assert error["code"] == "rate_limited_address"
        assert error["details"]["retry_after"] == 86400

    def test_treasury_low_returns_503(self, client: TestClient, chain) -> None:
        chain.balance = Decimal("5")

        response = request_tokens(client)

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "treasury_low"

    @pytest.mark.parametrize("code, status", [("chain_error", 500), ("chain_unreachable", 503)])
    def test_chain_errors(self, client: TestClient, chain, code: str, status: int) -> None:
        chain.send_error = ChainAppError(code=code, message="boom")

        response = request_tokens(client)

        assert response.status_code == status
        assert response.json()["error"]["code"] == code

    def test_error_carries_request_id(self, client: TestClient) -> None:
        response = client.post(
            "/api/faucet/request",
            json={"address": "nope", "proofToken": "tok"},
            headers={"X-Request-ID": "req-abc"},
        )

        assert response.json()["error"]["request_id"] == "req-abc"
        assert response.headers["X-Request-ID"] == "req-abc"


class TestReadOnlyEndpoints:
    def test_info_is_camel_case_and_stable(self, client: TestClient) -> None:
        first = client.get("/api/faucet/info")
        second = client.get("/api/faucet/info")

        assert first.status_code == 200
        assert first.json() == second.json()
        data = first.json()["data"]
        assert data["chainId"] == 6174
        assert data["faucetAddress"] == TREASURY_ADDRESS
        assert data["faucetBalance"] == "1000"
        assert data["amount"] == "10"
        assert data["cooldownHours"] == 24
        assert data["captchaEnabled"] is True

    def test_stats_are_stable_and_update_after_success(self, client: TestClient) -> None:
        assert client.get("/api/faucet/stats").json() == client.get("/api/faucet/stats").json()

        request_tokens(client)
        data = client.get("/api/faucet/stats").json()["data"]

        assert data["totalRequests"] == 1
        assert data["successfulRequests"] == 1
        assert data["totalDistributed"] == "10"

    def test_cooldown_does_not_consume(self, client: TestClient) -> None:
        for _ in range(3):
            data = client.get(f"/api/faucet/cooldown/{RECIPIENT}").json()["data"]
            assert data["canRequest"] is True

        assert request_tokens(client).status_code == 200

        data = client.get(f"/api/faucet/cooldown/{RECIPIENT}").json()["data"]
        assert data["canRequest"] is False
        assert data["remainingSeconds"] == 86400

    def test_cooldown_invalid_address(self, client: TestClient) -> None:
        response = client.get("/api/faucet/cooldown/not-an-address")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "invalid_address"

    def test_health_ok_and_unhealthy(self, client: TestClient, chain) -> None:
        response = client.get("/api/faucet/health")
        assert response.status_code == 200
        assert response.json()["data"] == {
            "healthy": True,
            "blockchain": True,
            "counterStore": True,
            "captcha": True,
        }

        chain.healthy = False
        response = client.get("/api/faucet/health")
        assert response.status_code == 503
        assert response.json()["data"]["healthy"] is False


class TestRootEndpoints:
    def test_liveness(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_descriptor(self, client: TestClient) -> None:
        body = client.get("/").json()

        assert body["name"] == "Token Faucet API"
        assert body["endpoints"]["faucet"] == "/api/faucet"


def test_shutdown_closes_adapters(service, chain) -> None:
    reset_burst_store()
    with TestClient(create_app(service)):
        pass

    assert chain.closed is True


def test_debug_flag_reaches_app(service, monkeypatch) -> None:
    assert create_app(service).debug is False

    monkeypatch.setattr(settings.app, "debug", True)
    assert create_app(service).debug is True
