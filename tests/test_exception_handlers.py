"""Tests for global exception handlers.

Validates that every domain error maps to its HTTP status with the shared
error envelope, and that unexpected errors never leak internals.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from faucet.core.errors import (
    AppError,
    AuthenticationAppError,
    CaptchaAppError,
    ChainAppError,
    DependencyUnavailableAppError,
    RateLimitedAppError,
    TreasuryLowAppError,
    ValidationAppError,
)
from faucet.core.exception_handlers import (
    general_exception_handler,
    setup_exception_handlers,
    status_code_for,
)


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    """Create test client with handlers enabled."""
    return TestClient(app_with_handlers)


class TestStatusMapping:
    """Test domain error to HTTP status resolution."""

    @pytest.mark.parametrize(
        "error, expected",
        [
            (ValidationAppError(code="invalid_address", message="bad"), 400),
            (CaptchaAppError(code="captcha_failed", message="bad"), 400),
            (AuthenticationAppError(code="invalid_admin_token", message="bad"), 403),
            (RateLimitedAppError(code="rate_limited_ip", message="slow down"), 429),
            (TreasuryLowAppError(code="treasury_low", message="empty"), 503),
            (DependencyUnavailableAppError(code="counter_store_unavailable", message="down"), 503),
            (ChainAppError(code="chain_error", message="reverted"), 500),
            (ChainAppError(code="chain_unreachable", message="no rpc"), 503),
            (AppError(code="other", message="other"), 400),
        ],
    )
    def test_status_code_for(self, error, expected):
        assert status_code_for(error) == expected


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    def test_validation_error_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify ValidationAppError returns HTTP 400 with the error envelope."""
        @app_with_handlers.get("/test-validation")
        async def test_endpoint():
            raise ValidationAppError(
                code="invalid_address",
                message="Invalid Ethereum address",
                details={"address": "0x123"},
            )

        response = client.get("/test-validation")

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["error"]["code"] == "invalid_address"
        assert data["error"]["message"] == "Invalid Ethereum address"
        assert data["error"]["details"] == {"address": "0x123"}
        assert "request_id" in data["error"]

    def test_rate_limited_sets_retry_after(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-rate-limited")
        async def test_endpoint():
            raise RateLimitedAppError(
                code="rate_limited_address",
                message="Try again in 24 hours",
                details={"scope": "address", "limit": 1, "retry_after": 86400, "reset_at": 1},
            )

        response = client.get("/test-rate-limited")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "86400"
        assert response.json()["error"]["details"]["scope"] == "address"

    def test_treasury_low_returns_503(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-treasury")
        async def test_endpoint():
            raise TreasuryLowAppError(code="treasury_low", message="Faucet is empty")

        response = client.get("/test-treasury")

        assert response.status_code == 503
        assert "Retry-After" not in response.headers
        assert "details" not in response.json()["error"]

    def test_chain_error_returns_500(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-chain")
        async def test_endpoint():
            raise ChainAppError(code="chain_error", message="Transaction failed on chain")

        response = client.get("/test-chain")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "chain_error"

    def test_authentication_error_returns_403(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-auth")
        async def test_endpoint():
            raise AuthenticationAppError(code="invalid_admin_token", message="Invalid admin token")

        response = client.get("/test-auth")

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "invalid_admin_token"


class TestRequestValidationHandler:
    """Test body validation failures map to 400."""

    def test_missing_field_returns_400_with_fields(self, client: TestClient, app_with_handlers: FastAPI):
        class Body(BaseModel):
            address: str

        @app_with_handlers.post("/test-body")
        async def test_endpoint(body: Body):
            return {"ok": True}

        response = client.post("/test-body", json={})

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["error"]["code"] == "invalid_request"
        assert "body.address" in data["error"]["details"]["fields"]


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_unexpected_exception_handler_registered(self, app_with_handlers: FastAPI):
        assert Exception in app_with_handlers.exception_handlers

    def test_general_exception_handler_logic(self):
        """Verify general_exception_handler hides the original message."""
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        exc = RuntimeError("nonce too low for 0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266")
        response = asyncio.run(general_exception_handler(request, exc))

        data = json.loads(bytes(response.body).decode())
        assert response.status_code == 500
        assert data["success"] is False
        assert data["error"]["code"] == "internal_server_error"
        assert "nonce" not in data["error"]["message"]
        assert "request_id" in data["error"]

    def test_general_exception_handler_never_leaks_stack_trace(self):
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        response = asyncio.run(general_exception_handler(request, ValueError("boom")))

        response_text = bytes(response.body).decode()
        assert "Traceback" not in response_text
        assert "ValueError" not in response_text

    def test_unhandled_route_error_returns_envelope(self, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-crash")
        async def test_endpoint():
            raise RuntimeError("boom")

        client = TestClient(app_with_handlers, raise_server_exceptions=False)
        response = client.get("/test-crash")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "internal_server_error"


class TestErrorHandlerIntegration:
    """Integration tests for exception handler setup."""

    def test_multiple_handler_setups_does_not_fail(self):
        app = FastAPI()

        setup_exception_handlers(app)
        setup_exception_handlers(app)

        assert AppError in app.exception_handlers
