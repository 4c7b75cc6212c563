"""Unit tests for admin bearer-token authentication."""

from unittest.mock import patch

import pytest
from fastapi import HTTPException
from pydantic import SecretStr

from faucet.core.auth import parse_bearer_token, validate_admin_token, verify_admin_token
from faucet.core.errors import AuthenticationAppError


class TestParseBearerToken:
    """Test Authorization header parsing."""

    def test_parse_bearer(self) -> None:
        assert parse_bearer_token("Bearer abc123") == "abc123"

    def test_scheme_is_case_insensitive(self) -> None:
        assert parse_bearer_token("bearer abc123") == "abc123"

    def test_surrounding_whitespace_trimmed(self) -> None:
        assert parse_bearer_token("  Bearer   abc123  ") == "abc123"

    @pytest.mark.parametrize("header", [None, "", "Bearer", "Bearer   ", "Basic abc123", "abc123"])
    def test_invalid_headers_return_none(self, header) -> None:
        assert parse_bearer_token(header) is None


class TestValidateAdminToken:
    """Test core token comparison logic."""

    @patch("faucet.core.auth.settings")
    def test_valid_token_passes(self, mock_settings) -> None:
        mock_settings.admin.token = SecretStr("s3cret")

        validate_admin_token("s3cret")

    @patch("faucet.core.auth.settings")
    def test_wrong_token_raises(self, mock_settings) -> None:
        mock_settings.admin.token = SecretStr("s3cret")

        with pytest.raises(AuthenticationAppError) as exc_info:
            validate_admin_token("guess")

        assert exc_info.value.code == "invalid_admin_token"

    @patch("faucet.core.auth.settings")
    def test_unconfigured_token_raises(self, mock_settings) -> None:
        mock_settings.admin.token = None

        with pytest.raises(AuthenticationAppError) as exc_info:
            validate_admin_token("anything")

        assert exc_info.value.code == "admin_token_not_configured"


class TestVerifyAdminTokenDependency:
    """Test the FastAPI dependency status mapping."""

    @pytest.mark.asyncio
    async def test_missing_header_is_401(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await verify_admin_token(None)

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    @patch("faucet.core.auth.settings")
    async def test_wrong_token_is_403(self, mock_settings) -> None:
        mock_settings.admin.token = SecretStr("s3cret")

        with pytest.raises(HTTPException) as exc_info:
            await verify_admin_token("Bearer nope")

        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    @patch("faucet.core.auth.settings")
    async def test_unconfigured_is_500(self, mock_settings) -> None:
        mock_settings.admin.token = None

        with pytest.raises(HTTPException) as exc_info:
            await verify_admin_token("Bearer anything")

        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    @patch("faucet.core.auth.settings")
    async def test_valid_token_returns_none(self, mock_settings) -> None:
        mock_settings.admin.token = SecretStr("s3cret")

        assert await verify_admin_token("Bearer s3cret") is None
