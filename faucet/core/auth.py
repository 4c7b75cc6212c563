"""Bearer-token authentication for the administrative API.

A single operator token is configured via ``ADMIN_TOKEN``. Requests to
``/api/admin`` must send ``Authorization: Bearer <token>``.

- Missing or malformed header → 401
- Wrong token → 403
- Token not configured on the server → 500 (admin API unusable, not open)
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from typing import Annotated

from fastapi import Header, HTTPException, status

from faucet.core.config import settings
from faucet.core.errors import AuthenticationAppError

logger = logging.getLogger(__name__)


def parse_bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization`` header value.

    Examples:
        >>> parse_bearer_token("Bearer abc")
        'abc'
        >>> parse_bearer_token("Basic abc") is None
        True
        >>> parse_bearer_token(None) is None
        True
    """
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _token_hash(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()[:16]


def validate_admin_token(provided_token: str) -> None:
    """Compare a provided token against ``ADMIN_TOKEN`` in constant time.

    Raises:
        AuthenticationAppError: ``admin_token_not_configured`` or
            ``invalid_admin_token``.
    """
    configured = settings.admin.token.get_secret_value() if settings.admin.token else ""

    if not configured:
        logger.error("admin_auth_failed", extra={"reason": "admin_token_not_configured"})
        raise AuthenticationAppError(
            code="admin_token_not_configured",
            message="Admin API is not configured",
            details={"hint": "Set ADMIN_TOKEN environment variable"},
        )

    if not secrets.compare_digest(provided_token.encode(), configured.encode()):
        logger.warning(
            "admin_auth_failed",
            extra={"reason": "invalid_admin_token", "token_hash": _token_hash(provided_token)},
        )
        raise AuthenticationAppError(
            code="invalid_admin_token",
            message="Invalid admin token",
        )


async def verify_admin_token(
    authorization: Annotated[str | None, Header(alias="Authorization")] = None,
) -> None:
    """FastAPI dependency guarding the admin router.

    Usage:
        router = APIRouter(dependencies=[Depends(verify_admin_token)])

    Raises:
        HTTPException: 401, 403 or 500 as described in the module docstring.
    """
    token = parse_bearer_token(authorization)
    if token is None:
        logger.warning("admin_auth.missing_token", extra={"header_present": bool(authorization)})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token. Provide Authorization: Bearer <token>.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        validate_admin_token(token)
    except AuthenticationAppError as exc:
        status_code = (
            status.HTTP_500_INTERNAL_SERVER_ERROR
            if exc.code == "admin_token_not_configured"
            else status.HTTP_403_FORBIDDEN
        )
        raise HTTPException(status_code=status_code, detail=exc.message) from exc

    logger.info("admin_auth.success", extra={"token_hash": _token_hash(token)})
