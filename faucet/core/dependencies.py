"""FastAPI dependency providers.

Services are built once by ``create_app`` and stored on ``app.state``;
routes resolve them through these providers so tests can swap them with
``app.dependency_overrides``.
"""

from __future__ import annotations

from fastapi import Request

from faucet.core.config import settings
from faucet.services.faucet_service import FaucetService


def get_faucet_service(request: Request) -> FaucetService:
    return request.app.state.faucet_service


def get_client_ip(request: Request) -> str:
    """Client IP for rate limiting and captcha.

    The first ``X-Forwarded-For`` hop is used only when ``APP_TRUST_PROXY``
    is enabled; otherwise a client could choose its own rate-limit key.
    """
    if settings.app.trust_proxy:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    return request.client.host if request.client else "unknown"
