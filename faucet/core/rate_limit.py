"""Per-process burst limiter for the token request endpoint.

This sits in front of the admission pipeline and caps how fast a single
client can hit ``POST /api/faucet/request`` on one worker, before any
network call (captcha, Redis, chain) is made. The pipeline's own IP and
address limits live in the shared counter store and are authoritative.

Strategy: fixed window per client IP, held in an ``InMemoryCounterStore``.
"""

from __future__ import annotations

import hashlib
import logging

from fastapi import HTTPException, Request, status

from faucet.adapters.counter_store.base import AbstractCounterStore
from faucet.adapters.counter_store.in_memory import InMemoryCounterStore
from faucet.core.config import settings
from faucet.core.dependencies import get_client_ip

logger = logging.getLogger(__name__)


_limiter: AbstractCounterStore | None = None


def get_burst_store() -> AbstractCounterStore:
    """Return the process-wide store backing the burst limiter."""
    global _limiter
    if _limiter is None:
        _limiter = InMemoryCounterStore(key_prefix="burst:")
    return _limiter


def reset_burst_store() -> None:
    """Forget all burst counters (tests)."""
    global _limiter
    _limiter = None


def _hash_client(client_ip: str) -> str:
    return hashlib.sha256(client_ip.encode()).hexdigest()[:16]


async def enforce_burst_limit(request: Request) -> None:
    """FastAPI dependency consuming one unit of the caller's burst budget.

    Raises:
        HTTPException: 429 Too Many Requests when the budget is exhausted.
    """
    cfg = settings.rate_limit
    if not cfg.global_enabled:
        return

    client_ip = get_client_ip(request)
    result = await get_burst_store().check_rate_limit(
        f"ip:{client_ip}", cfg.global_max_requests, cfg.global_window_seconds
    )
    if result.allowed:
        return

    retry_after = result.retry_after_seconds or 0
    logger.warning(
        "rate_limit.burst_exceeded",
        extra={
            "client_hash": _hash_client(client_ip),
            "limit": result.limit,
            "window_s": cfg.global_window_seconds,
            "retry_after_s": retry_after,
        },
    )

    headers: dict[str, str] = {}
    if cfg.include_headers:
        headers["Retry-After"] = str(retry_after)
        headers["X-RateLimit-Limit"] = str(result.limit)
        headers["X-RateLimit-Remaining"] = str(result.remaining)
        headers["X-RateLimit-Reset"] = str(result.reset_at)

    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Too many requests. Slow down and try again shortly.",
        headers=headers or None,
    )
