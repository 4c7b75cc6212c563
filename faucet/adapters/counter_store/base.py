"""Counter store interfaces.

The admission pipeline depends on this abstraction (not a concrete backend)
so Redis can be swapped for the in-memory store in development and tests.
"""

from __future__ import annotations

import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check/consume operation.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_at: UNIX epoch seconds when the current window resets.
        retry_after_seconds: Suggested wait time in seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None

    @classmethod
    def from_count(
        cls,
        *,
        count: int,
        limit: int,
        ttl_seconds: float,
        allowed: bool,
        now: float | None = None,
    ) -> "RateLimitResult":
        """Build a result from a window counter and its remaining lifetime."""
        now = time.time() if now is None else now
        ttl = max(0.0, ttl_seconds)
        return cls(
            allowed=allowed,
            limit=limit,
            remaining=max(0, limit - count),
            reset_at=int(math.ceil(now + ttl)),
            retry_after_seconds=None if allowed else int(math.ceil(ttl)),
        )


class AbstractCounterStore(ABC):
    """Interface for the shared counter store.

    Keys passed to and returned from every method are un-prefixed; the
    store applies its namespace prefix internally.

    Implementations raise ``CounterStoreError`` when the backend cannot be
    reached. Whether that blocks or admits traffic is the caller's policy.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: str, *, ttl_seconds: int | None = None) -> None:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete a key. Returns True if it existed."""
        raise NotImplementedError

    @abstractmethod
    async def increment(self, key: str, amount: int = 1) -> int:
        """Atomically add ``amount`` to an integer key and return the new value."""
        raise NotImplementedError

    @abstractmethod
    async def check_rate_limit(
        self, key: str, limit: int, window_seconds: int
    ) -> RateLimitResult:
        """Consume one request from a fixed-window counter.

        If no counter exists it is created with value 1 and a TTL of
        ``window_seconds``. If the counter is below ``limit`` it is
        incremented. Otherwise the request is denied and the counter is left
        untouched until it expires. Must be atomic per key.
        """
        raise NotImplementedError

    @abstractmethod
    async def peek_rate_limit(
        self, key: str, limit: int, window_seconds: int
    ) -> RateLimitResult:
        """Report whether the next request would be allowed, without consuming."""
        raise NotImplementedError

    @abstractmethod
    async def list_keys_by_pattern(self, pattern: str) -> list[str]:
        """Return un-prefixed keys matching a glob pattern (best-effort)."""
        raise NotImplementedError

    @abstractmethod
    async def ping(self) -> bool:
        raise NotImplementedError

    async def close(self) -> None:  # pragma: no cover - default no-op
        return None
