"""In-memory counter store with per-key expiry.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
  Use the Redis store whenever more than one worker serves traffic.
- Coroutine-safe: an asyncio lock serializes read-modify-write sequences.
- Expired keys are dropped on access, and rate-limit checks sweep the whole
  table every ``sweep_every`` calls so one-off keys do not accumulate.
"""

from __future__ import annotations

import asyncio
import fnmatch
import time
from dataclasses import dataclass
from typing import Callable

from faucet.adapters.counter_store.base import AbstractCounterStore, RateLimitResult


@dataclass
class _Entry:
    value: str
    expires_at: float | None


class InMemoryCounterStore(AbstractCounterStore):
    """Dictionary-backed counter store implementing the fixed-window algorithm."""

    def __init__(
        self,
        *,
        key_prefix: str = "",
        clock: Callable[[], float] = time.time,
        sweep_every: int = 256,
    ) -> None:
        """Initialize the in-memory store.

        Args:
            key_prefix: Namespace applied to every key.
            clock: Time source function returning UNIX time in seconds.
            sweep_every: Number of rate-limit checks between full expiry sweeps.
        """
        self._prefix = key_prefix
        self._clock = clock
        self._lock = asyncio.Lock()
        self._entries: dict[str, _Entry] = {}
        self._sweep_every = max(1, sweep_every)
        self._checks_since_sweep = 0

    def _key(self, key: str) -> str:
        if not key:
            raise ValueError("key must be a non-empty string")
        return f"{self._prefix}{key}"

    def _live_entry(self, full_key: str) -> _Entry | None:
        entry = self._entries.get(full_key)
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= self._clock():
            del self._entries[full_key]
            return None
        return entry

    def _evict_expired_locked(self, now: float) -> int:
        expired = [
            k for k, e in self._entries.items()
            if e.expires_at is not None and e.expires_at <= now
        ]
        for k in expired:
            del self._entries[k]
        return len(expired)

    def _ttl(self, entry: _Entry, window_seconds: int) -> float:
        if entry.expires_at is None:
            return float(window_seconds)
        return entry.expires_at - self._clock()

    async def get(self, key: str) -> str | None:
        async with self._lock:
            entry = self._live_entry(self._key(key))
            return entry.value if entry else None

    async def set(self, key: str, value: str, *, ttl_seconds: int | None = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds else None
        async with self._lock:
            self._entries[self._key(key)] = _Entry(value=value, expires_at=expires_at)

    async def delete(self, key: str) -> bool:
        async with self._lock:
            full_key = self._key(key)
            existed = self._live_entry(full_key) is not None
            self._entries.pop(full_key, None)
            return existed

    async def increment(self, key: str, amount: int = 1) -> int:
        async with self._lock:
            full_key = self._key(key)
            entry = self._live_entry(full_key)
            if entry is None:
                entry = _Entry(value="0", expires_at=None)
                self._entries[full_key] = entry
            new_value = int(entry.value) + amount
            entry.value = str(new_value)
            return new_value

    async def check_rate_limit(
        self, key: str, limit: int, window_seconds: int
    ) -> RateLimitResult:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        async with self._lock:
            now = self._clock()
            self._checks_since_sweep += 1
            if self._checks_since_sweep >= self._sweep_every:
                self._checks_since_sweep = 0
                self._evict_expired_locked(now)

            full_key = self._key(key)
            entry = self._live_entry(full_key)

            if entry is None:
                self._entries[full_key] = _Entry(value="1", expires_at=now + window_seconds)
                return RateLimitResult.from_count(
                    count=1, limit=limit, ttl_seconds=window_seconds, allowed=True, now=now
                )

            # Counters created by increment() have no expiry yet; give them the window.
            if entry.expires_at is None:
                entry.expires_at = now + window_seconds

            count = int(entry.value)
            ttl = entry.expires_at - now
            if count >= limit:
                return RateLimitResult.from_count(
                    count=count, limit=limit, ttl_seconds=ttl, allowed=False, now=now
                )

            entry.value = str(count + 1)
            return RateLimitResult.from_count(
                count=count + 1, limit=limit, ttl_seconds=ttl, allowed=True, now=now
            )

    async def peek_rate_limit(
        self, key: str, limit: int, window_seconds: int
    ) -> RateLimitResult:
        async with self._lock:
            now = self._clock()
            entry = self._live_entry(self._key(key))
            if entry is None:
                return RateLimitResult.from_count(
                    count=0, limit=limit, ttl_seconds=0, allowed=True, now=now
                )
            count = int(entry.value)
            return RateLimitResult.from_count(
                count=count,
                limit=limit,
                ttl_seconds=self._ttl(entry, window_seconds),
                allowed=count < limit,
                now=now,
            )

    async def list_keys_by_pattern(self, pattern: str) -> list[str]:
        async with self._lock:
            full_pattern = f"{self._prefix}{pattern}"
            keys = [
                k for k in list(self._entries)
                if fnmatch.fnmatchcase(k, full_pattern) and self._live_entry(k) is not None
            ]
        return [k[len(self._prefix):] for k in keys]

    async def ping(self) -> bool:
        return True

    def clear(self) -> None:
        """Drop every entry (tests and development resets)."""
        self._entries.clear()
