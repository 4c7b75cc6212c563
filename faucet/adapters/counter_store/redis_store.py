"""Redis-backed counter store.

Rate-limit windows are evaluated by a Lua script so the read, create and
increment steps for a key run atomically on the server. Every key carries
the configured namespace prefix so several deployments can share one Redis.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from faucet.adapters.counter_store.base import AbstractCounterStore, RateLimitResult
from faucet.core.errors import CounterStoreError

logger = logging.getLogger(__name__)

# KEYS[1] counter key, ARGV[1] limit, ARGV[2] window seconds.
# Returns {allowed (0/1), count after the call, ttl seconds}.
FIXED_WINDOW_SCRIPT = """
local current = redis.call('GET', KEYS[1])
local limit = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
if not current then
  redis.call('SET', KEYS[1], 1, 'EX', window)
  return {1, 1, window}
end
local count = tonumber(current)
local ttl = redis.call('TTL', KEYS[1])
if ttl < 0 then
  redis.call('EXPIRE', KEYS[1], window)
  ttl = window
end
if count >= limit then
  return {0, count, ttl}
end
count = redis.call('INCR', KEYS[1])
return {1, count, ttl}
"""


class RedisCounterStore(AbstractCounterStore):
    """Counter store on top of ``redis.asyncio``."""

    def __init__(self, client: aioredis.Redis, *, key_prefix: str = "") -> None:
        """Wrap an existing client.

        Args:
            client: ``redis.asyncio.Redis`` created with ``decode_responses=True``.
            key_prefix: Namespace applied to every key.
        """
        self._client = client
        self._prefix = key_prefix
        self._fixed_window = client.register_script(FIXED_WINDOW_SCRIPT)

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        password: str | None = None,
        db: int = 0,
        key_prefix: str = "",
        socket_timeout: float = 2.0,
    ) -> "RedisCounterStore":
        client = aioredis.from_url(
            url,
            password=password,
            db=db,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client, key_prefix=key_prefix)

    def _key(self, key: str) -> str:
        if not key:
            raise ValueError("key must be a non-empty string")
        return f"{self._prefix}{key}"

    @contextmanager
    def _translate_errors(self, operation: str, key: str | None = None) -> Iterator[None]:
        try:
            yield
        except (RedisError, OSError) as exc:
            logger.error(
                "counter_store.operation_failed",
                extra={"operation": operation, "key": key, "error": str(exc)},
            )
            raise CounterStoreError(f"Redis {operation} failed: {exc}") from exc

    async def get(self, key: str) -> str | None:
        with self._translate_errors("GET", key):
            return await self._client.get(self._key(key))

    async def set(self, key: str, value: str, *, ttl_seconds: int | None = None) -> None:
        with self._translate_errors("SET", key):
            await self._client.set(self._key(key), value, ex=ttl_seconds)

    async def delete(self, key: str) -> bool:
        with self._translate_errors("DEL", key):
            return bool(await self._client.delete(self._key(key)))

    async def increment(self, key: str, amount: int = 1) -> int:
        with self._translate_errors("INCRBY", key):
            return int(await self._client.incrby(self._key(key), amount))

    async def check_rate_limit(
        self, key: str, limit: int, window_seconds: int
    ) -> RateLimitResult:
        with self._translate_errors("EVALSHA", key):
            allowed, count, ttl = await self._fixed_window(
                keys=[self._key(key)], args=[limit, window_seconds]
            )
        return RateLimitResult.from_count(
            count=int(count),
            limit=limit,
            ttl_seconds=float(ttl),
            allowed=bool(int(allowed)),
        )

    async def peek_rate_limit(
        self, key: str, limit: int, window_seconds: int
    ) -> RateLimitResult:
        with self._translate_errors("GET/TTL", key):
            async with self._client.pipeline(transaction=False) as pipe:
                pipe.get(self._key(key))
                pipe.ttl(self._key(key))
                value, ttl = await pipe.execute()

        if value is None:
            return RateLimitResult.from_count(count=0, limit=limit, ttl_seconds=0, allowed=True)

        count = int(value)
        ttl_seconds = float(ttl) if ttl is not None and ttl >= 0 else float(window_seconds)
        return RateLimitResult.from_count(
            count=count, limit=limit, ttl_seconds=ttl_seconds, allowed=count < limit
        )

    async def list_keys_by_pattern(self, pattern: str) -> list[str]:
        keys: list[str] = []
        with self._translate_errors("SCAN", pattern):
            async for full_key in self._client.scan_iter(match=self._key(pattern), count=500):
                keys.append(full_key[len(self._prefix):])
        return keys

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except (RedisError, OSError) as exc:
            logger.error("counter_store.ping_failed", extra={"error": str(exc)})
            return False

    async def close(self) -> None:
        await self._client.aclose()
