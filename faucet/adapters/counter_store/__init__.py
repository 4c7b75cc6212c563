"""Counter store adapters.

Shared key/value storage for rate-limit windows, aggregate statistics and
short-lived transaction records. Redis in production, in-memory for a single
process.
"""

from faucet.adapters.counter_store.base import AbstractCounterStore, RateLimitResult
from faucet.adapters.counter_store.factory import create_counter_store
from faucet.adapters.counter_store.in_memory import InMemoryCounterStore
from faucet.adapters.counter_store.redis_store import RedisCounterStore

__all__ = [
    "AbstractCounterStore",
    "InMemoryCounterStore",
    "RateLimitResult",
    "RedisCounterStore",
    "create_counter_store",
]
