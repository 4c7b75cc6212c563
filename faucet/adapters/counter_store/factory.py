"""Factory for the configured counter store backend."""

from faucet.adapters.counter_store.base import AbstractCounterStore
from faucet.adapters.counter_store.in_memory import InMemoryCounterStore
from faucet.adapters.counter_store.redis_store import RedisCounterStore
from faucet.core.config import StoreSettings, settings
from faucet.core.errors import ValidationAppError


def create_counter_store(store_settings: StoreSettings | None = None) -> AbstractCounterStore:
    """Instantiate the counter store selected by ``STORE_BACKEND``.

    Raises:
        ValidationAppError: If the backend name is unknown.
    """
    cfg = store_settings or settings.store
    backend = cfg.backend.lower()

    if backend == "redis":
        password = cfg.redis_password.get_secret_value() if cfg.redis_password else None
        return RedisCounterStore.from_url(
            cfg.redis_url,
            password=password,
            db=cfg.redis_db,
            key_prefix=cfg.key_prefix,
            socket_timeout=cfg.socket_timeout_seconds,
        )

    if backend == "memory":
        return InMemoryCounterStore(key_prefix=cfg.key_prefix)

    raise ValidationAppError(
        code="store_unknown_backend",
        message=f"Unknown counter store backend: '{backend}'. Supported: redis, memory",
    )
