"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file

Settings are split by concern (chain, faucet, rate limits, captcha, counter
store, admin, logging) and composed into a single ``Settings`` container.
"""

from __future__ import annotations

import os
from decimal import Decimal
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file and os.getenv("TESTING") != "true":
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class AppSettings(BaseSettings):
    """HTTP-facing application configuration."""

    debug: bool = Field(
        False,
        description="Serve Starlette debug tracebacks on unhandled errors (development only)",
    )
    cors_origins: str = Field(
        "http://localhost:3000",
        description="Comma-separated list of allowed CORS origins",
    )
    trust_proxy: bool = Field(
        False,
        description="Use the first X-Forwarded-For hop as the client IP",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="'json' or 'plain'")
    output: str = Field("stdout", description="'stdout' or 'file'")
    file_path: str | None = Field(
        "logs/faucet.log",
        description="Log file path when output=file",
    )
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
    )
    backup_count: int = Field(5, description="Rotated files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read and echo the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class ChainSettings(BaseSettings):
    """Remote chain endpoint configuration."""

    rpc_url: str = Field(
        "http://localhost:8545",
        description="Primary JSON-RPC endpoint (used for all sends)",
    )
    rpc_fallback_url: str | None = Field(
        None,
        description="Secondary endpoint consulted for balance reads only",
    )
    chain_id: int = Field(6174, description="Chain id stamped on transactions")
    chain_name: str = Field("AndeChain", description="Display name of the chain")
    currency_symbol: str = Field("ANDE", description="Native currency ticker")
    request_timeout_seconds: float = Field(
        10.0,
        description="Upper bound for a single RPC call",
        gt=0,
    )
    confirmation_timeout_seconds: float = Field(
        60.0,
        description="Upper bound for waiting on a transaction receipt",
        gt=0,
    )
    poll_latency_seconds: float = Field(
        1.0,
        description="Receipt polling interval",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="CHAIN_",
        case_sensitive=False,
    )


class FaucetSettings(BaseSettings):
    """Treasury and payout configuration."""

    private_key: SecretStr | None = Field(
        None,
        description="Treasury account private key (0x-prefixed hex)",
    )
    amount: Decimal = Field(
        Decimal("10"),
        description="Native currency sent per successful request",
        gt=0,
    )
    gas_limit: int = Field(21000, description="Gas limit for a plain transfer", ge=21000)
    gas_price_multiplier: float = Field(
        1.2,
        description="Multiplier applied to the node gas price",
        gt=0,
    )
    balance_safety_factor: int = Field(
        2,
        description="Treasury must hold at least this many payouts before sending",
        ge=1,
    )
    low_balance_threshold: Decimal = Field(
        Decimal("100"),
        description="Balance below which health checks emit a low-balance warning",
    )
    record_ttl_seconds: int = Field(
        7 * 24 * 3600,
        description="Lifetime of per-transaction records in the counter store",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="FAUCET_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Fixed-window rate limits for the admission pipeline and HTTP layer."""

    ip_max_requests: int = Field(5, ge=1)
    ip_window_seconds: int = Field(3600, ge=1)
    address_max_requests: int = Field(1, ge=1)
    address_window_seconds: int = Field(86400, ge=1)
    fail_open: bool = Field(
        True,
        description="Allow requests when the counter store is unreachable",
    )

    global_enabled: bool = Field(
        True,
        description="Enable the per-process burst limiter on the request endpoint",
    )
    global_max_requests: int = Field(100, ge=1)
    global_window_seconds: int = Field(60, ge=1)
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class CaptchaSettings(BaseSettings):
    """Cloudflare Turnstile configuration."""

    enabled: bool = Field(False, description="Require a valid captcha token")
    secret_key: SecretStr | None = Field(None, description="Turnstile secret key")
    site_key: str = Field("", description="Turnstile site key served to the frontend")
    verify_url: str = Field(
        "https://challenges.cloudflare.com/turnstile/v0/siteverify",
        description="Siteverify endpoint",
    )
    timeout_seconds: float = Field(5.0, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="CAPTCHA_",
        case_sensitive=False,
    )


class StoreSettings(BaseSettings):
    """Counter store (Redis) configuration."""

    backend: str = Field("redis", description="'redis' or 'memory'")
    redis_url: str = Field("redis://localhost:6379")
    redis_password: SecretStr | None = Field(None)
    redis_db: int = Field(0, ge=0)
    key_prefix: str = Field("faucet:", description="Namespace applied to every key")
    socket_timeout_seconds: float = Field(2.0, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        case_sensitive=False,
    )


class AdminSettings(BaseSettings):
    """Administrative API configuration."""

    token: SecretStr | None = Field(
        None,
        description="Bearer token required on /api/admin routes",
    )

    model_config = SettingsConfigDict(
        env_prefix="ADMIN_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Nested groups are created via default_factory so each reads its own
    prefixed environment variables.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=AppSettings)
    log: LogSettings = Field(default_factory=LogSettings)
    chain: ChainSettings = Field(default_factory=ChainSettings)
    faucet: FaucetSettings = Field(default_factory=FaucetSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    captcha: CaptchaSettings = Field(default_factory=CaptchaSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    admin: AdminSettings = Field(default_factory=AdminSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
settings = Settings()
