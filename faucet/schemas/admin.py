"""Pydantic schemas for the administrative API."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field

from faucet.schemas.faucet import CamelModel, FaucetInfo, FaucetStats, HealthStatus


class ResetRateLimitBody(CamelModel):
    type: Literal["ip", "address"]
    value: str = Field(..., min_length=1)


class ResetRateLimitResult(CamelModel):
    type: str
    value: str
    reset: bool = Field(..., description="False when no counter existed for the key.")


class ManualSendBody(CamelModel):
    address: str


class BalanceInfo(CamelModel):
    faucet_address: str
    balance: str
    currency_symbol: str
    low_balance: bool
    low_balance_threshold: str


class Dashboard(CamelModel):
    stats: FaucetStats
    info: FaucetInfo
    health: HealthStatus


class ConfigSnapshot(CamelModel):
    """Effective configuration with secrets removed."""

    environment: str
    chain: dict[str, Any]
    faucet: dict[str, Any]
    rate_limit: dict[str, Any]
    captcha: dict[str, Any]
    store: dict[str, Any]
