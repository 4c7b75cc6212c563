"""Pydantic schemas for the public faucet API.

Responses are serialized with camelCase aliases; request bodies accept
either camelCase or snake_case field names.
"""

from __future__ import annotations

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope shared by every JSON endpoint."""

    success: bool = True
    data: T


class FaucetRequestBody(CamelModel):
    address: str = Field(..., description="Recipient account address (0x + 40 hex digits).")
    proof_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("proofToken", "captchaToken", "proof_token"),
        description="Captcha token issued to the client. Required when captcha is enabled.",
    )


class FaucetRequestData(CamelModel):
    tx_hash: str
    address: str
    amount: str = Field(..., description="Amount sent, in native currency units.")
    timestamp: datetime


class FaucetInfo(CamelModel):
    chain_id: int
    chain_name: str
    currency_symbol: str
    faucet_address: str
    faucet_balance: str
    amount: str
    cooldown_hours: float
    captcha_enabled: bool
    captcha_site_key: str


class FaucetStats(CamelModel):
    """Aggregate counters.

    ``total_requests`` counts requests that reached the balance check;
    rejections by validation, captcha or rate limits are not counted.
    """

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_distributed: str = "0"
    faucet_balance: str = "0"
    last_request: datetime | None = None


class CooldownStatus(CamelModel):
    can_request: bool
    cooldown_ends_at: datetime | None = None
    remaining_seconds: int | None = None


class HealthStatus(CamelModel):
    healthy: bool
    blockchain: bool
    counter_store: bool
    captcha: bool


class TransactionRecord(CamelModel):
    """Short-lived record of a completed transfer."""

    address: str
    tx_hash: str
    amount: str
    timestamp: datetime
    request_id: str | None = None
