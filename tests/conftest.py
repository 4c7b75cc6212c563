"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It ensures that the TESTING environment variable is set to prevent
loading the .env file during tests, and provides in-process fakes for the
chain client and captcha verifier.
"""

import os

# CRITICAL: Set this before any imports that might load settings
# This prevents Pydantic from loading the .env file in tests
os.environ["TESTING"] = "true"

# Set default env vars that all tests might need
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("STORE_BACKEND", "memory")
# Well-known local development key (hardhat account #0), never funded on a real chain
os.environ.setdefault(
    "FAUCET_PRIVATE_KEY",
    "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80",
)
os.environ.setdefault("ADMIN_TOKEN", "test-admin-token")
os.environ.setdefault("CAPTCHA_ENABLED", "false")

from decimal import Decimal
from unittest.mock import Mock

import pytest
from web3 import Web3

from faucet.adapters.captcha.base import AbstractCaptchaVerifier, CaptchaResult
from faucet.adapters.chain.base import AbstractChainClient, ChainInfo, TransactionResult
from faucet.adapters.counter_store.in_memory import InMemoryCounterStore
from faucet.core.config import Settings
from faucet.services.faucet_service import FaucetService

TREASURY_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
RECIPIENT = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
ADMIN_TOKEN = os.environ["ADMIN_TOKEN"]


class FakeChainClient(AbstractChainClient):
    """Chain client double holding balance and sent transfers in memory."""

    def __init__(self, balance: Decimal = Decimal("1000"), amount: Decimal = Decimal("10")) -> None:
        self.balance = balance
        self.amount = amount
        self.sent: list[str] = []
        self.balance_calls = 0
        self.send_error: Exception | None = None
        self.balance_error: Exception | None = None
        self.healthy = True
        self.closed = False

    def get_address(self) -> str:
        return TREASURY_ADDRESS

    async def get_balance(self) -> Decimal:
        self.balance_calls += 1
        if self.balance_error is not None:
            raise self.balance_error
        return self.balance

    async def get_gas_price(self) -> int:
        return 1_000_000_000

    async def send_fixed_amount(self, to_address: str, request_id: str | None = None) -> TransactionResult:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(to_address)
        self.balance -= self.amount
        return TransactionResult(
            hash="0x" + f"{len(self.sent):064x}",
            from_address=TREASURY_ADDRESS,
            to_address=Web3.to_checksum_address(to_address),
            amount=self.amount,
            gas_used=21000,
            block_number=len(self.sent),
        )

    async def health_check(self) -> bool:
        return self.healthy

    async def get_info(self) -> ChainInfo:
        return ChainInfo(
            chain_id=6174,
            block_number=1,
            faucet_address=TREASURY_ADDRESS,
            faucet_balance=self.balance,
            is_healthy=self.healthy,
            last_health_check=None,
            low_balance=False,
        )

    async def close(self) -> None:
        self.closed = True


class FakeCaptchaVerifier(AbstractCaptchaVerifier):
    """Captcha double returning a preset verdict and recording calls."""

    def __init__(self, enabled: bool = True, result: CaptchaResult | None = None) -> None:
        self.enabled = enabled
        self.result = result or CaptchaResult(success=True)
        self.calls: list[tuple[str | None, str | None]] = []

    async def verify(self, token: str | None, origin_ip: str | None = None) -> CaptchaResult:
        self.calls.append((token, origin_ip))
        return self.result

    def is_enabled(self) -> bool:
        return self.enabled

    def get_site_key(self) -> str:
        return "site-key-123"


@pytest.fixture
def clock() -> Mock:
    return Mock(return_value=1_700_000_000.0)


@pytest.fixture
def store(clock: Mock) -> InMemoryCounterStore:
    return InMemoryCounterStore(key_prefix="faucet:", clock=clock)


@pytest.fixture
def chain() -> FakeChainClient:
    return FakeChainClient()


@pytest.fixture
def captcha() -> FakeCaptchaVerifier:
    return FakeCaptchaVerifier()


@pytest.fixture
def faucet_settings() -> Settings:
    cfg = Settings()
    cfg.faucet.amount = Decimal("10")
    cfg.faucet.balance_safety_factor = 2
    cfg.rate_limit.ip_max_requests = 5
    cfg.rate_limit.ip_window_seconds = 3600
    cfg.rate_limit.address_max_requests = 1
    cfg.rate_limit.address_window_seconds = 86400
    cfg.rate_limit.fail_open = True
    return cfg


@pytest.fixture
def service(
    chain: FakeChainClient,
    captcha: FakeCaptchaVerifier,
    store: InMemoryCounterStore,
    faucet_settings: Settings,
) -> FaucetService:
    return FaucetService(chain=chain, captcha=captcha, store=store, config=faucet_settings)
