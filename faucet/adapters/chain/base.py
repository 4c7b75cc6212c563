from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class TransactionResult:
    """Outcome of a confirmed transfer.

    Attributes:
        hash: 0x-prefixed transaction hash.
        from_address: Treasury address (checksummed).
        to_address: Recipient address (checksummed).
        amount: Native currency sent, in ether units.
        gas_used: Gas consumed by the transaction, if reported.
        block_number: Block the transaction was included in, if reported.
    """

    hash: str
    from_address: str
    to_address: str
    amount: Decimal
    gas_used: int | None = None
    block_number: int | None = None


@dataclass(frozen=True)
class ChainInfo:
    """Snapshot of the chain endpoint and treasury account."""

    chain_id: int
    block_number: int
    faucet_address: str
    faucet_balance: Decimal
    is_healthy: bool
    last_health_check: datetime | None
    low_balance: bool


class AbstractChainClient(ABC):
    """Interface for the funded-account chain client."""

    @abstractmethod
    def get_address(self) -> str:
        """Return the treasury address (checksummed)."""
        ...

    @abstractmethod
    async def get_balance(self) -> Decimal:
        """Return the treasury balance in ether units.

        Raises:
            ChainAppError: If no endpoint could be reached.
        """
        ...

    @abstractmethod
    async def get_gas_price(self) -> int:
        """Return the gas price (wei) that will be used for the next send."""
        ...

    @abstractmethod
    async def send_fixed_amount(self, to_address: str, request_id: str | None = None) -> TransactionResult:
        """Submit one transfer of the configured amount and await confirmation.

        Raises:
            ChainAppError: If signing, submission or confirmation fails, or the
                receipt reports a reverted transaction.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        ...

    @abstractmethod
    async def get_info(self) -> ChainInfo:
        ...

    async def close(self) -> None:  # pragma: no cover - default no-op
        return None
