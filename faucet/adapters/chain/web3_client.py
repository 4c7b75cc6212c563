"""web3.py chain client adapter.

Holds the treasury account and talks to the chain over JSON-RPC using
``AsyncWeb3``. Sends go through the primary endpoint only; the optional
fallback endpoint is consulted for balance reads.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Awaitable, TypeVar

from eth_account import Account
from web3 import AsyncWeb3, Web3

from faucet.adapters.chain.base import AbstractChainClient, ChainInfo, TransactionResult
from faucet.core.errors import AppError, ChainAppError
from faucet.core.logging import log_transaction

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Web3ChainClient(AbstractChainClient):
    """Chain client backed by ``web3.AsyncWeb3``.

    A per-account ``asyncio.Lock`` serializes nonce selection and submission
    so concurrent requests never reuse a nonce. Confirmation waits happen
    outside the lock.
    """

    def __init__(
        self,
        w3: AsyncWeb3,
        *,
        private_key: str,
        chain_id: int,
        amount: Decimal,
        gas_limit: int = 21000,
        gas_price_multiplier: float = 1.2,
        low_balance_threshold: Decimal = Decimal("100"),
        request_timeout_seconds: float = 10.0,
        confirmation_timeout_seconds: float = 60.0,
        poll_latency_seconds: float = 1.0,
        fallback_w3: AsyncWeb3 | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            w3: Primary ``AsyncWeb3`` instance.
            private_key: Treasury private key (0x-prefixed hex).
            chain_id: Chain id stamped on every transaction.
            amount: Native currency sent per transfer, in ether units.
            gas_limit: Gas limit for the transfer.
            gas_price_multiplier: Factor applied to the node gas price.
            low_balance_threshold: Health checks flag balances below this.
            request_timeout_seconds: Upper bound for each RPC call.
            confirmation_timeout_seconds: Upper bound for the receipt wait.
            poll_latency_seconds: Receipt polling interval.
            fallback_w3: Optional secondary instance for balance reads.
        """
        self._w3 = w3
        self._fallback_w3 = fallback_w3
        self._account = Account.from_key(private_key)
        self.chain_id = chain_id
        self.amount = amount
        self.gas_limit = gas_limit
        self._gas_multiplier_pct = int(Decimal(str(gas_price_multiplier)) * 100)
        self.low_balance_threshold = low_balance_threshold
        self.request_timeout = request_timeout_seconds
        self.confirmation_timeout = confirmation_timeout_seconds
        self.poll_latency = poll_latency_seconds

        self._send_lock = asyncio.Lock()
        self.is_healthy = False
        self.low_balance = False
        self.last_health_check: datetime | None = None

        logger.info(
            "chain.client_initialized",
            extra={"chain_id": chain_id, "faucet_address": self._account.address},
        )

    async def _rpc(self, awaitable: Awaitable[T]) -> T:
        return await asyncio.wait_for(awaitable, timeout=self.request_timeout)

    def get_address(self) -> str:
        return self._account.address

    async def get_balance(self) -> Decimal:
        try:
            wei = await self._rpc(self._w3.eth.get_balance(self._account.address))
            return Decimal(Web3.from_wei(wei, "ether"))
        except Exception as exc:
            logger.error("chain.balance_failed", extra={"endpoint": "primary", "error": str(exc)})
            primary_error = exc

        if self._fallback_w3 is not None:
            try:
                wei = await self._rpc(self._fallback_w3.eth.get_balance(self._account.address))
                return Decimal(Web3.from_wei(wei, "ether"))
            except Exception as exc:
                logger.error("chain.balance_failed", extra={"endpoint": "fallback", "error": str(exc)})

        raise ChainAppError(
            code="chain_unreachable",
            message="Failed to read the faucet balance from the chain",
            details={"hint": str(primary_error)},
        ) from primary_error

    async def get_gas_price(self) -> int:
        base_price = await self._rpc(self._w3.eth.gas_price)
        gas_price = base_price * self._gas_multiplier_pct // 100
        logger.debug(
            "chain.gas_price",
            extra={
                "base_gas_price": base_price,
                "gas_price": gas_price,
                "multiplier_pct": self._gas_multiplier_pct,
            },
        )
        return gas_price

    def _build_transfer(self, to_address: str, nonce: int, gas_price: int) -> dict[str, Any]:
        return {
            "to": to_address,
            "value": Web3.to_wei(self.amount, "ether"),
            "gas": self.gas_limit,
            "gasPrice": gas_price,
            "nonce": nonce,
            "chainId": self.chain_id,
        }

    async def send_fixed_amount(self, to_address: str, request_id: str | None = None) -> TransactionResult:
        from_address = self._account.address
        amount_str = format(self.amount, "f")

        try:
            recipient = Web3.to_checksum_address(to_address)
        except ValueError as exc:
            raise ChainAppError(
                code="chain_error",
                message="Recipient is not a valid address",
                details={"address": to_address},
            ) from exc

        try:
            async with self._send_lock:
                try:
                    nonce = await self._rpc(
                        self._w3.eth.get_transaction_count(from_address, "pending")
                    )
                    gas_price = await self.get_gas_price()
                except Exception as exc:
                    raise ChainAppError(
                        code="chain_unreachable",
                        message="Failed to prepare the transaction",
                        details={"hint": str(exc)},
                    ) from exc

                tx = self._build_transfer(recipient, nonce, gas_price)
                logger.info(
                    "chain.tx_prepared",
                    extra={
                        "request_id": request_id,
                        "to_address": recipient,
                        "nonce": nonce,
                        "gas_price": gas_price,
                        "gas_limit": self.gas_limit,
                        "amount": amount_str,
                    },
                )
                signed = self._account.sign_transaction(tx)
                tx_hash = Web3.to_hex(
                    await self._rpc(self._w3.eth.send_raw_transaction(signed.raw_transaction))
                )

            log_transaction(
                logger,
                status="pending",
                from_address=from_address,
                to_address=recipient,
                amount=amount_str,
                tx_hash=tx_hash,
                request_id=request_id,
            )

            receipt = await self._w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=self.confirmation_timeout,
                poll_latency=self.poll_latency,
            )
        except AppError as exc:
            log_transaction(
                logger,
                status="failed",
                from_address=from_address,
                to_address=recipient,
                amount=amount_str,
                error=exc.message,
                request_id=request_id,
            )
            raise
        except Exception as exc:
            log_transaction(
                logger,
                status="failed",
                from_address=from_address,
                to_address=recipient,
                amount=amount_str,
                error=str(exc),
                request_id=request_id,
            )
            raise ChainAppError(
                code="chain_error",
                message="Transaction submission or confirmation failed",
                details={"hint": str(exc)},
            ) from exc

        if receipt["status"] != 1:
            log_transaction(
                logger,
                status="failed",
                from_address=from_address,
                to_address=recipient,
                amount=amount_str,
                tx_hash=tx_hash,
                error="reverted",
                request_id=request_id,
            )
            raise ChainAppError(
                code="chain_error",
                message="Transaction failed on chain",
                details={"tx_hash": tx_hash},
            )

        log_transaction(
            logger,
            status="confirmed",
            from_address=from_address,
            to_address=recipient,
            amount=amount_str,
            tx_hash=tx_hash,
            request_id=request_id,
        )

        return TransactionResult(
            hash=tx_hash,
            from_address=from_address,
            to_address=recipient,
            amount=self.amount,
            gas_used=receipt.get("gasUsed"),
            block_number=receipt.get("blockNumber"),
        )

    async def health_check(self) -> bool:
        try:
            chain_id = await self._rpc(self._w3.eth.chain_id)
            block_number = await self._rpc(self._w3.eth.block_number)
            balance = await self.get_balance()
        except Exception as exc:
            self.is_healthy = False
            logger.error("chain.health_check_failed", extra={"error": str(exc)})
            return False

        self.is_healthy = True
        self.last_health_check = datetime.now(timezone.utc)
        self.low_balance = balance < self.low_balance_threshold

        logger.info(
            "chain.health_check_passed",
            extra={
                "chain_id": chain_id,
                "block_number": block_number,
                "faucet_balance": format(balance, "f"),
            },
        )
        if self.low_balance:
            logger.warning(
                "chain.low_balance",
                extra={
                    "faucet_balance": format(balance, "f"),
                    "threshold": format(self.low_balance_threshold, "f"),
                },
            )
        return True

    async def get_info(self) -> ChainInfo:
        try:
            chain_id = await self._rpc(self._w3.eth.chain_id)
            block_number = await self._rpc(self._w3.eth.block_number)
        except Exception as exc:
            raise ChainAppError(
                code="chain_unreachable",
                message="Failed to read chain info",
                details={"hint": str(exc)},
            ) from exc
        balance = await self.get_balance()

        return ChainInfo(
            chain_id=int(chain_id),
            block_number=int(block_number),
            faucet_address=self._account.address,
            faucet_balance=balance,
            is_healthy=self.is_healthy,
            last_health_check=self.last_health_check,
            low_balance=self.low_balance,
        )

    async def close(self) -> None:
        for w3 in (self._w3, self._fallback_w3):
            if w3 is None:
                continue
            try:
                await w3.provider.disconnect()
            except Exception as exc:
                logger.warning("chain.close_failed", extra={"error": str(exc)})
