"""Faucet admission pipeline and read-only projections.

Every incoming request passes the same ordered gates:

1. address format validation
2. captcha verification (fail-closed)
3. IP fixed-window rate limit
4. address fixed-window rate limit
5. treasury balance check
6. a single on-chain transfer awaited to one confirmation
7. statistics bookkeeping (never fails the request)

Each failure short-circuits the remaining steps. No counter is touched before
step 3 and no chain call is made before step 5.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Literal

from pydantic import ValidationError
from web3 import Web3

from faucet.adapters.captcha.base import AbstractCaptchaVerifier
from faucet.adapters.chain.base import AbstractChainClient, TransactionResult
from faucet.adapters.counter_store.base import AbstractCounterStore, RateLimitResult
from faucet.core.config import Settings, settings
from faucet.core.errors import (
    AppError,
    CaptchaAppError,
    ChainAppError,
    CounterStoreError,
    DependencyUnavailableAppError,
    RateLimitedAppError,
    TreasuryLowAppError,
    ValidationAppError,
)
from faucet.core.logging import redact_url_credentials
from faucet.schemas.admin import BalanceInfo, ConfigSnapshot, Dashboard
from faucet.schemas.faucet import (
    CooldownStatus,
    FaucetInfo,
    FaucetStats,
    HealthStatus,
    TransactionRecord,
)
from faucet.utils.address import is_valid_address, normalize_address

logger = logging.getLogger(__name__)

RateLimitScope = Literal["ip", "address"]

STATS_TOTAL_REQUESTS = "stats:total_requests"
STATS_SUCCESSFUL_REQUESTS = "stats:successful_requests"
STATS_FAILED_REQUESTS = "stats:failed_requests"
STATS_TOTAL_DISTRIBUTED_WEI = "stats:total_distributed_wei"
STATS_LAST_REQUEST = "stats:last_request"
REQUEST_RECORD_PREFIX = "request:"


def format_amount(amount: Decimal) -> str:
    """Plain decimal string without exponent or trailing zeros."""
    return format(amount.normalize(), "f")


class FaucetService:
    """Coordinates captcha, counter store and chain client for payouts.

    Attributes:
        chain: Chain client holding the treasury account.
        captcha: Proof-of-humanity verifier.
        store: Counter store for rate limits, statistics and records.
        config: Settings container (defaults to the global settings).
    """

    def __init__(
        self,
        chain: AbstractChainClient,
        captcha: AbstractCaptchaVerifier,
        store: AbstractCounterStore,
        config: Settings | None = None,
    ) -> None:
        self.chain = chain
        self.captcha = captcha
        self.store = store
        self.config = config or settings

    @property
    def amount(self) -> Decimal:
        return self.config.faucet.amount

    # ------------------------------------------------------------------
    # Admission pipeline
    # ------------------------------------------------------------------

    async def process_request(
        self,
        address: str,
        proof_token: str | None,
        origin_ip: str | None,
        request_id: str | None = None,
    ) -> TransactionResult:
        """Run one request through the full admission pipeline.

        Args:
            address: Recipient address as supplied by the client.
            proof_token: Captcha token supplied by the client.
            origin_ip: Client IP used for captcha and the IP rate limit.
            request_id: Correlation id for logs and the transaction record.

        Returns:
            TransactionResult of the confirmed transfer.

        Raises:
            ValidationAppError: Malformed address.
            CaptchaAppError: Captcha rejected or unverifiable.
            RateLimitedAppError: IP or address window exhausted.
            DependencyUnavailableAppError: Counter store down with fail-open disabled.
            TreasuryLowAppError: Balance below the safety margin.
            ChainAppError: Chain unreachable, submission or confirmation failed.
        """
        start = time.perf_counter()
        client_ip = origin_ip or "unknown"

        logger.info(
            "faucet.request_started",
            extra={"request_id": request_id, "address": address, "client_ip": client_ip},
        )

        try:
            self._validate_address(address)
            await self._verify_captcha(proof_token, origin_ip)
            await self._enforce_rate_limit(
                "ip",
                client_ip,
                self.config.rate_limit.ip_max_requests,
                self.config.rate_limit.ip_window_seconds,
            )
            await self._enforce_rate_limit(
                "address",
                normalize_address(address),
                self.config.rate_limit.address_max_requests,
                self.config.rate_limit.address_window_seconds,
            )
            result = await self._send_and_record(address, request_id)
        except AppError as exc:
            log = logger.error if isinstance(exc, (TreasuryLowAppError, ChainAppError)) else logger.warning
            log(
                "faucet.request_rejected",
                extra={
                    "request_id": request_id,
                    "address": address,
                    "client_ip": client_ip,
                    "error_code": exc.code,
                    "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                },
            )
            raise

        logger.info(
            "faucet.request_completed",
            extra={
                "request_id": request_id,
                "address": address,
                "tx_hash": result.hash,
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return result

    def _validate_address(self, address: str) -> None:
        if not is_valid_address(address):
            raise ValidationAppError(
                code="invalid_address",
                message="Invalid address format. Expected 0x followed by 40 hex characters.",
                details={"address": str(address)[:64]},
            )

    async def _verify_captcha(self, proof_token: str | None, origin_ip: str | None) -> None:
        result = await self.captcha.verify(proof_token, origin_ip)
        if not result.success:
            raise CaptchaAppError(
                code="captcha_failed",
                message="Captcha verification failed",
                details={"error_codes": result.error_codes},
            )

    async def _consume(self, key: str, limit: int, window_seconds: int) -> RateLimitResult | None:
        """Consume one slot; returns None when the store is down and fail-open applies."""
        try:
            return await self.store.check_rate_limit(key, limit, window_seconds)
        except CounterStoreError as exc:
            return self._on_store_unavailable(exc, operation="check_rate_limit")

    def _on_store_unavailable(self, exc: CounterStoreError, *, operation: str) -> None:
        if self.config.rate_limit.fail_open:
            logger.error(
                "rate_limit.store_unavailable",
                extra={"operation": operation, "policy": "fail_open", "error": str(exc)},
            )
            return None
        raise DependencyUnavailableAppError(
            code="counter_store_unavailable",
            message="Rate limiting is temporarily unavailable. Please try again later.",
        ) from exc

    async def _enforce_rate_limit(
        self,
        scope: RateLimitScope,
        value: str,
        limit: int,
        window_seconds: int,
    ) -> None:
        result = await self._consume(f"{scope}:{value}", limit, window_seconds)
        if result is None or result.allowed:
            return

        retry_after = result.retry_after_seconds or 0
        if scope == "ip":
            message = f"IP rate limit exceeded. Try again in {max(1, -(-retry_after // 60))} minutes"
        else:
            message = f"Address rate limit exceeded. Try again in {max(1, -(-retry_after // 3600))} hours"

        raise RateLimitedAppError(
            code=f"rate_limited_{scope}",
            message=message,
            details={
                "scope": scope,
                "limit": result.limit,
                "retry_after": retry_after,
                "reset_at": result.reset_at,
            },
        )

    async def _ensure_treasury_funded(self) -> None:
        balance = await self.chain.get_balance()
        required = self.amount * self.config.faucet.balance_safety_factor
        if balance < required:
            logger.error(
                "faucet.treasury_low",
                extra={"balance": format_amount(balance), "required": format_amount(required)},
            )
            raise TreasuryLowAppError(
                code="treasury_low",
                message="Faucet balance too low. Please contact support.",
                details={"balance": format_amount(balance), "required": format_amount(required)},
            )

    async def _send_and_record(self, address: str, request_id: str | None) -> TransactionResult:
        try:
            await self._ensure_treasury_funded()
            result = await self.chain.send_fixed_amount(address, request_id)
        except (TreasuryLowAppError, ChainAppError):
            await self._record_failure()
            raise

        await self._record_success(result, request_id)
        return result

    async def _record_failure(self) -> None:
        try:
            await self.store.increment(STATS_TOTAL_REQUESTS)
            await self.store.increment(STATS_FAILED_REQUESTS)
        except CounterStoreError as exc:
            logger.error("faucet.stats_update_failed", extra={"outcome": "failed", "error": str(exc)})

    async def _record_success(self, result: TransactionResult, request_id: str | None) -> None:
        now = datetime.now(timezone.utc).isoformat()
        record = {
            "address": result.to_address,
            "txHash": result.hash,
            "amount": format_amount(result.amount),
            "timestamp": now,
            "requestId": request_id,
        }
        try:
            await self.store.increment(STATS_TOTAL_REQUESTS)
            await self.store.increment(STATS_SUCCESSFUL_REQUESTS)
            await self.store.increment(
                STATS_TOTAL_DISTRIBUTED_WEI, int(Web3.to_wei(result.amount, "ether"))
            )
            await self.store.set(STATS_LAST_REQUEST, now)
            await self.store.set(
                f"{REQUEST_RECORD_PREFIX}{result.hash}",
                json.dumps(record),
                ttl_seconds=self.config.faucet.record_ttl_seconds,
            )
        except CounterStoreError as exc:
            logger.error(
                "faucet.stats_update_failed",
                extra={"outcome": "success", "tx_hash": result.hash, "error": str(exc)},
            )

    # ------------------------------------------------------------------
    # Read-only projections
    # ------------------------------------------------------------------

    async def get_faucet_info(self) -> FaucetInfo:
        balance = await self.chain.get_balance()
        return FaucetInfo(
            chain_id=self.config.chain.chain_id,
            chain_name=self.config.chain.chain_name,
            currency_symbol=self.config.chain.currency_symbol,
            faucet_address=self.chain.get_address(),
            faucet_balance=format_amount(balance),
            amount=format_amount(self.amount),
            cooldown_hours=round(self.config.rate_limit.address_window_seconds / 3600, 2),
            captcha_enabled=self.captcha.is_enabled(),
            captcha_site_key=self.captcha.get_site_key(),
        )

    async def get_stats(self) -> FaucetStats:
        """Aggregate counters plus current balance; zeros if anything is unreachable."""
        try:
            total, successful, failed, distributed_wei, last_request = await asyncio.gather(
                self.store.get(STATS_TOTAL_REQUESTS),
                self.store.get(STATS_SUCCESSFUL_REQUESTS),
                self.store.get(STATS_FAILED_REQUESTS),
                self.store.get(STATS_TOTAL_DISTRIBUTED_WEI),
                self.store.get(STATS_LAST_REQUEST),
            )
            balance = await self.chain.get_balance()
        except (CounterStoreError, ChainAppError) as exc:
            logger.error("faucet.stats_unavailable", extra={"error": str(exc)})
            return FaucetStats()

        return FaucetStats(
            total_requests=int(total or 0),
            successful_requests=int(successful or 0),
            failed_requests=int(failed or 0),
            total_distributed=format_amount(Decimal(Web3.from_wei(int(distributed_wei or 0), "ether"))),
            faucet_balance=format_amount(balance),
            last_request=last_request,
        )

    async def check_cooldown(self, address: str) -> CooldownStatus:
        """Report whether ``address`` may request now, without consuming a slot."""
        self._validate_address(address)
        try:
            result = await self.store.peek_rate_limit(
                f"address:{normalize_address(address)}",
                self.config.rate_limit.address_max_requests,
                self.config.rate_limit.address_window_seconds,
            )
        except CounterStoreError as exc:
            self._on_store_unavailable(exc, operation="peek_rate_limit")
            return CooldownStatus(can_request=True)

        if result.allowed:
            return CooldownStatus(can_request=True)

        return CooldownStatus(
            can_request=False,
            cooldown_ends_at=datetime.fromtimestamp(result.reset_at, tz=timezone.utc),
            remaining_seconds=result.retry_after_seconds,
        )

    async def get_recent_requests(self, limit: int = 50) -> list[TransactionRecord]:
        """Transaction records still held by the store, newest first."""
        try:
            keys = await self.store.list_keys_by_pattern(f"{REQUEST_RECORD_PREFIX}*")
            raw_records = await asyncio.gather(*(self.store.get(key) for key in keys))
        except CounterStoreError as exc:
            logger.error("faucet.recent_requests_unavailable", extra={"error": str(exc)})
            return []

        records: list[TransactionRecord] = []
        for key, raw in zip(keys, raw_records):
            if raw is None:
                continue
            try:
                records.append(TransactionRecord.model_validate(json.loads(raw)))
            except (ValueError, ValidationError) as exc:
                logger.warning("faucet.record_malformed", extra={"key": key, "error": str(exc)})

        records.sort(key=lambda r: r.timestamp, reverse=True)
        return records[:limit]

    async def health_check(self) -> HealthStatus:
        try:
            blockchain, counter_store = await asyncio.gather(
                self.chain.health_check(),
                self.store.ping(),
            )
        except Exception as exc:
            logger.error("faucet.health_check_failed", extra={"error": str(exc)})
            return HealthStatus(healthy=False, blockchain=False, counter_store=False, captcha=False)

        return HealthStatus(
            healthy=blockchain and counter_store,
            blockchain=blockchain,
            counter_store=counter_store,
            captcha=self.captcha.is_enabled(),
        )

    # ------------------------------------------------------------------
    # Administrative operations
    # ------------------------------------------------------------------

    async def manual_send(self, address: str, request_id: str | None = None) -> TransactionResult:
        """Send the fixed amount bypassing captcha and rate limits.

        The treasury balance check still applies, and the outcome is counted
        exactly like a pipeline send.
        """
        self._validate_address(address)
        logger.warning("admin.manual_send", extra={"request_id": request_id, "address": address})
        return await self._send_and_record(address, request_id)

    async def reset_rate_limit(self, kind: str, value: str) -> bool:
        """Delete the counter for an IP or address. Returns True if one existed."""
        if kind not in ("ip", "address"):
            raise ValidationAppError(
                code="invalid_rate_limit_type",
                message="Rate limit type must be 'ip' or 'address'",
            )
        key_value = normalize_address(value) if kind == "address" else value
        try:
            deleted = await self.store.delete(f"{kind}:{key_value}")
        except CounterStoreError as exc:
            raise DependencyUnavailableAppError(
                code="counter_store_unavailable",
                message="Counter store is unavailable",
            ) from exc

        logger.warning(
            "admin.rate_limit_reset",
            extra={"scope": kind, "value": key_value, "deleted": deleted},
        )
        return deleted

    async def get_dashboard(self) -> Dashboard:
        stats, info, health = await asyncio.gather(
            self.get_stats(),
            self.get_faucet_info(),
            self.health_check(),
        )
        return Dashboard(stats=stats, info=info, health=health)

    async def get_balance_info(self) -> BalanceInfo:
        balance = await self.chain.get_balance()
        threshold = self.config.faucet.low_balance_threshold
        return BalanceInfo(
            faucet_address=self.chain.get_address(),
            balance=format_amount(balance),
            currency_symbol=self.config.chain.currency_symbol,
            low_balance=balance < threshold,
            low_balance_threshold=format_amount(threshold),
        )

    def get_config_snapshot(self) -> ConfigSnapshot:
        """Effective configuration without keys, tokens or URL credentials."""
        cfg = self.config
        return ConfigSnapshot(
            environment=cfg.app_env,
            chain={
                "rpc_url": redact_url_credentials(cfg.chain.rpc_url),
                "rpc_fallback_url": redact_url_credentials(cfg.chain.rpc_fallback_url),
                "chain_id": cfg.chain.chain_id,
                "chain_name": cfg.chain.chain_name,
                "currency_symbol": cfg.chain.currency_symbol,
            },
            faucet={
                "address": self.chain.get_address(),
                "amount": format_amount(cfg.faucet.amount),
                "gas_limit": cfg.faucet.gas_limit,
                "gas_price_multiplier": cfg.faucet.gas_price_multiplier,
                "balance_safety_factor": cfg.faucet.balance_safety_factor,
                "low_balance_threshold": format_amount(cfg.faucet.low_balance_threshold),
            },
            rate_limit={
                "ip_max_requests": cfg.rate_limit.ip_max_requests,
                "ip_window_seconds": cfg.rate_limit.ip_window_seconds,
                "address_max_requests": cfg.rate_limit.address_max_requests,
                "address_window_seconds": cfg.rate_limit.address_window_seconds,
                "fail_open": cfg.rate_limit.fail_open,
            },
            captcha={
                "enabled": cfg.captcha.enabled,
                "site_key": cfg.captcha.site_key,
            },
            store={
                "backend": cfg.store.backend,
                "redis_url": redact_url_credentials(cfg.store.redis_url),
                "key_prefix": cfg.store.key_prefix,
            },
        )

    async def close(self) -> None:
        """Release adapter connections (called on application shutdown)."""
        await self.captcha.close()
        await self.chain.close()
        await self.store.close()
