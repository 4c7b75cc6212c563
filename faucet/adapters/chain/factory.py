"""Factory for the chain client."""

from web3 import AsyncHTTPProvider, AsyncWeb3

from faucet.adapters.chain.base import AbstractChainClient
from faucet.adapters.chain.web3_client import Web3ChainClient
from faucet.core.config import ChainSettings, FaucetSettings, settings
from faucet.core.errors import ValidationAppError


def _connect(rpc_url: str, timeout_seconds: float) -> AsyncWeb3:
    return AsyncWeb3(AsyncHTTPProvider(rpc_url, request_kwargs={"timeout": timeout_seconds}))


def create_chain_client(
    chain_settings: ChainSettings | None = None,
    faucet_settings: FaucetSettings | None = None,
) -> AbstractChainClient:
    """Instantiate the chain client from settings.

    No network call is made here; providers connect lazily on first use.

    Raises:
        ValidationAppError: If the treasury private key is not configured.
    """
    chain_cfg = chain_settings or settings.chain
    faucet_cfg = faucet_settings or settings.faucet

    if not faucet_cfg.private_key:
        raise ValidationAppError(
            code="faucet_missing_private_key",
            message="Chain client requires FAUCET_PRIVATE_KEY environment variable",
        )

    fallback = (
        _connect(chain_cfg.rpc_fallback_url, chain_cfg.request_timeout_seconds)
        if chain_cfg.rpc_fallback_url
        else None
    )

    return Web3ChainClient(
        _connect(chain_cfg.rpc_url, chain_cfg.request_timeout_seconds),
        private_key=faucet_cfg.private_key.get_secret_value(),
        chain_id=chain_cfg.chain_id,
        amount=faucet_cfg.amount,
        gas_limit=faucet_cfg.gas_limit,
        gas_price_multiplier=faucet_cfg.gas_price_multiplier,
        low_balance_threshold=faucet_cfg.low_balance_threshold,
        request_timeout_seconds=chain_cfg.request_timeout_seconds,
        confirmation_timeout_seconds=chain_cfg.confirmation_timeout_seconds,
        poll_latency_seconds=chain_cfg.poll_latency_seconds,
        fallback_w3=fallback,
    )
