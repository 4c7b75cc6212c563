"""Chain adapter layer - treasury account and JSON-RPC access."""

from faucet.adapters.chain.base import AbstractChainClient, ChainInfo, TransactionResult
from faucet.adapters.chain.factory import create_chain_client
from faucet.adapters.chain.web3_client import Web3ChainClient

__all__ = [
    "AbstractChainClient",
    "ChainInfo",
    "TransactionResult",
    "Web3ChainClient",
    "create_chain_client",
]
