"""On-chain collaborator layer -- JSON-RPC access via web3."""

from lending_fees.chain.client import (
    AccrualLogSource,
    BlockResolver,
    MarketDirectory,
    RewardAccounting,
)
from lending_fees.chain.web3_client import Web3ChainClient

__all__ = [
    "AccrualLogSource",
    "BlockResolver",
    "MarketDirectory",
    "RewardAccounting",
    "Web3ChainClient",
]
