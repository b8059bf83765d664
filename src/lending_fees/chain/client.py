"""Abstract on-chain collaborator interfaces.

The fee pipeline depends only on these contracts. Web3ChainClient
implements all four against a JSON-RPC node; tests substitute AsyncMock
fakes built with ``spec=`` on these classes.
"""

from abc import ABC, abstractmethod

from lending_fees.models import AccrualEvent, MarketDetails, RewardAccrual


class BlockResolver(ABC):
    """Maps unix timestamps to block numbers."""

    @abstractmethod
    async def resolve_block(self, timestamp: int) -> int:
        """Return the first block whose timestamp is >= the given timestamp.

        Raises:
            ResolutionError: If the timestamp precedes genesis or is later
                than the head block.
        """
        ...


class MarketDirectory(ABC):
    """Enumerates lending markets and their parameters."""

    @abstractmethod
    async def list_markets(self, comptroller: str, at_block: int | None = None) -> list[str]:
        """Return all market addresses registered with the comptroller."""
        ...

    @abstractmethod
    async def get_market_details(
        self, markets: list[str], at_block: int | None = None
    ) -> MarketDetails:
        """Return underlying assets and raw reserve factors, index-aligned with markets."""
        ...


class AccrualLogSource(ABC):
    """Reads AccrueInterest events emitted by a market."""

    @abstractmethod
    async def get_accrual_logs(
        self, market: str, from_block: int, to_block: int
    ) -> list[AccrualEvent]:
        """Return decoded events for blocks in [from_block, to_block], both inclusive."""
        ...


class RewardAccounting(ABC):
    """Reads gauge reward accrual for a claimant."""

    @abstractmethod
    async def get_reward_accrual(
        self, gauge: str, reward_token: str, claimant: str, at_block: int
    ) -> RewardAccrual:
        """Return the claimant's last checkpoint time and raw earned amount."""
        ...
