"""Shared test fixtures for the lending fee adapter."""

from collections.abc import Callable
from decimal import Decimal

import pytest

from lending_fees.config import AppSettings, ChainSettings, ProtocolSettings
from lending_fees.models import (
    BlockWindow,
    FeeContext,
    MarketSet,
    PriceEntry,
    PriceTable,
    TimeWindow,
    price_key,
)

CHAIN = "optimism"

# 2024-03-01 00:00:00 UTC
DAY_START = 1_709_251_200

VELO = "0x3c8B650257cFb5f272f799F5e2b4e65093a11a05"


@pytest.fixture
def protocol_settings() -> ProtocolSettings:
    """Default Sonne/Velodrome addresses with the strict reward policy."""
    return ProtocolSettings(reward_token=VELO)


@pytest.fixture
def mock_settings() -> AppSettings:
    """Return AppSettings with test defaults (no network, strict policies)."""
    return AppSettings(
        log_level="DEBUG",
        chain=ChainSettings(rpc_url="http://localhost:8545", log_chunk_size=10),
        protocol=ProtocolSettings(reward_token=VELO),
    )


@pytest.fixture
def make_context() -> Callable[..., FeeContext]:
    """Factory for FeeContext snapshots.

    markets: list of (market, underlying, raw reserve factor)
    prices: mapping of asset address -> (price, decimals)
    """

    def _make(
        markets: list[tuple[str, str, int]] | None = None,
        prices: dict[str, tuple[str, int]] | None = None,
        current_timestamp: int = DAY_START + 43_200,
        blocks: BlockWindow | None = None,
        reward_token: str = VELO,
    ) -> FeeContext:
        markets = markets or []
        prices = prices if prices is not None else {}
        return FeeContext(
            chain=CHAIN,
            time=TimeWindow.for_timestamp(current_timestamp),
            blocks=blocks or BlockWindow(current_block=150, start_block=100, end_block=200),
            market_set=MarketSet(
                markets=tuple(m for m, _, _ in markets),
                underlyings=tuple(u for _, u, _ in markets),
                reserve_factors=tuple(rf for _, _, rf in markets),
            ),
            prices=PriceTable(
                {
                    price_key(CHAIN, asset): PriceEntry(price=Decimal(price), decimals=decimals)
                    for asset, (price, decimals) in prices.items()
                }
            ),
            reward_token=reward_token,
            gauge="0x3786d4419d6b4a902607ceb2bb319bb336735df8",
            reward_claimant="0x17063ad4e83b0aba4ca0f3fc3a9794e807a00ed7",
        )

    return _make
