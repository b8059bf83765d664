"""Shared data models for the lending fee adapter.

CRITICAL: All monetary values use Decimal. Raw on-chain amounts stay int
until converted with to_units(); never use float for prices or amounts.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType

from lending_fees.exceptions import PriceNotFoundError

SECONDS_PER_DAY = 86_400
FIXED_POINT_DECIMALS = 18  # reserveFactorMantissa scale


def to_units(raw: int, decimals: int) -> Decimal:
    """Convert an integer amount in token-native units to a Decimal quantity.

    Example: to_units(1_500_000, 6) == Decimal("1.5").
    """
    return Decimal(raw).scaleb(-decimals)


def last_complete_day(now: int) -> int:
    """Return the last second of the UTC day before the one containing now."""
    return now - now % SECONDS_PER_DAY - 1


def price_key(chain: str, asset: str) -> str:
    """Build the "chain:address" key used by the price table."""
    return f"{chain}:{asset}".lower()


def decimal_to_str(value: Decimal) -> str:
    """Render a Decimal as a plain (non-scientific) string without trailing zeros."""
    if value == 0:
        return "0"
    return format(value.normalize(), "f")


@dataclass(frozen=True)
class TimeWindow:
    """The UTC calendar day containing current_timestamp."""

    current_timestamp: int
    start_timestamp: int
    end_timestamp: int

    @classmethod
    def for_timestamp(cls, timestamp: int) -> "TimeWindow":
        start = timestamp - timestamp % SECONDS_PER_DAY
        return cls(
            current_timestamp=timestamp,
            start_timestamp=start,
            end_timestamp=start + SECONDS_PER_DAY,
        )

    @property
    def timespan(self) -> int:
        return self.end_timestamp - self.start_timestamp


@dataclass(frozen=True)
class BlockWindow:
    """Blocks resolved for the current time and the day boundaries."""

    current_block: int
    start_block: int
    end_block: int

    @property
    def is_ordered(self) -> bool:
        return self.start_block <= self.current_block <= self.end_block


@dataclass(frozen=True)
class MarketSet:
    """Active markets with their underlying assets and reserve factors.

    The three tuples are index-aligned. Reserve factors are raw 18-decimal
    fixed-point integers as returned by reserveFactorMantissa().
    """

    markets: tuple[str, ...]
    underlyings: tuple[str, ...]
    reserve_factors: tuple[int, ...]

    def __post_init__(self) -> None:
        if not (len(self.markets) == len(self.underlyings) == len(self.reserve_factors)):
            raise ValueError(
                f"Market set is misaligned: {len(self.markets)} markets, "
                f"{len(self.underlyings)} underlyings, "
                f"{len(self.reserve_factors)} reserve factors"
            )
        lowered = [m.lower() for m in self.markets]
        if len(set(lowered)) != len(lowered):
            raise ValueError("Market set contains duplicate markets")

    def __len__(self) -> int:
        return len(self.markets)

    def market_index(self, market: str) -> int:
        """Return the position of a market, matching addresses case-insensitively.

        Raises:
            KeyError: If the market is not part of the set.
        """
        target = market.lower()
        for i, candidate in enumerate(self.markets):
            if candidate.lower() == target:
                return i
        raise KeyError(market)

    def reserve_factor(self, index: int) -> Decimal:
        return to_units(self.reserve_factors[index], FIXED_POINT_DECIMALS)


@dataclass(frozen=True)
class PriceEntry:
    """USD price of one asset at the requested time, with its token decimals."""

    price: Decimal
    decimals: int
    symbol: str = ""


class PriceTable:
    """Read-only mapping of "chain:address" keys to PriceEntry.

    Lookups of a missing asset raise PriceNotFoundError rather than
    returning a default, so a gap in price coverage can never be
    mistaken for zero revenue.
    """

    def __init__(self, entries: Mapping[str, PriceEntry]) -> None:
        self._entries = MappingProxyType({k.lower(): v for k, v in entries.items()})

    def get(self, chain: str, asset: str) -> PriceEntry:
        key = price_key(chain, asset)
        entry = self._entries.get(key)
        if entry is None:
            raise PriceNotFoundError(key)
        return entry

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> list[str]:
        return list(self._entries)


@dataclass(frozen=True)
class MarketDetails:
    """Per-market parameters, index-aligned with the market list they came from."""

    underlyings: tuple[str, ...]
    reserve_factors: tuple[int, ...]


@dataclass(frozen=True)
class AccrualEvent:
    """A decoded AccrueInterest log. Amounts are raw token-native integers."""

    market: str
    cash_prior: int
    interest_accumulated: int
    borrow_index_new: int
    total_borrows_new: int
    block_number: int | None = None


@dataclass(frozen=True)
class RewardAccrual:
    """Gauge reward state of a claimant at a given block.

    last_earn is the unix time of the claimant's last checkpoint; earned is
    the raw amount of reward token accrued since then.
    """

    last_earn: int
    earned: int


@dataclass(frozen=True)
class FeeContext:
    """Immutable snapshot shared by both aggregators during one fetch call."""

    chain: str
    time: TimeWindow
    blocks: BlockWindow
    market_set: MarketSet
    prices: PriceTable
    reward_token: str
    gauge: str
    reward_claimant: str


@dataclass(frozen=True)
class InterestTotals:
    """USD totals of accrued interest over the day's block range."""

    daily_protocol_fees: Decimal = Decimal("0")
    daily_protocol_revenue: Decimal = Decimal("0")


@dataclass(frozen=True)
class DailyFeeResult:
    """The record reported for one day. Amounts are USD decimal strings."""

    timestamp: int
    daily_fees: str
    daily_revenue: str
    daily_holders_revenue: str

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "dailyFees": self.daily_fees,
            "dailyRevenue": self.daily_revenue,
            "dailyHoldersRevenue": self.daily_holders_revenue,
        }
