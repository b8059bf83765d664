"""Tests for InterestAccrualAggregator and summarize_events.

All tests use AsyncMock log sources and hand-built contexts; no RPC calls.
"""

import asyncio
import random
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from lending_fees.chain.client import AccrualLogSource
from lending_fees.exceptions import CollaboratorError, PriceNotFoundError
from lending_fees.fees.interest import InterestAccrualAggregator, summarize_events
from lending_fees.models import AccrualEvent, BlockWindow

USDC = "0x7F5c764cBc14f9669B88837ca1490cCa17c31607"
WETH = "0x4200000000000000000000000000000000000006"
OP = "0x4200000000000000000000000000000000000042"

SO_USDC = "0xEC8FEa79026FfEd168cCf5C627c7f486D77b765F"
SO_WETH = "0xf7B5965f5C117Eb1B5450187c9DcFccc3C317e8E"
SO_OP = "0x8cD6b19A07d754bF36AdEEE79EDF4F2134a8F571"

RF_10 = 10**17  # 0.10 as 18-decimal fixed point
RF_15 = 15 * 10**16

PRICES = {
    USDC: ("1", 6),
    WETH: ("2500.5", 18),
    OP: ("3.25", 18),
}


def _event(market: str, interest: int, block: int = 150) -> AccrualEvent:
    return AccrualEvent(
        market=market,
        cash_prior=0,
        interest_accumulated=interest,
        borrow_index_new=10**18,
        total_borrows_new=0,
        block_number=block,
    )


@pytest.fixture
def log_source() -> AsyncMock:
    source = AsyncMock(spec=AccrualLogSource)
    source.get_accrual_logs.return_value = []
    return source


class TestSummarizeEvents:
    """Pure valuation of decoded events."""

    def test_single_usdc_event(self, make_context) -> None:
        """1_000_000 raw USDC at $1 with a 10% reserve factor."""
        context = make_context(markets=[(SO_USDC, USDC, RF_10)], prices=PRICES)
        totals = summarize_events(context, [_event(SO_USDC, 1_000_000)])
        assert totals.daily_protocol_fees == Decimal("1.0")
        assert totals.daily_protocol_revenue == Decimal("0.1")

    def test_decimals_come_from_price_entry(self, make_context) -> None:
        """0.5 WETH of interest at $2500.5 with a 15% reserve factor."""
        context = make_context(markets=[(SO_WETH, WETH, RF_15)], prices=PRICES)
        totals = summarize_events(context, [_event(SO_WETH, 5 * 10**17)])
        assert totals.daily_protocol_fees == Decimal("1250.25")
        assert totals.daily_protocol_revenue == Decimal("187.5375")

    def test_accumulates_across_markets(self, make_context) -> None:
        context = make_context(
            markets=[(SO_USDC, USDC, RF_10), (SO_WETH, WETH, RF_15)],
            prices=PRICES,
        )
        events = [
            _event(SO_USDC, 2_000_000),
            _event(SO_WETH, 10**18),
            _event(SO_USDC, 3_000_000),
        ]
        totals = summarize_events(context, events)
        # USDC: 5 * 1 = 5 -> revenue 0.5 ; WETH: 1 * 2500.5 -> revenue 375.075
        assert totals.daily_protocol_fees == Decimal("2505.5")
        assert totals.daily_protocol_revenue == Decimal("375.575")

    def test_event_market_matched_case_insensitively(self, make_context) -> None:
        context = make_context(markets=[(SO_USDC.lower(), USDC, RF_10)], prices=PRICES)
        totals = summarize_events(context, [_event(SO_USDC, 1_000_000)])
        assert totals.daily_protocol_fees == Decimal("1")

    def test_zero_reserve_factor_means_no_revenue(self, make_context) -> None:
        context = make_context(markets=[(SO_USDC, USDC, 0)], prices=PRICES)
        totals = summarize_events(context, [_event(SO_USDC, 7_000_000)])
        assert totals.daily_protocol_fees == Decimal("7")
        assert totals.daily_protocol_revenue == Decimal("0")

    def test_no_events(self, make_context) -> None:
        context = make_context(markets=[(SO_USDC, USDC, RF_10)], prices=PRICES)
        totals = summarize_events(context, [])
        assert totals.daily_protocol_fees == Decimal("0")
        assert totals.daily_protocol_revenue == Decimal("0")

    def test_missing_price_raises(self, make_context) -> None:
        """A market whose underlying is unpriced must fail, not count as zero."""
        context = make_context(
            markets=[(SO_USDC, USDC, RF_10), (SO_OP, OP, RF_10)],
            prices={USDC: ("1", 6)},
        )
        with pytest.raises(PriceNotFoundError) as exc_info:
            summarize_events(context, [_event(SO_USDC, 1), _event(SO_OP, 10**18)])
        assert exc_info.value.key == f"optimism:{OP.lower()}"

    def test_unknown_market_raises(self, make_context) -> None:
        context = make_context(markets=[(SO_USDC, USDC, RF_10)], prices=PRICES)
        with pytest.raises(CollaboratorError, match="unknown market"):
            summarize_events(context, [_event(SO_OP, 1)])


class TestOrderIndependence:
    """Totals must not depend on the order markets or events are processed in."""

    def test_shuffled_events_give_same_totals(self, make_context) -> None:
        rng = random.Random(42)
        markets = [(SO_USDC, USDC, RF_10), (SO_WETH, WETH, RF_15), (SO_OP, OP, 2 * 10**17)]
        events = [
            _event(rng.choice([SO_USDC, SO_WETH, SO_OP]), rng.randint(1, 10**15))
            for _ in range(200)
        ]
        baseline = summarize_events(make_context(markets=markets, prices=PRICES), events)

        tolerance = Decimal("1e-12")
        for _ in range(10):
            shuffled_events = events[:]
            rng.shuffle(shuffled_events)
            shuffled_markets = markets[:]
            rng.shuffle(shuffled_markets)
            context = make_context(markets=shuffled_markets, prices=PRICES)

            totals = summarize_events(context, shuffled_events)
            assert abs(totals.daily_protocol_fees - baseline.daily_protocol_fees) < tolerance
            assert abs(totals.daily_protocol_revenue - baseline.daily_protocol_revenue) < tolerance


class TestRevenueBound:
    """Revenue never exceeds fees while reserve factors lie in [0, 1]."""

    def test_random_reserve_factors(self, make_context) -> None:
        rng = random.Random(1234)
        for _ in range(50):
            markets = [
                (SO_USDC, USDC, rng.randint(0, 10**18)),
                (SO_WETH, WETH, rng.randint(0, 10**18)),
                (SO_OP, OP, rng.choice([0, 10**18, rng.randint(0, 10**18)])),
            ]
            context = make_context(markets=markets, prices=PRICES)
            events = [
                _event(rng.choice([SO_USDC, SO_WETH, SO_OP]), rng.randint(0, 10**20))
                for _ in range(20)
            ]
            totals = summarize_events(context, events)
            assert Decimal("0") <= totals.daily_protocol_revenue <= totals.daily_protocol_fees


class TestAggregate:
    """Fan-out over markets via the log source."""

    @pytest.mark.asyncio
    async def test_zero_markets_makes_no_log_calls(self, make_context, log_source) -> None:
        aggregator = InterestAccrualAggregator(log_source)
        totals = await aggregator.aggregate(make_context(markets=[], prices=PRICES))

        assert totals.daily_protocol_fees == Decimal("0")
        assert totals.daily_protocol_revenue == Decimal("0")
        log_source.get_accrual_logs.assert_not_called()

    @pytest.mark.asyncio
    async def test_queries_each_market_over_inclusive_block_range(
        self, make_context, log_source
    ) -> None:
        context = make_context(
            markets=[(SO_USDC, USDC, RF_10), (SO_WETH, WETH, RF_15)],
            prices=PRICES,
            blocks=BlockWindow(current_block=1_500, start_block=1_000, end_block=2_000),
        )
        aggregator = InterestAccrualAggregator(log_source)
        await aggregator.aggregate(context)

        assert log_source.get_accrual_logs.await_count == 2
        log_source.get_accrual_logs.assert_any_await(SO_USDC, 1_000, 2_000)
        log_source.get_accrual_logs.assert_any_await(SO_WETH, 1_000, 2_000)

    @pytest.mark.asyncio
    async def test_flattens_results_from_all_markets(self, make_context, log_source) -> None:
        by_market = {
            SO_USDC: [_event(SO_USDC, 1_000_000), _event(SO_USDC, 1_000_000, block=160)],
            SO_WETH: [_event(SO_WETH, 10**18)],
        }
        log_source.get_accrual_logs.side_effect = lambda market, *_: by_market[market]

        context = make_context(
            markets=[(SO_USDC, USDC, RF_10), (SO_WETH, WETH, RF_15)], prices=PRICES
        )
        totals = await InterestAccrualAggregator(log_source).aggregate(context)

        assert totals.daily_protocol_fees == Decimal("2502.5")
        assert totals.daily_protocol_revenue == Decimal("375.275")

    @pytest.mark.asyncio
    async def test_log_source_failure_propagates(self, make_context, log_source) -> None:
        log_source.get_accrual_logs.side_effect = CollaboratorError("rpc down")
        context = make_context(markets=[(SO_USDC, USDC, RF_10)], prices=PRICES)

        with pytest.raises(CollaboratorError, match="rpc down"):
            await InterestAccrualAggregator(log_source).aggregate(context)

    @pytest.mark.asyncio
    async def test_failing_market_cancels_other_log_scans(
        self, make_context, log_source
    ) -> None:
        scan_started = asyncio.Event()
        cancelled: list[str] = []

        async def get_logs(market, from_block, to_block):
            if market == SO_USDC:
                await scan_started.wait()
                raise CollaboratorError("eth_getLogs failed")
            scan_started.set()
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.append(market)
                raise
            return []

        log_source.get_accrual_logs.side_effect = get_logs
        context = make_context(
            markets=[(SO_USDC, USDC, RF_10), (SO_WETH, WETH, RF_15)], prices=PRICES
        )

        with pytest.raises(CollaboratorError, match="eth_getLogs"):
            await InterestAccrualAggregator(log_source).aggregate(context)

        assert cancelled == [SO_WETH]
