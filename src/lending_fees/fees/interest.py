"""Interest accrual aggregation: gross interest (fees) and the reserve share (revenue).

Each AccrueInterest event carries the interest added to a market's borrows
since its previous accrual. Valued at the underlying's USD price, that is
the fee paid by borrowers; the reserve factor's share of it is kept by the
protocol as revenue.

Block range is [start_block, end_block] with both ends inclusive, so a
block exactly on a day boundary is also counted by the neighbouring day.
"""

from collections.abc import Iterable
from decimal import Decimal

from lending_fees.chain.client import AccrualLogSource
from lending_fees.concurrency import gather_or_cancel
from lending_fees.exceptions import CollaboratorError
from lending_fees.logging import get_logger
from lending_fees.models import AccrualEvent, FeeContext, InterestTotals, to_units

logger = get_logger(__name__)


class InterestAccrualAggregator:
    """Sums AccrueInterest events of all markets over the context's block range."""

    def __init__(self, log_source: AccrualLogSource) -> None:
        self._log_source = log_source

    async def aggregate(self, context: FeeContext) -> InterestTotals:
        markets = context.market_set.markets
        if not markets:
            logger.info("no_markets_to_aggregate")
            return InterestTotals()

        per_market = await gather_or_cancel(
            *(
                self._log_source.get_accrual_logs(
                    market, context.blocks.start_block, context.blocks.end_block
                )
                for market in markets
            )
        )
        events = [event for batch in per_market for event in batch]

        totals = summarize_events(context, events)
        logger.info(
            "interest_aggregated",
            events=len(events),
            daily_protocol_fees=str(totals.daily_protocol_fees),
            daily_protocol_revenue=str(totals.daily_protocol_revenue),
        )
        return totals


def summarize_events(context: FeeContext, events: Iterable[AccrualEvent]) -> InterestTotals:
    """Value events in USD and split them into fees and protocol revenue.

    Raises:
        PriceNotFoundError: If a market's underlying has no price entry.
        CollaboratorError: If an event belongs to a market outside the context.
    """
    market_set = context.market_set
    fees = Decimal("0")
    revenue = Decimal("0")

    for event in events:
        try:
            index = market_set.market_index(event.market)
        except KeyError:
            raise CollaboratorError(
                f"Accrual event from unknown market {event.market}"
            ) from None

        entry = context.prices.get(context.chain, market_set.underlyings[index])
        interest_usd = to_units(event.interest_accumulated, entry.decimals) * entry.price

        fees += interest_usd
        revenue += interest_usd * market_set.reserve_factor(index)

    return InterestTotals(daily_protocol_fees=fees, daily_protocol_revenue=revenue)
