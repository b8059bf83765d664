"""Daily fee orchestrator: the single public entry point of the pipeline.

fetch(timestamp) builds a fresh context, runs the interest aggregator and the
reward estimator concurrently and composes the DailyFeeResult. Any failure
aborts the whole call and cancels the branch still running; there is no
partial result.
"""

import structlog

from lending_fees.concurrency import gather_or_cancel
from lending_fees.fees.context import ContextBuilder
from lending_fees.fees.interest import InterestAccrualAggregator
from lending_fees.fees.rewards import RewardEstimator
from lending_fees.logging import get_logger
from lending_fees.models import DailyFeeResult, decimal_to_str

logger = get_logger(__name__)


class DailyFeeOrchestrator:
    """Computes fees, revenue and holders revenue for one UTC day."""

    def __init__(
        self,
        context_builder: ContextBuilder,
        interest: InterestAccrualAggregator,
        rewards: RewardEstimator,
    ) -> None:
        self._context_builder = context_builder
        self._interest = interest
        self._rewards = rewards

    async def fetch(self, timestamp: int) -> DailyFeeResult:
        """Compute the daily result for the UTC day containing timestamp.

        Raises:
            ValueError: If timestamp is negative.
            FeeAdapterError: Any resolution, pricing, estimation or collaborator error.
        """
        if timestamp < 0:
            raise ValueError(f"Timestamp must be non-negative, got {timestamp}")

        with structlog.contextvars.bound_contextvars(timestamp=timestamp):
            context = await self._context_builder.build(timestamp)

            totals, reward_usd = await gather_or_cancel(
                self._interest.aggregate(context),
                self._rewards.estimate(context),
            )

            holders_revenue = totals.daily_protocol_revenue + reward_usd
            result = DailyFeeResult(
                timestamp=timestamp,
                daily_fees=decimal_to_str(totals.daily_protocol_fees),
                daily_revenue=decimal_to_str(totals.daily_protocol_revenue),
                daily_holders_revenue=decimal_to_str(holders_revenue),
            )
            logger.info(
                "daily_fees_computed",
                daily_fees=result.daily_fees,
                daily_revenue=result.daily_revenue,
                daily_holders_revenue=result.daily_holders_revenue,
            )
            return result
