"""Gauge reward estimator.

The protocol's veVELO position accrues VELO continuously, but the gauge only
reports the total earned since the claimant's last checkpoint. The daily
share is estimated by linear extrapolation:

    ratio = (end - start) / (current - last_earn)
    daily_usd = earned * ratio * price

which assumes a constant accrual rate since the checkpoint. The result is
an approximation, not a measurement.
"""

from decimal import Decimal
from typing import Literal

from lending_fees.chain.client import RewardAccounting
from lending_fees.exceptions import EstimationError
from lending_fees.logging import get_logger
from lending_fees.models import FeeContext, RewardAccrual, TimeWindow, to_units

logger = get_logger(__name__)

ZeroElapsedPolicy = Literal["error", "zero"]


class RewardEstimator:
    """Pro-rates gauge rewards accrued since the last checkpoint to one day.

    Args:
        rewards: Reads gauge state for the claimant.
        zero_elapsed_policy: "error" raises EstimationError when the last
            checkpoint is at or after the current timestamp; "zero" logs a
            warning and reports no reward for the day.
    """

    def __init__(
        self, rewards: RewardAccounting, zero_elapsed_policy: ZeroElapsedPolicy = "error"
    ) -> None:
        self._rewards = rewards
        self._zero_elapsed_policy = zero_elapsed_policy

    async def estimate(self, context: FeeContext) -> Decimal:
        """Return the estimated USD value of rewards attributable to the context's day."""
        accrual = await self._rewards.get_reward_accrual(
            context.gauge,
            context.reward_token,
            context.reward_claimant,
            context.blocks.current_block,
        )

        ratio = self._ratio(context.time, accrual)
        if ratio is None:
            return Decimal("0")

        entry = context.prices.get(context.chain, context.reward_token)
        day_tokens = to_units(accrual.earned, entry.decimals) * ratio
        day_usd = day_tokens * entry.price

        logger.info(
            "reward_estimated",
            last_earn=accrual.last_earn,
            ratio=str(ratio),
            tokens=str(day_tokens),
            usd=str(day_usd),
        )
        return day_usd

    def _ratio(self, window: TimeWindow, accrual: RewardAccrual) -> Decimal | None:
        earned_timespan = window.current_timestamp - accrual.last_earn
        if earned_timespan > 0:
            return Decimal(window.timespan) / Decimal(earned_timespan)

        if self._zero_elapsed_policy == "zero":
            logger.warning(
                "reward_checkpoint_not_elapsed",
                last_earn=accrual.last_earn,
                current_timestamp=window.current_timestamp,
            )
            return None
        raise EstimationError(
            f"Reward checkpoint {accrual.last_earn} is not before "
            f"current timestamp {window.current_timestamp}"
        )
