"""Daily fee pipeline -- context, interest aggregation, reward estimation."""

from lending_fees.fees.context import ContextBuilder
from lending_fees.fees.interest import InterestAccrualAggregator, summarize_events
from lending_fees.fees.orchestrator import DailyFeeOrchestrator
from lending_fees.fees.rewards import RewardEstimator

__all__ = [
    "ContextBuilder",
    "DailyFeeOrchestrator",
    "InterestAccrualAggregator",
    "RewardEstimator",
    "summarize_events",
]
