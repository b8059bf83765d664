"""Custom exceptions for the lending fee adapter.

None of these are recovered inside the package: each one aborts the
``fetch`` call that raised it. Retrying is left to the scheduler.
"""


class FeeAdapterError(Exception):
    """Base exception for all fee adapter errors."""


class ResolutionError(FeeAdapterError):
    """Raised when a timestamp cannot be mapped to a block number."""


class PriceNotFoundError(FeeAdapterError):
    """Raised when an asset needed for valuation has no price entry."""

    def __init__(self, key: str) -> None:
        super().__init__(f"No price entry for {key}")
        self.key = key


class EstimationError(FeeAdapterError):
    """Raised when the reward accrual window is empty or negative."""


class CollaboratorError(FeeAdapterError):
    """Raised when an RPC node or price API fails or replies with malformed data."""
