"""Abstract historical price source interface."""

from abc import ABC, abstractmethod

from lending_fees.models import PriceTable


class PriceSource(ABC):
    """Looks up USD prices and token decimals at a point in time."""

    @abstractmethod
    async def get_prices(self, keys: list[str], timestamp: int) -> PriceTable:
        """Return prices for "chain:address" keys as of the timestamp.

        Assets the source cannot price are absent from the returned table;
        it is up to the consumer to treat that as fatal.
        """
        ...
