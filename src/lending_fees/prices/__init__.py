"""Historical price layer -- DefiLlama coins API via httpx."""

from lending_fees.prices.client import PriceSource
from lending_fees.prices.llama_client import LlamaPriceClient

__all__ = ["LlamaPriceClient", "PriceSource"]
