"""DefiLlama coins API client via httpx async.

Endpoint: GET {base_url}/prices/historical/{timestamp}/{coins}
where coins is a comma-separated list of "chain:address" keys. The reply is

    {"coins": {"optimism:0x...": {"price": 1.0, "decimals": 6,
                                  "symbol": "USDC", "timestamp": ...}}}

Coins the API cannot price are simply missing from "coins".
"""

from decimal import Decimal, InvalidOperation

import httpx

from lending_fees.config import PriceSettings
from lending_fees.exceptions import CollaboratorError
from lending_fees.logging import get_logger
from lending_fees.models import PriceEntry, PriceTable
from lending_fees.prices.client import PriceSource

logger = get_logger(__name__)


class LlamaPriceClient(PriceSource):
    """Concrete PriceSource backed by coins.llama.fi."""

    def __init__(self, settings: PriceSettings, client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._client = client or httpx.AsyncClient(timeout=settings.timeout_seconds)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def get_prices(self, keys: list[str], timestamp: int) -> PriceTable:
        unique = list(dict.fromkeys(k.lower() for k in keys))
        batch_size = max(1, self._settings.batch_size)

        entries: dict[str, PriceEntry] = {}
        for i in range(0, len(unique), batch_size):
            batch = unique[i : i + batch_size]
            entries.update(await self._fetch_batch(batch, timestamp))

        missing = [k for k in unique if k not in entries]
        if missing:
            logger.warning("prices_missing", timestamp=timestamp, keys=missing)
        logger.debug("prices_fetched", timestamp=timestamp, count=len(entries))
        return PriceTable(entries)

    async def _fetch_batch(self, keys: list[str], timestamp: int) -> dict[str, PriceEntry]:
        url = f"{self._settings.base_url.rstrip('/')}/prices/historical/{timestamp}/{','.join(keys)}"
        try:
            response = await self._client.get(
                url, params={"searchWidth": self._settings.search_width}
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise CollaboratorError(f"Price request failed: {exc}") from exc
        except ValueError as exc:
            raise CollaboratorError("Price API returned invalid JSON") from exc

        coins = payload.get("coins") if isinstance(payload, dict) else None
        if not isinstance(coins, dict):
            raise CollaboratorError("Unexpected price payload (expected 'coins' object)")

        entries: dict[str, PriceEntry] = {}
        for key, coin in coins.items():
            entry = self._parse_coin(key, coin)
            if entry is not None:
                entries[key.lower()] = entry
        return entries

    @staticmethod
    def _parse_coin(key: str, coin: dict) -> PriceEntry | None:
        """Build a PriceEntry, or None when the coin lacks price or decimals."""
        if coin.get("price") is None or coin.get("decimals") is None:
            logger.warning("incomplete_price_entry", key=key)
            return None
        try:
            price = Decimal(str(coin["price"]))
            decimals = int(coin["decimals"])
        except (InvalidOperation, TypeError, ValueError) as exc:
            raise CollaboratorError(f"Malformed price entry for {key}: {coin!r}") from exc
        if price < 0 or decimals < 0:
            raise CollaboratorError(f"Negative price or decimals for {key}: {coin!r}")
        return PriceEntry(price=price, decimals=decimals, symbol=str(coin.get("symbol", "")))
