"""Context builder: one immutable snapshot per fetch call.

Resolves the UTC day around the requested timestamp to blocks, discovers the
active markets with their underlying assets and reserve factors, and prices
every underlying plus the reward token as of the requested timestamp.
"""

from lending_fees.chain.client import BlockResolver, MarketDirectory
from lending_fees.concurrency import gather_or_cancel
from lending_fees.config import ProtocolSettings
from lending_fees.logging import get_logger
from lending_fees.models import BlockWindow, FeeContext, MarketSet, TimeWindow, price_key
from lending_fees.prices.client import PriceSource

logger = get_logger(__name__)


class ContextBuilder:
    """Assembles the FeeContext shared by both aggregators.

    Args:
        chain: Chain name used as the price key prefix (e.g. "optimism").
        protocol: Fixed protocol addresses (comptroller, gauge, reward token, claimant).
        block_resolver: Maps timestamps to block numbers.
        directory: Enumerates markets and their parameters.
        price_source: Historical USD prices with token decimals.
    """

    def __init__(
        self,
        chain: str,
        protocol: ProtocolSettings,
        block_resolver: BlockResolver,
        directory: MarketDirectory,
        price_source: PriceSource,
    ) -> None:
        self._chain = chain
        self._protocol = protocol
        self._block_resolver = block_resolver
        self._directory = directory
        self._price_source = price_source

    async def build(self, timestamp: int) -> FeeContext:
        """Build the context for the UTC day containing timestamp.

        Raises:
            ResolutionError: If any of the three timestamps has no block.
            CollaboratorError: If market discovery or price lookup fails.
        """
        window = TimeWindow.for_timestamp(timestamp)

        current_block, start_block, end_block = await gather_or_cancel(
            self._block_resolver.resolve_block(window.current_timestamp),
            self._block_resolver.resolve_block(window.start_timestamp),
            self._block_resolver.resolve_block(window.end_timestamp),
        )
        blocks = BlockWindow(
            current_block=current_block,
            start_block=start_block,
            end_block=end_block,
        )
        if not blocks.is_ordered:
            logger.warning(
                "block_window_out_of_order",
                current_block=current_block,
                start_block=start_block,
                end_block=end_block,
            )

        markets = await self._directory.list_markets(
            self._protocol.comptroller, at_block=current_block
        )
        details = await self._directory.get_market_details(markets, at_block=current_block)
        market_set = MarketSet(
            markets=tuple(markets),
            underlyings=tuple(details.underlyings),
            reserve_factors=tuple(details.reserve_factors),
        )

        keys = [price_key(self._chain, u) for u in market_set.underlyings]
        keys.append(price_key(self._chain, self._protocol.reward_token))
        prices = await self._price_source.get_prices(list(dict.fromkeys(keys)), timestamp)

        logger.info(
            "fee_context_built",
            start_timestamp=window.start_timestamp,
            end_timestamp=window.end_timestamp,
            start_block=start_block,
            end_block=end_block,
            current_block=current_block,
            markets=len(market_set),
            priced_assets=len(prices),
        )

        return FeeContext(
            chain=self._chain,
            time=window,
            blocks=blocks,
            market_set=market_set,
            prices=prices,
            reward_token=self._protocol.reward_token,
            gauge=self._protocol.gauge,
            reward_claimant=self._protocol.reward_claimant,
        )
