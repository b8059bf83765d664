"""Entry point for the lending fee adapter.

Wires all components together and either serves the fee API or computes a
single day and prints it as JSON.

Component wiring order (in _build_components):
1. AppSettings (configuration)
2. Logging setup
3. Web3ChainClient (block resolver, market directory, logs, gauge reads)
4. LlamaPriceClient (historical prices)
5. ContextBuilder
6. InterestAccrualAggregator
7. RewardEstimator
8. DailyFeeOrchestrator
"""

import asyncio
import json
import time
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from lending_fees.chain.web3_client import Web3ChainClient
from lending_fees.config import AppSettings
from lending_fees.fees.context import ContextBuilder
from lending_fees.fees.interest import InterestAccrualAggregator
from lending_fees.fees.orchestrator import DailyFeeOrchestrator
from lending_fees.fees.rewards import RewardEstimator
from lending_fees.logging import get_logger, setup_logging
from lending_fees.models import last_complete_day
from lending_fees.prices.llama_client import LlamaPriceClient


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build the fee pipeline from settings.

    Args:
        settings: Application-wide settings.

    Returns:
        Dict mapping component names to instances.
    """
    # 3. Chain client serves every on-chain collaborator role
    chain_client = Web3ChainClient(settings.chain)

    # 4. Price client
    price_client = LlamaPriceClient(settings.prices)

    # 5. Context builder
    context_builder = ContextBuilder(
        chain=settings.chain.name,
        protocol=settings.protocol,
        block_resolver=chain_client,
        directory=chain_client,
        price_source=price_client,
    )

    # 6-7. Aggregators
    interest = InterestAccrualAggregator(chain_client)
    rewards = RewardEstimator(chain_client, settings.protocol.zero_elapsed_policy)

    # 8. Orchestrator
    orchestrator = DailyFeeOrchestrator(context_builder, interest, rewards)

    return {
        "chain_client": chain_client,
        "price_client": price_client,
        "orchestrator": orchestrator,
    }


async def _close_components(components: dict[str, Any]) -> None:
    try:
        await components["price_client"].close()
    finally:
        await components["chain_client"].close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Expose the orchestrator to route handlers and close clients on shutdown."""
    logger = get_logger("lending_fees.main")
    components = app.state.components

    app.state.orchestrator = components["orchestrator"]
    logger.info("lifespan_started", chain=app.state.settings.chain.name)

    yield

    await _close_components(components)
    logger.info("lending_fees_stopped")


async def run() -> None:
    """Run the adapter.

    When the API is enabled (API_ENABLED=true), serves GET /api/fees via uvicorn.
    Otherwise computes RUN_TIMESTAMP (default: the last completed UTC day)
    once and prints the result.
    """
    # 1. Load settings
    settings = AppSettings()

    # 2. Setup logging
    setup_logging(settings.log_level)
    logger = get_logger("lending_fees.main")

    # 3-8. Build all components
    components = _build_components(settings)

    if settings.api.enabled:
        from lending_fees.api.app import create_app

        app = create_app(lifespan=lifespan)
        app.state.settings = settings
        app.state.components = components

        logger.info("starting_api", host=settings.api.host, port=settings.api.port)

        config = uvicorn.Config(
            app,
            host=settings.api.host,
            port=settings.api.port,
            log_level="warning",
        )
        server = uvicorn.Server(config)
        await server.serve()
        return

    timestamp = settings.run.timestamp
    if timestamp is None:
        timestamp = last_complete_day(int(time.time()))

    logger.info("running_once", chain=settings.chain.name, timestamp=timestamp)
    try:
        result = await components["orchestrator"].fetch(timestamp)
    finally:
        await _close_components(components)

    print(json.dumps(result.to_dict()))


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
