"""FastAPI application factory for the fee API."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI

from lending_fees.api import routes


def create_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  main.py uses it to put the orchestrator on app.state and to
                  close the RPC and price clients on shutdown.

    Returns:
        Configured FastAPI application with the fee routes under /api.
    """
    app = FastAPI(
        title="Lending Fees",
        lifespan=lifespan,
    )

    # Wired by main.py lifespan (or directly by tests)
    app.state.orchestrator = None

    app.include_router(routes.router, prefix="/api")

    return app
