"""JSON endpoints: daily fee computation and health check."""

from __future__ import annotations

import time

import structlog
from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from lending_fees.exceptions import (
    CollaboratorError,
    EstimationError,
    PriceNotFoundError,
    ResolutionError,
)
from lending_fees.models import last_complete_day

log = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health() -> JSONResponse:
    return JSONResponse(content={"status": "ok"})


@router.get("/fees")
async def get_fees(
    request: Request,
    timestamp: int | None = Query(default=None, ge=0),
) -> JSONResponse:
    """Daily fees, revenue and holders revenue for the UTC day containing timestamp.

    Without a timestamp the last completed UTC day is reported.
    """
    orchestrator = request.app.state.orchestrator
    if orchestrator is None:
        return JSONResponse(status_code=503, content={"error": "Fee pipeline not ready"})

    if timestamp is None:
        timestamp = last_complete_day(int(time.time()))

    try:
        result = await orchestrator.fetch(timestamp)
    except (ResolutionError, ValueError) as exc:
        return _error(400, exc, timestamp)
    except (PriceNotFoundError, EstimationError) as exc:
        return _error(422, exc, timestamp)
    except CollaboratorError as exc:
        return _error(502, exc, timestamp)

    return JSONResponse(content=result.to_dict())


def _error(status_code: int, exc: Exception, timestamp: int) -> JSONResponse:
    log.warning(
        "fee_request_failed",
        timestamp=timestamp,
        status_code=status_code,
        error_type=type(exc).__name__,
        error=str(exc),
    )
    return JSONResponse(
        status_code=status_code,
        content={"error": str(exc), "type": type(exc).__name__, "timestamp": timestamp},
    )
