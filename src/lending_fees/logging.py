"""structlog setup for the fee adapter.

Every log line of a fee run carries the ``timestamp`` being computed:
DailyFeeOrchestrator binds it with ``structlog.contextvars`` and the
per-market log scans and price requests it fans out inherit it. Events are
snake_case names with key/value fields, e.g.
``accrual_logs_fetched market=0x... count=12``.

web3 and httpx emit one INFO record per RPC or HTTP request, which would
bury the adapter's own events, so both are capped at WARNING.
"""

import logging
import os

import structlog

# Libraries that log every request at INFO
_CHATTY_LIBRARIES = ("web3", "httpx", "httpcore")


def _renderer() -> structlog.types.Processor:
    """JSON lines when LOG_FORMAT=json (scheduled runs), console otherwise."""
    if os.environ.get("LOG_FORMAT", "console").lower() == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def setup_logging(log_level: str = "INFO") -> None:
    """Route structlog and stdlib logging through one handler at log_level.

    Called once by main.run() before any component is built. Timestamps
    are ISO-8601 UTC, matching the UTC day windows the adapter reports on.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(),
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in _CHATTY_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Module-level logger; use ``logger = get_logger(__name__)``."""
    return structlog.get_logger(name)
