import logging
import sys

import structlog

from vendor_contracts.config import settings


def _log_level() -> int:
    return getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)


def setup_logging():
    """Console output in development, one JSON object per line elsewhere."""
    level = _log_level()
    renderer = (
        structlog.dev.ConsoleRenderer()
        if settings.ENVIRONMENT == "development"
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    # Stdlib loggers (tenacity retries, uvicorn, SQLAlchemy) share the level
    logging.basicConfig(stream=sys.stdout, level=level, format="%(levelname)s %(name)s %(message)s")
