"""Structured logging setup.

Modules log with ``structlog.get_logger(__name__)`` and event names plus
key/value context; this module decides how those events are rendered.
"""

import logging

import structlog

from .config import settings


def setup_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Configure structlog on top of the stdlib logging module.

    Args:
        level: Log level name (defaults to LOG_LEVEL)
        fmt: "json" for one JSON object per line, "console" for humans
            (defaults to LOG_FORMAT)
    """
    log_level = (level or settings.log_level).upper()
    renderer = (
        structlog.processors.JSONRenderer()
        if (fmt or settings.log_format) == "json"
        else structlog.dev.ConsoleRenderer()
    )

    logging.basicConfig(level=log_level, format="%(message)s")

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(log_level)),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


__all__ = ["setup_logging"]
