"""
Logging Setup - DJ Rank
djrank/core/logging_config.py

Configures stdlib logging and structlog from settings.
"""

import logging
import sys

import structlog

from djrank.config import settings


def configure_logging(level: str = None, fmt: str = None) -> None:
    """Configure root logging and structlog rendering (json or console)."""
    level = level or settings.LOG_LEVEL
    fmt = fmt or settings.LOG_FORMAT

    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stdout,
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if fmt == "json"
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level)),
        cache_logger_on_first_use=True,
    )
