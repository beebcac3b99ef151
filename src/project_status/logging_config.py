"""Structured logging setup.

Log events are emitted with structlog as snake_case event names plus
key/value context:

    logger.info("record_built", project="npm-cli", status="success")

Logs go to stderr so the CLI can keep stdout for the JSON records it
prints. Production environments get one JSON object per line; anywhere
else gets the colorized console renderer.

Usage:
    from project_status.logging_config import setup_logging, get_logger

    setup_logging(environment="production", log_level="DEBUG")
    logger = get_logger(__name__)
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog


def setup_logging(
    environment: str | None = None,
    log_level: str | None = None,
) -> None:
    """Configure structlog and the standard library root logger.

    Args:
        environment: "production" selects JSON output. Falls back to the
                     ENVIRONMENT env var, then "development".
        log_level: DEBUG, INFO, WARNING or ERROR. Falls back to the
                   LOG_LEVEL env var, then INFO.
    """
    env = environment or os.environ.get("ENVIRONMENT", "development")
    level_name = (log_level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if env == "production":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # httpx logs every request at INFO through the stdlib
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=level,
    )
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> Any:
    """Return a structlog logger bound to ``name`` (typically __name__)."""
    return structlog.get_logger(name)
