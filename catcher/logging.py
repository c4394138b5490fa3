"""Structured logging setup utilities."""

from __future__ import annotations

import logging
from typing import Iterable

import structlog

from catcher.config import CatcherSettings, get_settings


def configure_logging(
    handlers: Iterable[logging.Handler] | None = None,
    settings: CatcherSettings | None = None,
) -> None:
    """Configure stdlib logging and structlog, JSON output unless disabled."""

    if settings is None:
        settings = get_settings()
    if handlers is None:
        handlers = [logging.StreamHandler()]

    logging.basicConfig(
        level=settings.log_level,
        handlers=list(handlers),
        format="%(message)s",
        force=True,
    )

    renderer = structlog.processors.JSONRenderer() if settings.json_logs else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
