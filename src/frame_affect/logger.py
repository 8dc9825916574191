"""Structured logging configuration using *structlog*."""

from __future__ import annotations

import logging
import sys

import structlog

from frame_affect.config import get_settings


def setup_logging(level: str | None = None) -> None:
    """Configure *structlog* processors and stdlib integration.

    Call once at application startup, before the first detector is built.
    ``level`` defaults to ``Settings.log_level`` (``FRAME_AFFECT_LOG_LEVEL``).
    Per-frame events are emitted at DEBUG so a stream at INFO stays quiet.
    """
    if level is None:
        level = get_settings().log_level

    if sys.stderr.isatty():
        renderers = [structlog.dev.ConsoleRenderer()]
    else:
        # JSON output needs tracebacks flattened into the event dict
        renderers = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            *renderers,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level, logging.INFO)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
