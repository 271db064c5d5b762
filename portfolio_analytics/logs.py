"""structlog setup for applications embedding the analytics engine.

The library itself only calls ``structlog.get_logger``; configuring output is
left to the host process, which can call ``configure_logging`` once at start.
"""

from __future__ import annotations

import logging

import structlog


def configure_logging(level: int | str = logging.INFO, json: bool = False) -> None:
    """Set up structlog with human-readable console output (or JSON lines)."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    renderer = (
        structlog.processors.JSONRenderer()
        if json
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

