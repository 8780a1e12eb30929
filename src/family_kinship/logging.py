"""Structlog setup for Family Kinship.

Library modules only call ``structlog.get_logger(__name__)``; rendering and
level filtering are decided once by the entry point.
"""
from __future__ import annotations

import logging
import sys
from typing import IO, Literal

import structlog

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def configure_logging(
    level: LogLevel | str = "INFO",
    *,
    json_output: bool = True,
    stream: IO[str] | None = None,
) -> None:
    """Route structured events to ``stream`` (stderr by default).

    Unknown level names fall back to INFO.
    """
    name = str(level).upper()
    threshold = getattr(logging, name) if name in _LEVELS else logging.INFO
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(threshold),
        logger_factory=structlog.PrintLoggerFactory(stream or sys.stderr),
        # Loggers are re-resolved so a later configure_logging() call takes effect
        cache_logger_on_first_use=False,
    )
