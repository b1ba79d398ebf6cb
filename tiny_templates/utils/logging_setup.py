"""
Logging setup for hosts embedding the engine.
Path: tiny_templates/utils/logging_setup.py

The library itself only calls structlog.get_logger(); hosts call
configure_logging() once at startup if they want the engine's events rendered.
"""

import logging
import sys

import structlog


def configure_logging(level: str = "INFO", fmt: str = "console") -> None:
    """
    Configure structlog processors and the stdlib level filter.

    Args:
        level: Standard logging level name
        fmt: "console" for human readable output, "json" for one JSON object per line
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=log_level, stream=sys.stderr, format="%(message)s")

    renderer = structlog.processors.JSONRenderer() if fmt == "json" else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
