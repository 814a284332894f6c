"""
structlog configuration for the HTTP app and CLI.
"""

import logging
import sys

import structlog


def configure_logging(level: str = "INFO") -> None:
    """
    Send structlog output to stderr so stdout stays clean for JSON results.

    Args:
        level: Minimum level name, e.g. "DEBUG" or "WARNING"
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
    # SQLAlchemy echo output goes through stdlib logging
    logging.basicConfig(stream=sys.stderr, level=numeric_level)
