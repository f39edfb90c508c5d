"""
structlog configuration.
"""

import logging

import structlog


def configure_logging(level: str = "INFO", fmt: str = "console") -> None:
    """
    Configure structlog processors.

    Args:
        level: Minimum log level name (DEBUG, INFO, ...)
        fmt: "console" for human-readable output, "json" for one JSON
            object per line
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    processors: list = [
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if fmt == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
    )
