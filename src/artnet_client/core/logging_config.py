"""structlog setup shared by applications embedding the client."""

from __future__ import annotations

import logging

import structlog

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog to drop events below ``level``."""
    log_level = level.upper()
    if log_level not in LOG_LEVELS:
        raise ValueError(f"Unknown log level: {level}")

    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level)
        ),
    )
