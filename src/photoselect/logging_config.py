"""
Centralized logging configuration for photoselect.

This module sets up structlog with consistent processors across all
components and provides the bounded status log that backs the debug endpoint.
"""

import logging
import os
import sys
from collections import deque
from collections.abc import Callable
from datetime import datetime
from typing import Any

import structlog

from .clock import utc_now

STATUS_LOG_CAPACITY = 50


def get_log_level() -> int:
    """
    Get log level from environment variable or default to INFO.

    Returns:
        int: Log level constant from logging module
    """
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()

    level_mapping = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }

    return level_mapping.get(level_name, logging.INFO)


def is_development_environment() -> bool:
    """Check if running in development environment."""
    return os.getenv("ENVIRONMENT", "development").lower() in ["development", "dev", "local"]


def configure_structured_logging() -> None:
    """
    Configure structured logging for the entire application.

    Development gets the console renderer, everything else renders JSON lines.
    """
    log_level = get_log_level()
    is_dev = is_development_environment()

    logging.basicConfig(
        level=log_level,
        format="%(message)s",  # structlog will handle formatting
        stream=sys.stderr,
    )

    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if is_dev:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.getLogger().setLevel(log_level)

    logger = structlog.get_logger("photoselect.logging")
    logger.info(
        "logging_configured",
        log_level=logging.getLevelName(log_level),
        environment="development" if is_dev else "production",
    )


def get_logger(name: str | None = None) -> Any:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (optional, defaults to calling module)

    Returns:
        structlog.BoundLogger: Configured logger instance
    """
    if name is None:
        import inspect

        frame = inspect.currentframe()
        if frame and frame.f_back:
            name = frame.f_back.f_globals.get("__name__", "unknown")

    return structlog.get_logger(name)


def log_performance(operation: str, duration: float, **context: Any) -> None:
    """
    Log performance metrics.

    Args:
        operation: Name of the operation
        duration: Duration in seconds
        **context: Additional context information
    """
    logger = get_logger("photoselect.performance")
    logger.info("performance_metric", operation=operation, duration_seconds=duration, **context)


def log_error(error: Exception, context: dict[str, Any] | None = None, level: str = "error") -> None:
    """
    Log errors with structured context.

    Args:
        error: Exception that occurred
        context: Additional context information
        level: Log method name to use (``"error"``, ``"warning"``, ``"debug"``)
    """
    logger = get_logger("photoselect.errors")

    error_context = {
        "error_type": type(error).__name__,
        "error_message": str(error),
    }

    if context:
        error_context.update(context)

    if level == "error":
        logger.error("error_occurred", **error_context, exc_info=error)
    else:
        getattr(logger, level)("error_occurred", **error_context)


class StatusLog:
    """Bounded ring buffer of human-readable status lines.

    Every line is also emitted through structlog, so the buffer is only a
    short-term window for the debug endpoint, never the source of truth.
    """

    def __init__(
        self,
        capacity: int = STATUS_LOG_CAPACITY,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._lines: deque[str] = deque(maxlen=capacity)
        self._clock = clock or utc_now
        self._logger = get_logger("photoselect.status")

    def add(self, message: str, level: str = "info", **context: Any) -> str:
        """Record a status line and return it."""
        line = f"[{self._clock().isoformat()}] {message}"
        getattr(self._logger, level)(message, **context)
        self._lines.append(line)
        return line

    def lines(self) -> list[str]:
        """Return a snapshot of the buffered lines, oldest first."""
        return list(self._lines)

    def __len__(self) -> int:
        return len(self._lines)
