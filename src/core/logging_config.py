"""Structured logging configuration.

This module initializes structlog with a stable JSON event format.
Events go to stderr so stdout stays reserved for result rows.
"""

from __future__ import annotations

import sys
from typing import Any

import structlog


class _StderrWriter:
    """File-like target that resolves sys.stderr on every write."""

    def write(self, message: str) -> int:
        return sys.stderr.write(message)

    def flush(self) -> None:
        sys.stderr.flush()


_STDERR_WRITER = _StderrWriter()


def get_logger(name: str) -> Any:
    """Return a module logger instance.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A structlog logger with structured output.
    """
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.PrintLoggerFactory(file=_STDERR_WRITER),
        cache_logger_on_first_use=True,
    )
    return structlog.get_logger(name)
