"""Logging setup for synckeeper.

Events are structlog key/value records written to stderr. Keepalive tasks
bind their ``uin`` into the context variables, so every event a task emits
names the identity it belongs to without passing it around.
"""

import logging as stdlib_logging
import sys
from typing import Any, TextIO

import structlog

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def level_for_verbosity(verbose: int, default: str) -> str:
    """Map a ``-v`` count onto a level name.

    Args:
        verbose: Number of ``-v`` flags given.
        default: Level used when no flag was given.

    Returns:
        DEBUG for two or more flags, INFO for one, otherwise ``default``.
    """
    if verbose >= 2:
        return "DEBUG"
    if verbose == 1:
        return "INFO"
    return default


def configure_logging(
    level: str = "WARNING",
    json_output: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Configure structlog for synckeeper.

    Args:
        level: Minimum level name. Unknown names fall back to INFO.
        json_output: Render one JSON object per line instead of console output.
        stream: Where to write events. Defaults to stderr.
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]
    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=stream is None))

    name = level.upper()
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(stdlib_logging, name) if name in LEVELS else stdlib_logging.INFO
        ),
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Return a structlog logger, optionally named after a module."""
    return structlog.get_logger(name)
