"""Logging utilities for startdev.

This module provides standalone structlog logger factories that write
JSON-formatted or text-formatted diagnostics either to a log file or to
stderr. Each logger is self-contained and does not modify global structlog
configuration.
"""

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, TextIO, cast

import structlog

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from startdev.config import LoggingConfig


def _log_level_from_string(level: str) -> int:
    """Convert a log level string to a logging level integer.

    Args:
        level: Log level string (debug, info, warning, error).

    Returns:
        The logging level as an integer, INFO for unknown names.
    """
    log_levels = logging.getLevelNamesMapping()
    return log_levels.get(level.upper(), logging.INFO)


def _open_log_stream(log_file: str) -> TextIO:
    if not log_file:
        return sys.stderr
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    return log_path.open("a")


def _create_logger(
    stream: TextIO,
    *,
    log_level: int,
    log_format: str = "text",
) -> "FilteringBoundLogger":  # noqa: UP037
    """Create a standalone structlog logger writing to the given stream.

    Args:
        stream: Open text stream to write log lines to.
        log_level: Minimum level that is emitted.
        log_format: Output format, either "json" or "text".

    Returns:
        A configured FilteringBoundLogger instance.
    """
    processors: list[structlog.typing.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if log_format == "json":
        # Add dict_tracebacks for structured exception logging in JSON
        processors.append(structlog.processors.dict_tracebacks)
        processors.append(structlog.processors.JSONRenderer())
    else:
        # Text format: "timestamp [level] event key=value ..."
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    wrapper_class = structlog.make_filtering_bound_logger(log_level)

    # wrap_logger leaves the global structlog configuration untouched
    return cast(
        "FilteringBoundLogger",
        structlog.wrap_logger(
            structlog.WriteLogger(file=stream),
            processors=processors,
            wrapper_class=wrapper_class,
            context_class=dict,
        ),
    )


def create_supervisor_logger(
    config: "LoggingConfig | None" = None,  # noqa: UP037
    **context: object,
) -> "FilteringBoundLogger":  # noqa: UP037
    """Create a logger for the supervisor.

    Writes to the configured log file, or to stderr when no file is set.
    Any keyword arguments are bound to every log entry.

    Args:
        config: Logging settings. Uses LoggingConfig defaults if None.
        **context: Key/value pairs bound to all entries (e.g. port=3000).

    Returns:
        A FilteringBoundLogger instance configured for supervisor logging.
    """
    if config is None:
        from startdev.config import LoggingConfig  # noqa: PLC0415

        config = LoggingConfig()

    logger = _create_logger(
        _open_log_stream(config.file),
        log_level=_log_level_from_string(config.level.value),
        log_format=config.format.value,
    )
    if context:
        return logger.bind(**context)
    return logger
