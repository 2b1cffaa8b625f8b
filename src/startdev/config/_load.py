"""Environment parsing for the supervisor configuration.

Every value is read once. Invalid values never raise; they fall back to
the built-in defaults.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any

from ._models import (
    DEFAULT_PORT,
    LogFormat,
    LoggingConfig,
    LogLevel,
    SupervisorConfig,
)

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

ENV_PREFIX = "STARTDEV_"

MAX_PORT = 65535


def parse_port(value: str | None) -> int:
    """Parse a port number, falling back to the default.

    Args:
        value: Raw environment value, if any.

    Returns:
        The port, or DEFAULT_PORT when absent, non-numeric or out of range.
    """
    if value is None:
        return DEFAULT_PORT
    try:
        port = int(value.strip())
    except ValueError:
        return DEFAULT_PORT
    if not 0 < port <= MAX_PORT:
        return DEFAULT_PORT
    return port


def parse_allowed_hosts(value: str | None) -> tuple[str, ...]:
    """Split a comma-separated host list, dropping empty entries."""
    if not value:
        return ()
    return tuple(host.strip() for host in value.split(",") if host.strip())


def _parse_positive_float(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        parsed = float(value)
    except ValueError:
        return None
    return parsed if parsed > 0 else None


def _parse_log_level(value: str | None, *, debug: bool) -> LogLevel:
    """Parse log level string to LogLevel enum, with fallback.

    Args:
        value: Log level string value.
        debug: Whether debug logging was forced on.

    Returns:
        LogLevel enum value, defaulting to WARNING for invalid values.
    """
    if debug:
        return LogLevel.DEBUG
    try:
        return LogLevel((value or "").lower())
    except ValueError:
        return LogLevel.WARNING


def _parse_log_format(value: str | None) -> LogFormat:
    """Parse log format string to LogFormat enum, with fallback.

    Args:
        value: Log format string value.

    Returns:
        LogFormat enum value, defaulting to TEXT for invalid values.
    """
    try:
        return LogFormat((value or "").lower())
    except ValueError:
        return LogFormat.TEXT


def load_logging_config(environ: Mapping[str, str]) -> LoggingConfig:
    """Build the logging section from STARTDEV_* variables."""
    return LoggingConfig(
        level=_parse_log_level(
            environ.get(f"{ENV_PREFIX}LOG_LEVEL"),
            debug=bool(environ.get(f"{ENV_PREFIX}DEBUG")),
        ),
        format=_parse_log_format(environ.get(f"{ENV_PREFIX}LOG_FORMAT")),
        file=environ.get(f"{ENV_PREFIX}LOG_FILE", ""),
    )


def load_config(
    environ: Mapping[str, str] | None = None,
    *,
    project_dir: Path | None = None,
    readiness_timeout: float | None = None,
) -> SupervisorConfig:
    """Build the supervisor configuration from the environment.

    Reads PORT, HOST and the STARTDEV_* variables exactly once. Explicit
    keyword arguments (typically CLI options) take precedence over the
    environment.

    Args:
        environ: Environment mapping. Uses os.environ if None.
        project_dir: Directory holding node_modules. Uses cwd if None.
        readiness_timeout: Seconds to wait for the service to listen.

    Returns:
        A frozen SupervisorConfig.
    """
    env = os.environ if environ is None else environ

    values: dict[str, Any] = {  # pyright: ignore[reportExplicitAny]
        "port": parse_port(env.get("PORT")),
        "allowed_hosts": parse_allowed_hosts(env.get("HOST")),
        "logging": load_logging_config(env),
    }

    if readiness_timeout is not None:
        values["readiness_timeout"] = readiness_timeout
    else:
        timeout = _parse_positive_float(env.get(f"{ENV_PREFIX}READINESS_TIMEOUT"))
        if timeout is not None:
            values["readiness_timeout"] = timeout

    if project_dir is not None:
        values["project_dir"] = project_dir

    return SupervisorConfig(**values)
