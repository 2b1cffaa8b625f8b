"""Configuration for the startdev supervisor.

Settings come from the process environment (PORT, HOST, STARTDEV_*) and
are frozen for the lifetime of a run.
"""

from ._load import (
    ENV_PREFIX,
    load_config,
    load_logging_config,
    parse_allowed_hosts,
    parse_port,
)
from ._models import (
    DEFAULT_HOST,
    DEFAULT_NEUTRAL_EXIT_CODES,
    DEFAULT_PORT,
    DEFAULT_TERMINATION_SIGNALS,
    LogFormat,
    LoggingConfig,
    LogLevel,
    SupervisorConfig,
)

__all__ = [
    "DEFAULT_HOST",
    "DEFAULT_NEUTRAL_EXIT_CODES",
    "DEFAULT_PORT",
    "DEFAULT_TERMINATION_SIGNALS",
    "ENV_PREFIX",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "SupervisorConfig",
    "load_config",
    "load_logging_config",
    "parse_allowed_hosts",
    "parse_port",
]
