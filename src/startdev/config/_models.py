"""Configuration models.

This module provides the Pydantic models that hold the settings for a
single supervisor run:
- LogLevel / LogFormat: Logging enums
- LoggingConfig: Diagnostic logging settings
- SupervisorConfig: Port, timing and classification settings
"""

from enum import StrEnum
from pathlib import Path
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_HOST = "0.0.0.0"  # noqa: S104
DEFAULT_PORT = 3000

# 128 + signal number: SIGINT from a shell, SIGKILL, SIGTERM
DEFAULT_NEUTRAL_EXIT_CODES = frozenset({130, 137, 143})

DEFAULT_TERMINATION_SIGNALS = ("SIGINT", "SIGTERM", "SIGHUP", "SIGQUIT", "SIGPIPE")


class LogLevel(StrEnum):
    """Log level threshold values.

    Values are ordered from most verbose (debug) to least verbose (error).
    """

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogFormat(StrEnum):
    """Log output format values."""

    JSON = "json"
    TEXT = "text"


class LoggingConfig(BaseModel):
    """Logging configuration section.

    Attributes:
        level: Log level threshold.
        format: Log output format.
        file: Path to log file (empty writes to stderr).
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    level: LogLevel = LogLevel.WARNING
    format: LogFormat = LogFormat.TEXT
    file: str = ""


class SupervisorConfig(BaseModel):
    """Immutable settings for one supervisor run.

    Built once at startup from the environment and never mutated.

    Attributes:
        host: Address used for probing and for binding the service.
        port: Port the service must listen on.
        allowed_hosts: Extra inbound hosts the served app should accept.
        readiness_timeout: Seconds to wait for a listener after spawning.
        neutral_exit_codes: Child exit codes that mean "terminated externally".
        termination_signals: Signals the supervisor itself listens for.
        backoff_initial: First readiness poll delay in seconds.
        backoff_multiplier: Growth factor for the poll delay.
        backoff_max: Ceiling for the poll delay in seconds.
        recheck_delay: Seconds before the second post-exit port probe.
        shutdown_timeout: Grace period for terminating the child on exit.
        service_binary: Name of the dev server executable.
        runner: Package runner used when no local executable exists.
        project_dir: Directory holding node_modules and used as the child cwd.
        logging: Diagnostic logging settings.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    host: str = DEFAULT_HOST
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    allowed_hosts: tuple[str, ...] = ()
    readiness_timeout: float = Field(default=60.0, gt=0)
    neutral_exit_codes: frozenset[int] = DEFAULT_NEUTRAL_EXIT_CODES
    termination_signals: tuple[str, ...] = DEFAULT_TERMINATION_SIGNALS
    backoff_initial: float = Field(default=0.2, gt=0)
    backoff_multiplier: float = Field(default=1.25, ge=1)
    backoff_max: float = Field(default=1.0, gt=0)
    recheck_delay: float = Field(default=0.5, ge=0)
    shutdown_timeout: float = Field(default=5.0, ge=0)
    service_binary: str = "vite"
    runner: tuple[str, ...] = ("npx",)
    project_dir: Path = Field(default_factory=Path.cwd)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def url(self) -> str:
        """Return the URL the service is expected to serve on."""
        return f"http://{self.host}:{self.port}"
