"""startdev exceptions."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence


class StartDevError(Exception):
    """Base exception for startdev errors."""


class SupervisorError(StartDevError):
    """Base exception for supervisor errors."""


class ChildSpawnError(SupervisorError):
    """Raised when the supervised service cannot be launched.

    Attributes:
        command: The command line that failed to launch.
        cause: The underlying exception that caused the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        command: Sequence[str] = (),
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and launch context.

        Args:
            message: Human-readable error message.
            command: The command line that failed to launch.
            cause: The underlying exception that caused the failure.
        """
        super().__init__(message)
        self.command: tuple[str, ...] = tuple(command)
        self.cause: Exception | None = cause
