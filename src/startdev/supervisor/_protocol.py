"""Protocol definitions for the supervisor.

This module defines the seams that keep the supervisor state machine
testable without real sockets, processes or OS signals:
- OutputSink: Consumes status events
- Prober: Async port probe
- ServiceHandle: A spawned child process
- Spawner: Launches the child
- SignalSource: Delivers signals addressed to the supervisor
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence
    from contextlib import AbstractContextManager

    from startdev.config import SupervisorConfig

    from ._child import ServiceCommand
    from ._models import PortStatus, SupervisorEvent, TerminationEvent


@runtime_checkable
class OutputSink(Protocol):
    """Protocol for consuming supervisor status events.

    The protocol is async to support non-blocking I/O such as writing to
    files or forwarding to another process.
    """

    async def write_event(self, event: SupervisorEvent) -> None:
        """Write a status event.

        Args:
            event: The status event to record.
        """
        ...


class Prober(Protocol):
    """Async callable reporting whether a port has a listener."""

    async def __call__(self, host: str, port: int) -> PortStatus:
        """Probe host:port once.

        Must never raise and must never leave a socket bound.
        """
        ...


@runtime_checkable
class ServiceHandle(Protocol):
    """Protocol for the supervised child process."""

    @property
    def pid(self) -> int:
        """Return the process ID of the child."""
        ...

    @property
    def command(self) -> tuple[str, ...]:
        """Return the command line the child was launched with."""
        ...

    def is_running(self) -> bool:
        """Return True until the child's termination has been observed."""
        ...

    async def wait(self) -> TerminationEvent:
        """Wait for the child to terminate and describe how it ended."""
        ...

    async def terminate(self, grace: float = 5.0) -> None:
        """Terminate the child, escalating to a kill after ``grace`` seconds.

        Calling this on a child that already exited is a no-op.
        """
        ...


class Spawner(Protocol):
    """Resolves and launches the supervised service."""

    def resolve(self, config: SupervisorConfig) -> ServiceCommand:
        """Choose the command line for the service."""
        ...

    async def spawn(
        self, command: ServiceCommand, config: SupervisorConfig
    ) -> ServiceHandle:
        """Launch ``command`` for the service described by ``config``.

        Raises:
            ChildSpawnError: If the service cannot be launched.
        """
        ...


class SignalSource(Protocol):
    """Source of termination signals addressed to the supervisor."""

    def subscribe(
        self, names: Sequence[str]
    ) -> AbstractContextManager[AsyncIterator[str]]:
        """Start receiving the named signals.

        The subscription is active as soon as the context is entered and
        yields signal names (e.g. ``SIGTERM``) as they arrive.
        """
        ...
