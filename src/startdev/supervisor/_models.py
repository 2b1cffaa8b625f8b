"""Data models for the supervisor.

This module defines the core data types for a supervised run:
- PortStatus: Result of a port probe
- Verdict: Final classification, doubling as the process exit code
- DecisionReason: Why a verdict was reached
- EventSource / TerminationEvent: How a run ended
- Decision: Verdict plus its reason
- SupervisorEventType / SupervisorEvent: Status line records
- RunState: Mutable state of a single run
"""

from __future__ import annotations

import signal as _signal
from dataclasses import dataclass
from enum import IntEnum, StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ._protocol import ServiceHandle


class PortStatus(StrEnum):
    """Whether something is listening on a host:port pair."""

    IN_USE = "in_use"
    FREE = "free"


class Verdict(IntEnum):
    """Final classification of a run.

    The integer value is the exit code of the supervisor process.
    """

    NEUTRAL = 0
    FAILURE = 1


class DecisionReason(StrEnum):
    """Reasons a verdict was reached, in decision table order."""

    ALREADY_RUNNING = "already_running"
    SIGNAL = "signal"
    CLEAN_EXIT = "clean_exit"
    EXTERNAL_TERMINATION = "external_termination"
    PREVIOUSLY_READY = "previously_ready"
    LISTENER_PRESENT = "listener_present"
    LISTENER_AFTER_RECHECK = "listener_after_recheck"
    INTERNAL_ERROR = "internal_error"
    SPAWN_FAILED = "spawn_failed"
    FAILED = "failed"


class EventSource(StrEnum):
    """Where a termination event was observed."""

    CHILD = "child"
    SUPERVISOR = "supervisor"


def signal_name(signum: int) -> str:
    """Return the symbolic name of a signal number, e.g. ``SIGTERM``."""
    try:
        return _signal.Signals(signum).name
    except ValueError:
        return f"SIG{signum}"


@dataclass(frozen=True, slots=True)
class TerminationEvent:
    """How a run ended: an exit code or a signal, never both.

    Attributes:
        exit_code: Numeric exit code of the child.
        signal: Name of the terminating signal (e.g. ``SIGKILL``).
        source: Whether the child died or the supervisor was signalled.
    """

    exit_code: int | None = None
    signal: str | None = None
    source: EventSource = EventSource.CHILD

    def __post_init__(self) -> None:
        if (self.exit_code is None) == (self.signal is None):
            msg = "TerminationEvent needs exactly one of exit_code or signal"
            raise ValueError(msg)

    @classmethod
    def from_returncode(cls, returncode: int) -> TerminationEvent:
        """Build a child event from a subprocess return code.

        Negative return codes are POSIX deaths by signal.
        """
        if returncode < 0:
            return cls(signal=signal_name(-returncode))
        return cls(exit_code=returncode)

    @classmethod
    def from_signal(
        cls, name: str, source: EventSource = EventSource.SUPERVISOR
    ) -> TerminationEvent:
        """Build an event for a signal delivered to the supervisor."""
        return cls(signal=name, source=source)

    @property
    def is_signal(self) -> bool:
        """Return True if the run ended through a signal."""
        return self.signal is not None

    def describe(self) -> str:
        """Return a short human-readable description of the event."""
        if self.signal is not None:
            return f"signal {self.signal}"
        return f"exit code {self.exit_code}"


@dataclass(frozen=True, slots=True)
class Decision:
    """A verdict together with the rule that produced it.

    Attributes:
        verdict: NEUTRAL or FAILURE.
        reason: The decision table row that matched.
        message: Human-readable explanation for the CI log.
    """

    verdict: Verdict
    reason: DecisionReason
    message: str = ""

    @property
    def exit_code(self) -> int:
        """Return the process exit code for this decision."""
        return int(self.verdict)


class SupervisorEventType(StrEnum):
    """Types of supervisor status events.

    - PORT_CHECKED: Initial probe finished
    - ALREADY_RUNNING: Port was busy, no child will be spawned
    - SPAWNING: Command chosen for the child
    - STARTED: Child process spawned
    - READY: Listener observed on the port
    - READINESS_TIMEOUT: No listener before the deadline
    - WATCHER_ERROR: Readiness watcher raised
    - SIGNAL: Supervisor received a termination signal
    - EXITED: Child process terminated
    - DECIDED: Final verdict reached
    - CLEANUP: Child terminated during shutdown
    - ERROR: Unexpected supervisor fault
    """

    PORT_CHECKED = "port_checked"
    ALREADY_RUNNING = "already_running"
    SPAWNING = "spawning"
    STARTED = "started"
    READY = "ready"
    READINESS_TIMEOUT = "readiness_timeout"
    WATCHER_ERROR = "watcher_error"
    SIGNAL = "signal"
    EXITED = "exited"
    DECIDED = "decided"
    CLEANUP = "cleanup"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class SupervisorEvent:
    """Immutable status event.

    Events are emitted to an OutputSink so a CI log can reconstruct the
    full decision path.

    Attributes:
        event_type: Type of status event.
        timestamp: ISO 8601 formatted timestamp.
        message: Human-readable status line.
        pid: Child process ID if applicable.
        exit_code: Exit code if the child terminated with one.
        signal: Signal name if one was involved.
        verdict: Final verdict for DECIDED events.
    """

    event_type: SupervisorEventType
    timestamp: str
    message: str
    pid: int | None = None
    exit_code: int | None = None
    signal: str | None = None
    verdict: Verdict | None = None


class RunState:
    """Mutable state of a single supervised run.

    ``ready`` is monotonic: once a listener has been observed it stays
    True for the rest of the run. ``finalized`` is only written by the
    Supervisor while holding its finalization lock.
    """

    __slots__ = ("_ready", "child", "decision", "finalized")

    def __init__(self) -> None:
        self._ready = False
        self.child: ServiceHandle | None = None
        self.finalized = False
        self.decision: Decision | None = None

    @property
    def ready(self) -> bool:
        """Return True if a listener was ever observed after spawning."""
        return self._ready

    def mark_ready(self) -> bool:
        """Record that a listener was observed.

        Returns:
            True if this call made the transition, False if already ready.
        """
        if self._ready:
            return False
        self._ready = True
        return True
