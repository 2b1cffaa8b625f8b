"""Supervisor package for the dev server launcher.

This package decides whether a dev server is already healthy on its
port, launches it if not, watches for it to become ready, and classifies
its termination as a neutral shutdown or a genuine failure.

Key Components:
    - probe_port / PortProber: Bind-and-release port probe
    - ExponentialBackoff: Readiness poll delay calculator
    - ReadinessWatcher: Polls until a listener appears
    - ChildProcess / ProcessSpawner: Launch and wrap the dev server
    - classify / TerminationClassifier: Final verdict decision table
    - OsSignalSource / MemorySignalSource: Signal delivery
    - ConsoleStatusSink / MemoryStatusSink: Status line output
    - Supervisor: The state machine tying it all together

Example:
    >>> from startdev.config import load_config
    >>> from startdev.supervisor import Supervisor
    >>> supervisor = Supervisor(load_config())
    >>> verdict = await supervisor.run()  # Blocks until a verdict
"""

from ._backoff import ExponentialBackoff
from ._child import (
    ChildProcess,
    ProcessSpawner,
    ServiceCommand,
    find_local_binary,
    resolve_service_command,
    spawn_service,
    strict_port_args,
)
from ._classifier import TerminationClassifier, classify
from ._models import (
    Decision,
    DecisionReason,
    EventSource,
    PortStatus,
    RunState,
    SupervisorEvent,
    SupervisorEventType,
    TerminationEvent,
    Verdict,
    signal_name,
)
from ._output import STATUS_PREFIX, ConsoleStatusSink, MemoryStatusSink
from ._probe import PortProber, probe_port
from ._protocol import OutputSink, Prober, ServiceHandle, SignalSource, Spawner
from ._readiness import ReadinessWatcher
from ._signals import MemorySignalSource, OsSignalSource, resolve_signals
from ._supervisor import Supervisor

__all__ = [
    "STATUS_PREFIX",
    "ChildProcess",
    "ConsoleStatusSink",
    "Decision",
    "DecisionReason",
    "EventSource",
    "ExponentialBackoff",
    "MemorySignalSource",
    "MemoryStatusSink",
    "OsSignalSource",
    "OutputSink",
    "PortProber",
    "PortStatus",
    "Prober",
    "ProcessSpawner",
    "ReadinessWatcher",
    "RunState",
    "ServiceCommand",
    "ServiceHandle",
    "SignalSource",
    "Spawner",
    "Supervisor",
    "SupervisorEvent",
    "SupervisorEventType",
    "TerminationClassifier",
    "TerminationEvent",
    "Verdict",
    "classify",
    "find_local_binary",
    "probe_port",
    "resolve_service_command",
    "resolve_signals",
    "signal_name",
    "spawn_service",
    "strict_port_args",
]
