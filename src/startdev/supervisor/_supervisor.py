"""Supervisor state machine.

This module provides the Supervisor class that checks whether the dev
server is already healthy, launches it if not, and turns whichever of
"child exited" or "supervisor signalled" happens first into exactly one
final verdict.

States::

    Init -> ProbingInitial -> AlreadyHealthy (NEUTRAL)
                           -> Spawning -> Supervising -> Deciding -> Terminal
"""

from __future__ import annotations

from typing import TYPE_CHECKING, final

import anyio
import anyio.abc

from startdev.exceptions import ChildSpawnError
from startdev.utils import create_supervisor_logger

from ._backoff import ExponentialBackoff
from ._child import ProcessSpawner
from ._classifier import TerminationClassifier
from ._models import (
    Decision,
    DecisionReason,
    PortStatus,
    RunState,
    SupervisorEvent,
    SupervisorEventType,
    TerminationEvent,
    Verdict,
)
from ._output import ConsoleStatusSink
from ._probe import PortProber
from ._readiness import ReadinessWatcher
from ._signals import OsSignalSource

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from structlog.typing import FilteringBoundLogger

    from startdev.config import SupervisorConfig

    from ._protocol import OutputSink, Prober, ServiceHandle, SignalSource, Spawner

    SignalHandler = Callable[[str], Awaitable[None]]


def _get_timestamp() -> str:
    """Get current timestamp in ISO 8601 format."""
    import pendulum  # noqa: PLC0415

    return pendulum.now("UTC").to_iso8601_string()


@final
class Supervisor:
    """Supervises a single dev server process for one run.

    Every collaborator is injectable: the port prober, the spawner, the
    signal source, the classifier and the output sink. Signals are
    dispatched through ``signal_handlers``, an explicit list of
    ``(signal-name, handler)`` registrations, so tests can deliver them
    with ``deliver_signal`` instead of real OS signals.

    Attributes:
        config: Immutable configuration for this run.
        state: Mutable run state (ready flag, child, final decision).
        signal_handlers: Registered ``(signal-name, handler)`` pairs.
    """

    __slots__ = (
        "_classifier",
        "_done",
        "_lock",
        "_logger",
        "_output_sink",
        "_prober",
        "_signal_source",
        "_spawner",
        "_watcher",
        "config",
        "signal_handlers",
        "state",
    )

    def __init__(  # noqa: PLR0913
        self,
        config: SupervisorConfig,
        *,
        output_sink: OutputSink | None = None,
        prober: Prober | None = None,
        spawner: Spawner | None = None,
        signal_source: SignalSource | None = None,
        classifier: TerminationClassifier | None = None,
        watcher: ReadinessWatcher | None = None,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the supervisor.

        Args:
            config: Configuration for the run.
            output_sink: Sink for status lines. Uses ConsoleStatusSink if None.
            prober: Async port prober. Uses PortProber if None.
            spawner: Child launcher. Uses ProcessSpawner if None.
            signal_source: Signal subscription. Uses OsSignalSource if None.
            classifier: Termination classifier. Built from config if None.
            watcher: Readiness watcher. Built from config if None; a custom
                watcher must write to this supervisor's ``state``.
            logger: Diagnostic logger. Built from config.logging if None.
        """
        self.config = config
        self.state = RunState()
        self._output_sink: OutputSink = output_sink or ConsoleStatusSink()
        self._prober: Prober = prober or PortProber()
        self._spawner: Spawner = spawner or ProcessSpawner()
        self._signal_source: SignalSource = signal_source or OsSignalSource()
        self._logger = logger or create_supervisor_logger(
            config.logging, port=config.port
        )
        self._classifier = classifier or TerminationClassifier(
            self._prober,
            host=config.host,
            port=config.port,
            neutral_exit_codes=config.neutral_exit_codes,
            recheck_delay=config.recheck_delay,
        )
        self._watcher = watcher or ReadinessWatcher(
            self._prober,
            self.state,
            backoff=ExponentialBackoff(
                base=config.backoff_initial,
                max_delay=config.backoff_max,
                multiplier=config.backoff_multiplier,
            ),
            logger=self._logger,
        )
        self._lock = anyio.Lock()
        self._done: anyio.Event | None = None
        self.signal_handlers: list[tuple[str, SignalHandler]] = [
            (name, self._on_signal) for name in config.termination_signals
        ]

    @property
    def decision(self) -> Decision | None:
        """Return the final decision once the run has concluded."""
        return self.state.decision

    async def emit_event(  # noqa: PLR0913
        self,
        event_type: SupervisorEventType,
        message: str,
        *,
        pid: int | None = None,
        exit_code: int | None = None,
        signal: str | None = None,
        verdict: Verdict | None = None,
    ) -> None:
        """Emit a status event to the output sink and the diagnostic log.

        Args:
            event_type: Type of event to emit.
            message: Human-readable status line.
            pid: Child process ID, if relevant.
            exit_code: Child exit code, if relevant.
            signal: Signal name, if relevant.
            verdict: Final verdict for DECIDED events.
        """
        event = SupervisorEvent(
            event_type=event_type,
            timestamp=_get_timestamp(),
            message=message,
            pid=pid,
            exit_code=exit_code,
            signal=signal,
            verdict=verdict,
        )
        self._logger.info(
            event_type.value,
            status=message,
            pid=pid,
            exit_code=exit_code,
            signal=signal,
        )
        try:
            await self._output_sink.write_event(event)
        except Exception:  # noqa: BLE001
            # Output sink errors should not crash supervision
            self._logger.warning("output_sink_failed", event_type=event_type.value)

    async def run(self) -> Verdict:
        """Run the supervisor until a final verdict is reached.

        Returns:
            The verdict; its integer value is the process exit code.
        """
        self._done = anyio.Event()
        try:
            await self._supervise()
        except Exception as e:  # noqa: BLE001
            await self._on_internal_error(e)
        finally:
            with anyio.CancelScope(shield=True):
                await self._shutdown()

        decision = self.state.decision
        return Verdict.NEUTRAL if decision is None else decision.verdict

    async def _supervise(self) -> None:
        config = self.config

        if await self._prober(config.host, config.port) is PortStatus.IN_USE:
            await self.emit_event(
                SupervisorEventType.ALREADY_RUNNING,
                f"Port {config.port} already in use. Assuming existing healthy "
                f"dev server. Reusing {config.url}",
            )
            if await self._claim() is not None:
                await self._conclude(
                    Decision(
                        Verdict.NEUTRAL,
                        DecisionReason.ALREADY_RUNNING,
                        "Existing server reused.",
                    )
                )
            return

        message = (
            f"Port {config.port} is free. Starting dev server on {config.url} "
            "(strictPort=true)."
        )
        if config.allowed_hosts:
            message += f" Extra allowed hosts: {', '.join(config.allowed_hosts)}."
        await self.emit_event(SupervisorEventType.PORT_CHECKED, message)

        async with anyio.create_task_group() as tg:
            await tg.start(self._receive_signals)

            child = await self._spawn()
            if child is not None:
                tg.start_soon(self._watch_readiness)
                tg.start_soon(self._watch_child, child)

            if self._done is not None:
                await self._done.wait()

            # Signals arriving during cleanup still reach _receive_signals
            with anyio.CancelScope(shield=True):
                await self._cleanup()
            tg.cancel_scope.cancel()

    async def _spawn(self) -> ServiceHandle | None:
        command = self._spawner.resolve(self.config)
        await self.emit_event(SupervisorEventType.SPAWNING, command.describe())

        try:
            child = await self._spawner.spawn(command, self.config)
        except ChildSpawnError as e:
            self._logger.error("spawn_failed", command=list(e.command), error=str(e))
            await self.emit_event(SupervisorEventType.ERROR, str(e))
            await self._finalize_spawn_failure(e)
            return None

        self.state.child = child
        await self.emit_event(
            SupervisorEventType.STARTED,
            f"Started dev server: {' '.join(child.command)}",
            pid=child.pid,
        )
        return child

    async def _receive_signals(
        self,
        *,
        task_status: anyio.abc.TaskStatus[None] = anyio.TASK_STATUS_IGNORED,
    ) -> None:
        names = [name for name, _ in self.signal_handlers]
        with self._signal_source.subscribe(names) as received:
            task_status.started()
            async for name in received:
                await self.deliver_signal(name)

    async def deliver_signal(self, name: str) -> None:
        """Dispatch a signal to its registered handlers.

        Args:
            name: Signal name, e.g. ``SIGTERM``. Unregistered names are ignored.
        """
        handlers = [
            handler for signame, handler in self.signal_handlers if signame == name
        ]
        if not handlers:
            self._logger.debug("signal_ignored", signal=name)
            return
        for handler in handlers:
            await handler(name)

    async def _on_signal(self, name: str) -> None:
        # Never forwarded to the child
        await self.emit_event(
            SupervisorEventType.SIGNAL,
            f"Received {name}. Not forwarding to the dev server.",
            signal=name,
        )
        await self._finalize(TerminationEvent.from_signal(name))

    async def _watch_readiness(self) -> None:
        config = self.config
        try:
            observed = await self._watcher.wait_for_ready(
                config.host, config.port, config.readiness_timeout
            )
        except Exception as e:  # noqa: BLE001
            self._logger.warning("watcher_failed", error=repr(e))
            await self.emit_event(
                SupervisorEventType.WATCHER_ERROR,
                f"Readiness watcher failed ({e!r}). Continuing to supervise.",
            )
            return

        if observed:
            await self.emit_event(
                SupervisorEventType.READY,
                f"Dev server is accepting connections on port {config.port}.",
            )
        elif not self.state.finalized:
            await self.emit_event(
                SupervisorEventType.READINESS_TIMEOUT,
                f"No listener on port {config.port} after "
                f"{config.readiness_timeout:g}s. Continuing to supervise.",
            )

    async def _watch_child(self, child: ServiceHandle) -> None:
        event = await child.wait()
        await self.handle_child_exit(event, pid=child.pid)

    async def handle_child_exit(
        self, event: TerminationEvent, *, pid: int | None = None
    ) -> None:
        """Report a child termination and drive the final decision.

        Args:
            event: How the child terminated.
            pid: Process ID of the child, for the status line.
        """
        await self.emit_event(
            SupervisorEventType.EXITED,
            f"Dev server process exited due to {event.describe()}.",
            pid=pid,
            exit_code=event.exit_code,
            signal=event.signal,
        )
        await self._finalize(event)

    async def _claim(self) -> bool | None:
        """Claim the right to produce the final decision.

        Returns:
            None if another caller already claimed it, otherwise the
            ``ready`` flag as of the moment of the claim.
        """
        async with self._lock:
            if self.state.finalized:
                return None
            self.state.finalized = True
            return self.state.ready

    async def _finalize(self, event: TerminationEvent) -> None:
        ready = await self._claim()
        if ready is None:
            self._logger.debug("decision_already_made", termination=event.describe())
            return
        await self._conclude(await self._classifier.decide(event, ready=ready))

    async def _finalize_spawn_failure(self, error: ChildSpawnError) -> None:
        if await self._claim() is None:
            return
        await self._conclude(await self._classifier.decide_spawn_failure(error))

    async def _conclude(self, decision: Decision) -> None:
        self.state.decision = decision
        await self.emit_event(
            SupervisorEventType.DECIDED,
            f"{decision.message} Exiting with code {decision.exit_code}.",
            verdict=decision.verdict,
        )
        if self._done is not None:
            self._done.set()

    async def _on_internal_error(self, error: Exception) -> None:
        self._logger.error("internal_error", error=repr(error), exc_info=error)
        if self.state.decision is not None:
            return

        async with self._lock:
            self.state.finalized = True

        if self.state.ready:
            message = "Unexpected supervisor error after the server was ready."
        else:
            message = "Unexpected supervisor error, treating as neutral exit (0)."
        await self.emit_event(SupervisorEventType.ERROR, f"{message} ({error!r})")
        await self._conclude(
            Decision(Verdict.NEUTRAL, DecisionReason.INTERNAL_ERROR, message)
        )

    async def _shutdown(self) -> None:
        """Stop a child left running after the task group has exited.

        Holds a signal subscription for the duration so a repeated signal
        cannot kill the supervisor before the child is gone.
        """
        child = self.state.child
        if child is None or not child.is_running():
            return

        names = [name for name, _ in self.signal_handlers]
        with self._signal_source.subscribe(names):
            await self._cleanup()

    async def _cleanup(self) -> None:
        child = self.state.child
        if child is None or not child.is_running():
            return

        await self.emit_event(
            SupervisorEventType.CLEANUP,
            "Terminating dev server so it does not outlive the supervisor.",
            pid=child.pid,
        )
        try:
            await child.terminate(self.config.shutdown_timeout)
        except OSError as e:
            self._logger.warning("cleanup_failed", pid=child.pid, error=repr(e))
