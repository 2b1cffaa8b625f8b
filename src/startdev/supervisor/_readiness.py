"""Readiness watcher.

Polls the port prober with exponential backoff until a listener appears
or the deadline passes. Timing out is not an error: it only means the
run never earned the "was ready" amnesty in the termination classifier.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, final

import anyio

from ._backoff import ExponentialBackoff
from ._models import PortStatus

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from structlog.typing import FilteringBoundLogger

    from ._models import RunState
    from ._protocol import Prober


@final
class ReadinessWatcher:
    """Watches for the supervised service to start listening.

    The clock and sleep functions are injectable so tests can drive the
    polling loop without real delays.

    Attributes:
        state: Run state whose ``ready`` flag this watcher sets.
        backoff: Delay schedule between polls.
    """

    __slots__ = ("_clock", "_logger", "_prober", "_sleep", "backoff", "state")

    def __init__(
        self,
        prober: Prober,
        state: RunState,
        *,
        backoff: ExponentialBackoff | None = None,
        clock: Callable[[], float] = anyio.current_time,
        sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the watcher.

        Args:
            prober: Async port prober.
            state: Run state to mark ready on first success.
            backoff: Delay schedule. Uses 0.2s x1.25 capped at 1s if None.
            clock: Monotonic clock returning seconds.
            sleep: Async sleep function.
            logger: Optional structlog logger for per-poll diagnostics.
        """
        self._prober = prober
        self.state = state
        self.backoff = backoff or ExponentialBackoff()
        self._clock = clock
        self._sleep = sleep
        self._logger = logger

    async def wait_for_ready(self, host: str, port: int, timeout: float) -> bool:
        """Poll host:port until a listener appears or ``timeout`` elapses.

        Args:
            host: Address to probe.
            port: Port to probe.
            timeout: Seconds before giving up.

        Returns:
            True if a listener was observed, False on timeout or if the run
            was finalized first.
        """
        deadline = self._clock() + timeout
        attempt = 0

        while not self.state.finalized:
            status = await self._prober(host, port)
            if status is PortStatus.IN_USE:
                _ = self.state.mark_ready()
                return True

            remaining = deadline - self._clock()
            if remaining <= 0:
                return False

            delay = min(self.backoff.delay(attempt), remaining)
            if self._logger is not None:
                self._logger.debug(
                    "readiness_poll", attempt=attempt, status=status, delay=delay
                )
            await self._sleep(delay)
            attempt += 1

        return False
