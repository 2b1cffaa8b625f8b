"""Termination classifier.

Decides whether the end of a run is a benign shutdown (NEUTRAL) or a
genuine failure (FAILURE). Rows are evaluated in order, first match wins:

1. the run ended through a signal            -> NEUTRAL
2. the child exited with code 0              -> NEUTRAL
3. the exit code is an external-kill code    -> NEUTRAL
4. a listener was ever observed              -> NEUTRAL
5. a fresh probe finds a listener            -> NEUTRAL
6. a second probe after a delay finds one    -> NEUTRAL
7. otherwise                                 -> FAILURE

Row 4 is a permanent amnesty: a server that crashes after it became
ready is never reported as a failure.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, final

import anyio

from ._models import Decision, DecisionReason, PortStatus, Verdict

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Collection

    from ._protocol import Prober
    from ._models import TerminationEvent


def classify(
    event: TerminationEvent,
    *,
    ready: bool,
    fresh_probe: PortStatus,
    neutral_exit_codes: Collection[int],
    recheck: PortStatus | None = None,
) -> Decision:
    """Apply the decision table to a termination event.

    Args:
        event: How the run ended.
        ready: Whether a listener was ever observed during the run.
        fresh_probe: Result of probing the port after the event.
        neutral_exit_codes: Exit codes treated as external termination.
        recheck: Result of the delayed second probe, if one was taken.

    Returns:
        The Decision for this event.
    """
    if event.is_signal:
        return Decision(
            Verdict.NEUTRAL,
            DecisionReason.SIGNAL,
            f"Terminated by {event.signal}. Treating as neutral exit (0).",
        )

    code = event.exit_code
    if code == 0:
        return Decision(Verdict.NEUTRAL, DecisionReason.CLEAN_EXIT, "Exited cleanly.")

    if code in neutral_exit_codes:
        return Decision(
            Verdict.NEUTRAL,
            DecisionReason.EXTERNAL_TERMINATION,
            f"Exited with external termination code {code}. "
            "Treating as neutral exit (0).",
        )

    if ready:
        return Decision(
            Verdict.NEUTRAL,
            DecisionReason.PREVIOUSLY_READY,
            f"Exited with code {code} after the server was ready. "
            "Treating as neutral exit (0).",
        )

    if fresh_probe is PortStatus.IN_USE:
        return Decision(
            Verdict.NEUTRAL,
            DecisionReason.LISTENER_PRESENT,
            f"Exited with code {code} but a listener is present on the port. "
            "Treating as healthy.",
        )

    if recheck is PortStatus.IN_USE:
        return Decision(
            Verdict.NEUTRAL,
            DecisionReason.LISTENER_AFTER_RECHECK,
            f"Exited with code {code}; post-exit port check detected a listener. "
            "Treating as healthy.",
        )

    return Decision(Verdict.FAILURE, DecisionReason.FAILED, f"Exited with code {code}.")


@final
class TerminationClassifier:
    """Runs the decision table with live port probes.

    Attributes:
        host: Address to re-probe.
        port: Port to re-probe.
        neutral_exit_codes: Exit codes treated as external termination.
        recheck_delay: Seconds to wait before the second probe.
    """

    __slots__ = (
        "_prober",
        "_sleep",
        "host",
        "neutral_exit_codes",
        "port",
        "recheck_delay",
    )

    def __init__(  # noqa: PLR0913
        self,
        prober: Prober,
        *,
        host: str,
        port: int,
        neutral_exit_codes: Collection[int],
        recheck_delay: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
    ) -> None:
        self._prober = prober
        self.host = host
        self.port = port
        self.neutral_exit_codes = frozenset(neutral_exit_codes)
        self.recheck_delay = recheck_delay
        self._sleep = sleep

    async def _probe(self) -> PortStatus:
        return await self._prober(self.host, self.port)

    async def decide(self, event: TerminationEvent, *, ready: bool) -> Decision:
        """Classify ``event``, re-probing the port as needed.

        One probe is always taken. A second one, after ``recheck_delay``,
        is only taken when the first pass would report a failure.

        Args:
            event: How the run ended.
            ready: Snapshot of the run's ready flag.

        Returns:
            The final Decision.
        """
        fresh = await self._probe()
        decision = classify(
            event,
            ready=ready,
            fresh_probe=fresh,
            neutral_exit_codes=self.neutral_exit_codes,
        )
        if decision.verdict is Verdict.NEUTRAL:
            return decision

        await self._sleep(self.recheck_delay)
        return classify(
            event,
            ready=ready,
            fresh_probe=fresh,
            neutral_exit_codes=self.neutral_exit_codes,
            recheck=await self._probe(),
        )

    async def decide_spawn_failure(self, error: Exception) -> Decision:
        """Classify a run whose child could not be launched.

        A listener on the port (now, or after ``recheck_delay``) still
        counts as healthy.
        """
        if await self._probe() is PortStatus.IN_USE:
            return Decision(
                Verdict.NEUTRAL,
                DecisionReason.LISTENER_PRESENT,
                "Launch failed but a listener is present on the port. "
                "Treating as healthy.",
            )

        await self._sleep(self.recheck_delay)
        if await self._probe() is PortStatus.IN_USE:
            return Decision(
                Verdict.NEUTRAL,
                DecisionReason.LISTENER_AFTER_RECHECK,
                "Launch failed; post-exit port check detected a listener. "
                "Treating as healthy.",
            )

        return Decision(Verdict.FAILURE, DecisionReason.SPAWN_FAILED, str(error))
