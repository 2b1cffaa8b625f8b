"""Output sink implementations for the supervisor.

This module provides concrete implementations of the OutputSink protocol
for displaying status lines and collecting them in memory.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, final

from rich.console import Console
from rich.style import Style
from rich.text import Text

from ._models import SupervisorEventType, Verdict

if TYPE_CHECKING:
    from ._models import SupervisorEvent

STATUS_PREFIX = "[start-dev]"


@final
class ConsoleStatusSink:
    """Output sink that writes ``[start-dev] message`` status lines.

    Lines are color coded by event type; the final verdict is green for
    a neutral exit and red for a failure.
    """

    __slots__ = ("_console", "_event_styles", "_prefix_style")

    def __init__(self, console: Console | None = None) -> None:
        """Initialize the output sink.

        Args:
            console: Rich Console instance for output. If None, creates a new one.
        """
        self._console = console or Console()
        self._prefix_style = Style(color="blue", bold=True)
        self._event_styles: dict[SupervisorEventType, Style] = {
            SupervisorEventType.ALREADY_RUNNING: Style(color="green"),
            SupervisorEventType.SPAWNING: Style(dim=True),
            SupervisorEventType.STARTED: Style(color="green", bold=True),
            SupervisorEventType.READY: Style(color="green", bold=True),
            SupervisorEventType.READINESS_TIMEOUT: Style(color="yellow"),
            SupervisorEventType.WATCHER_ERROR: Style(color="yellow"),
            SupervisorEventType.SIGNAL: Style(color="cyan"),
            SupervisorEventType.EXITED: Style(color="yellow"),
            SupervisorEventType.CLEANUP: Style(color="magenta", dim=True),
            SupervisorEventType.ERROR: Style(color="red"),
        }

    def _style_for(self, event: SupervisorEvent) -> Style:
        if event.event_type is SupervisorEventType.DECIDED:
            if event.verdict is Verdict.FAILURE:
                return Style(color="red", bold=True)
            return Style(color="green", bold=True)
        return self._event_styles.get(event.event_type, Style())

    async def write_event(self, event: SupervisorEvent) -> None:
        """Write a status event as a single prefixed line.

        Args:
            event: The status event to record.
        """
        text = Text()
        _ = text.append(STATUS_PREFIX, style=self._prefix_style)
        _ = text.append(" ")
        _ = text.append(event.message, style=self._style_for(event))

        if event.pid is not None:
            _ = text.append(f" (pid={event.pid})", style=Style(dim=True))

        self._console.print(text, soft_wrap=True)


@final
class MemoryStatusSink:
    """Output sink that keeps every event in a list.

    Useful for embedding the supervisor and for asserting on the decision
    path in tests.
    """

    __slots__ = ("events",)

    def __init__(self) -> None:
        self.events: list[SupervisorEvent] = []

    async def write_event(self, event: SupervisorEvent) -> None:
        """Append the event."""
        self.events.append(event)

    def types(self) -> list[SupervisorEventType]:
        """Return the event types in emission order."""
        return [event.event_type for event in self.events]
