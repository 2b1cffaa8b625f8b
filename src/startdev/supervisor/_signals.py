"""Signal sources for the supervisor.

Signal delivery is modelled as a subscription that yields signal names,
so the supervisor can be driven by real OS signals in production and by
plain function calls in tests.
"""

from __future__ import annotations

import math
import signal
from contextlib import contextmanager
from typing import TYPE_CHECKING, final

import anyio

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator, Sequence

    from anyio.streams.memory import MemoryObjectReceiveStream


def resolve_signals(names: Sequence[str]) -> list[signal.Signals]:
    """Map signal names to signals, skipping those this platform lacks."""
    resolved: list[signal.Signals] = []
    for name in names:
        signum = getattr(signal.Signals, name, None)
        if signum is not None:
            resolved.append(signum)
    return resolved


async def _signal_names(
    received: AsyncIterator[signal.Signals],
) -> AsyncIterator[str]:
    async for signum in received:
        yield signum.name


@final
class OsSignalSource:
    """Receives real OS signals through anyio's signal receiver.

    Installing the receiver replaces the default disposition of each
    signal, so the supervisor keeps running long enough to classify it.
    """

    __slots__ = ()

    @contextmanager
    def subscribe(self, names: Sequence[str]) -> Iterator[AsyncIterator[str]]:
        """Start receiving the named signals."""
        with anyio.open_signal_receiver(*resolve_signals(names)) as received:
            yield _signal_names(received)


@final
class MemorySignalSource:
    """In-memory signal source.

    ``send`` queues a signal name as if the OS had delivered it. Signals
    sent before anyone subscribed are delivered once a subscription
    starts.
    """

    __slots__ = ("_receive", "_send")

    def __init__(self) -> None:
        self._send, self._receive = anyio.create_memory_object_stream[str](math.inf)

    def send(self, name: str) -> None:
        """Deliver a signal by name, e.g. ``SIGTERM``."""
        self._send.send_nowait(name)

    @contextmanager
    def subscribe(self, names: Sequence[str]) -> Iterator[AsyncIterator[str]]:
        """Yield queued signal names that are in ``names``."""
        yield _filter_names(self._receive, frozenset(names))


async def _filter_names(
    stream: MemoryObjectReceiveStream[str], names: frozenset[str]
) -> AsyncIterator[str]:
    async for name in stream:
        if name in names:
            yield name
