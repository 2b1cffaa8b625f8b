import signal

import anyio
import pytest

from startdev.supervisor import MemorySignalSource, resolve_signals


class TestResolveSignals:
    def test_maps_names_to_signals(self) -> None:
        assert resolve_signals(["SIGINT", "SIGTERM"]) == [
            signal.SIGINT,
            signal.SIGTERM,
        ]

    def test_skips_unknown_names(self) -> None:
        assert resolve_signals(["SIGTERM", "SIGNOPE"]) == [signal.SIGTERM]


@pytest.mark.anyio
class TestMemorySignalSource:
    async def test_delivers_subscribed_signals_in_order(self) -> None:
        source = MemorySignalSource()
        source.send("SIGHUP")
        source.send("SIGUSR1")
        source.send("SIGTERM")

        received: list[str] = []
        with source.subscribe(["SIGHUP", "SIGTERM"]) as signals:
            with anyio.move_on_after(0.1):
                async for name in signals:
                    received.append(name)

        assert received == ["SIGHUP", "SIGTERM"]
