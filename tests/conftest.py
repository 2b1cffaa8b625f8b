"""Shared test fixtures for startdev tests."""

import socket
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import cast

import anyio
import pytest

from startdev.config import SupervisorConfig
from startdev.exceptions import ChildSpawnError
from startdev.supervisor import (
    MemorySignalSource,
    MemoryStatusSink,
    PortStatus,
    ServiceCommand,
    TerminationEvent,
)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class FakeProber:
    """Prober returning scripted results, then ``default`` forever."""

    def __init__(
        self, *results: PortStatus, default: PortStatus = PortStatus.FREE
    ) -> None:
        self.results = list(results)
        self.default = default
        self.calls: list[tuple[str, int]] = []

    async def __call__(self, host: str, port: int) -> PortStatus:
        self.calls.append((host, port))
        if self.results:
            return self.results.pop(0)
        return self.default


class FakeChild:
    """ServiceHandle whose termination is triggered by the test."""

    def __init__(self, pid: int, command: tuple[str, ...]) -> None:
        self.pid = pid
        self.command = command
        self.termination: TerminationEvent | None = None
        self.terminate_calls = 0
        self._exited = anyio.Event()

    def exit(self, event: TerminationEvent) -> None:
        if self.termination is None:
            self.termination = event
            self._exited.set()

    def is_running(self) -> bool:
        return self.termination is None

    async def wait(self) -> TerminationEvent:
        await self._exited.wait()
        return cast("TerminationEvent", self.termination)

    async def terminate(self, grace: float = 5.0) -> None:
        self.terminate_calls += 1
        self.exit(TerminationEvent(signal="SIGTERM"))


class FakeSpawner:
    """Spawner producing FakeChild handles, or failing with ``error``."""

    def __init__(self, error: ChildSpawnError | None = None) -> None:
        self.error = error
        self.children: list[FakeChild] = []

    def resolve(self, config: SupervisorConfig) -> ServiceCommand:
        return ServiceCommand(
            argv=("vite", "--host", config.host, "--port", str(config.port)),
            local=True,
        )

    async def spawn(
        self, command: ServiceCommand, config: SupervisorConfig
    ) -> FakeChild:
        if self.error is not None:
            raise self.error
        child = FakeChild(pid=1000 + len(self.children), command=command.argv)
        self.children.append(child)
        return child

    @property
    def child(self) -> FakeChild:
        return self.children[-1]


async def no_sleep(_delay: float) -> None:
    await anyio.sleep(0)


def find_open_port(host: str = "127.0.0.1") -> int:
    """Find an available port by binding to port 0."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind((host, 0))
        addr = cast("tuple[str, int]", s.getsockname())
        return addr[1]


@pytest.fixture
def open_port() -> int:
    return find_open_port()


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., SupervisorConfig]:
    """Return a factory for fast-running configs rooted in tmp_path."""

    def _make(**overrides: object) -> SupervisorConfig:
        values: dict[str, object] = {
            "port": 3000,
            "readiness_timeout": 2.0,
            "backoff_initial": 0.01,
            "backoff_max": 0.05,
            "recheck_delay": 0.0,
            "shutdown_timeout": 1.0,
            "project_dir": tmp_path,
        }
        values.update(overrides)
        return SupervisorConfig.model_validate(values)

    return _make


@pytest.fixture
def make_prober() -> Callable[..., FakeProber]:
    return FakeProber


@pytest.fixture
def spawner() -> FakeSpawner:
    return FakeSpawner()


@pytest.fixture
def signals() -> MemorySignalSource:
    return MemorySignalSource()


@pytest.fixture
def status_sink() -> MemoryStatusSink:
    return MemoryStatusSink()


@pytest.fixture
def fast_sleep() -> Callable[[float], object]:
    return no_sleep


@pytest.fixture
def stub_listener() -> Iterator[Callable[[int], socket.socket]]:
    """Return a function that opens a listening socket on 0.0.0.0:<port>."""
    sockets: list[socket.socket] = []

    def _listen(port: int) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind(("0.0.0.0", port))  # noqa: S104
            sock.listen(1)
        except OSError:
            sock.close()
            raise
        sockets.append(sock)
        return sock

    yield _listen

    for sock in sockets:
        sock.close()
