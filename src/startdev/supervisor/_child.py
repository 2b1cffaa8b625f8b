"""Child process handle for the supervised dev server.

This module resolves the command that launches the dev server, spawns
it with the supervisor's terminal and environment, and wraps the process
so its termination is reported as a single TerminationEvent.
"""

from __future__ import annotations

import signal
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING, final

import anyio
import anyio.abc

from startdev.exceptions import ChildSpawnError

from ._models import TerminationEvent

if TYPE_CHECKING:
    from pathlib import Path

    from startdev.config import SupervisorConfig


@dataclass(frozen=True, slots=True)
class ServiceCommand:
    """A resolved launch command.

    Attributes:
        argv: Executable and arguments.
        local: True if a project-local executable was found.
    """

    argv: tuple[str, ...]
    local: bool

    def describe(self) -> str:
        """Return the status line explaining the launch choice."""
        if self.local:
            return f"Using local binary: {self.argv[0]}"
        return f'Local binary not found. Falling back to "{" ".join(self.argv[:2])}".'


def strict_port_args(host: str, port: int) -> tuple[str, ...]:
    """Arguments that pin the server to host:port and forbid port fallback."""
    return ("--host", host, "--port", str(port), "--strictPort")


def find_local_binary(project_dir: Path, binary: str) -> Path | None:
    """Return ``node_modules/.bin/<binary>`` under project_dir if it exists."""
    bin_dir = project_dir / "node_modules" / ".bin"
    names = (f"{binary}.cmd", binary) if sys.platform == "win32" else (binary,)
    for name in names:
        candidate = bin_dir / name
        if candidate.is_file():
            return candidate
    return None


def resolve_service_command(
    host: str,
    port: int,
    *,
    project_dir: Path,
    binary: str = "vite",
    runner: tuple[str, ...] = ("npx",),
) -> ServiceCommand:
    """Choose how to launch the dev server.

    Prefers the project-local executable and falls back to invoking it
    through the package runner.

    Args:
        host: Address the server must bind.
        port: Port the server must bind.
        project_dir: Directory containing node_modules.
        binary: Name of the server executable.
        runner: Package runner command used as fallback.

    Returns:
        The resolved ServiceCommand.
    """
    args = strict_port_args(host, port)
    local = find_local_binary(project_dir, binary)
    if local is not None:
        return ServiceCommand(argv=(str(local), *args), local=True)
    return ServiceCommand(argv=(*runner, binary, *args), local=False)


@final
class ChildProcess:
    """Handle for a spawned dev server process.

    Attributes:
        command: The command line the process was launched with.
    """

    __slots__ = ("_event", "_process", "command")

    def __init__(self, process: anyio.abc.Process, command: tuple[str, ...]) -> None:
        self._process = process
        self.command = command
        self._event: TerminationEvent | None = None

    @property
    def pid(self) -> int:
        """Return the process ID of the child."""
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        """Return the raw return code, or None while running."""
        return self._process.returncode

    def is_running(self) -> bool:
        """Check if the child has not exited yet."""
        return self._process.returncode is None

    async def wait(self) -> TerminationEvent:
        """Wait for the child to exit.

        Returns:
            A TerminationEvent carrying the exit code, or the signal name
            if the child was killed by a signal.
        """
        if self._event is None:
            returncode = await self._process.wait()
            self._event = TerminationEvent.from_returncode(returncode)
        return self._event

    async def terminate(self, grace: float = 5.0) -> None:
        """Stop the child, tolerating one that is already gone.

        Sends SIGTERM and waits up to ``grace`` seconds. If the process
        doesn't exit within that time, sends SIGKILL.

        Args:
            grace: Seconds to wait before force killing.
        """
        if self._process.returncode is not None:
            return

        try:
            self._process.send_signal(signal.SIGTERM)

            with anyio.move_on_after(grace):
                _ = await self._process.wait()

            if self._process.returncode is None:
                self._process.kill()
                _ = await self._process.wait()

        except ProcessLookupError:
            # Process already exited
            pass


async def spawn_service(command: ServiceCommand, *, cwd: Path) -> ChildProcess:
    """Launch ``command`` with inherited stdio and environment.

    Raises:
        ChildSpawnError: If the process cannot be started.
    """
    try:
        process = await anyio.open_process(
            command.argv,
            stdin=None,
            stdout=None,
            stderr=None,
            cwd=cwd,
        )
    except OSError as e:
        msg = f"Failed to launch {' '.join(command.argv)}: {e}"
        raise ChildSpawnError(msg, command=command.argv, cause=e) from e

    return ChildProcess(process, command.argv)


@final
class ProcessSpawner:
    """Launches the dev server as a child process.

    The child inherits stdin/stdout/stderr and the environment of the
    supervisor so its own logs stay visible in the CI output.
    """

    __slots__ = ()

    def resolve(self, config: SupervisorConfig) -> ServiceCommand:
        """Resolve the launch command for ``config``."""
        return resolve_service_command(
            config.host,
            config.port,
            project_dir=config.project_dir,
            binary=config.service_binary,
            runner=config.runner,
        )

    async def spawn(
        self, command: ServiceCommand, config: SupervisorConfig
    ) -> ChildProcess:
        """Start the child process.

        Args:
            command: The resolved command to run.
            config: Supervisor configuration (working directory).

        Returns:
            A handle for the running child.

        Raises:
            ChildSpawnError: If the process cannot be started.
        """
        return await spawn_service(command, cwd=config.project_dir)
