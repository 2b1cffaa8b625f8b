"""The command-line interface for startdev."""
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing

import sys
from pathlib import Path
from typing import Annotated

import anyio
from cyclopts import App, Parameter, validators
from rich.console import Console

from startdev import __version__
from startdev.config import SupervisorConfig, load_config
from startdev.supervisor import ConsoleStatusSink, Supervisor, Verdict

HELP = (
    "Start the dev server unless one is already healthy on $PORT, and turn "
    "external terminations into a neutral exit code for CI."
)


async def run_supervisor(
    config: SupervisorConfig, console: Console | None = None
) -> Verdict:
    """Run one supervised dev server session.

    Args:
        config: Configuration for the run.
        console: Console for status lines. Uses a new stdout console if None.

    Returns:
        The final verdict.
    """
    supervisor = Supervisor(config, output_sink=ConsoleStatusSink(console))
    return await supervisor.run()


def create_app(
    console: Console | None = None,
    error_console: Console | None = None,
    *,
    exit_on_error: bool = True,
) -> App:
    if console is None:
        console = Console()
    if error_console is None:
        error_console = Console(stderr=True)
    app = App(
        name="start-dev",
        help=HELP,
        version=__version__,
        help_on_error=True,
        console=console,
        error_console=error_console,
        exit_on_error=exit_on_error,
    )

    @app.default
    def _start(  # pyright: ignore[reportUnusedFunction]
        *,
        project_dir: Annotated[
            Path | None,
            Parameter(help="Directory containing node_modules. Defaults to cwd."),
        ] = None,
        readiness_timeout: Annotated[
            float | None,
            Parameter(
                help="Seconds to wait for the server to start listening.",
                validator=validators.Number(gt=0),
            ),
        ] = None,
        no_color: Annotated[
            bool, Parameter(name="--no-color", help="Disable colored output")
        ] = False,
    ) -> None:
        """Launch the dev server under supervision.

        Exits 0 if the port is already served, or if the server stops for
        a reason classified as neutral. Exits 1 on a genuine failure.

        Args:
            project_dir: Directory containing node_modules.
            readiness_timeout: Seconds to wait for a listener.
            no_color: Disable colored output.
        """
        config = load_config(
            project_dir=project_dir, readiness_timeout=readiness_timeout
        )
        status_console = Console(no_color=True) if no_color else console
        verdict = anyio.run(run_supervisor, config, status_console)
        sys.exit(int(verdict))

    return app


app = create_app()


def main() -> None:
    """Entry point for the ``start-dev`` console script."""
    app()
