"""Command-line entry point for startdev."""

from ._app import app, create_app, main, run_supervisor

__all__ = ["app", "create_app", "main", "run_supervisor"]
