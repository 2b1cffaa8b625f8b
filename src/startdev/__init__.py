"""startdev: supervise a local dev server for CI and container runs."""

__version__ = "0.1.0"
