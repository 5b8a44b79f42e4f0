"""Command-line entry points for the Startup Visualizer."""

from .app import configure_logging, console_main, main

__all__ = ["configure_logging", "console_main", "main"]
