"""Command-line interface."""

from clipharness.cli.main import main

__all__ = ["main"]
