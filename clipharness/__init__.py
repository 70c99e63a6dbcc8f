"""clipharness - copy/paste harness with replica reconciliation."""

__version__ = "0.1.0"
