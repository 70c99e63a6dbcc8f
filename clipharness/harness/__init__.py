"""Harness: one execution context wired to its replicas and UI sink."""

from clipharness.harness.app import ClipboardHarness, PasteOutcome
from clipharness.harness.dispatcher import (
    CopyRequested,
    CopyResolved,
    HarnessDispatcher,
    Message,
    PasteRequested,
    StorageChanged,
)
from clipharness.harness.sink import ConsoleSink, RecordingSink, SinkLogHandler, UISink

__all__ = [
    "ClipboardHarness",
    "ConsoleSink",
    "CopyRequested",
    "CopyResolved",
    "HarnessDispatcher",
    "Message",
    "PasteOutcome",
    "PasteRequested",
    "RecordingSink",
    "SinkLogHandler",
    "StorageChanged",
    "UISink",
]
