"""In-memory platform collaborators the harness drives.

A single ``SystemClipboard`` is shared by every context; each context owns a
``Document`` with its own capture listeners, async clipboard facade and
permission answers.
"""

from clipharness.platform.buffer import DataTransfer, SystemClipboard
from clipharness.platform.document import (
    AsyncClipboard,
    CaptureHandler,
    CaptureKind,
    Document,
    PermissionState,
)

__all__ = [
    "AsyncClipboard",
    "CaptureHandler",
    "CaptureKind",
    "DataTransfer",
    "Document",
    "PermissionState",
    "SystemClipboard",
]
