"""Core types: errors, session identity, harness state."""

from clipharness.core.errors import (
    CaptureRejected,
    ConfigError,
    ContentResolutionFailure,
    HarnessError,
    LoadError,
    StorageUnavailable,
    UnsupportedCapability,
    WriteRejected,
)
from clipharness.core.session import SessionIdentity

__all__ = [
    "CaptureRejected",
    "ConfigError",
    "ContentResolutionFailure",
    "HarnessError",
    "LoadError",
    "SessionIdentity",
    "StorageUnavailable",
    "UnsupportedCapability",
    "WriteRejected",
]
