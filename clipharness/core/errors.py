"""Typed exception hierarchy for clipharness."""

from __future__ import annotations


class HarnessError(Exception):
    """Base class for all clipharness errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigError(HarnessError):
    """Raised for configuration issues (missing file, invalid JSON, validation failure)."""


class LoadError(HarnessError):
    """Base class for loading errors (config files)."""

    pass


class UnsupportedCapability(HarnessError):
    """The platform lacks a clipboard feature. Degrade to empty, never fatal."""

    def __init__(self, capability: str) -> None:
        self.capability = capability
        super().__init__(f"Platform does not support {capability}")


class CaptureRejected(HarnessError):
    """The platform declined a capture request (or the signal never fired)."""

    def __init__(self, kind: str, reason: str = "request not honored") -> None:
        self.kind = kind
        self.reason = reason
        super().__init__(f"{kind} capture rejected: {reason}")


class WriteRejected(HarnessError):
    """Writing a single format to the channel failed."""

    def __init__(self, tag: str, reason: str) -> None:
        self.tag = tag
        self.reason = reason
        super().__init__(f"Write of '{tag}' rejected: {reason}")


class ContentResolutionFailure(HarnessError):
    """The content provider could not resolve a requested format.

    ``kind`` is ``"network"`` or ``"parse"``.
    """

    def __init__(self, tag: str, kind: str, reason: str) -> None:
        self.tag = tag
        self.kind = kind
        self.reason = reason
        super().__init__(f"Failed to resolve '{tag}' ({kind} error): {reason}")


class StorageUnavailable(HarnessError):
    """The mirror store cannot be read or written."""
