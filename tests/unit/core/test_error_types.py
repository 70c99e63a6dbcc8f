"""Tests for the clipharness error hierarchy and small core helpers."""

import pytest

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
from clipharness.core.utils import preview


@pytest.mark.parametrize(
    "error",
    [
        ConfigError("bad"),
        LoadError("bad"),
        StorageUnavailable("gone"),
        UnsupportedCapability("async clipboard read"),
        CaptureRejected("copy"),
        WriteRejected("image/png", "type not supported"),
        ContentResolutionFailure("text/html", "network", "timeout"),
    ],
)
def test_all_errors_are_harness_errors(error: HarnessError) -> None:
    assert isinstance(error, HarnessError)
    assert str(error) == error.message


class TestErrorMessages:
    """Structured errors keep their fields and format a message."""

    def test_unsupported_capability(self) -> None:
        error = UnsupportedCapability("async clipboard read")

        assert error.capability == "async clipboard read"
        assert error.message == "Platform does not support async clipboard read"

    def test_capture_rejected_default_reason(self) -> None:
        error = CaptureRejected("paste")

        assert error.kind == "paste"
        assert "request not honored" in error.message

    def test_write_rejected(self) -> None:
        error = WriteRejected("image/png", "type not supported")

        assert error.tag == "image/png"
        assert "'image/png'" in error.message

    def test_content_resolution_failure(self) -> None:
        error = ContentResolutionFailure("text/html", "parse", "bad markup")

        assert (error.tag, error.kind, error.reason) == ("text/html", "parse", "bad markup")
        assert "parse error" in error.message


class TestPreview:
    """Tests for preview()."""

    def test_none(self) -> None:
        assert preview(None) == "<none>"

    def test_bytes(self) -> None:
        assert preview(b"\x00\x01\x02") == "<3 bytes>"

    def test_newlines_escaped(self) -> None:
        assert preview("a\nb") == "a\\nb"

    def test_truncated(self) -> None:
        assert preview("x" * 100, limit=10) == "xxxxxxx..."
