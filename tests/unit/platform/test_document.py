"""Tests for the in-process platform: clipboard buffer, transfers, documents."""

import logging

import pytest

from clipharness.platform.buffer import DataTransfer, SystemClipboard
from clipharness.platform.document import (
    AsyncClipboard,
    CaptureKind,
    Document,
    PermissionState,
)


class TestSystemClipboard:
    """Tests for SystemClipboard."""

    def test_replace_is_whole_value(self) -> None:
        clipboard = SystemClipboard()
        clipboard.replace({"text/plain": "a", "text/html": "b"})

        clipboard.replace({"text/plain": "c"})

        assert clipboard.snapshot() == {"text/plain": "c"}
        assert clipboard.generation == 2

    def test_snapshot_is_a_copy(self) -> None:
        clipboard = SystemClipboard()
        clipboard.replace({"text/plain": "a"})

        clipboard.snapshot()["text/plain"] = "mutated"

        assert clipboard.snapshot() == {"text/plain": "a"}

    def test_clear(self) -> None:
        clipboard = SystemClipboard()
        clipboard.replace({"text/plain": "a"})

        clipboard.clear()

        assert len(clipboard) == 0


class TestDataTransfer:
    """Tests for DataTransfer."""

    def test_set_and_get(self) -> None:
        transfer = DataTransfer()

        transfer.set_data("text/plain", "a")

        assert transfer.get_data("text/plain") == "a"
        assert transfer.types == ["text/plain"]
        assert transfer.modified

    def test_read_only(self) -> None:
        transfer = DataTransfer({"text/plain": "a"}, writable=False)

        with pytest.raises(PermissionError):
            transfer.set_data("text/plain", "b")
        with pytest.raises(PermissionError):
            transfer.clear_data()

    def test_rejects_non_string_content(self) -> None:
        with pytest.raises(TypeError):
            DataTransfer().set_data("text/plain", 3)  # type: ignore[arg-type]


class TestCaptureListeners:
    """Tests for capture listener dispatch."""

    def test_one_shot_listener_fires_once(self) -> None:
        document = Document(SystemClipboard())
        calls: list[DataTransfer] = []
        document.add_capture_listener(CaptureKind.COPY, calls.append)

        document.press_shortcut(CaptureKind.COPY)
        document.press_shortcut(CaptureKind.COPY)

        assert len(calls) == 1
        assert not document.has_listener(CaptureKind.COPY)

    def test_persistent_listener(self) -> None:
        document = Document(SystemClipboard())
        calls: list[DataTransfer] = []
        document.add_capture_listener(CaptureKind.PASTE, calls.append, once=False)

        document.press_shortcut(CaptureKind.PASTE)
        document.press_shortcut(CaptureKind.PASTE)

        assert len(calls) == 2
        assert document.listener_count(CaptureKind.PASTE) == 1

    def test_remove_listener(self) -> None:
        document = Document(SystemClipboard())

        def handler(transfer: DataTransfer) -> None:
            pass

        document.add_capture_listener(CaptureKind.COPY, handler)

        assert document.remove_capture_listener(CaptureKind.COPY, handler)
        assert not document.remove_capture_listener(CaptureKind.COPY, handler)

    def test_copy_transfer_replaces_clipboard_when_modified(self) -> None:
        clipboard = SystemClipboard()
        clipboard.replace({"text/plain": "old"})
        document = Document(clipboard)
        document.add_capture_listener(
            CaptureKind.COPY, lambda t: t.set_data("text/plain", "new")
        )

        document.press_shortcut(CaptureKind.COPY)

        assert clipboard.snapshot() == {"text/plain": "new"}

    def test_unhandled_copy_leaves_clipboard(self) -> None:
        clipboard = SystemClipboard()
        clipboard.replace({"text/plain": "old"})

        Document(clipboard).press_shortcut(CaptureKind.COPY)

        assert clipboard.snapshot() == {"text/plain": "old"}
        assert clipboard.generation == 1

    def test_paste_transfer_is_prefilled_and_read_only(self) -> None:
        clipboard = SystemClipboard()
        clipboard.replace({"text/plain": "a"})
        document = Document(clipboard)

        transfer = document.press_shortcut(CaptureKind.PASTE)

        assert transfer.items() == {"text/plain": "a"}
        with pytest.raises(PermissionError):
            transfer.set_data("text/plain", "b")

    def test_failing_listener_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        document = Document(SystemClipboard())

        def broken(transfer: DataTransfer) -> None:
            raise RuntimeError("boom")

        document.add_capture_listener(CaptureKind.COPY, broken)

        with caplog.at_level(logging.ERROR, logger="clipharness.platform.document"):
            document.press_shortcut(CaptureKind.COPY)

        assert any("boom" in r.message for r in caplog.records)


class TestExecCommand:
    """Tests for programmatic capture requests."""

    def test_honored(self) -> None:
        document = Document(SystemClipboard())
        calls: list[DataTransfer] = []
        document.add_capture_listener(CaptureKind.COPY, calls.append)

        assert document.exec_command(CaptureKind.COPY)
        assert len(calls) == 1

    def test_declined_fires_nothing(self) -> None:
        document = Document(SystemClipboard(), honors_exec_command=False)
        calls: list[DataTransfer] = []
        document.add_capture_listener(CaptureKind.COPY, calls.append)

        assert not document.exec_command(CaptureKind.COPY)
        assert calls == []
        assert document.has_listener(CaptureKind.COPY)


class TestAsyncClipboard:
    """Tests for AsyncClipboard."""

    @pytest.mark.asyncio
    async def test_write_and_read(self) -> None:
        clipboard = SystemClipboard()
        async_clipboard = AsyncClipboard(clipboard)

        await async_clipboard.write({"image/png": b"\x89PNG"})

        assert await async_clipboard.read() == {"image/png": b"\x89PNG"}

    @pytest.mark.asyncio
    async def test_not_permitted(self) -> None:
        async_clipboard = AsyncClipboard(SystemClipboard(), permitted=False)

        with pytest.raises(PermissionError):
            await async_clipboard.read()
        with pytest.raises(PermissionError):
            await async_clipboard.write({"text/plain": "a"})

    @pytest.mark.asyncio
    async def test_unsupported_type(self) -> None:
        clipboard = SystemClipboard()
        async_clipboard = AsyncClipboard(clipboard, supported_types={"text/plain"})

        with pytest.raises(ValueError):
            await async_clipboard.write({"text/plain": "a", "image/png": b"x"})

        assert clipboard.snapshot() == {}


class TestPermissions:
    """Tests for permission queries."""

    @pytest.mark.asyncio
    async def test_configured_answer(self) -> None:
        document = Document(
            SystemClipboard(), permissions={"clipboard-read": PermissionState.DENIED}
        )

        assert await document.query_permission("clipboard-read") == PermissionState.DENIED

    @pytest.mark.asyncio
    async def test_unknown_is_not_supported(self) -> None:
        document = Document(SystemClipboard())

        assert await document.query_permission("clipboard-write") == PermissionState.NOT_SUPPORTED
