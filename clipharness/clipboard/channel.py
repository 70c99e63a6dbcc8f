"""Transfer channel adapters over the system clipboard.

Two variants share one interface:

- DeferredCaptureAdapter: writes and reads happen inside a one-shot capture
  listener, triggered by a programmatic capture request.
- DirectAdapter: writes and reads go straight through the platform's async
  clipboard.

Both also support writing/reading inside a capture signal fired by a keyboard
gesture (write_on_signal / read_on_signal), since the platform only accepts
gesture-time writes from within that signal.

Platform failures surface as typed errors for the caller to log:
CaptureRejected (declined or missed capture; any pending listener is
deregistered first), UnsupportedCapability (no async clipboard) and
WriteRejected (the clipboard refused the write). A single format that fails
inside a capture is skipped and the rest are still written.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

from clipharness.clipboard.types import Content, FormatTag, PayloadSet
from clipharness.core.errors import CaptureRejected, UnsupportedCapability, WriteRejected
from clipharness.core.utils import preview
from clipharness.platform.buffer import DataTransfer
from clipharness.platform.document import CaptureKind, Document

logger = logging.getLogger(__name__)


class TransferChannelAdapter(ABC):
    """Write/read capability over the ephemeral channel replica."""

    name: str = "channel"

    def __init__(self, document: Document) -> None:
        self._document = document

    @abstractmethod
    async def write(self, payloads: PayloadSet) -> None:
        """Replace the channel with ``payloads``. Empty payloads reset it.

        Raises:
            CaptureRejected: If the platform declined the capture request.
            UnsupportedCapability: If the platform has no way to write.
            WriteRejected: If the platform refused the write.
        """

    @abstractmethod
    async def read(self) -> PayloadSet:
        """Read the channel.

        Raises:
            CaptureRejected: If the channel could not be read.
            UnsupportedCapability: If the platform has no way to read.
        """

    def filter_supported(self, payloads: PayloadSet) -> PayloadSet:
        """Drop tags this channel cannot carry. Default: carry everything."""
        return dict(payloads)

    def write_captured(self, transfer: DataTransfer, payloads: PayloadSet) -> int:
        """Write into a capture transfer. Returns count of formats written.

        The transfer is cleared first so an empty payload set resets the
        channel instead of leaving the previous value pasteable.
        """
        transfer.clear_data()
        written = 0
        for tag, content in payloads.items():
            try:
                self._set_format(transfer, tag, content)
            except WriteRejected as e:
                logger.warning("%s", e.message)
                continue
            written += 1
            logger.debug("%s: wrote %s = %s", self.name, tag, preview(content))
        return written

    @staticmethod
    def _set_format(transfer: DataTransfer, tag: str, content: Content) -> None:
        try:
            transfer.set_data(tag, content)
        except (TypeError, ValueError, PermissionError) as e:
            raise WriteRejected(tag, str(e)) from e

    def read_captured(self, transfer: DataTransfer) -> PayloadSet:
        payloads: PayloadSet = {}
        for tag in transfer.types:
            content = transfer.get_data(tag)
            if content is not None:
                payloads[tag] = content
        return payloads

    async def write_on_signal(self, payloads: PayloadSet, timeout: float) -> None:
        """Write inside the next copy capture signal (keyboard gesture).

        Suspends until the signal fires. If it does not fire within
        ``timeout`` seconds the pending listener is deregistered so it cannot
        fire on an unrelated later capture.

        Raises:
            CaptureRejected: If the signal did not fire in time.
        """
        payloads = self.filter_supported(payloads)
        loop = asyncio.get_running_loop()
        fired: asyncio.Future[int] = loop.create_future()

        def on_copy(transfer: DataTransfer) -> None:
            count = self.write_captured(transfer, payloads)
            if not fired.done():
                fired.set_result(count)

        self._document.add_capture_listener(CaptureKind.COPY, on_copy, once=True)
        try:
            await asyncio.wait_for(fired, timeout)
        except asyncio.TimeoutError:
            self._document.remove_capture_listener(CaptureKind.COPY, on_copy)
            raise CaptureRejected("copy", "signal did not fire") from None

    async def read_on_signal(self, timeout: float) -> PayloadSet:
        """Read inside the next paste capture signal (keyboard gesture).

        Raises:
            CaptureRejected: If the signal did not fire in time.
        """
        loop = asyncio.get_running_loop()
        fired: asyncio.Future[PayloadSet] = loop.create_future()

        def on_paste(transfer: DataTransfer) -> None:
            if not fired.done():
                fired.set_result(self.read_captured(transfer))

        self._document.add_capture_listener(CaptureKind.PASTE, on_paste, once=True)
        try:
            return await asyncio.wait_for(fired, timeout)
        except asyncio.TimeoutError:
            self._document.remove_capture_listener(CaptureKind.PASTE, on_paste)
            raise CaptureRejected("paste", "signal did not fire") from None


class DeferredCaptureAdapter(TransferChannelAdapter):
    """Channel access through capture listeners and capture-request commands.

    Only plain text, rich text and images are carried as user content; the
    reserved metadata tag is transport-internal and always passes.
    """

    name = "data_transfer"

    SUPPORTED_FORMATS: frozenset[str] = frozenset(
        {
            FormatTag.TEXT.value,
            FormatTag.HTML.value,
            FormatTag.IMAGE.value,
            FormatTag.METADATA.value,
        }
    )

    def filter_supported(self, payloads: PayloadSet) -> PayloadSet:
        supported: PayloadSet = {}
        for tag, content in payloads.items():
            if tag in self.SUPPORTED_FORMATS:
                supported[tag] = content
            else:
                logger.warning("%s does not support '%s', dropping it", self.name, tag)
        return supported

    async def write(self, payloads: PayloadSet) -> None:
        payloads = self.filter_supported(payloads)

        def on_copy(transfer: DataTransfer) -> None:
            self.write_captured(transfer, payloads)

        self._document.add_capture_listener(CaptureKind.COPY, on_copy, once=True)
        if not self._document.exec_command(CaptureKind.COPY):
            # Otherwise the listener would fire on some unrelated future copy
            self._document.remove_capture_listener(CaptureKind.COPY, on_copy)
            raise CaptureRejected("copy")

    async def read(self) -> PayloadSet:
        result: PayloadSet = {}

        def on_paste(transfer: DataTransfer) -> None:
            nonlocal result
            result = self.read_captured(transfer)

        self._document.add_capture_listener(CaptureKind.PASTE, on_paste, once=True)
        if not self._document.exec_command(CaptureKind.PASTE):
            self._document.remove_capture_listener(CaptureKind.PASTE, on_paste)
            raise CaptureRejected("paste")
        return result


class DirectAdapter(TransferChannelAdapter):
    """Channel access through the platform's async clipboard."""

    name = "async_clipboard"

    def filter_supported(self, payloads: PayloadSet) -> PayloadSet:
        clipboard = self._document.async_clipboard
        if clipboard is None:
            return dict(payloads)
        supported: PayloadSet = {}
        for tag, content in payloads.items():
            if clipboard.supports(tag):
                supported[tag] = content
            else:
                logger.warning("%s does not support '%s', dropping it", self.name, tag)
        return supported

    async def write(self, payloads: PayloadSet) -> None:
        clipboard = self._document.async_clipboard
        if clipboard is None:
            raise UnsupportedCapability("async clipboard write")

        supported = self.filter_supported(payloads)
        try:
            await clipboard.write(supported)
        except (PermissionError, ValueError) as e:
            raise WriteRejected(", ".join(supported) or "(empty)", str(e)) from e
        logger.debug("%s: wrote %d format(s)", self.name, len(supported))

    async def read(self) -> PayloadSet:
        clipboard = self._document.async_clipboard
        if clipboard is None:
            raise UnsupportedCapability("async clipboard read")

        try:
            return await clipboard.read()
        except PermissionError as e:
            raise CaptureRejected("paste", str(e)) from e


_ADAPTERS: dict[str, type[TransferChannelAdapter]] = {
    DeferredCaptureAdapter.name: DeferredCaptureAdapter,
    DirectAdapter.name: DirectAdapter,
}


def create_channel_adapter(api: str, document: Document) -> TransferChannelAdapter:
    """Build the adapter configured by ``clipboard_api``.

    Raises:
        ValueError: If ``api`` names no adapter.
    """
    try:
        adapter_cls = _ADAPTERS[api]
    except KeyError:
        raise ValueError(
            f"Unknown clipboard api '{api}' (expected one of: {', '.join(_ADAPTERS)})"
        ) from None
    return adapter_cls(document)
