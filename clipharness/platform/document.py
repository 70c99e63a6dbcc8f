"""Per-context platform surface: capture signals, async clipboard, permissions."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable, Iterable
from enum import Enum

from clipharness.clipboard.types import PayloadSet
from clipharness.platform.buffer import DataTransfer, SystemClipboard

logger = logging.getLogger(__name__)

CaptureHandler = Callable[[DataTransfer], None]


class CaptureKind(str, Enum):
    """Capture signals a document can fire."""

    COPY = "copy"
    PASTE = "paste"


class PermissionState(str, Enum):
    """Answer to a permission query. Advisory only."""

    GRANTED = "granted"
    DENIED = "denied"
    PROMPT = "prompt"
    NOT_SUPPORTED = "not_supported"
    ERROR = "error"


class AsyncClipboard:
    """Direct, awaitable access to the system clipboard.

    Args:
        clipboard: The shared system clipboard.
        permitted: When False every call raises PermissionError.
        supported_types: Tags accepted by write(). None accepts everything.
    """

    def __init__(
        self,
        clipboard: SystemClipboard,
        *,
        permitted: bool = True,
        supported_types: Iterable[str] | None = None,
    ) -> None:
        self._clipboard = clipboard
        self.permitted = permitted
        self._supported = frozenset(supported_types) if supported_types is not None else None

    def supports(self, tag: str) -> bool:
        return self._supported is None or tag in self._supported

    async def write(self, payloads: PayloadSet) -> None:
        """Replace the clipboard with ``payloads``.

        Raises:
            PermissionError: If clipboard access is not permitted.
            ValueError: If a tag is not supported.
        """
        if not self.permitted:
            raise PermissionError("Clipboard write not permitted")
        for tag in payloads:
            if not self.supports(tag):
                raise ValueError(f"Type '{tag}' not supported on write")
        self._clipboard.replace(payloads)

    async def read(self) -> PayloadSet:
        """Return the current clipboard contents.

        Raises:
            PermissionError: If clipboard access is not permitted.
        """
        if not self.permitted:
            raise PermissionError("Clipboard read not permitted")
        return self._clipboard.snapshot()


class Document:
    """One execution context's view of the platform.

    Capture listeners run synchronously inside dispatch_capture(). A copy
    transfer that any listener modified replaces the system clipboard, which
    is how an empty write actively resets it.

    Args:
        clipboard: The system clipboard shared by all documents.
        honors_exec_command: Whether programmatic capture requests are honored.
        async_clipboard: Direct clipboard access, or None when the platform
            lacks the capability.
        permissions: Answers for query_permission(); missing names report
            NOT_SUPPORTED.
    """

    def __init__(
        self,
        clipboard: SystemClipboard,
        *,
        honors_exec_command: bool = True,
        async_clipboard: AsyncClipboard | None = None,
        permissions: dict[str, PermissionState] | None = None,
    ) -> None:
        self.clipboard = clipboard
        self.honors_exec_command = honors_exec_command
        self.async_clipboard = async_clipboard
        self._permissions = dict(permissions or {})
        self._listeners: dict[CaptureKind, list[tuple[CaptureHandler, bool]]] = defaultdict(list)

    @classmethod
    def with_async_clipboard(cls, clipboard: SystemClipboard, **kwargs: object) -> Document:
        """Document whose platform offers the async clipboard capability."""
        return cls(clipboard, async_clipboard=AsyncClipboard(clipboard), **kwargs)  # type: ignore[arg-type]

    # --- Capture listeners ---

    def add_capture_listener(
        self, kind: CaptureKind, handler: CaptureHandler, *, once: bool = True
    ) -> None:
        self._listeners[kind].append((handler, once))

    def remove_capture_listener(self, kind: CaptureKind, handler: CaptureHandler) -> bool:
        """Remove a listener. Returns True if it was registered."""
        listeners = self._listeners.get(kind)
        if not listeners:
            return False
        for i, (registered, _) in enumerate(listeners):
            if registered is handler:
                del listeners[i]
                return True
        return False

    def has_listener(self, kind: CaptureKind) -> bool:
        return bool(self._listeners.get(kind))

    def listener_count(self, kind: CaptureKind) -> int:
        return len(self._listeners.get(kind, ()))

    def dispatch_capture(self, kind: CaptureKind) -> DataTransfer:
        """Fire a capture signal, as a keyboard gesture would."""
        if kind == CaptureKind.PASTE:
            transfer = DataTransfer(self.clipboard.snapshot(), writable=False)
        else:
            transfer = DataTransfer()

        listeners = list(self._listeners.get(kind, ()))
        # One-shot listeners are removed before they run
        self._listeners[kind] = [entry for entry in listeners if not entry[1]]

        for handler, _ in listeners:
            try:
                handler(transfer)
            except Exception as e:
                logger.error("Capture listener for %s failed: %s", kind.value, e, exc_info=True)

        if kind == CaptureKind.COPY and transfer.modified:
            self.clipboard.replace(transfer.items())
        return transfer

    def press_shortcut(self, kind: CaptureKind) -> DataTransfer:
        """Simulate the user's copy/paste keyboard shortcut."""
        return self.dispatch_capture(kind)

    def exec_command(self, kind: CaptureKind) -> bool:
        """Request a capture signal programmatically.

        Returns:
            False when the platform declines; no signal fires in that case.
        """
        if not self.honors_exec_command:
            logger.debug("exec_command(%s) declined by platform", kind.value)
            return False
        self.dispatch_capture(kind)
        return True

    # --- Permissions ---

    async def query_permission(self, name: str) -> PermissionState:
        return self._permissions.get(name, PermissionState.NOT_SUPPORTED)
