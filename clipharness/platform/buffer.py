"""System clipboard buffer and the per-event transfer object."""

from __future__ import annotations

from clipharness.clipboard.types import Content, PayloadSet


class SystemClipboard:
    """The system-wide clipboard: one active payload set at a time.

    Every write replaces the whole value. ``generation`` increments on each
    replacement so tests can tell a reset from an untouched buffer.
    """

    def __init__(self) -> None:
        self._items: PayloadSet = {}
        self.generation = 0

    def snapshot(self) -> PayloadSet:
        return dict(self._items)

    def replace(self, payloads: PayloadSet) -> None:
        self._items = dict(payloads)
        self.generation += 1

    def clear(self) -> None:
        self.replace({})

    def __len__(self) -> int:
        return len(self._items)


class DataTransfer:
    """Transfer object handed to capture listeners.

    Copy transfers start empty and writable; paste transfers are prefilled
    from the system clipboard and read-only.
    """

    def __init__(self, items: PayloadSet | None = None, *, writable: bool = True) -> None:
        self._items: PayloadSet = dict(items or {})
        self._writable = writable
        self.modified = False

    @property
    def types(self) -> list[str]:
        return list(self._items)

    def get_data(self, tag: str) -> Content | None:
        return self._items.get(tag)

    def set_data(self, tag: str, content: Content) -> None:
        """Set one format.

        Raises:
            PermissionError: If the transfer is read-only.
            TypeError: If content is neither str nor bytes.
        """
        if not self._writable:
            raise PermissionError("DataTransfer is read-only")
        if not isinstance(content, (str, bytes)):
            raise TypeError(f"Unsupported content type for '{tag}': {type(content).__name__}")
        self._items[tag] = content
        self.modified = True

    def clear_data(self) -> None:
        if not self._writable:
            raise PermissionError("DataTransfer is read-only")
        self._items.clear()
        self.modified = True

    def items(self) -> PayloadSet:
        return dict(self._items)
