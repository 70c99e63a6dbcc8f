"""One-way UI output and log forwarding.

The sink never feeds back into the harness. Log lines reach it through
SinkLogHandler, a logging.Handler attached to the ``clipharness`` logger.
Several harnesses may share one process; a contextvar tracks which
harness's task is logging so each sink only sees its own lines (records
logged outside any harness context go to every sink).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Protocol

from rich.console import Console
from rich.markup import escape

from clipharness.clipboard.types import Content
from clipharness.core.utils import preview

_current_session: ContextVar[str | None] = ContextVar(
    "clipharness_current_session",
    default=None,
)


@contextmanager
def session_context(session_id: str) -> Iterator[None]:
    """Mark log records emitted in this block as belonging to ``session_id``."""
    token = _current_session.set(session_id)
    try:
        yield
    finally:
        _current_session.reset(token)


class UISink(Protocol):
    """Where the harness reports what a user would see."""

    def log(self, level: int, line: str) -> None:
        ...

    def set_eligible_formats(self, formats: Iterable[str]) -> None:
        ...

    def set_progress(self, visible: bool) -> None:
        ...

    def show_paste(self, tag: str | None, content: Content | None) -> None:
        ...


class RecordingSink:
    """Keeps everything it is told. Used by tests and the CLI summary."""

    def __init__(self) -> None:
        self.lines: list[tuple[int, str]] = []
        self.eligible_formats: frozenset[str] = frozenset()
        self.progress_visible = False
        self.pastes: list[tuple[str | None, Content | None]] = []

    def log(self, level: int, line: str) -> None:
        self.lines.append((level, line))

    def set_eligible_formats(self, formats: Iterable[str]) -> None:
        self.eligible_formats = frozenset(formats)

    def set_progress(self, visible: bool) -> None:
        self.progress_visible = visible

    def show_paste(self, tag: str | None, content: Content | None) -> None:
        self.pastes.append((tag, content))

    def text(self) -> str:
        return "\n".join(line for _, line in self.lines)


class ConsoleSink(RecordingSink):
    """RecordingSink that also prints to a rich Console."""

    _STYLES = {
        logging.DEBUG: "dim",
        logging.INFO: "",
        logging.WARNING: "yellow",
        logging.ERROR: "bold red",
    }

    def __init__(self, console: Console, label: str = "") -> None:
        super().__init__()
        self._console = console
        self._prefix = f"[cyan]{escape(label)}[/] " if label else ""

    def log(self, level: int, line: str) -> None:
        super().log(level, line)
        style = self._STYLES.get(level, "")
        text = escape(line)
        if style:
            text = f"[{style}]{text}[/]"
        self._console.print(f"{self._prefix}{text}")

    def set_eligible_formats(self, formats: Iterable[str]) -> None:
        super().set_eligible_formats(formats)
        self._console.print(
            f"{self._prefix}[dim]paste formats enabled: {', '.join(sorted(self.eligible_formats)) or '-'}[/]"
        )

    def show_paste(self, tag: str | None, content: Content | None) -> None:
        super().show_paste(tag, content)
        if tag is None:
            self._console.print(f"{self._prefix}[dim]nothing to paste[/]")
        else:
            self._console.print(
                f"{self._prefix}[green]pasted[/] {escape(tag)}: {escape(preview(content, 60))}"
            )


class SinkLogHandler(logging.Handler):
    """Forwards log records to a UISink."""

    def __init__(self, sink: UISink, session_id: str, level: int = logging.INFO) -> None:
        super().__init__(level)
        self._sink = sink
        self._session_id = session_id
        self.setFormatter(logging.Formatter("%(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        current = _current_session.get()
        if current is not None and current != self._session_id:
            return
        try:
            self._sink.log(record.levelno, self.format(record))
        except Exception:
            self.handleError(record)
