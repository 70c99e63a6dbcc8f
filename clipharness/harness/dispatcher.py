"""Single-threaded message dispatch for harness triggers.

Copy and paste gestures, resolved content and storage notifications all
arrive as messages on one queue. One worker task handles them in order and
each handler runs to completion before the next message is dispatched.

Work that must not block the loop (content resolution) runs in a separate
task and posts its result back as a new message.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from typing import Any

from clipharness.clipboard.coordinator import CopyOperation
from clipharness.clipboard.events import StorageEvent
from clipharness.clipboard.types import PayloadSet, SelectionPolicy, TriggerKind
from clipharness.core.errors import HarnessError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Message:
    """Base class for dispatch loop messages."""


@dataclass(frozen=True)
class CopyRequested(Message):
    formats: tuple[str, ...]
    trigger: TriggerKind = TriggerKind.PROGRAMMATIC


@dataclass(frozen=True)
class CopyResolved(Message):
    operation: CopyOperation
    payloads: PayloadSet | None


@dataclass(frozen=True)
class PasteRequested(Message):
    policy: SelectionPolicy
    trigger: TriggerKind = TriggerKind.PROGRAMMATIC


@dataclass(frozen=True)
class StorageChanged(Message):
    event: StorageEvent


Handler = Callable[[Any], Coroutine[Any, Any, Any]]

_STOP = object()


class HarnessDispatcher:
    """Queue plus a single worker task.

    Example:
        dispatcher = HarnessDispatcher()
        dispatcher.register(PasteRequested, handle_paste)
        dispatcher.start()

        outcome = await dispatcher.submit(PasteRequested(DefaultPriority()))
        dispatcher.post(StorageChanged(event))  # fire and forget

        await dispatcher.stop()
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[tuple[object, asyncio.Future[Any] | None]] = asyncio.Queue()
        self._handlers: dict[type[Message], Handler] = {}
        self._worker: asyncio.Task[None] | None = None

    def register(self, message_type: type[Message], handler: Handler) -> None:
        self._handlers[message_type] = handler

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        if self.running:
            return
        self._worker = asyncio.create_task(self._run(), name="clipharness-dispatch")

    async def stop(self) -> None:
        """Finish queued messages, then stop the worker."""
        if self._worker is None:
            return
        await self._queue.put((_STOP, None))
        await self._worker
        self._worker = None

    async def submit(self, message: Message) -> Any:
        """Queue a message and wait for its handler's result.

        Raises:
            HarnessError: If the handler raised one.
        """
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        await self._queue.put((message, future))
        return await future

    def post(self, message: Message) -> None:
        """Queue a message without waiting for it."""
        self._queue.put_nowait((message, None))

    async def join(self) -> None:
        """Wait until every queued message has been handled."""
        await self._queue.join()

    async def _run(self) -> None:
        while True:
            message, future = await self._queue.get()
            try:
                if message is _STOP:
                    return
                await self._dispatch(message, future)
            finally:
                self._queue.task_done()

    async def _dispatch(self, message: object, future: asyncio.Future[Any] | None) -> None:
        handler = self._handlers.get(type(message))  # type: ignore[arg-type]
        if handler is None:
            logger.error("No handler for %s", type(message).__name__)
            if future is not None and not future.done():
                future.set_result(None)
            return

        try:
            result = await handler(message)
        except HarnessError as e:
            logger.error("%s failed: %s", type(message).__name__, e.message)
            if future is not None and not future.done():
                future.set_exception(e)
            return
        except Exception as e:
            logger.error(
                "Unexpected error handling %s: %s",
                type(message).__name__,
                e,
                exc_info=True,
            )
            if future is not None and not future.done():
                future.set_exception(e)
            return

        if future is not None and not future.done():
            future.set_result(result)
