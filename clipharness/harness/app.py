"""ClipboardHarness - one execution context wired end to end.

Owns the context's HarnessState and hands it to the coordinator, the
reconciler and the eligibility gate. Every trigger goes through the
dispatch loop:

    copy gesture      -> CopyRequested   -> phase 1 publish, spawn resolution
    resolution done   -> CopyResolved    -> phase 2 publish
    paste gesture     -> PasteRequested  -> reconcile, gate, select
    mirror changed    -> StorageChanged  -> recompute eligibility

Two copies may interleave their phases (the second starts while the first
is still resolving). Nothing fences them: each replica keeps whichever
write landed last.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Coroutine, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from clipharness.clipboard.channel import create_channel_adapter
from clipharness.clipboard.content import ContentProvider, create_content_provider
from clipharness.clipboard.coordinator import CopyCoordinator, CopyOperation
from clipharness.clipboard.eligibility import eligible_formats
from clipharness.clipboard.events import StorageEvent, StorageEventHub
from clipharness.clipboard.formats import decode_metadata
from clipharness.clipboard.mirror import MirrorStore
from clipharness.clipboard.reconciler import PasteReconciler, classify
from clipharness.clipboard.selector import select_format
from clipharness.clipboard.types import (
    Classification,
    Content,
    DefaultPriority,
    ExplicitFormat,
    PayloadSet,
    ReplicaName,
    SelectionPolicy,
    TriggerKind,
)
from clipharness.config.schema import HarnessConfig
from clipharness.core.constants import COPY_METADATA_KEY, get_default_mirror_path
from clipharness.core.errors import StorageUnavailable
from clipharness.core.session import SessionIdentity
from clipharness.core.state import HarnessState
from clipharness.harness.dispatcher import (
    CopyRequested,
    CopyResolved,
    HarnessDispatcher,
    PasteRequested,
    StorageChanged,
)
from clipharness.harness.sink import RecordingSink, SinkLogHandler, UISink, session_context
from clipharness.platform.document import CaptureKind, Document

logger = logging.getLogger(__name__)

# Capabilities whose permission state is queried (advisory only)
QUERIED_PERMISSIONS = ("clipboard-read", "clipboard-write")


@dataclass
class PasteOutcome:
    """What a paste produced."""

    classification: Classification | None = None
    source: ReplicaName | None = None
    tag: str | None = None
    content: Content | None = None
    denied: bool = False

    @property
    def pasted(self) -> bool:
        return self.tag is not None and self.content is not None and not self.denied


class ClipboardHarness:
    """Copy/paste harness for one execution context.

    Use as an async context manager, or call start()/stop():

        async with ClipboardHarness(config, document) as harness:
            await harness.copy()
            await harness.wait_idle()
            outcome = await harness.paste()
    """

    def __init__(
        self,
        config: HarnessConfig,
        document: Document,
        *,
        provider: ContentProvider | None = None,
        sink: UISink | None = None,
        identity: SessionIdentity | None = None,
        mirror_hub: StorageEventHub | None = None,
        log_level: int = logging.INFO,
    ) -> None:
        """Initialize the harness.

        Args:
            config: Validated configuration
            document: This context's platform surface
            provider: Content source (defaults from config.content)
            sink: UI output (defaults to a RecordingSink)
            identity: Session identity (generated lazily when omitted)
            mirror_hub: Change notification hub (defaults to the origin's hub)
            log_level: Lowest level forwarded to the sink
        """
        self.config = config
        self.document = document
        self.state = HarnessState(identity=identity or SessionIdentity())
        self.sink: UISink = sink if sink is not None else RecordingSink()

        self.channel = create_channel_adapter(config.clipboard_api.value, document)
        self.mirror = self._open_mirror(mirror_hub) if config.mirroring_enabled else None

        self.coordinator = CopyCoordinator(
            self.state,
            self.channel,
            provider or create_content_provider(config.content),
            self.mirror,
            resolve_delay=config.content.resolve_delay,
            capture_timeout=config.capture_timeout,
        )
        self.reconciler = PasteReconciler(
            self.state,
            self.channel,
            self.mirror,
            capture_timeout=config.capture_timeout,
        )

        self.dispatcher = HarnessDispatcher()
        self.dispatcher.register(CopyRequested, self._handle_copy)
        self.dispatcher.register(CopyResolved, self._handle_resolved)
        self.dispatcher.register(PasteRequested, self._handle_paste)
        self.dispatcher.register(StorageChanged, self._handle_storage)

        self._resolving: set[asyncio.Task[None]] = set()
        self._in_flight = 0
        self._storage_queue: asyncio.Queue[StorageEvent] | None = None
        self._watcher: asyncio.Task[None] | None = None
        self._log_handler = SinkLogHandler(self.sink, self.state.session_id, log_level)

    def _open_mirror(self, hub: StorageEventHub | None) -> MirrorStore | None:
        if self.config.mirror.path:
            path = Path(self.config.mirror.path).expanduser()
        else:
            path = get_default_mirror_path()
        try:
            return MirrorStore(path, self.state.session_id, hub)
        except StorageUnavailable as e:
            logger.warning("Mirroring disabled: %s", e.message)
            return None

    @property
    def session_id(self) -> str:
        return self.state.session_id

    @property
    def eligible_formats(self) -> frozenset[str]:
        return eligible_formats(self.state.last_classification)

    # --- Lifecycle ---

    async def start(self) -> None:
        package_logger = logging.getLogger("clipharness")
        if not package_logger.isEnabledFor(self._log_handler.level):
            package_logger.setLevel(self._log_handler.level)
        package_logger.addHandler(self._log_handler)

        # Tasks created here inherit the session context for log routing
        with session_context(self.session_id):
            await self._query_permissions()
            self.dispatcher.start()
            if self.mirror is not None:
                self._storage_queue = self.mirror.subscribe()
                self._watcher = asyncio.create_task(
                    self._watch_storage(), name=f"clipharness-watch-{self.session_id[:8]}"
                )
            logger.info(
                "Session %s ready (%s, mirroring %s)",
                self.session_id,
                self.channel.name,
                "on" if self.mirror is not None else "off",
            )
        self.sink.set_eligible_formats(self.eligible_formats)

    async def stop(self) -> None:
        try:
            await self.wait_idle()
        finally:
            await self._shutdown()

    async def _shutdown(self) -> None:
        try:
            if self._watcher is not None:
                self._watcher.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._watcher
                self._watcher = None
            await self.dispatcher.stop()
        finally:
            if self.mirror is not None:
                if self._storage_queue is not None:
                    self.mirror.unsubscribe(self._storage_queue)
                    self._storage_queue = None
                self.mirror.close()
            logging.getLogger("clipharness").removeHandler(self._log_handler)

    async def __aenter__(self) -> ClipboardHarness:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    async def wait_idle(self) -> None:
        """Wait until no resolution is running and the queue is drained."""
        while True:
            if self._resolving:
                await asyncio.gather(*list(self._resolving))
            await self.dispatcher.join()
            if not self._resolving:
                return

    # --- Gestures ---

    async def copy(
        self,
        formats: Iterable[str] | None = None,
        trigger: TriggerKind = TriggerKind.PROGRAMMATIC,
    ) -> CopyOperation | None:
        """Start a copy. Returns once phase 1 is published.

        An empty ``formats`` clears both replicas. None copies the configured
        ``copy_formats``.
        """
        if formats is None:
            formats = [tag.value for tag in self.config.copy_formats]
        return await self.dispatcher.submit(CopyRequested(tuple(formats), trigger))

    async def clear(self) -> None:
        await self.copy([])

    async def paste(
        self,
        policy: SelectionPolicy | None = None,
        trigger: TriggerKind = TriggerKind.PROGRAMMATIC,
    ) -> PasteOutcome:
        return await self.dispatcher.submit(
            PasteRequested(policy if policy is not None else DefaultPriority(), trigger)
        )

    async def keyboard_copy(self, formats: Iterable[str] | None = None) -> CopyOperation | None:
        """Copy as the user's keyboard shortcut would: the platform fires
        the copy signal once the harness is listening for it."""
        return await self._gesture(CaptureKind.COPY, self.copy(formats, TriggerKind.KEYBOARD))

    async def keyboard_paste(self, policy: SelectionPolicy | None = None) -> PasteOutcome:
        return await self._gesture(CaptureKind.PASTE, self.paste(policy, TriggerKind.KEYBOARD))

    async def _gesture(self, kind: CaptureKind, request: Coroutine[Any, Any, Any]) -> Any:
        task = asyncio.ensure_future(request)
        while not self.document.has_listener(kind) and not task.done():
            await asyncio.sleep(0)
        if not task.done():
            self.document.press_shortcut(kind)
        return await task

    # --- Handlers (run on the dispatch loop) ---

    async def _handle_copy(self, message: CopyRequested) -> CopyOperation | None:
        op = await self.coordinator.start_copy(message.formats, message.trigger)
        self.sink.set_eligible_formats(self.eligible_formats)
        if op is None:
            return None

        self._in_flight += 1
        self.sink.set_progress(True)
        task = asyncio.create_task(self._resolve(op), name=f"clipharness-resolve-{op.seq}")
        self._resolving.add(task)
        task.add_done_callback(self._resolving.discard)
        return op

    async def _resolve(self, op: CopyOperation) -> None:
        payloads: PayloadSet | None = None
        try:
            payloads = await self.coordinator.resolve(op)
        except Exception as e:
            logger.error("Copy #%d aborted: unexpected error: %s", op.seq, e, exc_info=True)
        finally:
            # Every copy reports back, resolved or not
            self.dispatcher.post(CopyResolved(op, payloads))

    async def _handle_resolved(self, message: CopyResolved) -> None:
        self._in_flight -= 1
        if message.payloads is not None:
            await self.coordinator.publish_resolved(message.operation, message.payloads)
        if self._in_flight == 0:
            self.sink.set_progress(False)
        self.sink.set_eligible_formats(self.eligible_formats)

    async def _handle_paste(self, message: PasteRequested) -> PasteOutcome:
        result = await self.reconciler.paste(message.trigger)
        if result is None:
            self.sink.show_paste(None, None)
            return PasteOutcome()

        allowed = eligible_formats(result.classification)
        self.sink.set_eligible_formats(allowed)
        outcome = PasteOutcome(classification=result.classification, source=result.source)

        policy = message.policy
        if isinstance(policy, ExplicitFormat) and policy.tag not in allowed:
            logger.warning(
                "Pasting %s is not allowed for %s content",
                policy.tag,
                result.classification.value,
            )
            outcome.tag = policy.tag
            outcome.denied = True
            self.sink.show_paste(None, None)
            return outcome

        candidates = {
            tag: content for tag, content in result.replica.payloads.items() if tag in allowed
        }
        selection = select_format(candidates, policy)
        if selection is None or selection[1] is None:
            logger.info("Nothing eligible to paste")
            self.sink.show_paste(None, None)
            return outcome

        outcome.tag, outcome.content = selection
        self.sink.show_paste(outcome.tag, outcome.content)
        return outcome

    async def _handle_storage(self, message: StorageChanged) -> None:
        event = message.event
        if event.key != COPY_METADATA_KEY:
            logger.debug("Mirror key %s changed in another session", event.key)
            return

        metadata = decode_metadata(event.new_value)
        self.state.last_copy_metadata = metadata
        if metadata is None:
            self.state.last_classification = None
            logger.info("Clipboard cleared in another session")
        elif metadata.is_complete:
            self.state.last_classification = classify(metadata, self.session_id)
            logger.info("Copy completed in another session")
        else:
            logger.info("Copy started in another session")
            return
        self.sink.set_eligible_formats(self.eligible_formats)

    # --- Background ---

    async def _watch_storage(self) -> None:
        assert self._storage_queue is not None
        while True:
            event = await self._storage_queue.get()
            self.dispatcher.post(StorageChanged(event))

    async def _query_permissions(self) -> None:
        for name in QUERIED_PERMISSIONS:
            try:
                state = await self.document.query_permission(name)
            except Exception as e:
                logger.debug("Permission query for %s failed: %s", name, e)
                self.state.permissions[name] = "error"
                continue
            self.state.permissions[name] = state.value
            logger.debug("Permission %s: %s", name, state.value)
