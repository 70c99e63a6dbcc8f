"""CopyCoordinator - two-phase publish of copied content to both replicas.

Phase 1 publishes a placeholder with ``copyStatus: started`` as soon as
possible; phase 2 resolves the requested formats and republishes with
``copyStatus: completed``. Every replica write is independent: a failure is
logged and the sibling write still happens. There is no rollback and no
fencing between concurrent copies; the last writer wins on each replica.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from clipharness.clipboard.channel import TransferChannelAdapter
from clipharness.clipboard.content import ContentProvider
from clipharness.clipboard.formats import attach_metadata, now_ms, wrap_rich_text
from clipharness.clipboard.mirror import MirrorStore
from clipharness.clipboard.types import (
    Classification,
    CopyMetadata,
    CopyStatus,
    FormatTag,
    PayloadSet,
    TriggerKind,
)
from clipharness.core.errors import ContentResolutionFailure, HarnessError, StorageUnavailable
from clipharness.core.state import HarnessState

logger = logging.getLogger(__name__)

PLACEHOLDER_TEXT = "Resolving clipboard content..."
CLEAR_MESSAGE = "Please select at least one payload to copy"


def _tag_value(tag: str | FormatTag) -> str:
    return tag.value if isinstance(tag, FormatTag) else str(tag)


@dataclass
class CopyOperation:
    """One copy gesture in flight."""

    seq: int
    formats: tuple[str, ...]
    trigger: TriggerKind
    started_at_ms: int = field(default_factory=now_ms)


class CopyCoordinator:
    """Publishes copies to the channel replica and, optionally, the mirror."""

    def __init__(
        self,
        state: HarnessState,
        channel: TransferChannelAdapter,
        provider: ContentProvider,
        mirror: MirrorStore | None = None,
        *,
        resolve_delay: float = 0.0,
        capture_timeout: float = 2.0,
    ) -> None:
        """Initialize the coordinator.

        Args:
            state: Shared harness state (session id, last copy metadata)
            channel: Adapter for the channel replica
            provider: Resolves requested formats
            mirror: Mirror store, or None when mirroring is disabled
            resolve_delay: Artificial delay before resolved content is published
            capture_timeout: Seconds to wait for a keyboard capture signal
        """
        self._state = state
        self._channel = channel
        self._provider = provider
        self._mirror = mirror
        self._resolve_delay = resolve_delay
        self._capture_timeout = capture_timeout

    @property
    def mirroring_enabled(self) -> bool:
        return self._mirror is not None

    # --- Core Operations ---

    async def start_copy(
        self,
        formats: Iterable[str | FormatTag],
        trigger: TriggerKind = TriggerKind.PROGRAMMATIC,
    ) -> CopyOperation | None:
        """Phase 1: publish the placeholder, or clear when no formats are given.

        Returns:
            The operation to resolve, or None for a clear.
        """
        requested = tuple(dict.fromkeys(_tag_value(f) for f in formats))
        if not requested:
            await self.clear(trigger)
            return None

        op = CopyOperation(seq=self._state.next_copy_seq(), formats=requested, trigger=trigger)
        logger.info("Copy #%d started (%s): %s", op.seq, trigger.value, ", ".join(requested))

        metadata = CopyMetadata(self._state.session_id, CopyStatus.STARTED)
        await self._publish({FormatTag.TEXT.value: PLACEHOLDER_TEXT}, metadata, trigger)
        return op

    async def resolve(self, op: CopyOperation) -> PayloadSet | None:
        """Phase 2a: resolve every requested format.

        The first failure aborts the remaining formats and the whole copy is
        dropped; the replicas keep the phase-1 placeholder.

        Returns:
            The resolved payload set, or None if resolution failed.
        """
        if self._resolve_delay > 0:
            await asyncio.sleep(self._resolve_delay)

        payloads: PayloadSet = {}
        for tag in op.formats:
            try:
                content = await self._provider.resolve(tag)
            except ContentResolutionFailure as e:
                logger.error("Copy #%d aborted: %s", op.seq, e.message)
                return None
            if tag == FormatTag.HTML.value and isinstance(content, str):
                content = wrap_rich_text(content)
            payloads[tag] = content
        return payloads

    async def publish_resolved(self, op: CopyOperation, payloads: PayloadSet) -> None:
        """Phase 2b: publish resolved content with ``copyStatus: completed``.

        Always programmatic: the gesture's capture signal is long gone.
        """
        metadata = CopyMetadata(self._state.session_id, CopyStatus.COMPLETED)
        await self._publish(payloads, metadata, TriggerKind.PROGRAMMATIC)
        logger.info("Copy #%d completed: %s", op.seq, ", ".join(payloads))

    async def copy(
        self,
        formats: Iterable[str | FormatTag],
        trigger: TriggerKind = TriggerKind.PROGRAMMATIC,
    ) -> PayloadSet | None:
        """Run both phases inline. Returns the published payloads, if any."""
        op = await self.start_copy(formats, trigger)
        if op is None:
            return None
        payloads = await self.resolve(op)
        if payloads is None:
            return None
        await self.publish_resolved(op, payloads)
        return payloads

    async def clear(self, trigger: TriggerKind = TriggerKind.PROGRAMMATIC) -> None:
        """Wipe payload and metadata from both replicas."""
        logger.warning(CLEAR_MESSAGE)

        try:
            if trigger == TriggerKind.KEYBOARD:
                await self._channel.write_on_signal({}, self._capture_timeout)
            else:
                await self._channel.write({})
        except HarnessError as e:
            logger.warning("Clearing channel failed: %s", e.message)

        if self._mirror is not None:
            try:
                self._mirror.clear_replica()
            except StorageUnavailable as e:
                logger.warning("Clearing mirror failed: %s", e.message)

        self._state.last_copy_metadata = None
        self._state.last_classification = None

    async def _publish(
        self, payloads: PayloadSet, metadata: CopyMetadata, trigger: TriggerKind
    ) -> None:
        """Best-effort fan-out to both replicas."""
        channel_payloads = attach_metadata(payloads, metadata)
        try:
            if trigger == TriggerKind.KEYBOARD:
                await self._channel.write_on_signal(channel_payloads, self._capture_timeout)
            else:
                await self._channel.write(channel_payloads)
        except HarnessError as e:
            logger.warning(
                "Channel replica not written (%s): %s", metadata.copy_status.value, e.message
            )

        if self._mirror is not None:
            try:
                self._mirror.write_replica(payloads, metadata)
            except StorageUnavailable as e:
                logger.warning("Mirror replica write failed: %s", e.message)

        self._state.last_copy_metadata = metadata
        self._state.last_classification = Classification.SAME_SESSION
