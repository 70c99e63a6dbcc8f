"""PasteReconciler - decide which replica a paste reads from.

The channel and the mirror are written through paths with different
latencies, so the order in which a reader observes them says nothing about
write order. Only the write-time timestamp embedded in each replica's rich
text does. The decision, given a channel replica C and mirror replica M:

1. C unreadable            -> abort, nothing pasted, classification unchanged
2. M absent or disabled    -> C
3. ts(C) > ts(M)           -> C
   ts(C) or ts(M) missing  -> C
   otherwise               -> M

The chosen replica's own metadata then classifies the paste: no metadata is
External, our session id is SameSession, any other id is CrossSession.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from clipharness.clipboard.channel import TransferChannelAdapter
from clipharness.clipboard.formats import payload_timestamp, split_metadata
from clipharness.clipboard.mirror import MirrorStore
from clipharness.clipboard.types import (
    Classification,
    CopyMetadata,
    Replica,
    ReplicaName,
    TriggerKind,
)
from clipharness.core.errors import CaptureRejected, StorageUnavailable, UnsupportedCapability
from clipharness.core.state import HarnessState

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """The authoritative replica for a paste and its provenance."""

    replica: Replica
    classification: Classification

    @property
    def source(self) -> ReplicaName:
        return self.replica.name


def classify(metadata: CopyMetadata | None, session_id: str) -> Classification:
    """Classify content by the metadata it carries."""
    if metadata is None:
        return Classification.EXTERNAL
    if metadata.session_id == session_id:
        return Classification.SAME_SESSION
    return Classification.CROSS_SESSION


def choose_replica(channel: Replica, mirror: Replica | None) -> Replica:
    """Pick the authoritative replica by embedded write-time timestamps."""
    if mirror is None:
        return channel

    channel_ts = payload_timestamp(channel.payloads)
    mirror_ts = payload_timestamp(mirror.payloads)
    if channel_ts is None or mirror_ts is None:
        logger.debug(
            "Timestamp missing (channel=%s, mirror=%s), using channel", channel_ts, mirror_ts
        )
        return channel
    if channel_ts > mirror_ts:
        logger.debug("Channel is newer (%d > %d)", channel_ts, mirror_ts)
        return channel
    logger.debug("Mirror is at least as new (%d <= %d)", channel_ts, mirror_ts)
    return mirror


class PasteReconciler:
    """Reads both replicas fresh on every paste and reconciles them."""

    def __init__(
        self,
        state: HarnessState,
        channel: TransferChannelAdapter,
        mirror: MirrorStore | None = None,
        *,
        capture_timeout: float = 2.0,
    ) -> None:
        self._state = state
        self._channel = channel
        self._mirror = mirror
        self._capture_timeout = capture_timeout

    async def read_channel(
        self, trigger: TriggerKind = TriggerKind.PROGRAMMATIC
    ) -> Replica | None:
        """Read the channel replica. None when it could not be read.

        A platform without a readable clipboard degrades to an empty replica.
        """
        try:
            if trigger == TriggerKind.KEYBOARD:
                raw = await self._channel.read_on_signal(self._capture_timeout)
            else:
                raw = await self._channel.read()
        except UnsupportedCapability as e:
            logger.warning("%s, treating clipboard as empty", e.message)
            raw = {}
        except CaptureRejected as e:
            logger.warning("Channel replica not read: %s", e.message)
            return None
        payloads, metadata = split_metadata(raw)
        return Replica(name=ReplicaName.CHANNEL, payloads=payloads, metadata=metadata)

    def read_mirror(self) -> Replica | None:
        """Read the mirror replica. None when disabled, empty or unavailable."""
        if self._mirror is None:
            return None
        try:
            return self._mirror.read_replica()
        except StorageUnavailable as e:
            logger.warning("Mirror unavailable, using channel only: %s", e.message)
            return None

    def reconcile(
        self, channel: Replica | None, mirror: Replica | None
    ) -> ReconcileResult | None:
        """Choose and classify. Records the classification in the state."""
        if channel is None:
            logger.error("Clipboard could not be read, paste aborted")
            return None

        chosen = choose_replica(channel, mirror)
        classification = classify(chosen.metadata, self._state.session_id)

        self._state.last_classification = classification
        self._state.last_paste_source = chosen.name
        logger.info(
            "Paste from %s replica: %s content", chosen.name.value, classification.value
        )
        return ReconcileResult(replica=chosen, classification=classification)

    async def paste(
        self, trigger: TriggerKind = TriggerKind.PROGRAMMATIC
    ) -> ReconcileResult | None:
        channel = await self.read_channel(trigger)
        mirror = self.read_mirror() if channel is not None else None
        return self.reconcile(channel, mirror)
