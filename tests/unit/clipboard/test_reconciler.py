"""Tests for paste reconciliation between the channel and mirror replicas."""

import asyncio
import logging

import pytest

from clipharness.clipboard.channel import DeferredCaptureAdapter, DirectAdapter
from clipharness.clipboard.events import StorageEventHub
from clipharness.clipboard.formats import attach_metadata, wrap_rich_text
from clipharness.clipboard.mirror import MirrorStore
from clipharness.clipboard.reconciler import PasteReconciler, choose_replica, classify
from clipharness.clipboard.types import (
    Classification,
    CopyMetadata,
    CopyStatus,
    Replica,
    ReplicaName,
    TriggerKind,
)
from clipharness.core.session import SessionIdentity
from clipharness.core.state import HarnessState
from clipharness.platform.buffer import SystemClipboard
from clipharness.platform.document import CaptureKind, Document

ME = "session-me"
OTHER = "session-other"


def _channel(ts: int | None, metadata: CopyMetadata | None = None) -> Replica:
    payloads = {"text/plain": "channel"}
    if ts is not None:
        payloads["text/html"] = wrap_rich_text("channel", ts)
    return Replica(ReplicaName.CHANNEL, payloads, metadata)


def _mirror(ts: int | None, metadata: CopyMetadata | None = None) -> Replica:
    payloads = {"text/plain": "mirror"}
    if ts is not None:
        payloads["text/html"] = wrap_rich_text("mirror", ts)
    return Replica(ReplicaName.MIRROR, payloads, metadata)


class TestClassify:
    """Tests for classify()."""

    def test_no_metadata_is_external(self) -> None:
        assert classify(None, ME) == Classification.EXTERNAL

    def test_own_session_id(self) -> None:
        metadata = CopyMetadata(ME, CopyStatus.COMPLETED)

        assert classify(metadata, ME) == Classification.SAME_SESSION

    def test_other_session_id(self) -> None:
        metadata = CopyMetadata(OTHER, CopyStatus.COMPLETED)

        assert classify(metadata, ME) == Classification.CROSS_SESSION

    def test_status_does_not_affect_classification(self) -> None:
        metadata = CopyMetadata(ME, CopyStatus.STARTED)

        assert classify(metadata, ME) == Classification.SAME_SESSION


class TestChooseReplica:
    """Tests for choose_replica()."""

    def test_no_mirror_uses_channel(self) -> None:
        assert choose_replica(_channel(1), None).name == ReplicaName.CHANNEL

    def test_newer_channel_wins(self) -> None:
        assert choose_replica(_channel(200), _mirror(100)).name == ReplicaName.CHANNEL

    def test_newer_mirror_wins(self) -> None:
        assert choose_replica(_channel(100), _mirror(200)).name == ReplicaName.MIRROR

    def test_equal_timestamps_use_mirror(self) -> None:
        assert choose_replica(_channel(100), _mirror(100)).name == ReplicaName.MIRROR

    @pytest.mark.parametrize(("channel_ts", "mirror_ts"), [(None, 100), (100, None), (None, None)])
    def test_missing_timestamp_uses_channel(
        self, channel_ts: int | None, mirror_ts: int | None
    ) -> None:
        chosen = choose_replica(_channel(channel_ts), _mirror(mirror_ts))

        assert chosen.name == ReplicaName.CHANNEL

    def test_unparsable_timestamp_uses_channel(self) -> None:
        channel = Replica(
            ReplicaName.CHANNEL, {"text/html": '<div data-copy-timestamp="later">x</div>'}
        )

        assert choose_replica(channel, _mirror(100)).name == ReplicaName.CHANNEL


@pytest.fixture
def state() -> HarnessState:
    return HarnessState(identity=SessionIdentity(ME))


@pytest.fixture
def document() -> Document:
    return Document.with_async_clipboard(SystemClipboard())


@pytest.fixture
def mirror(tmp_path):
    store = MirrorStore(tmp_path / "mirror.db", ME, StorageEventHub())
    yield store
    store.close()


class TestReconcile:
    """Tests for PasteReconciler.reconcile()."""

    def test_unreadable_channel_aborts(
        self, state: HarnessState, document: Document, caplog: pytest.LogCaptureFixture
    ) -> None:
        state.last_classification = Classification.SAME_SESSION
        reconciler = PasteReconciler(state, DirectAdapter(document))

        with caplog.at_level(logging.ERROR, logger="clipharness.clipboard.reconciler"):
            result = reconciler.reconcile(None, _mirror(100))

        assert result is None
        assert state.last_classification == Classification.SAME_SESSION
        assert any("paste aborted" in r.message for r in caplog.records)

    def test_records_classification_and_source(
        self, state: HarnessState, document: Document
    ) -> None:
        reconciler = PasteReconciler(state, DirectAdapter(document))
        mirror = _mirror(200, CopyMetadata(OTHER, CopyStatus.COMPLETED))

        result = reconciler.reconcile(_channel(100), mirror)

        assert result is not None
        assert result.source == ReplicaName.MIRROR
        assert result.classification == Classification.CROSS_SESSION
        assert state.last_classification == Classification.CROSS_SESSION
        assert state.last_paste_source == ReplicaName.MIRROR

    def test_classification_comes_from_chosen_replica(
        self, state: HarnessState, document: Document
    ) -> None:
        """Channel wins on timestamp, so the mirror's metadata is ignored."""
        reconciler = PasteReconciler(state, DirectAdapter(document))
        mirror = _mirror(100, CopyMetadata(ME, CopyStatus.COMPLETED))

        result = reconciler.reconcile(_channel(200), mirror)

        assert result is not None
        assert result.classification == Classification.EXTERNAL


class TestPaste:
    """Tests for PasteReconciler.paste() reading both replicas."""

    @pytest.mark.asyncio
    async def test_reads_channel_metadata(self, state: HarnessState, document: Document) -> None:
        document.clipboard.replace(
            attach_metadata({"text/plain": "x"}, CopyMetadata(ME, CopyStatus.COMPLETED))
        )
        reconciler = PasteReconciler(state, DeferredCaptureAdapter(document))

        result = await reconciler.paste()

        assert result is not None
        assert result.source == ReplicaName.CHANNEL
        assert result.replica.payloads == {"text/plain": "x"}
        assert result.classification == Classification.SAME_SESSION

    @pytest.mark.asyncio
    async def test_mirror_wins_on_equal_timestamps(
        self, state: HarnessState, document: Document, mirror: MirrorStore
    ) -> None:
        html = wrap_rich_text("x", 1000)
        metadata = CopyMetadata(OTHER, CopyStatus.COMPLETED)
        document.clipboard.replace(attach_metadata({"text/html": html}, metadata))
        mirror.write_replica(
            {"text/html": html, "application/x-shadow-workbook": "{}"}, metadata
        )
        reconciler = PasteReconciler(state, DeferredCaptureAdapter(document), mirror)

        result = await reconciler.paste()

        assert result is not None
        assert result.source == ReplicaName.MIRROR
        assert "application/x-shadow-workbook" in result.replica.payloads

    @pytest.mark.asyncio
    async def test_empty_mirror_uses_channel(
        self, state: HarnessState, document: Document, mirror: MirrorStore
    ) -> None:
        document.clipboard.replace({"text/plain": "outside"})
        reconciler = PasteReconciler(state, DeferredCaptureAdapter(document), mirror)

        result = await reconciler.paste()

        assert result is not None
        assert result.source == ReplicaName.CHANNEL
        assert result.classification == Classification.EXTERNAL

    @pytest.mark.asyncio
    async def test_corrupt_mirror_falls_back_to_channel(
        self,
        state: HarnessState,
        document: Document,
        mirror: MirrorStore,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        document.clipboard.replace({"text/plain": "outside"})
        mirror.put("CopyPayloads", "{corrupt")
        reconciler = PasteReconciler(state, DeferredCaptureAdapter(document), mirror)

        with caplog.at_level(logging.WARNING, logger="clipharness.clipboard.reconciler"):
            result = await reconciler.paste()

        assert result is not None
        assert result.source == ReplicaName.CHANNEL
        assert any("Mirror unavailable" in r.message for r in caplog.records)

    @pytest.mark.asyncio
    async def test_declined_capture_aborts(self, state: HarnessState) -> None:
        document = Document(SystemClipboard(), honors_exec_command=False)
        reconciler = PasteReconciler(state, DeferredCaptureAdapter(document))

        assert await reconciler.paste() is None
        assert state.last_classification is None

    @pytest.mark.asyncio
    async def test_keyboard_paste_reads_inside_signal(
        self, state: HarnessState, document: Document
    ) -> None:
        document.clipboard.replace({"text/plain": "typed"})
        reconciler = PasteReconciler(state, DeferredCaptureAdapter(document), capture_timeout=1.0)

        task = asyncio.create_task(reconciler.paste(TriggerKind.KEYBOARD))
        while not document.has_listener(CaptureKind.PASTE):
            await asyncio.sleep(0)
        document.press_shortcut(CaptureKind.PASTE)
        result = await task

        assert result is not None
        assert result.replica.payloads == {"text/plain": "typed"}

    @pytest.mark.asyncio
    async def test_missing_async_clipboard_reads_as_empty(
        self, state: HarnessState, caplog: pytest.LogCaptureFixture
    ) -> None:
        clipboard = SystemClipboard()
        clipboard.replace({"text/plain": "invisible"})
        reconciler = PasteReconciler(state, DirectAdapter(Document(clipboard)))

        with caplog.at_level(logging.WARNING, logger="clipharness.clipboard.reconciler"):
            result = await reconciler.paste()

        assert result is not None
        assert result.replica.payloads == {}
        assert result.classification == Classification.EXTERNAL
        assert any("treating clipboard as empty" in r.message for r in caplog.records)

    @pytest.mark.asyncio
    async def test_keyboard_paste_without_signal_aborts(
        self, state: HarnessState, document: Document, caplog: pytest.LogCaptureFixture
    ) -> None:
        reconciler = PasteReconciler(state, DirectAdapter(document), capture_timeout=0.01)

        with caplog.at_level(logging.WARNING, logger="clipharness.clipboard.reconciler"):
            result = await reconciler.paste(TriggerKind.KEYBOARD)

        assert result is None
        assert not document.has_listener(CaptureKind.PASTE)
        assert any("signal did not fire" in r.message for r in caplog.records)
