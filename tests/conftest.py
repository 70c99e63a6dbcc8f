"""Shared pytest fixtures and configuration for pytest."""

import asyncio
from collections.abc import Callable
from pathlib import Path

import pytest

from clipharness.config.schema import HarnessConfig
from clipharness.harness.app import ClipboardHarness
from clipharness.harness.sink import RecordingSink
from clipharness.platform.buffer import SystemClipboard
from clipharness.platform.document import Document


@pytest.fixture
def clipboard() -> SystemClipboard:
    """The system clipboard shared by every document in a test."""
    return SystemClipboard()


@pytest.fixture
def mirror_path(tmp_path: Path) -> Path:
    """Mirror database for one origin."""
    return tmp_path / "origin" / "mirror.db"


@pytest.fixture
def make_config(mirror_path: Path) -> Callable[..., HarnessConfig]:
    """Build a HarnessConfig pointing at the test's mirror database."""

    def _make(**overrides: object) -> HarnessConfig:
        data: dict[str, object] = {"mirror": {"path": str(mirror_path)}}
        data.update(overrides)
        return HarnessConfig.model_validate(data)

    return _make


@pytest.fixture
def make_harness(
    clipboard: SystemClipboard, make_config: Callable[..., HarnessConfig]
) -> Callable[..., ClipboardHarness]:
    """Build (unstarted) harnesses sharing the clipboard and mirror origin.

    Use ``async with`` on the result to start and stop it.
    """

    def _make(
        config: HarnessConfig | None = None,
        *,
        document: Document | None = None,
        **kwargs: object,
    ) -> ClipboardHarness:
        kwargs.setdefault("sink", RecordingSink())
        return ClipboardHarness(
            config or make_config(),
            document or Document.with_async_clipboard(clipboard),
            **kwargs,  # type: ignore[arg-type]
        )

    return _make


@pytest.fixture
def settle() -> Callable[..., object]:
    """Let storage notifications reach other harnesses and be handled."""

    async def _settle(*harnesses: ClipboardHarness) -> None:
        for _ in range(5):
            await asyncio.sleep(0)
            for harness in harnesses:
                await harness.wait_idle()

    return _settle
