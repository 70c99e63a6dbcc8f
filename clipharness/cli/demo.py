"""Two-context demo scenarios."""

from __future__ import annotations

import argparse
import logging
import tempfile
from pathlib import Path

from rich.console import Console
from rich.table import Table

from clipharness.clipboard.types import DefaultPriority, ExplicitFormat, FormatTag, SelectionPolicy
from clipharness.config.schema import HarnessConfig
from clipharness.core.utils import preview
from clipharness.harness.app import ClipboardHarness, PasteOutcome
from clipharness.harness.sink import ConsoleSink
from clipharness.platform.buffer import SystemClipboard
from clipharness.platform.document import Document, PermissionState

logger = logging.getLogger(__name__)

EXTERNAL_TEXT = "Copied from another application"


def _document(clipboard: SystemClipboard) -> Document:
    return Document.with_async_clipboard(
        clipboard,
        permissions={
            "clipboard-read": PermissionState.PROMPT,
            "clipboard-write": PermissionState.GRANTED,
        },
    )


def _outcome_table(scenario: str, outcome: PasteOutcome, harness: ClipboardHarness) -> Table:
    table = Table(title=f"Scenario: {scenario}", show_header=False)
    table.add_column("field", style="bold")
    table.add_column("value")
    table.add_row("classification", outcome.classification.value if outcome.classification else "-")
    table.add_row("source replica", outcome.source.value if outcome.source else "-")
    table.add_row("format", outcome.tag or "-")
    table.add_row("denied", "yes" if outcome.denied else "no")
    table.add_row("content", preview(outcome.content, 60))
    table.add_row("eligible next", ", ".join(sorted(harness.eligible_formats)))
    return table


async def run_demo(
    config: HarnessConfig,
    args: argparse.Namespace,
    console: Console,
) -> int:
    """Run one scenario. Returns process exit code."""
    with tempfile.TemporaryDirectory(prefix="clipharness-") as tmp:
        if not config.mirror.path:
            mirror = config.mirror.model_copy(update={"path": str(Path(tmp) / "mirror.db")})
            config = config.model_copy(update={"mirror": mirror})
        logger.debug("Demo mirror at %s", config.mirror.path)

        clipboard = SystemClipboard()
        sink_a = ConsoleSink(console, "tab-a")
        sink_b = ConsoleSink(console, "tab-b")
        level = logging.DEBUG if args.verbose else logging.INFO

        tab_a = ClipboardHarness(config, _document(clipboard), sink=sink_a, log_level=level)
        tab_b = ClipboardHarness(config, _document(clipboard), sink=sink_b, log_level=level)

        formats = args.formats
        if args.scenario == "clear":
            formats = []

        policy: SelectionPolicy = (
            ExplicitFormat(args.paste_format) if args.paste_format else DefaultPriority()
        )

        async with tab_a, tab_b:
            if args.scenario == "external":
                clipboard.replace({FormatTag.TEXT.value: EXTERNAL_TEXT})
                paster = tab_b
            else:
                copier = tab_a
                if args.keyboard:
                    await copier.keyboard_copy(formats)
                else:
                    await copier.copy(formats)
                await copier.wait_idle()
                paster = tab_a if args.scenario == "same-session" else tab_b
                await paster.wait_idle()

            if args.keyboard:
                outcome = await paster.keyboard_paste(policy)
            else:
                outcome = await paster.paste(policy)

            console.print(_outcome_table(args.scenario, outcome, paster))

    return 0 if outcome.pasted or args.scenario == "clear" else 1
