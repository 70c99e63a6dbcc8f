"""Format selection over a payload set."""

from __future__ import annotations

from clipharness.clipboard.types import (
    Content,
    DefaultPriority,
    ExplicitFormat,
    FormatTag,
    PayloadSet,
    SelectionPolicy,
)

# Richest first
DEFAULT_PRIORITY: tuple[str, ...] = (
    FormatTag.CUSTOM.value,
    FormatTag.HTML.value,
    FormatTag.TEXT.value,
    FormatTag.IMAGE.value,
)


def select_format(
    payloads: PayloadSet, policy: SelectionPolicy
) -> tuple[str, Content | None] | None:
    """Choose a concrete format from ``payloads``.

    ExplicitFormat always returns its tag, with None content when absent.
    DefaultPriority returns the first present tag of DEFAULT_PRIORITY, or
    None when none is present.
    """
    if isinstance(policy, ExplicitFormat):
        return policy.tag, payloads.get(policy.tag)
    if isinstance(policy, DefaultPriority):
        for tag in DEFAULT_PRIORITY:
            if tag in payloads:
                return tag, payloads[tag]
        return None
    raise TypeError(f"Unknown selection policy: {policy!r}")
