"""Shared utility functions for clipharness."""

from typing import Any


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge dicts. Override values take precedence.

    Merge rules:
    - Dicts are recursively merged
    - Lists are REPLACED (override wins completely)
    - Other values are overwritten

    Lists are replaced so a local config can narrow `copy_formats` set
    globally.

    Args:
        base: Base dictionary.
        override: Dictionary with values to overlay.

    Returns:
        New merged dictionary (original dicts not modified).
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def preview(content: str | bytes | None, limit: int = 40) -> str:
    """Short single-line description of clipboard content for log lines."""
    if content is None:
        return "<none>"
    if isinstance(content, bytes):
        return f"<{len(content)} bytes>"
    text = content.replace("\n", "\\n")
    if len(text) > limit:
        return f"{text[:limit - 3]}..."
    return text
