"""Payload encoding shared by both replicas.

Covers the three encodings the replicas agree on:

- the rich-text timestamp marker (``data-copy-timestamp`` wrapper attribute)
- CopyMetadata JSON, piggy-backed into the channel under a reserved tag
- the mirror's text-only payload layout (binary formats base64-encoded)
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import re
import time

from clipharness.clipboard.types import (
    BINARY_FORMATS,
    CopyMetadata,
    FormatTag,
    PayloadSet,
)

logger = logging.getLogger(__name__)

TIMESTAMP_ATTRIBUTE = "data-copy-timestamp"

_TIMESTAMP_PATTERN = re.compile(
    TIMESTAMP_ATTRIBUTE + r"""\s*=\s*["']([^"']*)["']"""
)


def now_ms() -> int:
    """Current wall-clock time in integer milliseconds."""
    return int(time.time() * 1000)


def wrap_rich_text(html: str, created_at_ms: int | None = None) -> str:
    """Wrap rich text in a marker element carrying its write time."""
    stamp = now_ms() if created_at_ms is None else created_at_ms
    return f'<div {TIMESTAMP_ATTRIBUTE}="{stamp}">{html}</div>'


def parse_rich_text_timestamp(html: str | bytes | None) -> int | None:
    """Extract the write-time timestamp from a rich-text payload.

    Returns None when the payload is absent, has no marker, or the marker
    value is not an integer.
    """
    if html is None:
        return None
    if isinstance(html, bytes):
        try:
            html = html.decode("utf-8")
        except UnicodeDecodeError:
            return None
    match = _TIMESTAMP_PATTERN.search(html)
    if match is None:
        return None
    try:
        return int(match.group(1))
    except ValueError:
        logger.debug("Unparsable rich-text timestamp: %r", match.group(1))
        return None


def payload_timestamp(payloads: PayloadSet) -> int | None:
    """Timestamp embedded in a payload set's rich-text entry, if any."""
    return parse_rich_text_timestamp(payloads.get(FormatTag.HTML.value))


# --- CopyMetadata JSON ---


def encode_metadata(metadata: CopyMetadata) -> str:
    return json.dumps(metadata.to_dict())


def decode_metadata(raw: str | bytes | None) -> CopyMetadata | None:
    """Decode metadata JSON. Malformed metadata counts as absent."""
    if raw is None or raw == "":
        return None
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("Ignoring malformed copy metadata: %.100r", raw)
        return None
    if not isinstance(data, dict):
        logger.warning("Ignoring copy metadata that is not an object: %.100r", raw)
        return None
    try:
        return CopyMetadata.from_dict(data)
    except ValueError as e:
        logger.warning("Ignoring invalid copy metadata: %s", e)
        return None


def attach_metadata(payloads: PayloadSet, metadata: CopyMetadata) -> PayloadSet:
    """Return a copy of ``payloads`` with metadata under the reserved tag."""
    result = dict(payloads)
    result[FormatTag.METADATA.value] = encode_metadata(metadata)
    return result


def split_metadata(payloads: PayloadSet) -> tuple[PayloadSet, CopyMetadata | None]:
    """Separate user content from the reserved metadata tag."""
    content = dict(payloads)
    raw = content.pop(FormatTag.METADATA.value, None)
    return content, decode_metadata(raw)


# --- Mirror layout ---


def encode_payloads(payloads: PayloadSet) -> str:
    """Encode a payload set as the mirror's JSON object of strings."""
    encoded: dict[str, str] = {}
    for tag, content in payloads.items():
        if tag in BINARY_FORMATS:
            raw = content.encode("utf-8") if isinstance(content, str) else content
            encoded[tag] = base64.b64encode(raw).decode("ascii")
        elif isinstance(content, bytes):
            encoded[tag] = content.decode("utf-8", errors="replace")
        else:
            encoded[tag] = content
    return json.dumps(encoded)


def decode_payloads(raw: str | None) -> PayloadSet:
    """Decode the mirror's JSON payload layout.

    Raises:
        ValueError: If the JSON is malformed or a binary entry is not base64.
    """
    if raw is None or raw == "":
        return {}
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError(f"Expected object of payloads, got {type(data).__name__}")

    payloads: PayloadSet = {}
    for tag, value in data.items():
        if not isinstance(value, str):
            raise ValueError(f"Payload '{tag}' is not a string")
        if tag in BINARY_FORMATS:
            try:
                payloads[tag] = base64.b64decode(value, validate=True)
            except binascii.Error as e:
                raise ValueError(f"Payload '{tag}' is not valid base64: {e}") from e
        else:
            payloads[tag] = value
    return payloads
