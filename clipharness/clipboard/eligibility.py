"""Which formats may be requested for a paste, given its provenance."""

from __future__ import annotations

from clipharness.clipboard.types import USER_FORMATS, Classification, FormatTag

ALL_FORMATS: frozenset[str] = frozenset(tag.value for tag in USER_FORMATS)

# Rich and binary content of unknown origin is not pasted
EXTERNAL_FORMATS: frozenset[str] = frozenset({FormatTag.TEXT.value, FormatTag.CUSTOM.value})

# Images are not trusted across session boundaries
CROSS_SESSION_FORMATS: frozenset[str] = ALL_FORMATS - {FormatTag.IMAGE.value}


def eligible_formats(classification: Classification | None) -> frozenset[str]:
    """Formats that may legally be requested next."""
    if classification == Classification.SAME_SESSION:
        return ALL_FORMATS
    if classification == Classification.CROSS_SESSION:
        return CROSS_SESSION_FORMATS
    return EXTERNAL_FORMATS


def is_eligible(tag: str, classification: Classification | None) -> bool:
    return tag in eligible_formats(classification)
