"""Clipboard replicas, payload encoding, selection and eligibility.

Adapters, mirror, coordinator and reconciler live in their own modules
(``channel``, ``mirror``, ``coordinator``, ``reconciler``) and are imported
from there directly.
"""
from clipharness.clipboard.eligibility import eligible_formats, is_eligible
from clipharness.clipboard.formats import (
    parse_rich_text_timestamp,
    wrap_rich_text,
)
from clipharness.clipboard.selector import DEFAULT_PRIORITY, select_format
from clipharness.clipboard.types import (
    BINARY_FORMATS,
    USER_FORMATS,
    Classification,
    CopyMetadata,
    CopyStatus,
    DefaultPriority,
    ExplicitFormat,
    FormatTag,
    PayloadSet,
    Replica,
    ReplicaName,
    SelectionPolicy,
    TriggerKind,
)

__all__ = [
    "BINARY_FORMATS",
    "Classification",
    "CopyMetadata",
    "CopyStatus",
    "DEFAULT_PRIORITY",
    "DefaultPriority",
    "ExplicitFormat",
    "FormatTag",
    "PayloadSet",
    "Replica",
    "ReplicaName",
    "SelectionPolicy",
    "TriggerKind",
    "USER_FORMATS",
    "eligible_formats",
    "is_eligible",
    "parse_rich_text_timestamp",
    "select_format",
    "wrap_rich_text",
]
