"""Clipboard harness types and dataclasses."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

Content = Union[str, bytes]
PayloadSet = dict[str, Content]


class FormatTag(str, Enum):
    """Format tags a payload set may carry."""

    TEXT = "text/plain"  # plain-text
    HTML = "text/html"  # rich-text, may carry the timestamp marker
    IMAGE = "image/png"  # binary
    CUSTOM = "application/x-shadow-workbook"  # custom-format

    # Transport-internal: JSON-encoded CopyMetadata inside the channel replica
    METADATA = "application/x-copy-metadata"


# User-visible formats, in the order the harness offers them
USER_FORMATS: tuple[FormatTag, ...] = (
    FormatTag.TEXT,
    FormatTag.HTML,
    FormatTag.IMAGE,
    FormatTag.CUSTOM,
)

BINARY_FORMATS: frozenset[str] = frozenset({FormatTag.IMAGE.value})


class CopyStatus(str, Enum):
    """Progress of a two-phase copy."""

    STARTED = "started"
    COMPLETED = "completed"


class Classification(Enum):
    """Provenance of pasted content."""

    SAME_SESSION = "same_session"
    CROSS_SESSION = "cross_session"
    EXTERNAL = "external"


class ReplicaName(str, Enum):
    """The two places copied content lives."""

    CHANNEL = "channel"  # ephemeral, system-wide, platform owned
    MIRROR = "mirror"  # persistent, same-origin, owned by MirrorStore


class TriggerKind(str, Enum):
    """What started a copy or paste."""

    KEYBOARD = "keyboard"
    PROGRAMMATIC = "programmatic"


@dataclass(frozen=True)
class CopyMetadata:
    """Who wrote a replica, and whether the copy had finished."""

    session_id: str
    copy_status: CopyStatus

    def to_dict(self) -> dict[str, str]:
        return {"sessionId": self.session_id, "copyStatus": self.copy_status.value}

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> CopyMetadata:
        """Build from the persisted JSON shape.

        Raises:
            ValueError: If required fields are missing or invalid.
        """
        session_id = data.get("sessionId")
        status = data.get("copyStatus")
        if not isinstance(session_id, str) or not session_id:
            raise ValueError("CopyMetadata.sessionId must be a non-empty string")
        if not isinstance(status, str):
            raise ValueError("CopyMetadata.copyStatus must be a string")
        return cls(session_id=session_id, copy_status=CopyStatus(status))

    @property
    def is_complete(self) -> bool:
        return self.copy_status == CopyStatus.COMPLETED


@dataclass
class Replica:
    """One PayloadSet + CopyMetadata pair as read from a replica.

    ``metadata`` is None when the replica carries no known origin.
    """

    name: ReplicaName
    payloads: PayloadSet = field(default_factory=dict)
    metadata: CopyMetadata | None = None


@dataclass(frozen=True)
class ExplicitFormat:
    """Selection policy: exactly this tag, even if absent."""

    tag: str


@dataclass(frozen=True)
class DefaultPriority:
    """Selection policy: first present tag from the priority order."""


SelectionPolicy = Union[ExplicitFormat, DefaultPriority]
