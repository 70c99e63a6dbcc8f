"""Session identity for the current execution context."""

from __future__ import annotations

import uuid


class SessionIdentity:
    """Lazily generated, stable identifier for one execution context.

    The id is created on first access and never changes afterwards. Ids are
    opaque: callers compare them for equality and nothing else.

    Example:
        identity = SessionIdentity()
        identity.session_id  # "3f0c..." (same value on every access)
    """

    def __init__(self, session_id: str | None = None) -> None:
        self._session_id = session_id

    @property
    def session_id(self) -> str:
        if self._session_id is None:
            self._session_id = str(uuid.uuid4())
        return self._session_id

    def matches(self, other: str | None) -> bool:
        """Check if ``other`` identifies this session."""
        return other is not None and other == self.session_id

    def __repr__(self) -> str:
        return f"SessionIdentity({self._session_id!r})"
