"""Mutable per-context harness state.

One HarnessState is owned by the harness and passed by reference to the
copy coordinator, the paste reconciler and the eligibility gate.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from clipharness.clipboard.types import Classification, CopyMetadata, ReplicaName
from clipharness.core.session import SessionIdentity


@dataclass
class HarnessState:
    """State for one execution context.

    Attributes:
        identity: The context's session identity.
        last_copy_metadata: Metadata of the most recent copy this context
            wrote or was notified about; None after a clear.
        last_classification: Classification of the most recent paste (or
            notified copy); None when nothing has been observed.
        last_paste_source: Replica the most recent paste came from.
        permissions: Advisory permission answers, by capability name.
        copy_seq: Local counter for copy operations (logging only).
    """

    identity: SessionIdentity = field(default_factory=SessionIdentity)
    last_copy_metadata: CopyMetadata | None = None
    last_classification: Classification | None = None
    last_paste_source: ReplicaName | None = None
    permissions: dict[str, str] = field(default_factory=dict)
    copy_seq: int = 0

    @property
    def session_id(self) -> str:
        return self.identity.session_id

    def next_copy_seq(self) -> int:
        self.copy_seq += 1
        return self.copy_seq
