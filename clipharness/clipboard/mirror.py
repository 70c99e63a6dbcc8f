"""SQLite-backed mirror replica shared by every context of an origin."""
from __future__ import annotations

import asyncio
import logging
import sqlite3
from pathlib import Path

from clipharness.clipboard.events import StorageEvent, StorageEventHub, hub_for_origin
from clipharness.clipboard.formats import (
    decode_metadata,
    decode_payloads,
    encode_metadata,
    encode_payloads,
)
from clipharness.clipboard.types import CopyMetadata, PayloadSet, Replica, ReplicaName
from clipharness.core.constants import COPY_METADATA_KEY, COPY_PAYLOADS_KEY
from clipharness.core.errors import StorageUnavailable
from clipharness.core.secure_io import secure_mkdir, secure_touch

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS storage (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT
);
"""

WATCHED_KEYS: frozenset[str] = frozenset({COPY_METADATA_KEY, COPY_PAYLOADS_KEY})


class MirrorStore:
    """Persistent string-keyed store visible to all contexts of an origin.

    Each context opens its own MirrorStore on the shared database file.
    Mutations are announced on the origin's StorageEventHub to every other
    context; a context never receives its own changes.
    """

    def __init__(
        self,
        db_path: Path,
        context_id: str,
        hub: StorageEventHub | None = None,
    ) -> None:
        """Initialize storage.

        Args:
            db_path: Path to the origin's SQLite database file
            context_id: Identifies the writing context in change events
            hub: Change notification hub (defaults to the origin's shared hub)

        Raises:
            StorageUnavailable: If the database cannot be opened.
        """
        self._db_path = db_path
        self._context_id = context_id
        self._hub = hub if hub is not None else hub_for_origin(db_path)
        self._conn: sqlite3.Connection | None = None
        try:
            self._ensure_db()
        except (OSError, sqlite3.Error) as e:
            raise StorageUnavailable(f"Cannot open mirror store at {db_path}: {e}") from e

    def _ensure_db(self) -> None:
        """Create database and tables if they don't exist."""
        secure_mkdir(self._db_path.parent)
        secure_touch(self._db_path)

        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(SCHEMA_SQL)

        cur = self._conn.execute(
            "SELECT value FROM metadata WHERE key = 'schema_version'"
        )
        if cur.fetchone() is None:
            self._conn.execute(
                "INSERT OR IGNORE INTO metadata (key, value) VALUES (?, ?)",
                ("schema_version", str(SCHEMA_VERSION)),
            )
            self._conn.commit()

    @property
    def context_id(self) -> str:
        return self._context_id

    @property
    def hub(self) -> StorageEventHub:
        return self._hub

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageUnavailable("Mirror store is closed")
        return self._conn

    # --- Key-value operations ---

    def get(self, key: str) -> str | None:
        """Get value by key, or None if not found."""
        try:
            cur = self._connection().execute(
                "SELECT value FROM storage WHERE key = ?", (key,)
            )
            row = cur.fetchone()
        except sqlite3.Error as e:
            raise StorageUnavailable(f"Mirror read of '{key}' failed: {e}") from e
        return row[0] if row else None

    def put(self, key: str, value: str) -> None:
        """Set key to value and notify other contexts."""
        conn = self._connection()
        try:
            old_value = self.get(key)
            conn.execute(
                "INSERT INTO storage (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )
            conn.commit()
        except sqlite3.Error as e:
            raise StorageUnavailable(f"Mirror write of '{key}' failed: {e}") from e

        if old_value != value:
            self._hub.publish(self._context_id, StorageEvent(key, old_value, value))

    def remove(self, key: str) -> bool:
        """Delete key. Returns True if it existed."""
        conn = self._connection()
        try:
            old_value = self.get(key)
            cur = conn.execute("DELETE FROM storage WHERE key = ?", (key,))
            conn.commit()
        except sqlite3.Error as e:
            raise StorageUnavailable(f"Mirror removal of '{key}' failed: {e}") from e

        if cur.rowcount > 0:
            self._hub.publish(self._context_id, StorageEvent(key, old_value, None))
            return True
        return False

    # --- Replica layout ---

    def write_replica(self, payloads: PayloadSet, metadata: CopyMetadata) -> None:
        """Write metadata, then payloads. Two separate writes, not atomic."""
        self.put(COPY_METADATA_KEY, encode_metadata(metadata))
        self.put(COPY_PAYLOADS_KEY, encode_payloads(payloads))

    def read_replica(self) -> Replica | None:
        """Read the mirror replica. None when nothing has been mirrored.

        Raises:
            StorageUnavailable: If the store cannot be read or the payload
                layout is corrupt.
        """
        raw_metadata = self.get(COPY_METADATA_KEY)
        raw_payloads = self.get(COPY_PAYLOADS_KEY)
        if raw_metadata is None and raw_payloads is None:
            return None

        try:
            payloads = decode_payloads(raw_payloads)
        except ValueError as e:
            raise StorageUnavailable(f"Corrupt mirror payloads: {e}") from e
        return Replica(
            name=ReplicaName.MIRROR,
            payloads=payloads,
            metadata=decode_metadata(raw_metadata),
        )

    def clear_replica(self) -> None:
        """Remove both payloads and metadata."""
        self.remove(COPY_PAYLOADS_KEY)
        self.remove(COPY_METADATA_KEY)

    # --- Notifications ---

    def subscribe(
        self, keys: frozenset[str] = WATCHED_KEYS
    ) -> asyncio.Queue[StorageEvent]:
        """Watch keys for changes made by other contexts."""
        return self._hub.subscribe(self._context_id, keys)

    def unsubscribe(self, queue: asyncio.Queue[StorageEvent]) -> None:
        self._hub.unsubscribe(self._context_id, queue)

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None
