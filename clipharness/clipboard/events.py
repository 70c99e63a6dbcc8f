"""Per-origin change notification for the mirror store.

Every context of an origin subscribes to the same StorageEventHub. When one
context mutates a key, all *other* subscribed contexts receive a
StorageEvent; the writer never hears about its own writes.

Example:
    hub = StorageEventHub()
    queue = hub.subscribe("tab-b", keys={"CopyMetadata"})

    hub.publish("tab-a", StorageEvent("CopyMetadata", None, '{"sessionId": ...}'))

    event = await queue.get()
    hub.unsubscribe("tab-b", queue)
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageEvent:
    """A key changed in another context. ``new_value`` is None on removal."""

    key: str
    old_value: str | None
    new_value: str | None


@dataclass
class SubscriberState:
    """Tracks state for an individual subscriber.

    Attributes:
        queue: Queue delivering events to the subscriber.
        keys: Watched keys, or None to watch every key.
        consecutive_drops: Count of consecutive dropped events (slow consumer).
    """

    queue: asyncio.Queue[StorageEvent] = field(default_factory=lambda: asyncio.Queue())
    keys: frozenset[str] | None = None
    consecutive_drops: int = 0


class StorageEventHub:
    """Fan-out of storage changes to the other contexts of one origin.

    Queues are bounded; a subscriber whose queue stays full for
    ``drop_limit`` consecutive events is disconnected.
    """

    def __init__(self, max_queue_size: int = 100, drop_limit: int = 10) -> None:
        # context_id -> (queue -> SubscriberState)
        self._subscribers: dict[str, dict[asyncio.Queue[StorageEvent], SubscriberState]] = (
            defaultdict(dict)
        )
        self._max_queue_size = max_queue_size
        self._drop_limit = drop_limit

    def subscribe(
        self, context_id: str, keys: set[str] | frozenset[str] | None = None
    ) -> asyncio.Queue[StorageEvent]:
        """Create a subscription queue for a context."""
        queue: asyncio.Queue[StorageEvent] = asyncio.Queue(maxsize=self._max_queue_size)
        state = SubscriberState(
            queue=queue,
            keys=frozenset(keys) if keys is not None else None,
        )
        self._subscribers[context_id][queue] = state
        return queue

    def unsubscribe(self, context_id: str, queue: asyncio.Queue[StorageEvent]) -> None:
        """Remove a subscription. Safe to call for unknown queues."""
        subs = self._subscribers.get(context_id)
        if subs is None:
            return
        subs.pop(queue, None)
        if not subs:
            del self._subscribers[context_id]

    def publish(self, source_context_id: str, event: StorageEvent) -> int:
        """Deliver ``event`` to every context except the source.

        Returns:
            Number of queues the event was delivered to.
        """
        delivered = 0
        for context_id, subs in list(self._subscribers.items()):
            if context_id == source_context_id:
                continue
            for queue, state in list(subs.items()):
                if state.keys is not None and event.key not in state.keys:
                    continue
                try:
                    queue.put_nowait(event)
                    state.consecutive_drops = 0
                    delivered += 1
                except asyncio.QueueFull:
                    state.consecutive_drops += 1
                    if state.consecutive_drops >= self._drop_limit:
                        logger.warning(
                            "Disconnecting slow storage subscriber in context %s", context_id
                        )
                        subs.pop(queue, None)
            if not subs:
                self._subscribers.pop(context_id, None)
        return delivered

    def subscriber_count(self, context_id: str | None = None) -> int:
        if context_id is not None:
            subs = self._subscribers.get(context_id)
            return len(subs) if subs else 0
        return sum(len(subs) for subs in self._subscribers.values())


# One hub per origin (mirror database path) within this process
_origin_hubs: dict[Path, StorageEventHub] = {}


def hub_for_origin(db_path: Path) -> StorageEventHub:
    """Get the shared hub for the origin whose mirror lives at ``db_path``."""
    key = db_path.resolve()
    hub = _origin_hubs.get(key)
    if hub is None:
        hub = StorageEventHub()
        _origin_hubs[key] = hub
    return hub
