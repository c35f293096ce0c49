"""EventManager - fans card changes out to each owner's open streams."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict

from .models import Event

logger = logging.getLogger(__name__)


def owner_channel(owner_id: str) -> str:
    return f"owner:{owner_id}"


class EventManager:
    """In-memory pub/sub keyed by owner.

    Every open stream holds a bounded queue. A stream that falls behind loses
    events instead of blocking the writer; clients reload on reconnect.
    """

    def __init__(self, queue_size: int = 100) -> None:
        self.queue_size = queue_size
        self._streams: dict[str, set[asyncio.Queue]] = defaultdict(set)

    def subscribers(self, owner_id: str) -> int:
        return len(self._streams.get(owner_channel(owner_id), ()))

    async def subscribe(self, owner_id: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self._streams[owner_channel(owner_id)].add(queue)
        return queue

    async def unsubscribe(self, owner_id: str, queue: asyncio.Queue) -> None:
        channel = owner_channel(owner_id)
        streams = self._streams.get(channel)
        if streams is None:
            return
        streams.discard(queue)
        if not streams:
            del self._streams[channel]

    async def publish(self, owner_id: str, event: Event) -> int:
        """Queue ``event`` on every stream of the owner. Returns how many got it."""
        event.channel = owner_channel(owner_id)
        delivered = 0
        for queue in list(self._streams.get(event.channel, ())):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.debug("Dropping %s for slow stream on %s", event.event_type, event.channel)
                continue
            delivered += 1
        return delivered


# Singleton instance
event_manager = EventManager()
