"""Fan-out of full-collection snapshots to live subscribers."""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SnapshotBroadcaster(Generic[T]):
    """Deliver every published snapshot to each active subscriber.

    Each snapshot is a complete value, so a slow subscriber whose queue is
    full drops its oldest pending snapshot rather than blocking publishers.
    """

    def __init__(self, queue_size: int = 16) -> None:
        self._queue_size = queue_size
        self._subscribers: set[asyncio.Queue[T]] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, snapshot: T) -> None:
        for queue in list(self._subscribers):
            if queue.full():
                try:
                    queue.get_nowait()
                except asyncio.QueueEmpty:
                    pass
            queue.put_nowait(snapshot)

    async def subscribe(self, initial: T | None = None) -> AsyncIterator[T]:
        """Yield snapshots until the consumer stops iterating."""

        queue: asyncio.Queue[T] = asyncio.Queue(maxsize=self._queue_size)
        if initial is not None:
            queue.put_nowait(initial)
        self._subscribers.add(queue)
        logger.debug("Subscriber attached (%d active)", len(self._subscribers))
        try:
            while True:
                yield await queue.get()
        finally:
            self._subscribers.discard(queue)
            logger.debug("Subscriber detached (%d active)", len(self._subscribers))
