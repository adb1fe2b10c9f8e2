# in-process pub/sub for live tally updates, independent of the transport
import asyncio
import logging
from typing import Callable, Set

from .models import TallyUpdate

logger = logging.getLogger(__name__)


class Subscription:
    """Async iterator of TallyUpdate events for one observer."""

    def __init__(self, channel: "BroadcastChannel", queue: asyncio.Queue):
        self._channel = channel
        self._queue = queue

    def __aiter__(self):
        return self

    async def __anext__(self) -> TallyUpdate:
        return await self._queue.get()

    def close(self) -> None:
        self._channel._drop(self._queue)


class BroadcastChannel:
    """
    Every subscriber first gets snapshot() so it never waits for a vote to
    see the current state. Events are full state, so when a slow observer's
    queue is full the oldest event is dropped.
    """

    def __init__(self, snapshot: Callable[[], TallyUpdate], max_pending: int = 16):
        self._snapshot = snapshot
        self._max_pending = max_pending
        self._queues: Set[asyncio.Queue] = set()

    def __len__(self) -> int:
        return len(self._queues)

    def subscribe(self) -> Subscription:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_pending)
        queue.put_nowait(self._snapshot())
        self._queues.add(queue)
        logger.info(f"Observer subscribed ({len(self._queues)} connected)")
        return Subscription(self, queue)

    def publish(self, update: TallyUpdate) -> int:
        """Fan out to all current subscribers. Returns how many got it."""
        for queue in list(self._queues):
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(update)
        return len(self._queues)

    def _drop(self, queue: asyncio.Queue) -> None:
        if queue in self._queues:
            self._queues.discard(queue)
            logger.info(f"Observer unsubscribed ({len(self._queues)} connected)")
