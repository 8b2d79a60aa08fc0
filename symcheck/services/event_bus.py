"""In-process pub/sub for intake events.

Subscribers get bounded queues. A subscriber that stops draining its queue
loses new events rather than holding up the publisher.
"""

import asyncio
import logging

from symcheck.config import EVENT_QUEUE_SIZE

logger = logging.getLogger(__name__)

ASSESSMENTS_TOPIC = "assessments"
NOTICES_TOPIC = "notices"


class EventBus:
    def __init__(self, maxsize: int = EVENT_QUEUE_SIZE) -> None:
        self.maxsize = maxsize
        self._topics: dict[str, set[asyncio.Queue]] = {}
        self._firehose: set[asyncio.Queue] = set()

    def subscribe_all(self) -> asyncio.Queue:
        """Queue receiving events from every topic."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.maxsize)
        self._firehose.add(queue)
        return queue

    def unsubscribe_all(self, queue: asyncio.Queue) -> None:
        self._firehose.discard(queue)

    def subscribe(self, topic: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.maxsize)
        self._topics.setdefault(topic, set()).add(queue)
        return queue

    def unsubscribe(self, topic: str, queue: asyncio.Queue) -> None:
        subscribers = self._topics.get(topic)
        if subscribers is None:
            return
        subscribers.discard(queue)
        if not subscribers:
            del self._topics[topic]

    def subscriber_count(self, topic: str) -> int:
        return len(self._topics.get(topic, ())) + len(self._firehose)

    async def publish(self, topic: str, event: dict) -> int:
        """Deliver a copy of ``event`` tagged with ``topic``. Returns how many queues took it."""
        delivered = 0
        for queue in (*self._topics.get(topic, ()), *self._firehose):
            try:
                queue.put_nowait({**event, "topic": topic})
            except asyncio.QueueFull:
                logger.warning("Dropping %s event for a full subscriber queue", topic)
                continue
            delivered += 1
        return delivered


event_bus = EventBus()
