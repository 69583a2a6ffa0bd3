import asyncio
import logging

logger = logging.getLogger(__name__)

SUBSCRIBER_QUEUE_SIZE = 100


def order_update_topic(order_id) -> str:
    return f"order_update_{order_id}"


class EventBroadcaster:
    """
    In-process fan-out of state-change events to connected listeners.

    Delivery is best-effort and at-most-once: a subscriber whose queue is
    full misses the event. Events are hints; the store is the source of truth.
    """

    def __init__(self, queue_size: int = SUBSCRIBER_QUEUE_SIZE):
        self._queue_size = queue_size
        self._subscribers: dict[asyncio.Queue, frozenset | None] = {}

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, topics=None) -> asyncio.Queue:
        queue = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers[queue] = frozenset(topics) if topics else None
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.pop(queue, None)

    def publish(self, topic: str, payload: dict) -> int:
        """Returns how many subscribers the event was queued for."""
        delivered = 0
        event = {"event": topic, "data": payload}
        for queue, topics in list(self._subscribers.items()):
            if topics is not None and topic not in topics:
                continue
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning("BROADCAST_DROPPED topic=%s", topic)
        return delivered


def broadcast_safely(broadcaster: EventBroadcaster | None, topic: str, payload: dict) -> None:
    # Broadcast must NEVER fail a committed operation
    if broadcaster is None:
        return
    try:
        broadcaster.publish(topic, payload)
    except Exception:
        logger.exception("BROADCAST_ERROR topic=%s", topic)
