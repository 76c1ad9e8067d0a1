"""
In-process publish/subscribe channel for gateway lifecycle events.
"""

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import sys
import os

# Add shared directory to path
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..', '..'))

from shared.logging import get_logger


WIDGET_RESPONSE = "widgetResponse"
WIDGET_ERROR = "widgetError"


@dataclass(frozen=True)
class WidgetEvent:
    """A single published event."""
    topic: str
    payload: Dict[str, Any]
    timestamp: float = field(default_factory=time.time)


class Subscription:
    """A subscriber's bounded mailbox on one topic.

    Iterate with ``async for`` or call ``get()``; ``close()`` detaches it
    from the channel.
    """

    def __init__(self, channel: "EventChannel", topic: str, maxsize: int):
        self.subscription_id = str(uuid.uuid4())
        self.topic = topic
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0
        self._channel = channel

    async def get(self) -> WidgetEvent:
        return await self.queue.get()

    def get_nowait(self) -> WidgetEvent:
        return self.queue.get_nowait()

    def pending(self) -> int:
        return self.queue.qsize()

    def close(self) -> None:
        self._channel.unsubscribe(self)

    def __aiter__(self):
        return self

    async def __anext__(self) -> WidgetEvent:
        return await self.queue.get()


class EventChannel:
    """Topic-based channel with non-blocking, at-most-once delivery.

    ``publish`` never waits: an event is offered to every current subscriber
    of the topic and dropped for any subscriber whose mailbox is full. Events
    published with no subscribers are discarded; there is no replay.
    """

    def __init__(self, default_queue_size: int = 100):
        self.default_queue_size = default_queue_size
        self.logger = get_logger("gateway.events")
        self._subscribers: Dict[str, List[Subscription]] = {}
        self.published_events = 0
        self.dropped_events = 0

    def subscribe(self, topic: str, maxsize: Optional[int] = None) -> Subscription:
        subscription = Subscription(self, topic, maxsize or self.default_queue_size)
        self._subscribers.setdefault(topic, []).append(subscription)

        self.logger.info(
            "Event subscription created",
            topic=topic,
            subscription_id=subscription.subscription_id,
            subscriber_count=len(self._subscribers[topic])
        )
        return subscription

    def unsubscribe(self, subscription: Subscription) -> bool:
        subscribers = self._subscribers.get(subscription.topic)
        if not subscribers or subscription not in subscribers:
            return False

        subscribers.remove(subscription)
        if not subscribers:
            del self._subscribers[subscription.topic]

        self.logger.info(
            "Event subscription removed",
            topic=subscription.topic,
            subscription_id=subscription.subscription_id
        )
        return True

    def publish(self, topic: str, payload: Dict[str, Any]) -> int:
        """Offer an event to the topic's subscribers; returns the delivery count."""
        event = WidgetEvent(topic=topic, payload=payload)
        self.published_events += 1

        delivered = 0
        for subscription in list(self._subscribers.get(topic, ())):
            try:
                subscription.queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                subscription.dropped += 1
                self.dropped_events += 1
                self.logger.warning(
                    "Event dropped for slow subscriber",
                    topic=topic,
                    subscription_id=subscription.subscription_id
                )

        return delivered

    def subscriber_count(self, topic: Optional[str] = None) -> int:
        if topic is not None:
            return len(self._subscribers.get(topic, ()))
        return sum(len(subs) for subs in self._subscribers.values())
