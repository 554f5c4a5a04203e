"""In-memory topic broker.

Single-process only. Keeps an explicit set of connection handles per topic and
delivers published frames to all of them.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Protocol

import structlog
from websockets.exceptions import ConnectionClosed

logger = structlog.get_logger(__name__)


class Subscriber(Protocol):
    async def send(self, message: str) -> None: ...


class TopicBroker:
    def __init__(self) -> None:
        self._topics: dict[str, set[Subscriber]] = {}

    def subscribe(self, topic: str, connection: Subscriber) -> None:
        self._topics.setdefault(topic, set()).add(connection)

    def unsubscribe(self, topic: str, connection: Subscriber) -> None:
        subscribers = self._topics.get(topic)
        if subscribers is None:
            return
        subscribers.discard(connection)
        if not subscribers:
            del self._topics[topic]

    def unsubscribe_all(self, connection: Subscriber) -> None:
        for topic in list(self._topics):
            self.unsubscribe(topic, connection)

    def subscribers(self, topic: str) -> frozenset[Subscriber]:
        return frozenset(self._topics.get(topic, ()))

    def topics(self) -> list[str]:
        return sorted(self._topics)

    async def publish(self, topic: str, frame: dict[str, Any]) -> int:
        """Send ``frame`` to every subscriber of ``topic``.

        Delivery is best-effort: subscribers whose connection turns out to be
        closed are dropped. Returns the number of successful deliveries.
        """
        subscribers = list(self._topics.get(topic, ()))
        if not subscribers:
            return 0

        data = json.dumps(frame)
        results = await asyncio.gather(
            *(self._deliver(topic, connection, data) for connection in subscribers)
        )
        return sum(results)

    async def _deliver(self, topic: str, connection: Subscriber, data: str) -> bool:
        try:
            await connection.send(data)
        except ConnectionClosed:
            logger.info("subscriber_dropped", topic=topic)
            self.unsubscribe(topic, connection)
            return False
        except Exception:
            logger.exception("delivery_failed", topic=topic)
            return False
        return True
