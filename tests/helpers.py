from __future__ import annotations

import asyncio
import json
from typing import Any

from websockets.exceptions import ConnectionClosedOK

from greeter.broker import TopicBroker


class FakeConnection:
    """Stand-in for a WebSocket connection that records what it was sent."""

    def __init__(self, closed: bool = False) -> None:
        self.closed = closed
        self.sent: list[str] = []

    async def send(self, message: str) -> None:
        if self.closed:
            raise ConnectionClosedOK(None, None)
        self.sent.append(message)

    def frames(self) -> list[dict[str, Any]]:
        return [json.loads(m) for m in self.sent]


async def wait_for_subscribers(broker: TopicBroker, topic: str, count: int) -> None:
    for _ in range(200):
        if len(broker.subscribers(topic)) == count:
            return
        await asyncio.sleep(0.01)
    raise AssertionError(
        f"expected {count} subscriber(s) on {topic}, "
        f"found {len(broker.subscribers(topic))}"
    )
