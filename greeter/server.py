"""WebSocket transport.

Clients exchange JSON frames with the server::

    {"type": "subscribe", "destination": "/topic/greetings"}
    {"type": "unsubscribe", "destination": "/topic/greetings"}
    {"type": "send", "destination": "/app/hello", "body": {"name": "World"}}

and receive::

    {"type": "message", "destination": "/topic/greetings", "body": {...}}
    {"type": "error", "message": "..."}
"""

from __future__ import annotations

import asyncio
import json
from typing import Any
from urllib.parse import urlsplit

import structlog
from websockets.asyncio.server import ServerConnection, serve
from websockets.exceptions import ConnectionClosed

from greeter.broker import TopicBroker
from greeter.config import Settings
from greeter.errors import FrameError, GreeterError, UnknownDestinationError
from greeter.handlers import MessageRouter, build_router

logger = structlog.get_logger(__name__)


class GreetingServer:
    """Routes frames from WebSocket connections to handlers and the broker."""

    def __init__(
        self,
        router: MessageRouter,
        broker: TopicBroker,
        *,
        path: str = "/gs-guide-websocket",
        application_prefix: str = "/app",
        broker_prefix: str = "/topic",
    ) -> None:
        self.router = router
        self.broker = broker
        self.path = path
        self.application_prefix = application_prefix
        self.broker_prefix = broker_prefix
        self._tasks: set[asyncio.Task[None]] = set()

    @classmethod
    def from_settings(cls, settings: Settings) -> GreetingServer:
        return cls(
            build_router(settings),
            TopicBroker(),
            path=settings.ws_path,
            application_prefix=settings.application_prefix,
            broker_prefix=settings.broker_prefix,
        )

    async def handler(self, connection: ServerConnection) -> None:
        request_path = connection.request.path if connection.request else None
        endpoint = urlsplit(request_path).path if request_path is not None else None
        log = logger.bind(
            peer=str(connection.remote_address), connection_id=str(connection.id)
        )
        if endpoint != self.path:
            log.warning("unknown_endpoint", path=request_path)
            await connection.close(code=1008, reason="unknown endpoint")
            return

        log.info("connection_opened")
        try:
            async for raw in connection:
                try:
                    await self.handle_frame(connection, raw)
                except GreeterError as exc:
                    log.warning("frame_rejected", error=str(exc))
                    await self._send_error(connection, str(exc))
        except ConnectionClosed as exc:
            log.debug("connection_lost", code=exc.rcvd.code if exc.rcvd else None)
        finally:
            self.broker.unsubscribe_all(connection)
            log.info("connection_closed")

    async def handle_frame(self, connection: ServerConnection, raw: str | bytes) -> None:
        frame = self._parse(raw)
        frame_type = frame.get("type")
        if frame_type not in ("subscribe", "unsubscribe", "send"):
            raise FrameError(f"Unsupported frame type {frame_type!r}")
        destination = frame.get("destination")
        if not isinstance(destination, str):
            raise FrameError("Frame is missing a string 'destination'")

        if frame_type == "subscribe":
            self._check_topic(destination)
            self.broker.subscribe(destination, connection)
            logger.debug("subscribed", topic=destination)
        elif frame_type == "unsubscribe":
            self._check_topic(destination)
            self.broker.unsubscribe(destination, connection)
            logger.debug("unsubscribed", topic=destination)
        else:
            route_key = self._strip_application_prefix(destination)
            # Fail fast on unknown destinations before spawning a task.
            self.router.get(route_key)
            task = asyncio.create_task(
                self._dispatch(connection, route_key, frame.get("body"))
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _dispatch(
        self, connection: ServerConnection, destination: str, body: Any
    ) -> None:
        try:
            send_to, payload = await self.router.dispatch(destination, body)
        except GreeterError as exc:
            logger.warning("dispatch_rejected", destination=destination, error=str(exc))
            await self._send_error(connection, str(exc))
            return
        except Exception:
            logger.exception("dispatch_failed", destination=destination)
            await self._send_error(connection, "Message handling failed")
            return

        delivered = await self.broker.publish(
            send_to, {"type": "message", "destination": send_to, "body": payload}
        )
        logger.debug("published", topic=send_to, delivered=delivered)

    async def drain(self) -> None:
        """Wait for in-flight message handlers to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _parse(self, raw: str | bytes) -> dict[str, Any]:
        try:
            frame = json.loads(raw)
        except (TypeError, ValueError) as exc:
            raise FrameError("Frame is not valid JSON") from exc
        if not isinstance(frame, dict):
            raise FrameError("Frame must be a JSON object")
        return frame

    def _check_topic(self, destination: str) -> None:
        if not destination.startswith(self.broker_prefix + "/"):
            raise FrameError(
                f"Can only subscribe to destinations under {self.broker_prefix!r}"
            )

    def _strip_application_prefix(self, destination: str) -> str:
        if not self.application_prefix:
            return destination
        if not destination.startswith(self.application_prefix + "/"):
            raise UnknownDestinationError(destination)
        return destination[len(self.application_prefix):]

    @staticmethod
    async def _send_error(connection: ServerConnection, message: str) -> None:
        try:
            await connection.send(json.dumps({"type": "error", "message": message}))
        except ConnectionClosed:
            logger.debug("error_not_delivered", message=message)


async def run_server(settings: Settings) -> None:
    """Serve the WebSocket endpoint until cancelled."""
    greeting_server = GreetingServer.from_settings(settings)
    async with serve(greeting_server.handler, settings.ws_host, settings.ws_port) as server:
        logger.info("websocket_listening", url=settings.ws_url)
        await server.serve_forever()
