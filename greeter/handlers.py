"""Greeting handler and the registry that maps destinations to handlers.

Handlers are plain async callables taking a validated message model and
returning another model. The :class:`MessageRouter` owns the mapping from an
inbound destination to ``(handler, message_type, send_to)`` and is populated
once at startup by :func:`build_router`.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from markupsafe import escape
from pydantic import BaseModel, ValidationError

from greeter.config import Settings
from greeter.errors import InvalidPayloadError, UnknownDestinationError
from greeter.messages import Greeting, HelloMessage

Handler = Callable[[Any], Awaitable[BaseModel]]


def html_escape(text: str) -> str:
    """Escape markup characters, using ``&quot;`` for double quotes."""
    return str(escape(text)).replace("&#34;", "&quot;")


class GreetingController:
    """Turns a :class:`HelloMessage` into a :class:`Greeting`."""

    def __init__(self, delay: float = 0.0) -> None:
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self.delay = delay

    async def greeting(self, message: HelloMessage) -> Greeting:
        if self.delay:
            await asyncio.sleep(self.delay)
        return Greeting(content="Hello, " + html_escape(message.name) + "!")


@dataclass(frozen=True)
class Route:
    destination: str
    handler: Handler
    message_type: type[BaseModel]
    send_to: str


class MessageRouter:
    def __init__(self) -> None:
        self._routes: dict[str, Route] = {}

    def add_route(
        self,
        destination: str,
        handler: Handler,
        *,
        send_to: str,
        message_type: type[BaseModel],
    ) -> None:
        if destination in self._routes:
            raise ValueError(f"Destination {destination!r} is already registered")
        self._routes[destination] = Route(destination, handler, message_type, send_to)

    def route(
        self, destination: str, *, send_to: str, message_type: type[BaseModel]
    ) -> Callable[[Handler], Handler]:
        """Decorator form of :meth:`add_route`."""

        def decorator(handler: Handler) -> Handler:
            self.add_route(
                destination, handler, send_to=send_to, message_type=message_type
            )
            return handler

        return decorator

    def get(self, destination: str) -> Route:
        try:
            return self._routes[destination]
        except KeyError:
            raise UnknownDestinationError(destination) from None

    def destinations(self) -> list[str]:
        return sorted(self._routes)

    async def dispatch(self, destination: str, body: Any) -> tuple[str, dict[str, Any]]:
        """Run the handler for ``destination`` and return ``(send_to, payload)``."""
        route = self.get(destination)
        try:
            message = route.message_type.model_validate(body)
        except ValidationError as exc:
            raise InvalidPayloadError(
                f"Invalid payload for {route.destination!r}: "
                f"{exc.error_count()} validation error(s)"
            ) from exc
        result = await route.handler(message)
        return route.send_to, result.model_dump()


def build_router(settings: Settings) -> MessageRouter:
    """Register the application's destinations."""
    router = MessageRouter()
    controller = GreetingController(delay=settings.greeting_delay)
    router.add_route(
        "/hello",
        controller.greeting,
        send_to=f"{settings.broker_prefix}/greetings",
        message_type=HelloMessage,
    )
    return router
