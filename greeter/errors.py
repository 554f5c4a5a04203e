"""Exceptions raised while routing and handling inbound frames."""

from __future__ import annotations


class GreeterError(Exception):
    """Base class for errors reported back to the originating client."""


class FrameError(GreeterError):
    """The client sent a frame that is not valid JSON or has an unknown shape."""


class UnknownDestinationError(GreeterError):
    def __init__(self, destination: str) -> None:
        super().__init__(f"No handler for destination {destination!r}")
        self.destination = destination


class InvalidPayloadError(GreeterError):
    """The frame body could not be converted into the route's message type."""
