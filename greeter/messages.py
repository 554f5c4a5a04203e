"""Payload types exchanged with clients."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class HelloMessage(BaseModel):
    """Inbound ``{"name": ...}`` payload sent to ``/hello``."""

    model_config = ConfigDict(extra="ignore", strict=True)

    name: str


class Greeting(BaseModel):
    """Outbound ``{"content": ...}`` payload broadcast to subscribers."""

    model_config = ConfigDict(extra="ignore")

    content: str

    def __str__(self) -> str:
        return f"Greeting{{content={self.content!r}}}"
