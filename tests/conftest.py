"""Shared fixtures for the greeter test suite."""

from __future__ import annotations

from typing import AsyncIterator

import pytest
import pytest_asyncio
from websockets.asyncio.server import serve

from greeter.config import Settings
from greeter.server import GreetingServer


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, ws_port=0, greeting_delay=0.0)


@pytest_asyncio.fixture
async def live_server(settings: Settings) -> AsyncIterator[tuple[GreetingServer, str]]:
    """Run a real WebSocket server on an ephemeral port."""
    greeting_server = GreetingServer.from_settings(settings)
    async with serve(greeting_server.handler, "127.0.0.1", 0) as server:
        port = server.sockets[0].getsockname()[1]
        yield greeting_server, f"ws://127.0.0.1:{port}{settings.ws_path}"
