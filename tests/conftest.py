"""pytest configuration and shared fakes for switch_presence tests."""

from __future__ import annotations

import asyncio
import contextlib
from unittest.mock import AsyncMock, MagicMock

import pytest

from switch_presence.artwork import ArtworkProbe
from switch_presence.transport import PresenceTransport


# Configure asyncio mode for pytest-asyncio
def pytest_configure(config):
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )


class FakeTransport(PresenceTransport):
    """Records every request instead of talking to Discord."""

    def __init__(self) -> None:
        self.logins = 0
        self.activities: list[dict] = []
        self.clears = 0
        self.destroyed = False

    async def login(self) -> None:
        self.logins += 1

    async def set_activity(self, payload: dict) -> None:
        self.activities.append(payload)

    async def clear_activity(self) -> None:
        self.clears += 1

    async def destroy(self) -> None:
        self.destroyed = True


class FakeConsole:
    """Localhost TCP server standing in for the sysmodule.

    ``script[n]`` lists the frames written on the n-th accepted connection;
    connections beyond the script stay silent.
    """

    def __init__(self, script: list[list[bytes]] | None = None) -> None:
        self.script = script or []
        self.connections = 0
        self.port = 0
        self._server: asyncio.AbstractServer | None = None
        self._writers: list[asyncio.StreamWriter] = []

    async def start(self) -> "FakeConsole":
        self._server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        self.port = self._server.sockets[0].getsockname()[1]
        return self

    async def close(self) -> None:
        for writer in self._writers:
            writer.close()
        if self._server is not None:
            self._server.close()
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self._server.wait_closed(), timeout=1)

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        index = self.connections
        self.connections += 1
        self._writers.append(writer)
        frames = self.script[index] if index < len(self.script) else []
        try:
            for frame in frames:
                writer.write(frame)
                await writer.drain()
                await asyncio.sleep(0.02)
            await reader.read()
        except ConnectionError:
            pass
        finally:
            writer.close()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def probe():
    """ArtworkProbe stand-in that never touches the network."""
    fake = MagicMock(spec=ArtworkProbe)
    fake.url_for.side_effect = lambda hex_id: f"https://art.test/{hex_id}"
    fake.probe = AsyncMock(side_effect=lambda hex_id: f"https://art.test/{hex_id}")
    fake.aclose = AsyncMock()
    return fake


@pytest.fixture
async def console():
    servers: list[FakeConsole] = []

    async def _make(script: list[list[bytes]] | None = None) -> FakeConsole:
        server = await FakeConsole(script).start()
        servers.append(server)
        return server

    yield _make
    for server in servers:
        await server.close()
