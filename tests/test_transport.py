"""Tests for the Discord IPC transport with pypresence mocked out."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pypresence.exceptions import DiscordNotFound

from switch_presence.errors import TransportError
from switch_presence.transport import DiscordTransport


@pytest.fixture
def rpc():
    client = MagicMock()
    client.connect = AsyncMock()
    client.read_output = AsyncMock(return_value={"evt": None})
    client.clear = AsyncMock()
    client.sock_writer = MagicMock()
    with patch("switch_presence.transport.AioPresence", return_value=client) as factory:
        client.factory = factory
        yield client


class TestDiscordTransport:
    async def test_login(self, rpc):
        transport = DiscordTransport("1234")
        await transport.login()
        rpc.connect.assert_awaited_once()
        assert rpc.factory.call_args.args[0] == "1234"

    async def test_login_failure_wrapped(self, rpc):
        rpc.connect.side_effect = DiscordNotFound()
        transport = DiscordTransport("1234")
        with pytest.raises(TransportError, match="Discord login failed"):
            await transport.login()

    async def test_login_retry_reuses_client(self, rpc):
        rpc.connect.side_effect = [ConnectionRefusedError(), None]
        transport = DiscordTransport("1234")
        with pytest.raises(TransportError):
            await transport.login()
        await transport.login()
        assert rpc.factory.call_count == 1

    async def test_set_activity_sends_payload(self, rpc):
        transport = DiscordTransport("1234")
        await transport.login()
        payload = {"cmd": "SET_ACTIVITY", "args": {"pid": 1}, "nonce": "n"}
        await transport.set_activity(payload)
        rpc.send_data.assert_called_once_with(1, payload)
        rpc.read_output.assert_awaited_once()

    async def test_set_activity_requires_login(self, rpc):
        transport = DiscordTransport("1234")
        with pytest.raises(TransportError, match="not established"):
            await transport.set_activity({})

    async def test_clear_activity(self, rpc):
        transport = DiscordTransport("1234")
        await transport.login()
        await transport.clear_activity()
        rpc.clear.assert_awaited_once()

    async def test_broken_pipe_wrapped(self, rpc):
        rpc.read_output.side_effect = BrokenPipeError()
        transport = DiscordTransport("1234")
        await transport.login()
        with pytest.raises(TransportError, match="SET_ACTIVITY failed"):
            await transport.set_activity({})

    async def test_destroy_hangs_up(self, rpc):
        transport = DiscordTransport("1234")
        await transport.login()
        await transport.destroy()
        rpc.send_data.assert_called_once_with(2, {"v": 1, "client_id": "1234"})
        rpc.sock_writer.close.assert_called_once()
        rpc.close.assert_not_called()

        await transport.destroy()
        rpc.send_data.assert_called_once()

    async def test_destroy_without_login(self, rpc):
        await DiscordTransport("1234").destroy()
        rpc.send_data.assert_not_called()
