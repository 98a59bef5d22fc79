"""Discord IPC transport.

The publisher talks to Discord through :class:`PresenceTransport`; the
production implementation wraps :class:`pypresence.AioPresence` and sends
``SET_ACTIVITY`` frames built by the publisher unchanged, so the activity
type and nonce are under our control.
"""

from __future__ import annotations

import abc
import asyncio
import logging
import os
from typing import Any, Optional

from pypresence import AioPresence
from pypresence.exceptions import PyPresenceException

from .errors import TransportError

logger = logging.getLogger(__name__)

_OP_FRAME = 1
_OP_CLOSE = 2


class PresenceTransport(abc.ABC):
    """Session-oriented rich presence endpoint."""

    @abc.abstractmethod
    async def login(self) -> None:
        """Open the session.  Raises :class:`TransportError` on failure."""
        raise NotImplementedError

    @abc.abstractmethod
    async def set_activity(self, payload: dict[str, Any]) -> None:
        """Send a complete ``SET_ACTIVITY`` request."""
        raise NotImplementedError

    @abc.abstractmethod
    async def clear_activity(self) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def destroy(self) -> None:
        """Close the session.  Safe to call when never logged in."""
        raise NotImplementedError


class DiscordTransport(PresenceTransport):
    """Discord desktop IPC via pypresence."""

    def __init__(self, client_id: str) -> None:
        self.client_id = client_id
        self._rpc: Optional[AioPresence] = None
        self._ready = False

    async def login(self) -> None:
        if self._rpc is None:
            self._rpc = AioPresence(self.client_id, loop=asyncio.get_running_loop())
        try:
            await self._rpc.connect()
        except (PyPresenceException, OSError, asyncio.TimeoutError) as exc:
            raise TransportError(f"Discord login failed: {exc}") from exc
        self._ready = True
        logger.info("Successfully connected to Discord.")

    async def set_activity(self, payload: dict[str, Any]) -> None:
        rpc = self._require()
        try:
            rpc.send_data(_OP_FRAME, payload)
            await rpc.read_output()
        except (PyPresenceException, OSError, asyncio.TimeoutError) as exc:
            raise TransportError(f"SET_ACTIVITY failed: {exc}") from exc

    async def clear_activity(self) -> None:
        rpc = self._require()
        try:
            await rpc.clear(os.getpid())
        except (PyPresenceException, OSError, asyncio.TimeoutError) as exc:
            raise TransportError(f"Clearing activity failed: {exc}") from exc

    async def destroy(self) -> None:
        rpc, self._rpc = self._rpc, None
        ready, self._ready = self._ready, False
        if rpc is None or not ready:
            return
        # AioPresence.close() also closes the event loop, so hang up by hand.
        writer = getattr(rpc, "sock_writer", None)
        try:
            rpc.send_data(_OP_CLOSE, {"v": 1, "client_id": self.client_id})
        finally:
            if writer is not None:
                writer.close()
        logger.debug("Discord session closed")

    def _require(self) -> AioPresence:
        if self._rpc is None or not self._ready:
            raise TransportError("Discord session is not established")
        return self._rpc
