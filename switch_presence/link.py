"""Reconnecting TCP client for the sysmodule title feed.

States: DISCONNECTED → CONNECTING → CONNECTED → DISCONNECTED | FATAL

  connect() opens a fresh socket (the previous one is torn down first)
  every delivery re-arms the heartbeat; 10s of silence reconnects at once
  refused / reset / timed-out connections reconnect after a fixed delay
  any other socket error is FATAL and handed to ``on_fatal``

Each delivery is decoded as one fixed-size frame.  The feed carries no
length prefix, so a delivery holding several frames yields only the first.
"""

from __future__ import annotations

import asyncio
import enum
import errno
import logging
from typing import Callable, Optional

from .activity import ActivityNormalizer, ActivityRecord, format_title_id
from .errors import DecodeError
from .protocol import decode
from .timers import TimerSlot

logger = logging.getLogger(__name__)

READ_LIMIT = 64 * 1024

_TRANSIENT_ERRNOS = {errno.ECONNREFUSED, errno.ECONNRESET, errno.ETIMEDOUT}


class LinkState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FATAL = "fatal"


def is_transient(exc: BaseException) -> bool:
    """True for socket errors that are retried instead of aborting."""
    if isinstance(exc, (ConnectionRefusedError, ConnectionResetError, TimeoutError, asyncio.TimeoutError)):
        return True
    return isinstance(exc, OSError) and exc.errno in _TRANSIENT_ERRNOS


class ConsoleLink:
    """Keeps one TCP connection to the console alive and tracks its title."""

    def __init__(
        self,
        host: str,
        port: int,
        normalizer: ActivityNormalizer,
        on_activity: Callable[[ActivityRecord], None],
        on_fatal: Callable[[BaseException], None],
        reconnect_delay: float = 5.0,
        heartbeat_timeout: float = 10.0,
        connect_timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.normalizer = normalizer
        self.reconnect_delay = reconnect_delay
        self.heartbeat_timeout = heartbeat_timeout
        self.connect_timeout = connect_timeout

        self._on_activity = on_activity
        self._on_fatal = on_fatal
        self.state = LinkState.DISCONNECTED

        self._task: Optional[asyncio.Task] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._current: Optional[ActivityRecord] = None
        self._heartbeat = TimerSlot("heartbeat")
        self._reconnect = TimerSlot("reconnect")

    @property
    def current_title_id(self) -> Optional[int]:
        return self._current.title_id if self._current else None

    # ── Lifecycle ─────────────────────────────────────────────────

    def connect(self) -> None:
        """Replace the current connection with a fresh attempt."""
        if self.state is LinkState.FATAL:
            return
        self._dispose()
        logger.info("Connecting to Switch at %s:%d...", self.host, self.port)
        self.state = LinkState.CONNECTING
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name="console-link"
        )

    def cancel_timers(self) -> None:
        self._heartbeat.cancel()
        self._reconnect.cancel()

    async def close(self) -> None:
        """Release the socket and timers.  The link stays closed."""
        self.cancel_timers()
        task = self._task
        self._dispose()
        if task is not None and task is not asyncio.current_task():
            try:
                await task
            except asyncio.CancelledError:
                pass
        if self.state is not LinkState.FATAL:
            self.state = LinkState.DISCONNECTED

    def _dispose(self) -> None:
        """Tear down the reader task and socket of the previous connection."""
        self._heartbeat.cancel()
        self._reconnect.cancel()
        task, self._task = self._task, None
        writer, self._writer = self._writer, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        if writer is not None:
            writer.close()

    # ── Connection task ───────────────────────────────────────────

    async def _run(self) -> None:
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self.connect_timeout,
            )
            self._writer = writer
            self.state = LinkState.CONNECTED
            logger.info("Successfully connected to Nintendo Switch console.")
            self._arm_heartbeat()

            while True:
                data = await reader.read(READ_LIMIT)
                if not data:
                    raise ConnectionResetError(errno.ECONNRESET, "Connection closed by console")
                self.handle_data(data)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._handle_error(exc)

    def handle_data(self, data: bytes) -> None:
        """Process one delivery from the console."""
        self._arm_heartbeat()
        try:
            message = decode(data)
        except DecodeError as exc:
            logger.debug("Discarding frame: %s", exc)
            return

        record = self.normalizer.normalize(message.title_id, message.name)
        if self._current is not None and record.title_id == self._current.title_id:
            return

        self._current = record
        logger.info(
            "Program ID for %s is %s", record.display_name, format_title_id(record.title_id)
        )
        self._on_activity(record)

    def _arm_heartbeat(self) -> None:
        self._heartbeat.start(self.heartbeat_timeout, self._on_heartbeat_timeout)

    def _on_heartbeat_timeout(self) -> None:
        logger.info(
            "Not received data in %g seconds, reconnecting...", self.heartbeat_timeout
        )
        self.connect()

    def _handle_error(self, exc: BaseException) -> None:
        self._heartbeat.cancel()
        writer, self._writer = self._writer, None
        if writer is not None:
            writer.close()

        if is_transient(exc):
            self.state = LinkState.DISCONNECTED
            if isinstance(exc, ConnectionResetError):
                logger.warning(
                    "Connection to Switch lost. Retrying in %g seconds...", self.reconnect_delay
                )
            else:
                logger.warning(
                    "Could not connect to Nintendo Switch console (%s). Retrying in %g seconds...",
                    exc, self.reconnect_delay,
                )
            self._reconnect.start(self.reconnect_delay, self.connect)
            return

        self.state = LinkState.FATAL
        logger.error("Unrecoverable console connection error: %r", exc, exc_info=exc)
        self._on_fatal(exc)
