"""Single-slot timers.

Each slot holds at most one pending timer.  Starting a slot always cancels
whatever it held before, so stale timers cannot pile up across reconnects.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class TimerSlot:
    """One-shot timer slot backed by :meth:`asyncio.AbstractEventLoop.call_later`."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._handle: Optional[asyncio.TimerHandle] = None

    def start(self, delay: float, callback: Callable[[], None]) -> None:
        """Arm the slot, replacing any pending timer."""
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(delay, self._fire, callback)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def _fire(self, callback: Callable[[], None]) -> None:
        self._handle = None
        try:
            callback()
        except Exception:
            logger.exception("Timer %s callback failed", self.name)


class IntervalTimer:
    """Periodic timer slot running *callback* every *interval* seconds."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._task: Optional[asyncio.Task] = None

    def start(self, interval: float, callback: Callable[[], None]) -> None:
        """Start ticking, replacing any running interval."""
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(
            self._loop(interval, callback), name=f"interval-{self.name}"
        )

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _loop(self, interval: float, callback: Callable[[], None]) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                callback()
            except Exception:
                logger.exception("Interval %s callback failed", self.name)
