"""Presence publisher: pushes activity records to Discord.

Deliveries are serialized by a FIFO lock so that requests reach Discord in
the order ``publish`` was called.  Artwork is resolved once per record;
refresh ticks resend the last record with the artwork it already has.
"""

from __future__ import annotations

import asyncio
import logging
import os
import uuid
from typing import Any, Optional

from .activity import ActivityNormalizer, ActivityRecord
from .errors import TransportError
from .timers import IntervalTimer
from .transport import PresenceTransport

logger = logging.getLogger(__name__)


class PresencePublisher:
    """Owns the last-known activity and keeps Discord in sync with it."""

    def __init__(
        self,
        transport: PresenceTransport,
        normalizer: ActivityNormalizer,
        status_text: str = "on Nintendo Switch",
        refresh_interval: float = 15.0,
    ) -> None:
        self.transport = transport
        self.normalizer = normalizer
        self.status_text = status_text
        self.refresh_interval = refresh_interval

        self._current: Optional[ActivityRecord] = None
        self._lock = asyncio.Lock()
        self._refresh = IntervalTimer("presence-refresh")
        self._pending: set[asyncio.Task] = set()
        self._closed = False

    @property
    def current(self) -> Optional[ActivityRecord]:
        return self._current

    # ── Public API ────────────────────────────────────────────────

    def publish(self, record: ActivityRecord) -> asyncio.Task:
        """Make *record* the last-known activity and schedule its delivery."""
        self._current = record
        return self._spawn(self._deliver(record))

    def start_refresh(self) -> None:
        self._refresh.start(self.refresh_interval, self._on_tick)

    def stop_refresh(self) -> None:
        self._refresh.cancel()

    async def close(self) -> None:
        """Stop the refresh tick and cancel every queued or in-flight delivery."""
        self._closed = True
        self._refresh.cancel()
        tasks = list(self._pending)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def drain(self) -> None:
        """Wait for every scheduled delivery to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def build_payload(self, record: ActivityRecord) -> dict[str, Any]:
        activity: dict[str, Any] = {
            "type": int(record.category),
            "name": record.display_name,
            "state": self.status_text,
            "assets": {
                "large_image": record.artwork_ref,
                "large_text": record.display_name,
            },
        }
        if record.started_at:
            activity["timestamps"] = {"start": record.started_at}
        return {
            "cmd": "SET_ACTIVITY",
            "args": {"pid": os.getpid(), "activity": activity},
            "nonce": uuid.uuid4().hex,
        }

    # ── Internals ─────────────────────────────────────────────────

    def _on_tick(self) -> None:
        if self._current is None:
            return
        self._spawn(self._deliver(None))

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _deliver(self, record: Optional[ActivityRecord]) -> None:
        """Send *record*, or the last-known record when *record* is None."""
        async with self._lock:
            if self._closed:
                return
            if record is None:
                record = self._current
                if record is None:
                    return
            try:
                if record.is_home:
                    await self.transport.clear_activity()
                    return
                if record.artwork_ref is None:
                    resolved = record.with_artwork(
                        await self.normalizer.resolve_artwork(
                            record.title_id, record.display_name
                        )
                    )
                    if self._current is record:
                        self._current = resolved
                    record = resolved
                await self.transport.set_activity(self.build_payload(record))
            except TransportError as exc:
                logger.warning("Presence update for %s failed: %s", record.display_name, exc)
