"""Session controller. Wires the Discord session, publisher and console link.

Startup:   login (bounded retry) → link.connect() → refresh tick
Shutdown:  refresh tick and deliveries → link timers → Discord session → socket → HTTP client
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .activity import ActivityNormalizer, ActivityRecord
from .artwork import ArtworkProbe
from .config import PresenceConfig
from .errors import StartupError, TransportError
from .link import ConsoleLink
from .publisher import PresencePublisher
from .transport import DiscordTransport, PresenceTransport

logger = logging.getLogger(__name__)

ISSUES_URL = "https://github.com/DelxHQ/ClientSwitchPresence/issues"

EXIT_OK = 0
EXIT_FATAL = 1


class SessionController:
    """Top-level owner of every long-lived resource of the bridge."""

    def __init__(
        self,
        config: PresenceConfig,
        transport: PresenceTransport | None = None,
        probe: ArtworkProbe | None = None,
    ) -> None:
        self.config = config
        self.transport = transport or DiscordTransport(config.client_id)
        self.probe = probe or ArtworkProbe(
            config.artwork_url_template,
            config.default_artwork,
            timeout=config.probe_timeout,
        )
        self.normalizer = ActivityNormalizer.from_config(config, self.probe)
        self.publisher = PresencePublisher(
            self.transport,
            self.normalizer,
            status_text=config.status_text,
            refresh_interval=config.refresh_interval,
        )
        self.link: Optional[ConsoleLink] = None
        self.exit_code = EXIT_OK

        self._stop_requested = asyncio.Event()
        self._stopped = False

    # ── Startup ───────────────────────────────────────────────────

    async def login(self) -> None:
        """Log in to Discord, retrying a fixed number of times."""
        retries = self.config.login_retries
        delay = self.config.login_retry_delay
        logger.info("Connecting to Discord...")

        for attempt in range(1, retries + 1):
            try:
                await self.transport.login()
                return
            except TransportError as exc:
                if attempt == retries:
                    logger.error("Failed to connect to Discord after %d attempts: %s", retries, exc)
                    logger.warning("Please make sure:")
                    logger.warning("  1. Discord desktop app is running (not web version)")
                    logger.warning('  2. "Display current activity" is enabled in Discord settings')
                    logger.warning("  3. Discord is not blocked by firewall")
                    raise StartupError("Could not connect to Discord") from exc
                logger.warning(
                    "Discord connection attempt %d/%d failed. Retrying in %gs...",
                    attempt, retries, delay,
                )
                await asyncio.sleep(delay)

    async def start(self) -> None:
        """Establish the Discord session, then start the link and refresh tick."""
        if not self.config.host:
            raise StartupError("No console host configured")
        await self.login()

        self.link = ConsoleLink(
            self.config.host,
            self.config.port,
            self.normalizer,
            on_activity=self._on_activity,
            on_fatal=self._on_fatal,
            reconnect_delay=self.config.reconnect_delay,
            heartbeat_timeout=self.config.heartbeat_timeout,
            connect_timeout=self.config.connect_timeout,
        )
        self.link.connect()
        self.publisher.start_refresh()

    async def run(self) -> int:
        """Start, wait for a stop request or fatal error, tear down.

        Returns the process exit code.
        """
        try:
            await self.start()
            await self._stop_requested.wait()
        finally:
            await self.stop()
        return self.exit_code

    def request_stop(self) -> None:
        self._stop_requested.set()

    @property
    def started(self) -> bool:
        return self.link is not None

    # ── Shutdown ──────────────────────────────────────────────────

    async def stop(self) -> None:
        """Release everything in order.  Each step runs even if an earlier one failed."""
        if self._stopped:
            return
        self._stopped = True
        logger.info("Shutting down...")

        try:
            await self.publisher.close()
        except Exception:
            logger.exception("Failed to stop presence publisher")

        if self.link is not None:
            try:
                self.link.cancel_timers()
            except Exception:
                logger.exception("Failed to cancel link timers")

        try:
            await self.transport.destroy()
        except Exception:
            logger.exception("Failed to close Discord session")

        if self.link is not None:
            try:
                await self.link.close()
            except Exception:
                logger.exception("Failed to close console socket")

        try:
            await self.probe.aclose()
        except Exception:
            logger.exception("Failed to close HTTP client")

    # ── Link callbacks ────────────────────────────────────────────

    def _on_activity(self, record: ActivityRecord) -> None:
        self.publisher.publish(record)

    def _on_fatal(self, exc: BaseException) -> None:
        logger.error(
            "An unknown error has occurred. Please open an issue at %s "
            "with a copy of this log.", ISSUES_URL,
        )
        self.exit_code = EXIT_FATAL
        self.request_stop()
