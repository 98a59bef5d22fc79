"""Configuration for the Switch presence bridge."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_PORT = 0xCAFE  # sysmodule listen port (51966)
DEFAULT_CLIENT_ID = "831528990439243806"


@dataclass
class PresenceConfig:
    """Bridge configuration, loaded from config.json."""

    # Console
    host: str = ""
    port: int = DEFAULT_PORT
    reconnect_delay: float = 5.0
    heartbeat_timeout: float = 10.0
    connect_timeout: float = 10.0

    # Discord
    client_id: str = DEFAULT_CLIENT_ID
    status_text: str = "on Nintendo Switch"
    refresh_interval: float = 15.0
    login_retries: int = 10
    login_retry_delay: float = 3.0

    # Artwork
    artwork_url_template: str = "https://tinfoil.media/ti/{title_id}/256/256/"
    default_artwork: str = "nintendo_switch_default"
    probe_timeout: float = 5.0

    # Lookup tables. Matching is case-folded substring, first entry wins.
    title_id_remap: dict = field(default_factory=lambda: {
        "05003A400C3DA000": "01003A400C3DA000",
    })
    artwork_overrides: dict = field(default_factory=lambda: {
        "Switchfin": "https://raw.githubusercontent.com/dragonflylee/switchfin/refs/heads/dev/resources/icon/icon.jpg",
        "nx-hbmenu": "https://raw.githubusercontent.com/switchbrew/nx-hbmenu/refs/heads/master/icon.jpg",
        "Homebrew Menu": "https://raw.githubusercontent.com/switchbrew/nx-hbmenu/refs/heads/master/icon.jpg",
        "RetroArch": "https://gbatemp.net/attachments/retroarch-jpg.266593/",
    })
    watching_apps: list = field(default_factory=lambda: [
        "YouTube",
        "Switchfin",
        "Crunchyroll",
    ])

    @classmethod
    def load(cls, path: str | Path) -> PresenceConfig:
        path = Path(path)
        if path.exists():
            with open(path) as f:
                data = json.load(f)
            known = {k for k in cls.__dataclass_fields__}
            filtered = {k: v for k, v in data.items() if k in known}
            return cls(**filtered)
        logger.warning("Config not found at %s, using defaults", path)
        return cls()

    def save(self, path: str | Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(asdict(self), f, indent=2)

    def apply_env(self) -> None:
        """Override fields from ``SWITCH_HOST``, ``SWITCH_PORT`` and ``DISCORD_CLIENT_ID``."""
        host = os.getenv("SWITCH_HOST")
        if host:
            self.host = host
        port = os.getenv("SWITCH_PORT")
        if port:
            try:
                self.port = int(port, 0)
            except ValueError:
                logger.warning("Ignoring invalid SWITCH_PORT=%r", port)
        client_id = os.getenv("DISCORD_CLIENT_ID")
        if client_id:
            self.client_id = client_id
