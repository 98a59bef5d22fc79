"""Map raw title frames to presence records.

Maps a ``(title_id, name)`` pair to an :class:`ActivityRecord`:

  * title id 0 becomes the Home Menu sentinel (no start time)
  * the display name picks the category via ordered watching rules
  * artwork comes from the override table, or from the remote probe keyed
    by the (remapped) hex title id
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Callable, Iterable, Mapping, Optional

from .artwork import ArtworkProbe

if TYPE_CHECKING:
    from .config import PresenceConfig

logger = logging.getLogger(__name__)

HOME_MENU_ID = 0x0100000000001000
HOME_MENU_NAME = "Home Menu"


class Category(enum.IntEnum):
    """Discord activity types used for the presence."""

    PLAYING = 0
    WATCHING = 3


@dataclass(frozen=True)
class ActivityRecord:
    """Normalized "currently playing" state for one title.

    ``artwork_ref`` stays ``None`` until the publisher resolves it.
    """

    title_id: int
    display_name: str
    category: Category = Category.PLAYING
    started_at: Optional[int] = None  # epoch milliseconds
    artwork_ref: Optional[str] = None

    @property
    def is_home(self) -> bool:
        return self.title_id == HOME_MENU_ID

    @property
    def hex_id(self) -> str:
        return format_title_id(self.title_id)

    def with_artwork(self, artwork_ref: str) -> ActivityRecord:
        return replace(self, artwork_ref=artwork_ref)


def format_title_id(title_id: int) -> str:
    """Render a title id as 16 upper-case hex digits."""
    return f"{title_id:016X}"


def _first_match(name: str, patterns: Iterable[str]) -> Optional[str]:
    folded = name.casefold()
    for pattern in patterns:
        if pattern.casefold() in folded:
            return pattern
    return None


class ActivityNormalizer:
    """Builds presence records and resolves their artwork.

    Parameters
    ----------
    watching_apps:
        Ordered name fragments classified as :attr:`Category.WATCHING`.
    artwork_overrides:
        Ordered ``{name fragment: image url}`` table checked before the probe.
    title_id_remap:
        ``{hex id: base hex id}`` for update/DLC ids that have no artwork.
    probe:
        Remote existence check used when no override matches.
    """

    def __init__(
        self,
        probe: ArtworkProbe,
        watching_apps: Iterable[str] = (),
        artwork_overrides: Mapping[str, str] | None = None,
        title_id_remap: Mapping[str, str] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.probe = probe
        self.category_rules: dict[str, Category] = {
            app: Category.WATCHING for app in watching_apps
        }
        self.artwork_overrides = dict(artwork_overrides or {})
        self.title_id_remap = {k.upper(): v.upper() for k, v in (title_id_remap or {}).items()}
        self._clock = clock

    @classmethod
    def from_config(cls, config: PresenceConfig, probe: ArtworkProbe) -> ActivityNormalizer:
        return cls(
            probe,
            watching_apps=config.watching_apps,
            artwork_overrides=config.artwork_overrides,
            title_id_remap=config.title_id_remap,
        )

    def normalize(self, title_id: int, raw_name: str) -> ActivityRecord:
        if title_id in (0, HOME_MENU_ID):
            return ActivityRecord(
                title_id=HOME_MENU_ID,
                display_name=HOME_MENU_NAME,
                category=Category.PLAYING,
                started_at=None,
            )
        name = raw_name.split("\x00", 1)[0]
        return ActivityRecord(
            title_id=title_id,
            display_name=name,
            category=self.classify(name),
            started_at=int(self._clock() * 1000),
        )

    def classify(self, display_name: str) -> Category:
        """First rule whose pattern is a case-folded substring wins."""
        key = _first_match(display_name, self.category_rules)
        return self.category_rules[key] if key is not None else Category.PLAYING

    def override_artwork(self, display_name: str) -> Optional[str]:
        key = _first_match(display_name, self.artwork_overrides)
        return self.artwork_overrides[key] if key is not None else None

    def remap_title_id(self, hex_id: str) -> str:
        return self.title_id_remap.get(hex_id.upper(), hex_id.upper())

    async def resolve_artwork(self, title_id: int, display_name: str) -> str:
        """Resolve the large-image reference for a title.  Never raises."""
        override = self.override_artwork(display_name)
        if override is not None:
            return override
        hex_id = self.remap_title_id(format_title_id(title_id))
        logger.debug("Image URL: %s", self.probe.url_for(hex_id))
        return await self.probe.probe(hex_id)
