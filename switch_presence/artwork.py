"""Cover-art existence probe (tinfoil.media).

Uses httpx for async HTTP.  Every failure resolves to the default artwork
key; nothing raises past :meth:`ArtworkProbe.probe`.
"""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)


class ArtworkProbe:
    """HEAD-checks a templated artwork URL keyed by hex title id.

    A single :class:`httpx.AsyncClient` is reused across probes.  Call
    :meth:`aclose` (or use as an async context manager) when done.
    """

    def __init__(
        self,
        url_template: str,
        default: str,
        timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url_template = url_template
        self.default = default
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ArtworkProbe":
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()

    def url_for(self, hex_id: str) -> str:
        return self.url_template.format(title_id=hex_id)

    async def probe(self, hex_id: str) -> str:
        """Return the artwork URL for *hex_id* if it exists, else the default key."""
        url = self.url_for(hex_id)
        if self._client.is_closed:
            logger.debug("HTTP client closed, using default artwork for %s", hex_id)
            return self.default
        try:
            response = await self._client.head(url)
        except (httpx.HTTPError, httpx.InvalidURL, RuntimeError) as exc:
            logger.info("Image check failed for %s (%s), using default.", hex_id, exc)
            return self.default
        if response.status_code == 200:
            return url
        logger.info(
            "No image found for %s (HTTP %d), using default.",
            hex_id, response.status_code,
        )
        return self.default
