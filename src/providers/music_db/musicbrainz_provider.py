"""MusicBrainz provider implementing IActMetadataProvider.

Uses the musicbrainzngs library to look up a single artist by MBID with its
URL relations (Bandsintown, Songkick, social profiles).  Enforces the
MusicBrainz rate limit of 1 request per second via asyncio-based throttling;
the blocking musicbrainzngs call runs in a worker thread so the event loop
keeps serving cached reads meanwhile.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any

import musicbrainzngs
import structlog

from src.config.settings import Settings
from src.interfaces.music_db_provider import IActMetadataProvider
from src.utils.errors import UpstreamError

logger = structlog.get_logger(logger_name=__name__)

_INCLUDES = ["aliases", "url-rels"]


class MusicBrainzProvider(IActMetadataProvider):
    """MusicBrainz act metadata provider with built-in rate limiting.

    No API key is required, but clients must identify themselves via a
    user-agent string and respect the 1 request/second rate limit.
    """

    _MIN_REQUEST_INTERVAL: float = 1.0  # seconds between requests

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._last_request_time: float = 0.0
        self._lock = asyncio.Lock()

        musicbrainzngs.set_useragent(
            settings.musicbrainz_app_name,
            settings.musicbrainz_app_version,
            settings.musicbrainz_contact or None,
        )
        logger.info(
            "musicbrainz_provider_initialized",
            app_name=settings.musicbrainz_app_name,
            app_version=settings.musicbrainz_app_version,
        )

    async def _throttle(self) -> None:
        """Enforce the MusicBrainz 1 req/sec rate limit."""
        elapsed = time.monotonic() - self._last_request_time
        if elapsed < self._MIN_REQUEST_INTERVAL:
            await asyncio.sleep(self._MIN_REQUEST_INTERVAL - elapsed)
        self._last_request_time = time.monotonic()

    async def fetch_act(self, act_id: str) -> dict[str, Any]:
        """Fetch the artist record for *act_id* including URL relations."""
        # Client requests and the background workers share one rate limit.
        async with self._lock:
            await self._throttle()
            try:
                response = await asyncio.to_thread(
                    musicbrainzngs.get_artist_by_id, act_id, includes=_INCLUDES
                )
            except musicbrainzngs.WebServiceError as exc:
                raise UpstreamError(
                    message=f"MusicBrainz lookup failed for '{act_id}': {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc

        artist = response.get("artist")
        if not artist:
            raise UpstreamError(
                message=f"MusicBrainz returned no artist for '{act_id}'",
                provider_name=self.get_provider_name(),
            )

        logger.debug(
            "musicbrainz_act_fetched",
            act_id=act_id,
            relation_count=len(artist.get("url-relation-list", [])),
        )
        return artist

    def get_provider_name(self) -> str:
        return "musicbrainz"
