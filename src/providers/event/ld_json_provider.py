"""LD+JSON event source using httpx and BeautifulSoup.

Fetches an act's Bandsintown page and returns every
``<script type="application/ld+json">`` block that parses as JSON.  Pages
often embed a single array of ``MusicEvent`` objects; arrays are flattened
so callers always receive a flat list of items.

This provider fails closed: any network error, non-2xx status or parse
failure yields ``[]`` and a warning, never an exception.
"""

from __future__ import annotations

import json
from typing import Any

import httpx
import structlog
from bs4 import BeautifulSoup

from src.interfaces.event_provider import IEventSourceProvider

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_TIMEOUT = 10.0
_DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; MusicFavoritesBot/0.1)",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}


def extract_ld_json(html: str | None) -> list[Any]:
    """Return the parsed LD+JSON blocks found in *html*.

    Malformed blocks are skipped.  Top-level arrays are flattened.
    """
    if not html:
        return []

    soup = BeautifulSoup(html, "html.parser")
    blocks: list[Any] = []
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        text = script.string or script.get_text()
        if not text or not text.strip():
            continue
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            logger.debug("ld_json_block_malformed", length=len(text))
            continue
        if isinstance(parsed, list):
            blocks.extend(parsed)
        else:
            blocks.append(parsed)
    return blocks


class LdJsonEventProvider(IEventSourceProvider):
    """Fetch a page with httpx and extract its LD+JSON blocks.

    The ``httpx.AsyncClient`` is injected so the app shares one connection
    pool; a private client is created when none is given.
    """

    def __init__(self, http_client: httpx.AsyncClient | None = None) -> None:
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(_DEFAULT_TIMEOUT),
            headers=_DEFAULT_HEADERS,
            follow_redirects=True,
        )

    async def fetch_and_extract_ld_json(self, url: str) -> list[Any]:
        try:
            response = await self._client.get(url, headers=_DEFAULT_HEADERS)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning("ld_json_fetch_http_error", url=url, status=exc.response.status_code)
            return []
        except httpx.HTTPError as exc:
            logger.warning("ld_json_fetch_failed", url=url, error=str(exc))
            return []

        blocks = extract_ld_json(response.text)
        logger.debug("ld_json_extracted", url=url, block_count=len(blocks))
        return blocks

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def get_provider_name(self) -> str:
        return "bandsintown"
