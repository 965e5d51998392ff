"""Abstract base class for tour-event sources.

Event sources fetch an act's tour-listing page and return the LD+JSON blocks
embedded in it.  They must fail closed: network errors, non-2xx responses
and malformed markup all yield an empty list rather than an exception.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class IEventSourceProvider(ABC):
    """Contract for LD+JSON event extraction."""

    @abstractmethod
    async def fetch_and_extract_ld_json(self, url: str) -> list[Any]:
        """Fetch *url* and return every parseable LD+JSON block on the page."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier such as ``"bandsintown"``."""
