"""Abstract base class for act metadata providers.

Defines the contract for fetching raw act metadata by MusicBrainz id.  The
raw payload is handed to :mod:`src.services.musicbrainz_transformer`; keeping
the provider free of shaping logic lets tests feed recorded payloads straight
into the enrichment pipeline.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class IActMetadataProvider(ABC):
    """Contract for act metadata lookups (MusicBrainz)."""

    @abstractmethod
    async def fetch_act(self, act_id: str) -> dict[str, Any]:
        """Fetch the raw metadata record for *act_id*.

        Parameters
        ----------
        act_id:
            MusicBrainz artist id (UUID).

        Returns
        -------
        dict
            The provider's raw artist record including URL relations and
            life-span data.

        Raises
        ------
        src.utils.errors.UpstreamError
            If the lookup fails (network, rate limit, unknown id).
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier such as ``"musicbrainz"``."""
