"""Abstract base class for the act cache store.

Defines the contract for the document store that backs the read-through
cache.  The production adapter talks to MongoDB; an in-memory adapter exists
for local development and tests.  The adapter pattern allows the backend to
be swapped without touching the cache service, fetch queue or updater.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from src.models.act import Act

HEALTH_CHECK_ID = "__health_check__"


@dataclass(frozen=True)
class ActTimestamp:
    """An act id paired with its raw ``updatedAt`` value (may be ``None``)."""

    act_id: str
    updated_at: str | None = None


@dataclass(frozen=True)
class UpdateErrorRecord:
    """A background refresh failure persisted for the admin health view."""

    timestamp: str
    act_id: str
    error_message: str
    error_source: str


class IActStore(ABC):
    """Contract for act persistence.

    All operations are async.  Failures raise
    :class:`src.utils.errors.CacheError` (or propagate the driver error for
    reads); callers decide whether to absorb or surface them.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Open (or re-open) the connection.  No-op when already connected."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the connection.  No-op when not connected."""

    @abstractmethod
    async def get_act(self, act_id: str) -> Act | None:
        """Return the cached act for *act_id*, or ``None`` on a miss."""

    @abstractmethod
    async def cache_act(self, act: Act) -> None:
        """Upsert *act* keyed by its MusicBrainz id."""

    @abstractmethod
    async def test_cache_health(self) -> None:
        """Write and delete the :data:`HEALTH_CHECK_ID` sentinel.

        Raises
        ------
        src.utils.errors.CacheError
            If either operation fails or is not acknowledged.
        """

    @abstractmethod
    async def get_all_act_ids(self) -> list[str]:
        """Return every cached act id, sorted ascending."""

    @abstractmethod
    async def get_all_acts_with_metadata(self) -> list[ActTimestamp]:
        """Return ``(id, updatedAt)`` for every cached act, sorted by id."""

    @abstractmethod
    async def get_acts_without_bandsintown(self) -> list[str]:
        """Return ids of cached acts lacking a Bandsintown relation, sorted."""

    @abstractmethod
    async def clear_cache(self) -> int:
        """Delete every cached act and return the number removed."""

    @abstractmethod
    async def log_update_error(self, record: UpdateErrorRecord) -> None:
        """Persist a background refresh failure."""

    @abstractmethod
    async def get_recent_update_errors(self) -> list[UpdateErrorRecord]:
        """Return refresh failures from the last 7 days, newest first."""

    async def ensure_error_collection_indexes(self) -> None:
        """Create the TTL index for update errors.  No-op by default."""
        return None

    def get_store_name(self) -> str:
        return type(self).__name__
