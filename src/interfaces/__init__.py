"""Public interface definitions for the act store and upstream providers.

Every external service (document store, MusicBrainz, Bandsintown) is
accessed exclusively through the abstract base classes defined here.
Concrete adapters implement them and are injected at runtime by
``src/main.py``, so unit tests can hand the cache services a mock instead
of a real database or HTTP client.

CONCRETE PROVIDER MAP:
    Interface                  ->  Concrete implementations (in src/providers/)
    ─────────────────────────────────────────────────────────────────────
    IActStore                  ->  MongoActStore, MemoryActStore
    IActMetadataProvider       ->  MusicBrainzProvider
    IEventSourceProvider       ->  LdJsonEventProvider
"""

from src.interfaces.act_store import (
    HEALTH_CHECK_ID,
    ActTimestamp,
    IActStore,
    UpdateErrorRecord,
)
from src.interfaces.event_provider import IEventSourceProvider
from src.interfaces.music_db_provider import IActMetadataProvider

__all__ = [
    "HEALTH_CHECK_ID",
    "ActTimestamp",
    "IActMetadataProvider",
    "IActStore",
    "IEventSourceProvider",
    "UpdateErrorRecord",
]
