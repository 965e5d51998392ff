"""Utility modules for musicFavorites.

Available utility modules (all re-exported here for convenience):

- **errors** -- Domain-specific exception hierarchy rooted at
  MusicFavoritesError; cache failures carry short ``DB_xxx`` / ``SVC_xxx``
  codes that are surfaced to clients.
- **concurrency** -- ``with_timeout`` for bounded store calls and the
  ``BackgroundTasks`` registry for fire-and-forget cache writes.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production, plus a
  ring buffer of recent warnings for the admin endpoint.
- **timestamps** -- Berlin-local ``updatedAt`` stamps and the staleness
  predicate shared by the cache service and the updater.
"""

# -- Domain exception hierarchy --------------------------------------------
from src.utils.errors import (
    CacheError,
    CacheTimeoutError,
    ConfigurationError,
    MusicFavoritesError,
    ServiceUnavailableError,
    UpstreamError,
    ValidationError,
)

# -- Async concurrency helpers ---------------------------------------------
from src.utils.concurrency import BackgroundTasks, with_timeout

# -- Structured logging setup ----------------------------------------------
from src.utils.logging import configure_logging, get_logger

# -- Timestamps and staleness ----------------------------------------------
from src.utils.timestamps import berlin_timestamp, is_act_stale, is_stale

__all__ = [
    "BackgroundTasks",
    "CacheError",
    "CacheTimeoutError",
    "ConfigurationError",
    "MusicFavoritesError",
    "ServiceUnavailableError",
    "UpstreamError",
    "ValidationError",
    "berlin_timestamp",
    "configure_logging",
    "get_logger",
    "is_act_stale",
    "is_stale",
    "with_timeout",
]
