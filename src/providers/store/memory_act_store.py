"""In-memory act store using cachetools.LRUCache.

Used when no ``MONGODB_URI`` is configured (local development) and by the
integration tests.  Not shared across processes.  The ``fail_writes`` and
``fail_reads`` switches let tests simulate a broken store without mocks.
"""

from __future__ import annotations

from collections import deque
from datetime import datetime, timedelta, timezone

import structlog
from cachetools import LRUCache

from src.interfaces.act_store import HEALTH_CHECK_ID, ActTimestamp, IActStore, UpdateErrorRecord
from src.models.act import Act
from src.utils.errors import CacheError

logger = structlog.get_logger(logger_name=__name__)

_ERROR_RETENTION = timedelta(days=7)


class MemoryActStore(IActStore):
    """Act cache held in process memory.

    Parameters
    ----------
    max_size:
        Maximum number of acts before the least-recently-used one is evicted.
    max_errors:
        Number of update-error records kept.
    """

    def __init__(self, max_size: int = 10_000, max_errors: int = 1000) -> None:
        self._acts: LRUCache[str, Act] = LRUCache(maxsize=max_size)
        self._errors: deque[tuple[datetime, UpdateErrorRecord]] = deque(maxlen=max_errors)
        self._connected = False
        self.fail_writes = False
        self.fail_reads = False

    async def connect(self) -> None:
        if not self._connected:
            self._connected = True
            logger.info("memory_store_connected", max_size=self._acts.maxsize)

    async def disconnect(self) -> None:
        self._connected = False

    def _check_read(self, code: str) -> None:
        if self.fail_reads:
            raise CacheError(provider_name="memory", code=code)

    async def get_act(self, act_id: str) -> Act | None:
        self._check_read("DB_004")
        return self._acts.get(act_id)

    async def cache_act(self, act: Act) -> None:
        if self.fail_writes:
            raise CacheError(provider_name="memory", code="DB_007")
        self._acts[act.musicbrainz_id] = act

    async def test_cache_health(self) -> None:
        if self.fail_writes:
            raise CacheError(provider_name="memory", code="DB_009")
        # Sentinel write+delete mirrors the MongoDB health check.
        self._acts[HEALTH_CHECK_ID] = Act(musicbrainz_id=HEALTH_CHECK_ID, name="Health Check")
        del self._acts[HEALTH_CHECK_ID]

    async def get_all_act_ids(self) -> list[str]:
        self._check_read("DB_013")
        return sorted(key for key in self._acts if key != HEALTH_CHECK_ID)

    async def get_all_acts_with_metadata(self) -> list[ActTimestamp]:
        self._check_read("DB_014")
        return [
            ActTimestamp(act_id=key, updated_at=self._acts[key].updated_at)
            for key in sorted(self._acts)
            if key != HEALTH_CHECK_ID
        ]

    async def get_acts_without_bandsintown(self) -> list[str]:
        self._check_read("DB_015")
        return sorted(
            key
            for key, act in self._acts.items()
            if key != HEALTH_CHECK_ID and "bandsintown" not in act.relations
        )

    async def clear_cache(self) -> int:
        count = len(self._acts)
        self._acts.clear()
        logger.info("cache_cleared", deleted_count=count)
        return count

    async def log_update_error(self, record: UpdateErrorRecord) -> None:
        self._errors.append((datetime.now(timezone.utc), record))

    async def get_recent_update_errors(self) -> list[UpdateErrorRecord]:
        since = datetime.now(timezone.utc) - _ERROR_RETENTION
        return [record for created, record in reversed(self._errors) if created >= since]

    def __len__(self) -> int:
        return len(self._acts)

    def get_store_name(self) -> str:
        return "memory"
