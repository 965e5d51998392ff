"""Soft circuit breaker for the act cache.

One :class:`CacheHealth` instance is built by the composition root and
shared by reference between the read-through service, the fetch queue and
the updater.  The flag starts healthy, goes unhealthy only when a cache
write is observed to fail, and goes back to healthy only after a successful
reconnect plus a sentinel write and delete.

There is no locking.  A health check followed by a read can still race with another
request flipping the flag in between; that window is accepted.
"""

from __future__ import annotations

import structlog

from src.interfaces.act_store import IActStore
from src.utils.concurrency import with_timeout
from src.utils.errors import ServiceUnavailableError

logger = structlog.get_logger(logger_name=__name__)


class CacheHealth:
    """Process-wide cache health flag, held as an injectable object."""

    def __init__(self) -> None:
        self._healthy = True

    @property
    def healthy(self) -> bool:
        return self._healthy

    def mark_unhealthy(self, exc: BaseException | None = None) -> None:
        if self._healthy:
            logger.error("cache_marked_unhealthy", error=str(exc) if exc else None)
        self._healthy = False

    async def ensure_healthy(self, store: IActStore, timeout_seconds: float) -> None:
        """Check the store if the flag is down; no-op while healthy.

        Raises
        ------
        ServiceUnavailableError
            ``SVC_001`` when reconnecting or the sentinel check fails.  The
            flag stays down in that case.
        """
        if self._healthy:
            return

        try:
            await with_timeout(store.connect(), timeout_seconds)
            await with_timeout(store.test_cache_health(), timeout_seconds)
        except Exception as exc:
            logger.error("cache_health_check_failed", error=str(exc))
            raise ServiceUnavailableError("SVC_001", provider_name=store.get_store_name()) from exc

        self._healthy = True
        logger.info("cache_health_restored")
