"""Read-through cache service for acts.

Reads go to the cache first.  A single-act miss is enriched synchronously
and written back in the background; a bulk request with two or more misses
hands them to the :class:`FetchQueue` and asks the client to retry.

Failure policy:

- Cache reads fail fast.  A single read error propagates unchanged, a bulk
  read error becomes ``SVC_002``.  Neither falls back to upstream, so an
  outage of the store never turns into a flood of MusicBrainz requests.
- Cache writes are fire-and-forget.  A failed write marks the cache
  unhealthy for later requests but never fails the response that already
  has its data.
- While the cache is unhealthy every request first runs the health check
  (``SVC_001`` on failure).
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from datetime import timedelta
from typing import Any

import structlog

from src.interfaces.act_store import IActStore
from src.models.act import Act, ActsLookupError, ActsLookupResult
from src.services.act_enricher import ActEnricher
from src.services.cache_health import CacheHealth
from src.services.fetch_queue import FetchQueue
from src.utils.concurrency import BackgroundTasks, with_timeout
from src.utils.errors import ServiceUnavailableError
from src.utils.timestamps import STALENESS_THRESHOLD, is_act_stale

logger = structlog.get_logger(logger_name=__name__)

INVALID_INPUT_MESSAGE = "Invalid input: actIds must be a non-empty list"


def _missing_message(count: int) -> str:
    return (
        f"{count} acts not cached. Background fetch initiated. "
        "Please try again in a few minutes."
    )


class ActService:
    """Cache-first access to enriched acts."""

    def __init__(
        self,
        store: IActStore,
        enricher: ActEnricher,
        fetch_queue: FetchQueue,
        health: CacheHealth,
        db_timeout_seconds: float = 0.5,
        staleness_threshold: timedelta = STALENESS_THRESHOLD,
    ) -> None:
        self._store = store
        self._enricher = enricher
        self._fetch_queue = fetch_queue
        self._health = health
        self._db_timeout = db_timeout_seconds
        self._staleness_threshold = staleness_threshold
        self._writes = BackgroundTasks()

    @property
    def health(self) -> CacheHealth:
        return self._health

    @property
    def fetch_queue(self) -> FetchQueue:
        return self._fetch_queue

    # ------------------------------------------------------------------
    # Background writes
    # ------------------------------------------------------------------

    def _on_write_failed(self, act_id: str):  # noqa: ANN202
        def _handler(exc: Exception) -> None:
            logger.error("cache_write_failed", act_id=act_id, error=str(exc))
            self._health.mark_unhealthy(exc)

        return _handler

    def _cache_in_background(self, act: Act) -> None:
        self._writes.submit(
            self._store.cache_act(act),
            on_error=self._on_write_failed(act.musicbrainz_id),
            name=f"cache-write-{act.musicbrainz_id}",
        )

    async def wait_for_pending_writes(self) -> None:
        """Wait until every submitted background write has settled."""
        await self._writes.wait()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_act(self, act_id: str) -> Act:
        """Return one act, enriching and caching it on a miss.

        Raises
        ------
        ServiceUnavailableError
            ``SVC_001`` if the cache is unhealthy and the health check fails.
        CacheError
            Any cache read error, unchanged (including timeouts).
        """
        await self._health.ensure_healthy(self._store, self._db_timeout)

        cached = await with_timeout(self._store.get_act(act_id), self._db_timeout)
        if cached is not None:
            logger.debug("act_cache_hit", act_id=act_id)
            return cached

        logger.info("act_cache_miss", act_id=act_id)
        act = await self._enricher.fetch_and_enrich(act_id)
        self._cache_in_background(act)
        return act

    async def _read_all(self, act_ids: list[str]) -> list[Act | None]:
        try:
            return list(
                await asyncio.gather(
                    *(with_timeout(self._store.get_act(i), self._db_timeout) for i in act_ids)
                )
            )
        except Exception as exc:
            logger.error("bulk_cache_read_failed", count=len(act_ids), error=str(exc))
            raise ServiceUnavailableError(
                "SVC_002", provider_name=self._store.get_store_name()
            ) from exc

    def _refresh_stale(self, hits: dict[str, Act]) -> None:
        stale = [
            act_id
            for act_id, act in hits.items()
            if is_act_stale(act, threshold=self._staleness_threshold)
        ]
        if stale:
            logger.info("stale_acts_enqueued", count=len(stale))
            self._fetch_queue.enqueue(stale)

    async def get_acts(self, act_ids: Sequence[str] | Any) -> ActsLookupResult:
        """Return several acts in input order, or an error payload.

        Exactly one miss is fetched inline; two or more are queued for a
        background fetch and reported as an error so the client retries.
        Stale hits are always queued for refresh without affecting the
        response.

        Raises
        ------
        ServiceUnavailableError
            ``SVC_001`` on a failed health check, ``SVC_002`` if any cache
            read fails.
        """
        if isinstance(act_ids, (str, bytes)) or not isinstance(act_ids, Sequence) or not act_ids:
            return ActsLookupResult(error=ActsLookupError(message=INVALID_INPUT_MESSAGE))

        ids = list(act_ids)
        await self._health.ensure_healthy(self._store, self._db_timeout)

        results = await self._read_all(ids)
        hits = {act_id: act for act_id, act in zip(ids, results) if act is not None}
        # Counted per requested position, so repeated cached ids count each time.
        cached_count = sum(1 for act in results if act is not None)
        # dict.fromkeys keeps first-seen order and drops repeated ids
        missing = list(dict.fromkeys(i for i, act in zip(ids, results) if act is None))

        self._refresh_stale(hits)

        if not missing:
            return ActsLookupResult(acts=[hits[act_id] for act_id in ids])

        if len(missing) == 1:
            act = await self._enricher.fetch_and_enrich(missing[0])
            self._cache_in_background(act)
            hits[missing[0]] = act
            return ActsLookupResult(acts=[hits[act_id] for act_id in ids])

        self._fetch_queue.enqueue(missing)
        logger.info(
            "acts_queued_for_fetch",
            missing_count=len(missing),
            cached_count=cached_count,
        )
        return ActsLookupResult(
            error=ActsLookupError(
                message=_missing_message(len(missing)),
                missing_count=len(missing),
                cached_count=cached_count,
            )
        )
