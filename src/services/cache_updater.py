"""Two-phase background maintenance of the act cache.

Phase A (bootstrap) runs once at startup: every cached act whose
``updatedAt`` is stale is refreshed, one at a time, with a fixed pause
between acts.

Phase B (cycles) starts after a quiet period and never ends: each cycle
lists all cached ids and spreads their refreshes evenly across the cycle
interval, so the whole cache is revisited once per interval at a bounded
request rate no matter how large it grows.

Failures never escape.  One bad id is logged, recorded in the store's
update-error log and skipped; a failed listing aborts the phase or
postpones the cycle.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import timedelta

import structlog

from src.interfaces.act_store import IActStore, UpdateErrorRecord
from src.services.act_enricher import ActEnricher
from src.utils.timestamps import STALENESS_THRESHOLD, berlin_timestamp, is_stale

logger = structlog.get_logger(logger_name=__name__)

SleepFn = Callable[[float], Awaitable[None]]

ERROR_SOURCE = "cache_updater"


class CacheUpdater:
    """Background refresher for cached acts.

    Parameters
    ----------
    enricher:
        Pipeline used for every refresh (always with silent event failure).
    store:
        Source of the id listings and target of the refreshed acts.
    fetch_delay_seconds:
        Pause between two acts during the bootstrap phase.
    cycle_interval_seconds:
        Length of one full sweep in the cyclical phase.
    retry_delay_seconds:
        Wait before retrying a cycle whose id listing failed.
    quiet_period_seconds:
        Wait between the end of the bootstrap and the first cycle.
    staleness_threshold:
        Age at which a cached act counts as stale during the bootstrap.
    sleep:
        Awaitable sleep, injectable for tests.
    """

    def __init__(
        self,
        enricher: ActEnricher,
        store: IActStore,
        fetch_delay_seconds: float = 30.0,
        cycle_interval_seconds: float = 24 * 60 * 60,
        retry_delay_seconds: float = 60.0,
        quiet_period_seconds: float = 12 * 60 * 60,
        staleness_threshold: timedelta = STALENESS_THRESHOLD,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._enricher = enricher
        self._store = store
        self._fetch_delay = fetch_delay_seconds
        self._cycle_interval = cycle_interval_seconds
        self._retry_delay = retry_delay_seconds
        self._quiet_period = quiet_period_seconds
        self._staleness_threshold = staleness_threshold
        self._sleep = sleep
        self._cycles_completed = 0
        self._last_update: str | None = None

    @property
    def cycles_completed(self) -> int:
        return self._cycles_completed

    @property
    def last_update(self) -> str | None:
        """Berlin timestamp of the last successful refresh, if any."""
        return self._last_update

    async def _record_failure(self, act_id: str, exc: Exception) -> None:
        record = UpdateErrorRecord(
            timestamp=berlin_timestamp(),
            act_id=act_id,
            error_message=str(exc),
            error_source=ERROR_SOURCE,
        )
        try:
            await self._store.log_update_error(record)
        except Exception as log_exc:
            logger.warning("update_error_not_recorded", act_id=act_id, error=str(log_exc))

    async def update_act(self, act_id: str) -> bool:
        """Refresh one act.  Returns ``False`` instead of raising on failure."""
        try:
            act = await self._enricher.fetch_and_enrich(act_id, silent_event_fail=True)
            await self._store.cache_act(act)
        except Exception as exc:
            logger.error("cache_update_failed", act_id=act_id, error=str(exc))
            await self._record_failure(act_id, exc)
            return False

        self._last_update = act.updated_at
        logger.debug("cache_update_succeeded", act_id=act_id)
        return True

    async def run_sequential_update(self) -> int:
        """Bootstrap phase: refresh every stale act.  Returns the count updated."""
        try:
            entries = await self._store.get_all_acts_with_metadata()
        except Exception as exc:
            logger.error("bootstrap_listing_failed", error=str(exc))
            return 0

        stale_ids = [
            entry.act_id
            for entry in entries
            if is_stale(entry.updated_at, threshold=self._staleness_threshold)
        ]
        logger.info("bootstrap_started", total=len(entries), stale=len(stale_ids))

        updated = 0
        for index, act_id in enumerate(stale_ids):
            if await self.update_act(act_id):
                updated += 1
            if index < len(stale_ids) - 1:
                await self._sleep(self._fetch_delay)

        logger.info("bootstrap_completed", updated=updated, stale=len(stale_ids))
        return updated

    async def run_cycle(
        self,
        cycle_interval_seconds: float | None = None,
        retry_delay_seconds: float | None = None,
    ) -> None:
        """One sweep over all cached ids, spread over the cycle interval."""
        interval = self._cycle_interval if cycle_interval_seconds is None else cycle_interval_seconds
        retry_delay = self._retry_delay if retry_delay_seconds is None else retry_delay_seconds

        try:
            act_ids = await self._store.get_all_act_ids()
        except Exception as exc:
            logger.error("cycle_listing_failed", error=str(exc), retry_in=retry_delay)
            await self._sleep(retry_delay)
            return

        if not act_ids:
            logger.info("cycle_skipped_empty_cache", sleep=interval)
            await self._sleep(interval)
            return

        time_slice = interval / len(act_ids)
        logger.info("cycle_started", count=len(act_ids), slice_seconds=round(time_slice, 2))
        for act_id in act_ids:
            await self.update_act(act_id)
            await self._sleep(time_slice)

    async def start(self, max_cycles: int | None = None) -> None:
        """Run the bootstrap, the quiet period, then cycles.

        Cycles run forever unless *max_cycles* is given.
        """
        await self.run_sequential_update()
        logger.info("cache_updater_quiet_period", seconds=self._quiet_period)
        await self._sleep(self._quiet_period)

        while max_cycles is None or self._cycles_completed < max_cycles:
            await self.run_cycle()
            self._cycles_completed += 1
