"""Background fetch queue with a single sequential worker.

Ids are appended to an insertion-ordered pending set; the first ``enqueue``
on an idle queue starts exactly one worker task, later calls just extend the
pending set.  The worker enriches and caches one id at a time with a fixed
pause between ids so the upstream APIs never see a burst.

The idle-check and ``is_running`` flip in :meth:`FetchQueue.enqueue` contain
no ``await``, so two callers cannot both start a worker.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable

import structlog

from src.interfaces.act_store import IActStore
from src.services.act_enricher import ActEnricher

logger = structlog.get_logger(logger_name=__name__)

SleepFn = Callable[[float], Awaitable[None]]


class FetchQueue:
    """Rate-limited FIFO of act ids awaiting a background refresh.

    Parameters
    ----------
    enricher:
        Pipeline used to rebuild each act (always with silent event failure).
    store:
        Where refreshed acts are written.
    delay_seconds:
        Pause between two consecutive ids.  Not applied after the last one.
    sleep:
        Awaitable sleep, injectable so tests do not wait for real.
    """

    def __init__(
        self,
        enricher: ActEnricher,
        store: IActStore,
        delay_seconds: float = 30.0,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._enricher = enricher
        self._store = store
        self._delay = delay_seconds
        self._sleep = sleep
        self._pending: dict[str, None] = {}
        self._is_running = False
        self._worker: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def pending(self) -> list[str]:
        return list(self._pending)

    def enqueue(self, act_ids: Iterable[str]) -> None:
        """Add *act_ids* and start the worker if none is running."""
        for act_id in act_ids:
            self._pending[act_id] = None

        if self._is_running or not self._pending:
            return

        self._is_running = True
        self._worker = asyncio.get_running_loop().create_task(
            self._drain(), name="fetch-queue-worker"
        )

    async def wait_until_idle(self) -> None:
        """Wait for the current worker (if any) to finish draining."""
        while self._worker is not None and not self._worker.done():
            await asyncio.shield(self._worker)

    async def stop(self) -> None:
        """Cancel the worker and wait for it to exit; pending ids are dropped."""
        worker = self._worker
        if worker is None or worker.done():
            return
        worker.cancel()
        await asyncio.gather(worker, return_exceptions=True)
        dropped = len(self._pending)
        self._pending.clear()
        logger.info("fetch_queue_stopped", dropped=dropped)

    async def _process(self, act_id: str) -> None:
        try:
            act = await self._enricher.fetch_and_enrich(act_id, silent_event_fail=True)
            await self._store.cache_act(act)
            logger.info("fetch_queue_act_cached", act_id=act_id)
        except Exception as exc:
            logger.error("fetch_queue_act_failed", act_id=act_id, error=str(exc))

    async def _drain(self) -> None:
        logger.info("fetch_queue_started", pending=len(self._pending))
        try:
            while self._pending:
                act_id = next(iter(self._pending))
                del self._pending[act_id]
                await self._process(act_id)
                if self._pending:
                    await self._sleep(self._delay)
        finally:
            self._is_running = False
            logger.info("fetch_queue_idle")
