"""Shared asyncio primitives for the cache subsystem.

Two patterns are exposed:

1. **with_timeout** -- bounds a single awaitable (typically a document-store
   call) so a hung I/O operation cannot block a request indefinitely.  On
   expiry the awaitable is cancelled and :class:`CacheTimeoutError` is raised.

2. **BackgroundTasks** -- a fire-and-forget task registry.  A submitted
   coroutine is scheduled immediately and never awaited by the caller; its
   failure is routed to a dedicated error handler instead of disappearing.
   The registry holds strong references so the event loop cannot garbage
   collect a task that is still running.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any, TypeVar

import structlog

from src.utils.errors import CacheTimeoutError
from src.utils.logging import get_logger

_T = TypeVar("_T")

_logger: structlog.BoundLogger = get_logger(__name__)


async def with_timeout(awaitable: Awaitable[_T], timeout_seconds: float) -> _T:
    """Await *awaitable* for at most *timeout_seconds*.

    Raises
    ------
    CacheTimeoutError
        If the awaitable has not settled when the timeout elapses.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_seconds)
    except asyncio.TimeoutError as exc:
        raise CacheTimeoutError() from exc


class BackgroundTasks:
    """Registry of detached tasks whose errors go to a handler, not the caller."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()

    def submit(
        self,
        coro: Coroutine[Any, Any, Any],
        on_error: Callable[[Exception], None],
        name: str | None = None,
    ) -> asyncio.Task[None]:
        """Schedule *coro* without waiting for it.

        ``on_error`` is invoked with the exception if the coroutine raises.
        Must be called from inside a running event loop.
        """

        async def _guarded() -> None:
            try:
                await coro
            except Exception as exc:  # routed to the handler, never re-raised
                on_error(exc)

        task = asyncio.get_running_loop().create_task(_guarded(), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def wait(self) -> None:
        """Wait for every currently registered task to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
            _logger.debug("background_tasks_cancelled")
