"""Unit tests for with_timeout and the BackgroundTasks registry."""

from __future__ import annotations

import asyncio

import pytest

from src.utils.concurrency import BackgroundTasks, with_timeout
from src.utils.errors import CacheError, CacheTimeoutError


class TestWithTimeout:
    @pytest.mark.asyncio
    async def test_returns_result(self) -> None:
        async def _value() -> int:
            return 7

        assert await with_timeout(_value(), 1) == 7

    @pytest.mark.asyncio
    async def test_timeout_raises_cache_timeout(self) -> None:
        with pytest.raises(CacheTimeoutError) as exc_info:
            await with_timeout(asyncio.sleep(10), 0.01)

        assert exc_info.value.message == "Database operation timeout"
        assert isinstance(exc_info.value, CacheError)

    @pytest.mark.asyncio
    async def test_other_errors_pass_through(self) -> None:
        async def _fail() -> None:
            raise CacheError(code="DB_004")

        with pytest.raises(CacheError) as exc_info:
            await with_timeout(_fail(), 1)
        assert not isinstance(exc_info.value, CacheTimeoutError)


class TestBackgroundTasks:
    @pytest.mark.asyncio
    async def test_submit_does_not_block_caller(self) -> None:
        tasks = BackgroundTasks()
        gate = asyncio.Event()
        done: list[str] = []

        async def _job() -> None:
            await gate.wait()
            done.append("job")

        tasks.submit(_job(), on_error=lambda exc: None)
        assert done == []
        assert tasks.pending == 1

        gate.set()
        await tasks.wait()
        assert done == ["job"]
        assert tasks.pending == 0

    @pytest.mark.asyncio
    async def test_errors_go_to_handler(self) -> None:
        tasks = BackgroundTasks()
        errors: list[Exception] = []

        async def _fail() -> None:
            raise RuntimeError("write failed")

        tasks.submit(_fail(), on_error=errors.append)
        await tasks.wait()

        assert len(errors) == 1
        assert str(errors[0]) == "write failed"

    @pytest.mark.asyncio
    async def test_cancel_all(self) -> None:
        tasks = BackgroundTasks()
        task = tasks.submit(asyncio.sleep(10), on_error=lambda exc: None)

        await tasks.cancel_all()

        assert task.cancelled()
        assert tasks.pending == 0
