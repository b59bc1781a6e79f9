"""Tests for sirius/automation/offload.py"""

import asyncio
import threading

import pytest

from sirius.automation.offload import WorkerPool
from sirius.config_models import WorkersConfig
from sirius.exceptions import OffloadUnavailable


@pytest.fixture
def pool():
    pool = WorkerPool(max_workers=1, timeout=1.0)
    yield pool
    pool.shutdown(wait=True)


class TestTryAsync:
    @pytest.mark.asyncio
    async def test_runs_handler_on_worker(self, pool):
        pool.register("context", lambda payload: threading.current_thread().name)
        name = await pool.try_async("context", {})
        assert name.startswith("sirius-worker")

    @pytest.mark.asyncio
    async def test_disabled(self):
        pool = WorkerPool(enabled=False)
        pool.register("context", lambda payload: 1)
        with pytest.raises(OffloadUnavailable):
            await pool.try_async("context", {})

    @pytest.mark.asyncio
    async def test_unknown_kind(self, pool):
        with pytest.raises(OffloadUnavailable):
            await pool.try_async("missing", {})

    @pytest.mark.asyncio
    async def test_handler_error(self, pool):
        def handler(payload):
            raise ValueError("bad payload")

        pool.register("action", handler)
        with pytest.raises(OffloadUnavailable, match="bad payload"):
            await pool.try_async("action", {})
        assert pool.busy_workers == 0

    @pytest.mark.asyncio
    async def test_timeout(self):
        release = threading.Event()
        pool = WorkerPool(max_workers=1, timeout=0.05)
        pool.register("action", lambda payload: release.wait(5))

        with pytest.raises(OffloadUnavailable, match="timed out"):
            await pool.try_async("action", {})
        # The timed-out task still occupies its worker
        assert pool.busy_workers == 1

        release.set()
        pool.shutdown(wait=True)
        assert pool.busy_workers == 0


class TestRunOffloaded:
    @pytest.mark.asyncio
    async def test_offloaded_result(self, pool):
        pool.register("context", lambda payload: payload["n"] * 2)
        assert await pool.run_offloaded("context", {"n": 21}, lambda payload: -1) == 42

    @pytest.mark.asyncio
    async def test_saturated_pool_returns_fallback(self):
        release = threading.Event()
        pool = WorkerPool(max_workers=1, timeout=5)
        pool.register("action", lambda payload: release.wait(5))
        sentinel = object()

        running = asyncio.create_task(pool.try_async("action", {}))
        await asyncio.sleep(0.05)
        assert pool.busy_workers == 1
        try:
            result = await pool.run_offloaded("action", {}, lambda payload: sentinel)
        finally:
            release.set()
            await running
            pool.shutdown(wait=True)

        assert result is sentinel

    @pytest.mark.asyncio
    async def test_awaitable_fallback(self):
        pool = WorkerPool(enabled=False)

        async def fallback(payload):
            return "inline"

        assert await pool.run_offloaded("context", {}, fallback) == "inline"


class TestFromConfig:
    def test_from_config(self):
        pool = WorkerPool.from_config(WorkersConfig(max_workers=0, timeout_seconds=2))
        assert pool.available is False
        assert pool.timeout == 2
