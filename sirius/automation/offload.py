"""
Tool: Worker Offload
Purpose: Run heavier work on a bounded thread pool with a synchronous fallback

Handlers are plain functions registered per kind ("context", "action").
`try_async` runs one on the pool and raises OffloadUnavailable whenever the
pool cannot deliver a result. `run_offloaded` turns every such case into a
call to the fallback, so callers always get the same result shape.

Usage:
    from sirius.automation.offload import WorkerPool

    pool = WorkerPool(max_workers=2, timeout=10)
    pool.register("context", lambda payload: provider.get_context(payload["user_id"]))

    context = await pool.run_offloaded("context", {"user_id": "alice"}, fallback)

Dependencies:
    - concurrent.futures (stdlib)
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import inspect
import threading
from collections.abc import Callable
from typing import Any

from sirius.config_models import WorkersConfig
from sirius.exceptions import OffloadUnavailable
from sirius.logging_config import get_logger


logger = get_logger(__name__)

Handler = Callable[[dict[str, Any]], Any]


class WorkerPool:
    """
    Bounded pool of worker threads.

    A task that times out keeps its worker busy until it actually finishes;
    the pool never kills running work.
    """

    def __init__(self, enabled: bool = True, max_workers: int = 4, timeout: float = 30.0):
        self.enabled = enabled
        self.max_workers = max_workers
        self.timeout = timeout
        self._handlers: dict[str, Handler] = {}
        self._executor: concurrent.futures.ThreadPoolExecutor | None = None
        self._busy = 0
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: WorkersConfig) -> WorkerPool:
        return cls(enabled=config.enabled, max_workers=config.max_workers, timeout=config.timeout_seconds)

    @property
    def available(self) -> bool:
        return self.enabled and self.max_workers > 0

    @property
    def busy_workers(self) -> int:
        return self._busy

    def register(self, kind: str, handler: Handler) -> None:
        self._handlers[kind] = handler

    def has_handler(self, kind: str) -> bool:
        return kind in self._handlers

    def _acquire(self) -> bool:
        with self._lock:
            if self._busy >= self.max_workers:
                return False
            self._busy += 1
            return True

    def _release(self, _future: concurrent.futures.Future | None = None) -> None:
        with self._lock:
            self._busy -= 1

    def _get_executor(self) -> concurrent.futures.ThreadPoolExecutor:
        if self._executor is None:
            self._executor = concurrent.futures.ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix="sirius-worker"
            )
        return self._executor

    async def try_async(self, kind: str, payload: dict[str, Any]) -> Any:
        """
        Run the handler for `kind` on a worker thread.

        Raises:
            OffloadUnavailable: the pool is disabled or saturated, no handler
                is registered, the task timed out or the handler raised
        """
        if not self.available:
            raise OffloadUnavailable(f"Workers disabled for '{kind}'")

        handler = self._handlers.get(kind)
        if handler is None:
            raise OffloadUnavailable(f"No worker handler registered for '{kind}'")

        if not self._acquire():
            logger.warning("workers_saturated", kind=kind, busy=self._busy)
            raise OffloadUnavailable(f"All {self.max_workers} workers are busy")

        try:
            future = self._get_executor().submit(handler, payload)
        except RuntimeError as e:
            self._release()
            raise OffloadUnavailable(f"Worker pool unavailable: {e}") from e
        future.add_done_callback(self._release)

        try:
            return await asyncio.wait_for(asyncio.wrap_future(future), timeout=self.timeout)
        except TimeoutError as e:
            logger.warning("worker_timed_out", kind=kind, timeout=self.timeout)
            raise OffloadUnavailable(f"Worker '{kind}' timed out after {self.timeout}s") from e
        except Exception as e:
            logger.warning("worker_failed", kind=kind, error=str(e))
            raise OffloadUnavailable(f"Worker '{kind}' failed: {e}") from e

    async def run_offloaded(
        self,
        kind: str,
        payload: dict[str, Any],
        fallback: Callable[[dict[str, Any]], Any],
    ) -> Any:
        """Offload when possible, otherwise return exactly what `fallback(payload)` returns."""
        try:
            return await self.try_async(kind, payload)
        except OffloadUnavailable as e:
            logger.debug("worker_fallback", kind=kind, reason=str(e))

        result = fallback(payload)
        if inspect.isawaitable(result):
            result = await result
        return result

    def shutdown(self, wait: bool = False) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None


__all__ = ["Handler", "WorkerPool"]
