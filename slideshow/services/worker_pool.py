"""Bounded pool of background render workers.

Jobs are queued on an asyncio.Queue and consumed by a fixed number of worker
tasks, so at most ``max_workers`` renders run at once. A job id that is
already queued or running is refused.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import UUID

logger = logging.getLogger(__name__)

JobFactory = Callable[[], Awaitable[Any]]

_STOP = object()


class RenderWorkerPool:
    def __init__(self, max_workers: int = 2) -> None:
        self.max_workers = max(1, max_workers)
        self._queue: asyncio.Queue = asyncio.Queue()
        self._workers: list[asyncio.Task] = []
        self._in_flight: set[UUID] = set()
        self._lock = asyncio.Lock()

    def is_in_flight(self, job_id: UUID) -> bool:
        return job_id in self._in_flight

    def start(self) -> None:
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"render-worker-{i}")
            for i in range(self.max_workers)
        ]
        logger.info(f"Started {self.max_workers} render workers")

    async def stop(self) -> None:
        """Let queued jobs finish, then stop the workers."""
        if not self._workers:
            return
        for _ in self._workers:
            await self._queue.put(_STOP)
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info("Render workers stopped")

    async def submit(self, job_id: UUID, factory: JobFactory) -> bool:
        """Queue ``factory()`` to run for ``job_id``.

        Returns False if the job id is already queued or running.
        """
        async with self._lock:
            if job_id in self._in_flight:
                logger.warning(f"Render job {job_id} is already in flight, refusing duplicate")
                return False
            self._in_flight.add(job_id)
        await self._queue.put((job_id, factory))
        return True

    async def join(self) -> None:
        """Wait until every queued job has been processed."""
        await self._queue.join()

    async def _worker(self, index: int) -> None:
        while True:
            item = await self._queue.get()
            try:
                if item is _STOP:
                    return
                job_id, factory = item
                try:
                    await factory()
                except Exception:
                    # Jobs record their own failures; this only guards the worker
                    logger.exception(f"[worker {index}] Render job {job_id} raised")
                finally:
                    async with self._lock:
                        self._in_flight.discard(job_id)
            finally:
                self._queue.task_done()
