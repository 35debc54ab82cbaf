"""Tests for the bounded render worker pool."""

import asyncio
from uuid import uuid4

import pytest

from slideshow.services.worker_pool import RenderWorkerPool


class TestRenderWorkerPool:
    """Tests for RenderWorkerPool."""

    @pytest.mark.asyncio
    async def test_runs_submitted_jobs(self):
        pool = RenderWorkerPool(max_workers=2)
        pool.start()
        done = []

        for i in range(4):
            async def job(i=i):
                done.append(i)
            assert await pool.submit(uuid4(), job) is True

        await pool.join()
        await pool.stop()
        assert sorted(done) == [0, 1, 2, 3]

    @pytest.mark.asyncio
    async def test_refuses_duplicate_job_id(self):
        pool = RenderWorkerPool(max_workers=1)
        job_id = uuid4()
        calls = []

        async def job():
            calls.append(job_id)

        assert await pool.submit(job_id, job) is True
        assert await pool.submit(job_id, job) is False
        assert pool.is_in_flight(job_id)

        pool.start()
        await pool.join()
        assert calls == [job_id]
        assert not pool.is_in_flight(job_id)

        # Once finished, the same id may be queued again
        assert await pool.submit(job_id, job) is True
        await pool.join()
        await pool.stop()
        assert calls == [job_id, job_id]

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        pool = RenderWorkerPool(max_workers=2)
        pool.start()
        running = 0
        peak = 0

        async def job():
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1

        for _ in range(6):
            await pool.submit(uuid4(), job)
        await pool.join()
        await pool.stop()
        assert peak == 2

    @pytest.mark.asyncio
    async def test_failing_job_does_not_kill_worker(self):
        pool = RenderWorkerPool(max_workers=1)
        pool.start()
        done = []

        async def boom():
            raise RuntimeError("boom")

        async def ok():
            done.append(True)

        await pool.submit(uuid4(), boom)
        await pool.submit(uuid4(), ok)
        await pool.join()
        await pool.stop()
        assert done == [True]
