import asyncio

import pytest
from unittest.mock import AsyncMock, patch

from r2bot.scheduler import DailyScheduler


def _timeout_wait_for(awaitable, timeout):
    awaitable.close()
    raise asyncio.TimeoutError


class TestDailyScheduler:
    @pytest.mark.asyncio
    async def test_runs_immediately_on_start(self):
        job = AsyncMock()
        scheduler = DailyScheduler(job)

        await scheduler.run_forever(max_runs=1)

        job.assert_awaited_once()
        assert scheduler.runs == 1

    @pytest.mark.asyncio
    async def test_rearms_with_fixed_24_hour_delay(self):
        job = AsyncMock()
        scheduler = DailyScheduler(job, interval_hours=24)

        with patch("r2bot.scheduler.asyncio.wait_for", side_effect=_timeout_wait_for) as mock_wait_for:
            await scheduler.run_forever(max_runs=3)

        assert job.await_count == 3
        assert mock_wait_for.call_count == 2
        for wait_call in mock_wait_for.call_args_list:
            assert wait_call.kwargs["timeout"] == 24 * 60 * 60

    @pytest.mark.asyncio
    async def test_stop_during_idle_wait_ends_loop(self):
        first_run_done = asyncio.Event()

        async def job():
            first_run_done.set()

        scheduler = DailyScheduler(job, interval_hours=24)
        task = asyncio.create_task(scheduler.run_forever())

        await asyncio.wait_for(first_run_done.wait(), timeout=1)
        scheduler.stop()
        await asyncio.wait_for(task, timeout=1)

        assert scheduler.runs == 1
        assert scheduler.stopped

    @pytest.mark.asyncio
    async def test_stop_requested_mid_run_finishes_that_run(self):
        scheduler = None

        async def job():
            scheduler.stop()
            await asyncio.sleep(0)

        scheduler = DailyScheduler(job, interval_hours=24)
        await asyncio.wait_for(scheduler.run_forever(), timeout=1)

        assert scheduler.runs == 1

    @pytest.mark.asyncio
    async def test_job_exception_propagates(self):
        job = AsyncMock(side_effect=RuntimeError("unexpected"))
        scheduler = DailyScheduler(job)

        with pytest.raises(RuntimeError):
            await scheduler.run_forever(max_runs=2)
