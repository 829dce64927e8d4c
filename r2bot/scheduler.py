import asyncio
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional

from r2bot.logger import TIMEZONE, logger


class DailyScheduler:
    """Runs `job` now, then again `interval_hours` after each run finishes.

    The delay is measured from the end of a run, so start times drift by
    each run's duration. stop() cuts the idle wait short; a stop requested
    mid-run takes effect once that run returns.
    """

    def __init__(self, job: Callable[[], Awaitable[None]], interval_hours: float = 24):
        self.job = job
        self.interval = timedelta(hours=interval_hours)
        self.runs = 0
        self._stop = asyncio.Event()

    def stop(self):
        logger.info("Stop requested, scheduler will exit at the next idle point")
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    async def _wait_for_next_run(self) -> bool:
        next_run = datetime.now(TIMEZONE) + self.interval
        logger.info(f"Next run scheduled for: {next_run.strftime('%Y-%m-%d %X %Z')}")
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=self.interval.total_seconds())
        except asyncio.TimeoutError:
            return True
        return False

    async def run_forever(self, max_runs: Optional[int] = None):
        logger.info("Starting daily operations scheduler...")
        while not self.stopped:
            await self.job()
            self.runs += 1

            if max_runs is not None and self.runs >= max_runs:
                break
            if self.stopped or not await self._wait_for_next_run():
                break

        logger.info("Shutting down scheduler...")
