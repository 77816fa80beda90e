"""
Refresh Scheduler - periodic batch jobs

Runs the rank refresh and clan refresh on fixed intervals. Every job type
has its own lock, so a manual trigger and the periodic loop can never run
the same job twice at once. The loop waits for a run to finish before it
sleeps until the next one.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from beatrank.config import Config
from beatrank.utils.leaderboard_exceptions import JobAlreadyRunningError
from beatrank.utils.logger import setup_logger

logger = setup_logger(__name__)

RANK_REFRESH_JOB = "rank_refresh"
CLAN_REFRESH_JOB = "clan_refresh"


@dataclass
class ScheduledJob:
    name: str
    run: Callable[[], Awaitable[Any]]
    interval_seconds: float
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    runs: int = 0
    last_result: Any = None
    last_finished_at: Optional[datetime] = None


class RefreshScheduler:
    """Single-instance periodic job runner."""

    def __init__(self):
        self._jobs: Dict[str, ScheduledJob] = {}
        self._tasks: Dict[str, asyncio.Task] = {}

    @classmethod
    def for_services(cls, rank_refresh_service, clan_stats_service) -> "RefreshScheduler":
        """Scheduler with the standard rank and clan refresh jobs registered."""
        scheduler = cls()
        scheduler.register(
            RANK_REFRESH_JOB,
            rank_refresh_service.refresh,
            Config.RANK_REFRESH_INTERVAL_MINUTES * 60,
        )
        scheduler.register(
            CLAN_REFRESH_JOB,
            clan_stats_service.refresh_clans,
            Config.CLAN_REFRESH_INTERVAL_MINUTES * 60,
        )
        return scheduler

    def register(self, name: str, run: Callable[[], Awaitable[Any]], interval_seconds: float):
        if name in self._jobs:
            raise ValueError(f"Job '{name}' is already registered")
        self._jobs[name] = ScheduledJob(name=name, run=run, interval_seconds=interval_seconds)

    def get_job(self, name: str) -> ScheduledJob:
        job = self._jobs.get(name)
        if job is None:
            raise KeyError(f"Unknown job '{name}'")
        return job

    def is_running(self, name: str) -> bool:
        return self.get_job(name).lock.locked()

    async def run_job(self, name: str, wait: bool = True) -> Any:
        """
        Run a job once, holding its lock for the whole run.

        Args:
            name: Registered job name
            wait: Wait for a run in progress to finish instead of raising

        Returns:
            Whatever the job returned

        Raises:
            JobAlreadyRunningError: If wait is False and the job is running
        """
        job = self.get_job(name)
        if not wait and job.lock.locked():
            raise JobAlreadyRunningError(name)

        async with job.lock:
            started = time.monotonic()
            logger.info(f"Job {name} started")

            result = await job.run()

            job.runs += 1
            job.last_result = result
            job.last_finished_at = datetime.now(timezone.utc)
            logger.info(f"Job {name} finished in {time.monotonic() - started:.2f}s")
            return result

    async def _loop(self, job: ScheduledJob):
        while True:
            try:
                await self.run_job(job.name)
            except Exception as e:
                logger.error(f"Error in scheduled job {job.name}: {e}", exc_info=True)
            await asyncio.sleep(job.interval_seconds)

    def start(self):
        """Start a loop task for every registered job that is not looping yet."""
        for name, job in self._jobs.items():
            task = self._tasks.get(name)
            if task is not None and not task.done():
                continue
            self._tasks[name] = asyncio.create_task(self._loop(job), name=f"scheduler-{name}")
        logger.info(f"Refresh scheduler started with jobs: {', '.join(self._jobs)}")

    async def stop(self):
        """Cancel all loop tasks and wait for them to exit."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info("Refresh scheduler stopped")
