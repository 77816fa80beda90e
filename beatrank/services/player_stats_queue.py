"""
Player Stats Queue

Deferred per-attempt statistics. Score submission only enqueues a job; a
single consumer task writes the attempt records and bumps the play counters
in batches. The queue is bounded, so producers wait when the consumer falls
behind.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from beatrank.config import Config
from beatrank.database.models import EndType, Leaderboard, PlayerLeaderboardStats, Score
from beatrank.services.base import BaseService
from beatrank.utils.leaderboard_exceptions import TransientPersistenceError
from beatrank.utils.logger import setup_logger

logger = setup_logger(__name__)


@dataclass(frozen=True)
class PlayerStatsJob:
    """One play attempt waiting to be recorded."""
    player_id: str
    leaderboard_id: str
    score: int
    time: float = 0.0
    timeset: Optional[int] = None
    type: EndType = EndType.UNKNOWN


class PlayerStatsQueue(BaseService):
    """Bounded queue with a single batching consumer."""

    def __init__(self, session_factory, maxsize: int = None, batch_size: int = None):
        super().__init__(session_factory)
        self.batch_size = batch_size or Config.PLAYER_STATS_BATCH_SIZE
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize or Config.PLAYER_STATS_QUEUE_SIZE)
        self._consumer: Optional[asyncio.Task] = None

        self.recorded = 0
        self.skipped = 0
        self.failed_batches = 0

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    def start(self):
        """Start the consumer task. Calling it again while running is a no-op."""
        if self.running:
            return
        self._consumer = asyncio.create_task(self._consume(), name="player-stats-consumer")
        logger.info("Player stats consumer started")

    async def submit(self, job: PlayerStatsJob):
        """Enqueue a job, waiting for space when the queue is full."""
        await self._queue.put(job)

    async def stop(self):
        """Drain outstanding jobs, then cancel the consumer."""
        if self._consumer is None:
            return

        if self.running:
            await self._queue.join()

        self._consumer.cancel()
        try:
            await self._consumer
        except asyncio.CancelledError:
            pass
        self._consumer = None
        logger.info(f"Player stats consumer stopped: {self.recorded} recorded, {self.skipped} skipped, "
                    f"{self.failed_batches} failed batches")

    async def _consume(self):
        while True:
            batch = [await self._queue.get()]
            while len(batch) < self.batch_size:
                try:
                    batch.append(self._queue.get_nowait())
                except asyncio.QueueEmpty:
                    break

            try:
                await self.process_batch(batch)
            except TransientPersistenceError as e:
                self.failed_batches += 1
                logger.error(f"Dropped player stats batch of {len(batch)}: {e}")
            except Exception as e:
                # The consumer must outlive a bad batch
                self.failed_batches += 1
                logger.error(f"Unexpected error in player stats batch: {e}", exc_info=True)
            finally:
                for _ in batch:
                    self._queue.task_done()

    async def process_batch(self, jobs: Sequence[PlayerStatsJob]) -> int:
        """
        Record a batch of attempts in one transaction.

        Args:
            jobs: Attempts to record

        Returns:
            Number of attempts recorded (duplicates and unknown leaderboards are skipped)

        Raises:
            TransientPersistenceError: If the batch could not be committed
        """
        recorded = 0
        async with self.page_transaction(f"player stats batch of {len(jobs)}") as session:
            for job in jobs:
                if await self._record(session, job):
                    recorded += 1

        self.recorded += recorded
        self.skipped += len(jobs) - recorded
        logger.debug(f"Recorded {recorded}/{len(jobs)} player attempts")
        return recorded

    async def _record(self, session: AsyncSession, job: PlayerStatsJob) -> bool:
        leaderboard = await session.get(Leaderboard, job.leaderboard_id)
        if leaderboard is None:
            logger.warning(f"Skipping attempt on unknown leaderboard {job.leaderboard_id}")
            return False

        # Same player, same leaderboard, same score: a resubmitted attempt
        duplicate = await session.execute(
            select(PlayerLeaderboardStats.id)
            .where(
                PlayerLeaderboardStats.leaderboard_id == job.leaderboard_id,
                PlayerLeaderboardStats.player_id == job.player_id,
                PlayerLeaderboardStats.score == job.score,
            )
            .limit(1)
        )
        if duplicate.first() is not None:
            return False

        leaderboard.play_count = (leaderboard.play_count or 0) + 1
        session.add(PlayerLeaderboardStats(
            leaderboard_id=job.leaderboard_id,
            player_id=job.player_id,
            score=job.score,
            time=job.time,
            timeset=job.timeset if job.timeset is not None else int(time.time()),
            type=job.type,
        ))

        await session.execute(
            update(Score)
            .where(Score.leaderboard_id == job.leaderboard_id, Score.player_id == job.player_id)
            .values(play_count=Score.play_count + 1)
        )
        await session.flush()
        return True

