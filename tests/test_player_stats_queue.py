"""Tests for the deferred player stats queue."""

import asyncio

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from beatrank.database.models import EndType, PlayerLeaderboardStats
from beatrank.services.player_stats_queue import PlayerStatsJob, PlayerStatsQueue


async def attempt_count(session_factory):
    async with session_factory() as session:
        return (await session.execute(select(func.count(PlayerLeaderboardStats.id)))).scalar()


class TestProcessBatch:

    async def test_records_attempt_and_counters(self, db, session_factory, ranked_leaderboard, score_factory):
        await score_factory("lb-ranked", "p1", pp=10)
        queue = PlayerStatsQueue(session_factory)

        recorded = await queue.process_batch([
            PlayerStatsJob("p1", "lb-ranked", score=900, time=120.5, timeset=1700000000, type=EndType.CLEAR),
        ])

        assert recorded == 1
        assert (await db.get_leaderboard("lb-ranked")).play_count == 1
        assert (await db.get_scores("lb-ranked"))[0].play_count == 1
        assert await attempt_count(session_factory) == 1

    async def test_duplicate_attempts_skipped(self, db, session_factory, ranked_leaderboard):
        await db.create_player("p1")
        queue = PlayerStatsQueue(session_factory)
        job = PlayerStatsJob("p1", "lb-ranked", score=500)

        assert await queue.process_batch([job, job]) == 1
        assert await queue.process_batch([job]) == 0
        assert queue.skipped == 2
        assert (await db.get_leaderboard("lb-ranked")).play_count == 1

    async def test_attempt_without_score_only_counts_play(self, db, session_factory, ranked_leaderboard):
        await db.create_player("p1")
        queue = PlayerStatsQueue(session_factory)

        await queue.process_batch([PlayerStatsJob("p1", "lb-ranked", score=100, type=EndType.FAIL)])

        assert (await db.get_leaderboard("lb-ranked")).play_count == 1
        assert await db.get_scores("lb-ranked") == []

    async def test_unknown_leaderboard_skipped(self, session_factory):
        queue = PlayerStatsQueue(session_factory)
        assert await queue.process_batch([PlayerStatsJob("p1", "missing", score=1)]) == 0


class TestConsumer:

    async def test_stop_drains_queue(self, db, session_factory, ranked_leaderboard):
        await db.create_player("p1")
        queue = PlayerStatsQueue(session_factory, maxsize=5, batch_size=2)
        queue.start()

        for i in range(7):
            await queue.submit(PlayerStatsJob("p1", "lb-ranked", score=i))
        await queue.stop()

        assert not queue.running
        assert queue.pending == 0
        assert queue.recorded == 7
        assert (await db.get_leaderboard("lb-ranked")).play_count == 7

    async def test_failed_batch_is_dropped(self, db, session_factory, ranked_leaderboard, monkeypatch):
        await db.create_player("p1")
        queue = PlayerStatsQueue(session_factory, batch_size=10)
        original = queue._record

        async def broken_record(session, job):
            if job.score == 13:
                raise OperationalError("INSERT", {}, Exception("disk I/O error"))
            return await original(session, job)

        monkeypatch.setattr(queue, "_record", broken_record)

        await queue.submit(PlayerStatsJob("p1", "lb-ranked", score=13))
        queue.start()
        await queue.stop()

        assert queue.failed_batches == 1
        assert await attempt_count(session_factory) == 0

        queue.start()
        await queue.submit(PlayerStatsJob("p1", "lb-ranked", score=14))
        await queue.stop()
        assert queue.recorded == 1

    async def test_submit_waits_when_full(self, session_factory):
        queue = PlayerStatsQueue(session_factory, maxsize=1)
        await queue.submit(PlayerStatsJob("p1", "lb", score=1))

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(queue.submit(PlayerStatsJob("p1", "lb", score=2)), timeout=0.05)
