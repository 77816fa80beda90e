"""Tests for the paged rank refresh job."""

from sqlalchemy.exc import OperationalError

from beatrank.database.models import DifficultyStatus
from beatrank.services.rank_refresh_service import RankRefreshService


async def ranks_by_player(db, leaderboard_id):
    return {score.player_id: score.rank for score in await db.get_scores(leaderboard_id, include_banned=True)}


class TestRankRefresh:

    async def test_ranks_and_plays(self, db, session_factory, ranked_leaderboard, score_factory):
        await score_factory("lb-ranked", "p1", pp=100, accuracy=0.95, timeset=10)
        await score_factory("lb-ranked", "p2", pp=100, accuracy=0.97, timeset=5)
        await score_factory("lb-ranked", "p3", pp=90, accuracy=0.99, timeset=1)

        result = await RankRefreshService(session_factory).refresh()

        assert await ranks_by_player(db, "lb-ranked") == {"p1": 2, "p2": 1, "p3": 3}
        assert result.plays == {"lb-ranked": 3}
        assert result.scores_ranked == 3
        assert result.pages_failed == 0
        assert (await db.get_leaderboard("lb-ranked")).plays == 3

    async def test_banned_scores_excluded(self, db, session_factory, ranked_leaderboard, score_factory):
        await score_factory("lb-ranked", "p1", pp=50)
        await score_factory("lb-ranked", "cheater", pp=999, banned=True, rank=7)
        await score_factory("lb-ranked", "p2", pp=40)

        await RankRefreshService(session_factory).refresh()

        ranks = await ranks_by_player(db, "lb-ranked")
        assert ranks["p1"] == 1
        assert ranks["p2"] == 2
        assert ranks["cheater"] == 7
        assert (await db.get_leaderboard("lb-ranked")).plays == 2

    async def test_empty_leaderboard_resets_plays(self, db, session_factory):
        await db.create_leaderboard("lb-empty", plays=5)

        result = await RankRefreshService(session_factory).refresh()

        assert result.plays == {"lb-empty": 0}
        assert result.scores_ranked == 0
        assert (await db.get_leaderboard("lb-empty")).plays == 0

    async def test_unranked_uses_modified_score(self, db, session_factory, score_factory):
        await db.create_leaderboard("lb-unranked", status=DifficultyStatus.UNRANKED)
        await score_factory("lb-unranked", "p1", pp=0, modified_score=800)
        await score_factory("lb-unranked", "p2", pp=0, modified_score=900)

        await RankRefreshService(session_factory).refresh()

        assert await ranks_by_player(db, "lb-unranked") == {"p1": 2, "p2": 1}

    async def test_leaderboard_filter(self, db, session_factory, score_factory):
        await db.create_leaderboard("lb-a", status=DifficultyStatus.RANKED)
        await db.create_leaderboard("lb-b", status=DifficultyStatus.RANKED)
        await score_factory("lb-a", "p1", pp=10)
        await score_factory("lb-b", "p1", pp=10)

        result = await RankRefreshService(session_factory).refresh("lb-b")

        assert result.leaderboards_processed == 1
        assert await ranks_by_player(db, "lb-a") == {"p1": 0}
        assert await ranks_by_player(db, "lb-b") == {"p1": 1}

    async def test_failed_page_is_skipped(self, db, session_factory, score_factory, monkeypatch):
        for leaderboard_id in ("lb-a", "lb-b", "lb-c"):
            await db.create_leaderboard(leaderboard_id, status=DifficultyStatus.RANKED)
            await score_factory(leaderboard_id, "p1", pp=10)
            await score_factory(leaderboard_id, "p2", pp=20)

        service = RankRefreshService(session_factory, page_size=1)
        original = service._persist_page
        calls = {"count": 0}

        async def flaky_persist(session, rank_updates, plays_updates):
            calls["count"] += 1
            if calls["count"] == 2:
                raise OperationalError("UPDATE scores", {}, Exception("database is locked"))
            await original(session, rank_updates, plays_updates)

        monkeypatch.setattr(service, "_persist_page", flaky_persist)

        result = await service.refresh()

        assert result.pages_total == 3
        assert result.pages_failed == 1
        assert set(result.plays) == {"lb-a", "lb-c"}
        assert await ranks_by_player(db, "lb-a") == {"p1": 2, "p2": 1}
        assert await ranks_by_player(db, "lb-b") == {"p1": 0, "p2": 0}
        assert await ranks_by_player(db, "lb-c") == {"p1": 2, "p2": 1}

        # The next run corrects the skipped page
        result = await RankRefreshService(session_factory, page_size=1).refresh()
        assert result.pages_failed == 0
        assert await ranks_by_player(db, "lb-b") == {"p1": 2, "p2": 1}

    async def test_refresh_is_idempotent(self, db, session_factory, ranked_leaderboard, score_factory):
        for i in range(10):
            await score_factory("lb-ranked", f"p{i}", pp=float(i % 3), accuracy=0.9)

        service = RankRefreshService(session_factory, page_size=2)
        await service.refresh()
        first = await ranks_by_player(db, "lb-ranked")
        await service.refresh()
        second = await ranks_by_player(db, "lb-ranked")

        assert first == second
        assert sorted(first.values()) == list(range(1, 11))
