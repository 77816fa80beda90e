"""Tests for clan ownership resolution and owned leaderboard counters."""

import asyncio

import pytest

from beatrank.data_models.clan import OwnershipOutcome
from beatrank.services.clan_ownership_service import ClanOwnershipService
from beatrank.services.leaderboard_locks import LeaderboardLocks
from beatrank.utils.leaderboard_exceptions import LeaderboardNotFoundError


@pytest.fixture
async def clans(db):
    for tag in ("A", "B", "C"):
        await db.create_clan(tag)
    return ("A", "B", "C")


@pytest.fixture
def service(session_factory):
    return ClanOwnershipService(session_factory, LeaderboardLocks())


async def member_score(db, score_factory, tag, player_id, pp, **fields):
    score = await score_factory("lb-ranked", player_id, pp=pp, **fields)
    await db.add_clan_members(tag, [player_id])
    return score


async def owned_count(db, tag):
    return (await db.get_clan_by_tag(tag)).owned_leaderboards_count


async def owner_tag(db):
    leaderboard = await db.get_leaderboard("lb-ranked")
    return leaderboard.owning_clan.tag if leaderboard.owning_clan else None


class TestResolveOwner:

    async def test_single_clan_owns(self, db, service, clans, ranked_leaderboard, score_factory):
        await member_score(db, score_factory, "A", "a1", 500)
        await member_score(db, score_factory, "A", "a2", 300)

        resolution = await service.resolve_owner("lb-ranked")

        assert resolution.outcome is OwnershipOutcome.OWNED
        assert resolution.owner_tag == "A"
        assert resolution.previous_owner_tag is None
        assert resolution.standings["A"] == pytest.approx(770)
        assert await owner_tag(db) == "A"
        assert await owned_count(db, "A") == 1

    async def test_tie_removes_previous_owner(self, db, service, clans, ranked_leaderboard, score_factory):
        await member_score(db, score_factory, "C", "c1", 400)
        await service.resolve_owner("lb-ranked")
        assert await owned_count(db, "C") == 1

        await member_score(db, score_factory, "A", "a1", 500)
        await member_score(db, score_factory, "B", "b1", 500)
        resolution = await service.resolve_owner("lb-ranked")

        assert resolution.outcome is OwnershipOutcome.CONTESTED
        assert resolution.previous_owner_tag == "C"
        assert resolution.display_tag == "XXXX"
        assert await owner_tag(db) is None
        assert await owned_count(db, "C") == 0
        assert await owned_count(db, "A") == 0
        assert await owned_count(db, "B") == 0

    async def test_transfer_moves_counter(self, db, service, clans, ranked_leaderboard, score_factory):
        await member_score(db, score_factory, "A", "a1", 500)
        await service.resolve_owner("lb-ranked")

        await member_score(db, score_factory, "B", "b1", 900)
        resolution = await service.resolve_owner("lb-ranked")

        assert resolution.changed
        assert resolution.previous_owner_tag == "A"
        assert resolution.owner_tag == "B"
        assert await owned_count(db, "A") == 0
        assert await owned_count(db, "B") == 1

    async def test_same_owner_keeps_counter(self, db, service, clans, ranked_leaderboard, score_factory):
        await member_score(db, score_factory, "A", "a1", 500)
        await service.resolve_owner("lb-ranked")
        resolution = await service.resolve_owner("lb-ranked")

        assert not resolution.changed
        assert await owned_count(db, "A") == 1

    async def test_banned_scores_do_not_count(self, db, service, clans, ranked_leaderboard, score_factory):
        await member_score(db, score_factory, "A", "a1", 500)
        await member_score(db, score_factory, "B", "b1", 900, banned=True)

        resolution = await service.resolve_owner("lb-ranked")
        assert resolution.owner_tag == "A"

    async def test_no_scores_is_unclaimed(self, db, service, clans, ranked_leaderboard):
        resolution = await service.resolve_owner("lb-ranked")

        assert resolution.outcome is OwnershipOutcome.UNCLAIMED
        assert resolution.display_tag == "OOOO"
        assert await owner_tag(db) is None

    async def test_unknown_leaderboard(self, service):
        with pytest.raises(LeaderboardNotFoundError):
            await service.resolve_owner("missing")


class TestConcurrentResolution:

    async def test_concurrent_claims_count_once(self, db, service, clans, ranked_leaderboard, score_factory):
        await member_score(db, score_factory, "A", "a1", 500)

        await asyncio.gather(*(service.resolve_owner("lb-ranked") for _ in range(5)))

        assert await owned_count(db, "A") == 1

    async def test_concurrent_loss_decrements_once(self, db, service, clans, ranked_leaderboard, score_factory):
        await member_score(db, score_factory, "C", "c1", 400)
        await service.resolve_owner("lb-ranked")
        await member_score(db, score_factory, "A", "a1", 500)
        await member_score(db, score_factory, "B", "b1", 500)

        results = await asyncio.gather(*(service.resolve_owner("lb-ranked") for _ in range(5)))

        assert sum(1 for r in results if r.previous_owner_tag == "C") == 1
        assert await owned_count(db, "C") == 0
