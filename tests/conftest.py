"""Pytest configuration and fixtures."""
import os

# Keep test runs from writing dated log files
os.environ["LOG_DIR"] = ""

import pytest

from beatrank.database.database import Database
from beatrank.database.models import DifficultyStatus
from beatrank.utils.rating_oracle import PPComponents, RatingOracle


class FakeOracle(RatingOracle):
    """Deterministic pp curve: each rating contributes accuracy * rating * 10."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    def pp_from_components(self, score, acc_rating, pass_rating, tech_rating, modifiers, modifiers_rating):
        if self.fail:
            raise RuntimeError("rating model unavailable")
        self.calls.append((score.id, acc_rating, pass_rating, tech_rating))

        acc_pp = score.accuracy * acc_rating * 10
        pass_pp = score.accuracy * pass_rating * 10
        tech_pp = score.accuracy * tech_rating * 10
        return PPComponents(
            pp=acc_pp + pass_pp + tech_pp,
            bonus_pp=0.0,
            pass_pp=pass_pp,
            acc_pp=acc_pp,
            tech_pp=tech_pp,
        )


@pytest.fixture
async def db(tmp_path):
    """Fresh file-backed SQLite database per test."""
    database = Database(f"sqlite:///{tmp_path / 'test.db'}")
    await database.initialize()
    yield database
    await database.close()


@pytest.fixture
def session_factory(db):
    return db.session_factory


@pytest.fixture
def oracle():
    return FakeOracle()


@pytest.fixture
def score_factory(db):
    """Create a player (if needed) and a score on a leaderboard."""
    counter = {"timeset": 1000}

    async def _create(leaderboard_id, player_id, **fields):
        if await db.get_player(player_id) is None:
            await db.create_player(player_id)
        counter["timeset"] += 1
        fields.setdefault("timeset", counter["timeset"])
        return await db.add_score(leaderboard_id, player_id, **fields)

    return _create


@pytest.fixture
async def ranked_leaderboard(db):
    return await db.create_leaderboard("lb-ranked", status=DifficultyStatus.RANKED, max_score=1000, notes=10)


@pytest.fixture
def failing_oracle():
    return FakeOracle(fail=True)
