"""Tests for leaderboard ordering and rank assignment."""

import pytest

from beatrank.data_models.leaderboard import RankingRow
from beatrank.database.models import DifficultyStatus
from beatrank.utils.ranking import RankingUtility, SortKey, TIE_BREAKERS, TieBreaker


def row(score_id, pp=0.0, accuracy=0.0, modified_score=0, timeset=0):
    return RankingRow(score_id=score_id, pp=pp, accuracy=accuracy, modified_score=modified_score, timeset=timeset)


class TestSortKey:

    @pytest.mark.parametrize("status", [DifficultyStatus.RANKED, DifficultyStatus.QUALIFIED, DifficultyStatus.INEVENT])
    def test_pp_statuses(self, status):
        assert SortKey.for_status(status) is SortKey.BY_PP

    @pytest.mark.parametrize("status", [
        DifficultyStatus.UNRANKED,
        DifficultyStatus.NOMINATED,
        DifficultyStatus.UNRANKABLE,
        DifficultyStatus.OUTDATED,
        DifficultyStatus.OST,
    ])
    def test_score_statuses(self, status):
        assert SortKey.for_status(status) is SortKey.BY_MODIFIED_SCORE

    def test_tie_breaker_chain_order(self):
        assert TIE_BREAKERS == (
            TieBreaker('accuracy', descending=True),
            TieBreaker('timeset', descending=False),
        )


class TestAssignRanks:

    def test_pp_tie_broken_by_accuracy(self):
        rows = [
            row(1, pp=100, accuracy=0.95, timeset=10),
            row(2, pp=100, accuracy=0.97, timeset=5),
            row(3, pp=90, accuracy=0.99, timeset=1),
        ]
        ranks = dict(RankingUtility.assign_ranks(rows, DifficultyStatus.RANKED))
        assert [ranks[1], ranks[2], ranks[3]] == [2, 1, 3]

    def test_full_tie_broken_by_earlier_timeset(self):
        rows = [
            row(1, pp=50, accuracy=0.9, timeset=200),
            row(2, pp=50, accuracy=0.9, timeset=100),
        ]
        assert RankingUtility.assign_ranks(rows, DifficultyStatus.RANKED) == [(2, 1), (1, 2)]

    def test_unranked_orders_by_modified_score(self):
        rows = [
            row(1, pp=300, modified_score=500),
            row(2, pp=0, modified_score=900),
        ]
        assert RankingUtility.assign_ranks(rows, DifficultyStatus.UNRANKED) == [(2, 1), (1, 2)]
        assert RankingUtility.assign_ranks(rows, DifficultyStatus.RANKED) == [(1, 1), (2, 2)]

    def test_ranks_are_dense_permutation(self):
        rows = [row(i, pp=float(i % 7), accuracy=i / 100, timeset=i) for i in range(1, 51)]
        ranks = [rank for _, rank in RankingUtility.assign_ranks(rows, DifficultyStatus.RANKED)]
        assert sorted(ranks) == list(range(1, 51))

    def test_rerun_is_identical(self):
        rows = [row(i, pp=10.0, accuracy=0.5, timeset=100 - i) for i in range(20)]
        first = RankingUtility.assign_ranks(rows, DifficultyStatus.RANKED)
        second = RankingUtility.assign_ranks(list(reversed(rows)), DifficultyStatus.RANKED)
        assert first == second

    def test_empty(self):
        assert RankingUtility.assign_ranks([], DifficultyStatus.RANKED) == []
