"""
Shared ranking utilities for leaderboard rank refresh.

The active order of a leaderboard is a primary sort key chosen from the
difficulty status followed by a fixed chain of tie-breakers. Timesets are
effectively unique, so the order is total and re-ranking unchanged scores
reproduces the same ranks.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Tuple

from beatrank.database.models import DifficultyStatus


class SortKey(Enum):
    """Primary ordering of a leaderboard."""
    BY_PP = "pp"
    BY_MODIFIED_SCORE = "modified_score"

    @classmethod
    def for_status(cls, status: DifficultyStatus) -> "SortKey":
        """Ranked, qualified and event leaderboards order by pp, everything else by score."""
        if status.ranks_by_pp:
            return cls.BY_PP
        return cls.BY_MODIFIED_SCORE


@dataclass(frozen=True)
class TieBreaker:
    """One step of the tie-break chain."""
    attribute: str
    descending: bool

    def key(self, row):
        value = getattr(row, self.attribute)
        return -value if self.descending else value


# Higher accuracy wins, then the earlier submission
TIE_BREAKERS: Tuple[TieBreaker, ...] = (
    TieBreaker('accuracy', descending=True),
    TieBreaker('timeset', descending=False),
)


class RankingUtility:
    """Ordering and rank assignment for leaderboard scores."""

    @staticmethod
    def order_key(sort_key: SortKey, tie_breakers: Tuple[TieBreaker, ...] = TIE_BREAKERS):
        """Build a sort key function: primary key descending, then each tie-breaker."""
        primary = TieBreaker(sort_key.value, descending=True)
        chain = (primary,) + tuple(tie_breakers)

        def key(row):
            return tuple(step.key(row) for step in chain)

        return key

    @staticmethod
    def order_scores(rows: Iterable, status: DifficultyStatus) -> List:
        """Return rows in the leaderboard's active total order."""
        sort_key = SortKey.for_status(status)
        return sorted(rows, key=RankingUtility.order_key(sort_key))

    @staticmethod
    def assign_ranks(rows: Iterable, status: DifficultyStatus) -> List[Tuple[int, int]]:
        """
        Assign ranks 1..N to rows in the active order.

        Args:
            rows: Objects with score_id, pp, accuracy, modified_score and timeset
            status: Difficulty status of the leaderboard

        Returns:
            List of (score_id, rank) pairs, best score first
        """
        ordered = RankingUtility.order_scores(rows, status)
        return [(row.score_id, position + 1) for position, row in enumerate(ordered)]
