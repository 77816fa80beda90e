"""
Provisional Projection - rating change previews

Recomputes modified score, accuracy, pp and rank for a page of scores as they
would look once a pending qualification or reweight is committed. Nothing here
touches the database: input is a frozen snapshot, output is a new list of
response-only ScoreView objects.
"""

import dataclasses
import math
from typing import List, Mapping, Optional, Sequence, Tuple

from beatrank.data_models.leaderboard import LeaderboardSnapshot, ScoreSnapshot, ScoreView
from beatrank.database.models import DifficultyStatus
from beatrank.utils.leaderboard_exceptions import ProjectionError
from beatrank.utils.modifiers import ModifiersMap
from beatrank.utils.rating_oracle import RatingOracle


def persisted_view(scores: Sequence[ScoreSnapshot]) -> List[ScoreView]:
    """Score views carrying the last persisted values, in the given order."""
    return [
        ScoreView(
            score_id=s.id,
            player_id=s.player_id,
            modified_score=s.modified_score,
            accuracy=s.accuracy,
            pp=s.pp,
            rank=s.rank,
            acc_pp=s.acc_pp,
            pass_pp=s.pass_pp,
            tech_pp=s.tech_pp,
            bonus_pp=s.bonus_pp,
        )
        for s in scores
    ]


class ProvisionalProjector:
    """Computes hypothetical pp and ranks under an in-flight rating change."""

    def __init__(self, oracle: RatingOracle):
        self.oracle = oracle

    @staticmethod
    def pending_change(leaderboard: LeaderboardSnapshot) -> Optional[str]:
        """
        Which pending change applies to a leaderboard, if any.

        An unfinished reweight wins over a qualification; a qualification only
        applies while the difficulty is nominated.

        Returns:
            'reweight', 'qualification' or None
        """
        if leaderboard.reweight is not None and not leaderboard.reweight.finished:
            return 'reweight'
        if leaderboard.status is DifficultyStatus.NOMINATED and leaderboard.qualification is not None:
            return 'qualification'
        return None

    def can_project(self, leaderboard: LeaderboardSnapshot) -> bool:
        return self.pending_change(leaderboard) is not None

    def _rating_inputs(
        self, leaderboard: LeaderboardSnapshot
    ) -> Tuple[float, float, float, ModifiersMap, Mapping[str, float]]:
        """Ratings and modifier tables for the applicable change. Missing ratings count as zero."""
        kind = self.pending_change(leaderboard)

        if kind == 'reweight':
            change = leaderboard.reweight
            acc_rating = change.acc_rating or 0.0
            pass_rating = change.pass_rating or 0.0
            tech_rating = change.tech_rating or 0.0
        elif kind == 'qualification':
            change = leaderboard.qualification
            acc_rating, pass_rating, tech_rating = self.oracle.ratings(leaderboard)
        else:
            raise ProjectionError(leaderboard.id, "no pending qualification or reweight")

        return (
            acc_rating,
            pass_rating,
            tech_rating,
            ModifiersMap(change.modifiers),
            dict(change.modifiers_rating or {}),
        )

    def _max_score(self, leaderboard: LeaderboardSnapshot) -> int:
        if leaderboard.max_score > 0:
            return leaderboard.max_score
        return self.oracle.max_score_for_notes(leaderboard.notes)

    def project(
        self,
        leaderboard: LeaderboardSnapshot,
        scores: Sequence[ScoreSnapshot],
        page: int = 1,
        count: int = 10,
    ) -> List[ScoreView]:
        """
        Project a page of scores under the leaderboard's pending rating change.

        Args:
            leaderboard: Snapshot of the leaderboard and its pending change
            scores: The visible page of scores
            page: 1-based page number the scores belong to
            count: Page size, used to keep ranks consistent across pages

        Returns:
            Projected score views ordered by projected rank

        Raises:
            ProjectionError: If no pending change applies to the leaderboard
        """
        acc_rating, pass_rating, tech_rating, modifiers, modifiers_rating = self._rating_inputs(leaderboard)
        max_score = self._max_score(leaderboard)
        rank_offset = (max(page, 1) - 1) * count

        recalculated = []
        for score in scores:
            modified_score = math.floor(score.base_score * modifiers.negative_multiplier(score.modifiers))
            accuracy = modified_score / max_score if max_score > 0 else 0.0

            projected = dataclasses.replace(score, modified_score=modified_score, accuracy=accuracy)
            components = self.oracle.pp_from_components(
                projected, acc_rating, pass_rating, tech_rating, modifiers, modifiers_rating
            )
            recalculated.append((projected, components))

        recalculated.sort(key=lambda item: item[1].pp, reverse=True)

        return [
            ScoreView(
                score_id=projected.id,
                player_id=projected.player_id,
                modified_score=projected.modified_score,
                accuracy=projected.accuracy,
                pp=components.pp,
                rank=position + 1 + rank_offset,
                acc_pp=components.acc_pp,
                pass_pp=components.pass_pp,
                tech_pp=components.tech_pp,
                bonus_pp=components.bonus_pp,
            )
            for position, (projected, components) in enumerate(recalculated)
        ]
