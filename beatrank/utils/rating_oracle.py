"""
Rating oracle interface.

The star-rating model lives outside this package. The engine only needs the
three calls below; deployments plug in a concrete oracle that wraps the model
service, tests plug in a deterministic fake.
"""

from abc import ABC, abstractmethod
from typing import Mapping, NamedTuple, Tuple

from beatrank.constants import ScoringConstants
from beatrank.utils.modifiers import ModifiersMap


class PPComponents(NamedTuple):
    """pp split into its parts, in the order the oracle returns them"""
    pp: float
    bonus_pp: float
    pass_pp: float
    acc_pp: float
    tech_pp: float


def max_score_for_notes(note_count: int) -> int:
    """
    Maximum base score for a difficulty with the given number of notes.

    The combo multiplier ramps x1 -> x2 -> x4 -> x8 after 1, 4 and 8 more notes,
    so the first 13 notes are worth less than the rest.
    """
    note_score = ScoringConstants.MAX_NOTE_SCORE

    if note_count <= 1:
        return note_score
    if note_count <= 5:
        return note_score + (note_count - 1) * 2 * note_score
    if note_count <= 13:
        return note_score + 4 * 2 * note_score + (note_count - 5) * 4 * note_score
    return note_score + 4 * 2 * note_score + 8 * 4 * note_score + (note_count - 13) * 8 * note_score


class RatingOracle(ABC):
    """Abstract access to difficulty ratings and the pp curve."""

    def ratings(self, leaderboard) -> Tuple[float, float, float]:
        """
        Get the committed (acc_rating, pass_rating, tech_rating) for a difficulty.

        Missing ratings count as zero. Oracles backed by a live model may
        override this to fetch fresh values.

        Args:
            leaderboard: Leaderboard snapshot describing the difficulty
        """
        return (
            leaderboard.acc_rating or 0.0,
            leaderboard.pass_rating or 0.0,
            leaderboard.tech_rating or 0.0,
        )

    @abstractmethod
    def pp_from_components(
        self,
        score,
        acc_rating: float,
        pass_rating: float,
        tech_rating: float,
        modifiers: ModifiersMap,
        modifiers_rating: Mapping[str, float],
    ) -> PPComponents:
        """
        Compute pp for a score under the given ratings.

        Args:
            score: Score snapshot carrying accuracy and modifiers
            acc_rating: Accuracy rating
            pass_rating: Pass rating
            tech_rating: Tech rating
            modifiers: Modifier table in effect
            modifiers_rating: Per-modifier rating overrides
        """
        pass

    def max_score_for_notes(self, note_count: int) -> int:
        return max_score_for_notes(note_count)
