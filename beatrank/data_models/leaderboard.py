"""
Leaderboard data models for rank refresh and rating previews.

Provides immutable snapshots of persisted rows. Both the persisted score view
and the provisional projection are computed from the same snapshot types, so a
projection can never be written back by accident.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from beatrank.database.models import DifficultyStatus


@dataclass(frozen=True)
class RankingRow:
    """The minimal columns rank refresh needs for one score."""
    score_id: int
    pp: float
    accuracy: float
    modified_score: int
    timeset: int


@dataclass(frozen=True)
class ScoreSnapshot:
    """Read-only copy of a persisted score."""
    id: int
    player_id: str
    base_score: int
    modified_score: int
    accuracy: float
    pp: float
    rank: int
    modifiers: str = ""
    timeset: int = 0
    timepost: Optional[int] = None
    acc_pp: float = 0.0
    pass_pp: float = 0.0
    tech_pp: float = 0.0
    bonus_pp: float = 0.0
    weight: float = 0.0

    @classmethod
    def from_model(cls, score) -> "ScoreSnapshot":
        return cls(
            id=score.id,
            player_id=score.player_id,
            base_score=score.base_score,
            modified_score=score.modified_score,
            accuracy=score.accuracy,
            pp=score.pp,
            rank=score.rank,
            modifiers=score.modifiers or "",
            timeset=score.timeset,
            timepost=score.timepost,
            acc_pp=score.acc_pp,
            pass_pp=score.pass_pp,
            tech_pp=score.tech_pp,
            bonus_pp=score.bonus_pp,
            weight=score.weight,
        )


@dataclass(frozen=True)
class PendingRatingChange:
    """A qualification or reweight that has not been committed yet."""
    modifiers: Mapping[str, float] = field(default_factory=dict)
    modifiers_rating: Mapping[str, float] = field(default_factory=dict)
    acc_rating: Optional[float] = None
    pass_rating: Optional[float] = None
    tech_rating: Optional[float] = None
    finished: bool = False

    @classmethod
    def from_model(cls, change) -> Optional["PendingRatingChange"]:
        if change is None:
            return None
        return cls(
            modifiers=dict(change.modifiers or {}),
            modifiers_rating=dict(change.modifiers_rating or {}),
            acc_rating=change.acc_rating,
            pass_rating=change.pass_rating,
            tech_rating=change.tech_rating,
            finished=change.finished,
        )


@dataclass(frozen=True)
class LeaderboardSnapshot:
    """Read-only copy of a leaderboard's difficulty description and pending changes."""
    id: str
    status: DifficultyStatus
    max_score: int = 0
    notes: int = 0
    acc_rating: Optional[float] = None
    pass_rating: Optional[float] = None
    tech_rating: Optional[float] = None
    modifier_values: Mapping[str, float] = field(default_factory=dict)
    modifiers_rating: Mapping[str, float] = field(default_factory=dict)
    qualification: Optional[PendingRatingChange] = None
    reweight: Optional[PendingRatingChange] = None

    @classmethod
    def from_model(cls, leaderboard) -> "LeaderboardSnapshot":
        return cls(
            id=leaderboard.id,
            status=leaderboard.status,
            max_score=leaderboard.max_score or 0,
            notes=leaderboard.notes or 0,
            acc_rating=leaderboard.acc_rating,
            pass_rating=leaderboard.pass_rating,
            tech_rating=leaderboard.tech_rating,
            modifier_values=dict(leaderboard.modifier_values or {}),
            modifiers_rating=dict(leaderboard.modifiers_rating or {}),
            qualification=PendingRatingChange.from_model(leaderboard.qualification),
            reweight=PendingRatingChange.from_model(leaderboard.reweight),
        )


@dataclass(frozen=True)
class ScoreView:
    """Response-only score values. Never persisted."""
    score_id: int
    player_id: str
    modified_score: int
    accuracy: float
    pp: float
    rank: int
    acc_pp: float = 0.0
    pass_pp: float = 0.0
    tech_pp: float = 0.0
    bonus_pp: float = 0.0


@dataclass(frozen=True)
class LeaderboardScoresPage:
    """One page of scores as shown to a viewer."""
    leaderboard_id: str
    scores: List[ScoreView]
    page: int
    count: int
    plays: int
    projected: bool = False


@dataclass(frozen=True)
class RankRefreshResult:
    """Summary of one rank refresh run."""
    leaderboards_processed: int
    scores_ranked: int
    pages_total: int
    pages_failed: int
    plays: Dict[str, int] = field(default_factory=dict)
