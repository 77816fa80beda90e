"""
Clan data models for ownership contests and clan summaries.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from beatrank.constants import ClanConstants


class OwnershipOutcome(Enum):
    OWNED = "owned"
    CONTESTED = "contested"
    UNCLAIMED = "unclaimed"


@dataclass
class ClanStanding:
    """Running contest state for one clan on one leaderboard."""
    accumulated_pp: float
    weight: float = 1.0
    contributions: int = 1


@dataclass(frozen=True)
class ContestRow:
    """One non-banned score and the clan tags of its player."""
    pp: float
    clan_tags: Tuple[str, ...]


@dataclass(frozen=True)
class ContestDecision:
    """Pure contest result before any persistence."""
    outcome: OwnershipOutcome
    owner_tag: Optional[str]
    top_pp: float = 0.0
    tied_tags: Tuple[str, ...] = ()


@dataclass(frozen=True)
class OwnershipResolution:
    """Result of resolving ownership for one leaderboard."""
    leaderboard_id: str
    outcome: OwnershipOutcome
    owner_tag: Optional[str]
    previous_owner_tag: Optional[str]
    standings: Dict[str, float] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return self.owner_tag != self.previous_owner_tag

    @property
    def display_tag(self) -> str:
        if self.outcome is OwnershipOutcome.CONTESTED:
            return ClanConstants.CONTESTED_TAG
        if self.outcome is OwnershipOutcome.UNCLAIMED:
            return ClanConstants.UNCLAIMED_TAG
        return self.owner_tag


@dataclass(frozen=True)
class MemberStats:
    """The member columns clan refresh needs."""
    pp: float
    rank: int
    average_ranked_accuracy: float


@dataclass(frozen=True)
class ClanSummary:
    """Computed clan summary stats."""
    pp: float
    average_accuracy: float
    average_rank: float
    players_count: int


@dataclass(frozen=True)
class ClanRefreshResult:
    """Summary of one clan refresh run."""
    clans_processed: int
    pages_total: int
    pages_failed: int
    summaries: Dict[str, ClanSummary] = field(default_factory=dict)
    failed_tags: List[str] = field(default_factory=list)
