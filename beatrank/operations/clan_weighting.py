"""
Clan Weighting Calculator

Pure calculations behind clan ownership and clan pp:
- Ownership contest: a clan's best score counts fully, each further member
  score on the same leaderboard counts 0.9x the previous one.
- Clan pp: members sorted by pp, the i-th member weighted 0.965^i.
"""

from typing import Dict, Iterable, Sequence

from beatrank.constants import ClanConstants
from beatrank.data_models.clan import (
    ClanStanding, ClanSummary, ContestDecision, ContestRow, MemberStats, OwnershipOutcome
)


class ClanWeightingCalculator:
    """Ownership contest and clan pp weighting"""

    @staticmethod
    def contest_standings(
        rows: Iterable[ContestRow],
        decay: float = ClanConstants.CONTEST_WEIGHT_DECAY
    ) -> Dict[str, ClanStanding]:
        """
        Accumulate weighted pp per clan over a leaderboard's scores.

        Args:
            rows: Non-banned scores with their players' clan tags
            decay: Weight multiplier applied per additional clan contribution

        Returns:
            Dictionary mapping clan tag to its standing
        """
        standings: Dict[str, ClanStanding] = {}

        # Best scores first so each clan's top score gets the full weight
        for row in sorted(rows, key=lambda r: r.pp, reverse=True):
            for tag in row.clan_tags:
                standing = standings.get(tag)
                if standing is None:
                    standings[tag] = ClanStanding(accumulated_pp=row.pp)
                    continue

                standing.weight *= decay
                standing.accumulated_pp += row.pp * standing.weight
                standing.contributions += 1

        return standings

    @staticmethod
    def decide(standings: Dict[str, ClanStanding]) -> ContestDecision:
        """
        Pick the owner from contest standings.

        Ties use exact float equality. A clan needs a positive total to claim
        anything.
        """
        top_pp = max((s.accumulated_pp for s in standings.values()), default=0.0)
        if top_pp <= 0:
            return ContestDecision(OwnershipOutcome.UNCLAIMED, None)

        leaders = tuple(sorted(tag for tag, s in standings.items() if s.accumulated_pp == top_pp))
        if len(leaders) > 1:
            return ContestDecision(OwnershipOutcome.CONTESTED, None, top_pp, leaders)

        return ContestDecision(OwnershipOutcome.OWNED, leaders[0], top_pp, leaders)

    @staticmethod
    def aggregate_pp(
        member_pps: Iterable[float],
        decay: float = ClanConstants.AGGREGATE_PP_DECAY
    ) -> float:
        """Weighted clan pp: sum of pp_i * decay^i over members sorted by pp."""
        ranked = sorted(member_pps, reverse=True)
        return sum(pp * (decay ** i) for i, pp in enumerate(ranked))

    @staticmethod
    def summarize(members: Sequence[MemberStats]) -> ClanSummary:
        """
        Compute a clan's summary from its non-banned members.

        Args:
            members: Stats of the clan's non-banned members

        Returns:
            ClanSummary, all zero for a clan without eligible members
        """
        if not members:
            return ClanSummary(pp=0.0, average_accuracy=0.0, average_rank=0.0, players_count=0)

        count = len(members)
        return ClanSummary(
            pp=ClanWeightingCalculator.aggregate_pp(m.pp for m in members),
            average_accuracy=sum(m.average_ranked_accuracy for m in members) / count,
            average_rank=sum(m.rank for m in members) / count,
            players_count=count,
        )
