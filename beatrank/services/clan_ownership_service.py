"""
Clan Ownership Service

Decides which clan owns a leaderboard after a score changes and keeps each
clan's owned leaderboard counter in sync.

Contest rules:
- Non-banned scores are walked from highest pp down
- A clan's first score counts fully, every further one at 0.9x the weight of
  the one before
- The single highest total owns the leaderboard; an exact tie makes it
  contested; no positive total leaves it unclaimed

The whole read-decide-write sequence runs under a per-leaderboard lock so
concurrent resolutions cannot double-count a counter change.
"""

import logging
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from beatrank.data_models.clan import ContestRow, OwnershipOutcome, OwnershipResolution
from beatrank.database.models import Clan, Leaderboard, Player, Score, clan_members
from beatrank.operations.clan_weighting import ClanWeightingCalculator
from beatrank.services.base import BaseService
from beatrank.services.leaderboard_locks import LeaderboardLocks
from beatrank.utils.leaderboard_exceptions import LeaderboardNotFoundError

logger = logging.getLogger(__name__)

class ClanOwnershipService(BaseService):
    """Service for resolving leaderboard ownership between clans."""

    def __init__(self, session_factory, locks: Optional[LeaderboardLocks] = None):
        super().__init__(session_factory)
        self.locks = locks or LeaderboardLocks()

    async def resolve_owner(self, leaderboard_id: str) -> OwnershipResolution:
        """
        Recompute and persist the owner of a leaderboard.

        Args:
            leaderboard_id: Leaderboard whose scores changed

        Returns:
            OwnershipResolution describing the outcome and previous owner

        Raises:
            LeaderboardNotFoundError: If the leaderboard does not exist
        """
        async with self.locks.hold(leaderboard_id):
            async with self.get_session() as session:
                leaderboard = await session.get(Leaderboard, leaderboard_id)
                if leaderboard is None:
                    raise LeaderboardNotFoundError(leaderboard_id)

                previous_owner_id = leaderboard.owning_clan_id
                previous_owner_tag = await self._clan_tag(session, previous_owner_id)

                rows = await self._contest_rows(session, leaderboard_id)
                standings = ClanWeightingCalculator.contest_standings(rows)
                decision = ClanWeightingCalculator.decide(standings)

                new_owner_id = None
                if decision.outcome is OwnershipOutcome.OWNED:
                    result = await session.execute(select(Clan.id).where(Clan.tag == decision.owner_tag))
                    new_owner_id = result.scalar_one()

                if new_owner_id != previous_owner_id:
                    if previous_owner_id is not None:
                        await self._adjust_owned_count(session, previous_owner_id, -1)
                    if new_owner_id is not None:
                        await self._adjust_owned_count(session, new_owner_id, 1)
                    leaderboard.owning_clan_id = new_owner_id

        resolution = OwnershipResolution(
            leaderboard_id=leaderboard_id,
            outcome=decision.outcome,
            owner_tag=decision.owner_tag,
            previous_owner_tag=previous_owner_tag,
            standings={tag: s.accumulated_pp for tag, s in standings.items()},
        )

        if resolution.changed:
            logger.info(
                f"Leaderboard {leaderboard_id} ownership: "
                f"{previous_owner_tag or '-'} -> {resolution.display_tag}"
            )
        return resolution

    async def _clan_tag(self, session: AsyncSession, clan_id: Optional[int]) -> Optional[str]:
        if clan_id is None:
            return None
        result = await session.execute(select(Clan.tag).where(Clan.id == clan_id))
        return result.scalar_one_or_none()

    async def _contest_rows(self, session: AsyncSession, leaderboard_id: str) -> List[ContestRow]:
        """Non-banned scores, highest pp first, each with its player's clan tags."""
        result = await session.execute(
            select(Score.id, Score.pp, Clan.tag)
            .join(Player, Player.id == Score.player_id)
            .outerjoin(clan_members, clan_members.c.player_id == Player.id)
            .outerjoin(Clan, Clan.id == clan_members.c.clan_id)
            .where(
                Score.leaderboard_id == leaderboard_id,
                Score.banned == False
            )
            .order_by(Score.pp.desc(), Score.id, Clan.tag)
        )

        rows: List[ContestRow] = []
        current_id = None
        for score_id, pp, tag in result:
            if score_id != current_id:
                rows.append(ContestRow(pp=pp or 0.0, clan_tags=()))
                current_id = score_id
            if tag is not None:
                last = rows[-1]
                rows[-1] = ContestRow(pp=last.pp, clan_tags=last.clan_tags + (tag,))
        return rows

    async def _adjust_owned_count(self, session: AsyncSession, clan_id: int, delta: int):
        """Atomic counter update in SQL."""
        await session.execute(
            update(Clan)
            .where(Clan.id == clan_id)
            .values(owned_leaderboards_count=Clan.owned_leaderboards_count + delta)
        )
