"""
Clan Stats Service

Periodic job that recomputes every clan's pp, average accuracy, average rank
and member count from its non-banned members. Clans are processed in pages;
each page commits on its own so one bad page does not lose the rest of the run.
"""

import logging
from collections import defaultdict
from typing import Dict, List

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from beatrank.config import Config
from beatrank.data_models.clan import ClanRefreshResult, ClanSummary, MemberStats
from beatrank.database.models import Clan, Player, clan_members
from beatrank.operations.clan_weighting import ClanWeightingCalculator
from beatrank.services.base import BaseService
from beatrank.utils.leaderboard_exceptions import TransientPersistenceError

logger = logging.getLogger(__name__)

class ClanStatsService(BaseService):
    """Service for refreshing clan summary stats."""

    def __init__(self, session_factory, page_size: int = None):
        super().__init__(session_factory)
        self.page_size = page_size or Config.CLAN_REFRESH_PAGE_SIZE

    async def refresh_clans(self) -> ClanRefreshResult:
        """
        Recompute summary stats for all clans.

        Returns:
            ClanRefreshResult with the summaries that were written and the
            tags of clans on failed pages
        """
        async with self.get_session() as session:
            total = (await session.execute(select(func.count(Clan.id)))).scalar() or 0

        summaries: Dict[str, ClanSummary] = {}
        failed_tags: List[str] = []
        pages_total = 0
        pages_failed = 0

        for offset in range(0, total, self.page_size):
            pages_total += 1
            page_number = offset // self.page_size + 1
            page_tags: List[str] = []
            try:
                async with self.page_transaction(f"clan refresh page {page_number}") as session:
                    page_summaries = await self._refresh_page(session, offset, page_tags)
            except TransientPersistenceError as e:
                pages_failed += 1
                failed_tags.extend(page_tags)
                logger.error(f"Clan refresh page {page_number} failed, skipping: {e}", exc_info=True)
                continue

            summaries.update(page_summaries)

        logger.info(f"Clan refresh completed: {len(summaries)} clans, {pages_failed}/{pages_total} pages failed")

        return ClanRefreshResult(
            clans_processed=len(summaries),
            pages_total=pages_total,
            pages_failed=pages_failed,
            summaries=summaries,
            failed_tags=failed_tags,
        )

    async def _refresh_page(self, session: AsyncSession, offset: int, page_tags: List[str]) -> Dict[str, ClanSummary]:
        clans = (await session.execute(
            select(Clan.id, Clan.tag).order_by(Clan.id).offset(offset).limit(self.page_size)
        )).all()
        page_tags.extend(clan.tag for clan in clans)

        if not clans:
            return {}

        members = await self._load_members(session, [clan.id for clan in clans])

        summaries = {}
        updates = []
        for clan in clans:
            summary = ClanWeightingCalculator.summarize(members.get(clan.id, []))
            summaries[clan.tag] = summary
            updates.append({
                'id': clan.id,
                'pp': summary.pp,
                'average_accuracy': summary.average_accuracy,
                'average_rank': summary.average_rank,
                'players_count': summary.players_count,
            })

        await self._persist_page(session, updates)
        return summaries

    async def _load_members(self, session: AsyncSession, clan_ids: List[int]) -> Dict[int, List[MemberStats]]:
        """Stats of all non-banned members of the given clans, grouped by clan id."""
        result = await session.execute(
            select(
                clan_members.c.clan_id,
                Player.pp,
                Player.rank,
                Player.average_ranked_accuracy,
            )
            .join(Player, Player.id == clan_members.c.player_id)
            .where(
                clan_members.c.clan_id.in_(clan_ids),
                Player.banned == False
            )
        )

        grouped: Dict[int, List[MemberStats]] = defaultdict(list)
        for clan_id, pp, rank, accuracy in result:
            grouped[clan_id].append(MemberStats(pp=pp or 0.0, rank=rank or 0, average_ranked_accuracy=accuracy or 0.0))
        return grouped

    async def _persist_page(self, session: AsyncSession, updates: List[dict]):
        await session.execute(update(Clan), updates)
