"""
Rank Refresh Service

Re-derives Score.rank and Leaderboard.plays from the current non-banned
scores. Runs as a periodic batch job; leaderboards are processed in pages
that commit independently.

Key Features:
- Status-driven ordering: pp for ranked/qualified/event leaderboards,
  modified score otherwise, then accuracy and submission time
- Bulk primary-key updates per page instead of loading full Score rows
- Partial-failure tolerance: a failed page is rolled back and skipped, the
  next scheduled run corrects it
- Idempotent: unchanged scores always produce the same ranks
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Tuple
from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from beatrank.config import Config
from beatrank.data_models.leaderboard import RankingRow, RankRefreshResult
from beatrank.database.models import Leaderboard, Score
from beatrank.services.base import BaseService
from beatrank.utils.leaderboard_exceptions import TransientPersistenceError
from beatrank.utils.ranking import RankingUtility

logger = logging.getLogger(__name__)

class RankRefreshService(BaseService):
    """Service for recomputing leaderboard ranks and play counts."""

    def __init__(self, session_factory, page_size: Optional[int] = None):
        super().__init__(session_factory)
        self.page_size = page_size or Config.RANK_REFRESH_PAGE_SIZE

    async def refresh(self, leaderboard_id: Optional[str] = None) -> RankRefreshResult:
        """
        Recompute ranks for every leaderboard, or a single one.

        Args:
            leaderboard_id: Restrict the run to this leaderboard

        Returns:
            RankRefreshResult with counts for the run
        """
        async with self.get_session() as session:
            total = await self._count_leaderboards(session, leaderboard_id)

        pages_total = 0
        pages_failed = 0
        scores_ranked = 0
        plays: Dict[str, int] = {}

        for offset in range(0, total, self.page_size):
            pages_total += 1
            page_number = offset // self.page_size + 1
            try:
                async with self.page_transaction(f"rank refresh page {page_number}") as session:
                    page_plays, page_ranked = await self._refresh_page(session, leaderboard_id, offset)
            except TransientPersistenceError as e:
                # Discard this page only, the next run picks it up again
                pages_failed += 1
                logger.error(f"Rank refresh page {page_number} failed, skipping: {e}", exc_info=True)
                continue

            plays.update(page_plays)
            scores_ranked += page_ranked

        logger.info(
            f"Rank refresh completed: {len(plays)} leaderboards, {scores_ranked} scores, "
            f"{pages_failed}/{pages_total} pages failed"
        )

        return RankRefreshResult(
            leaderboards_processed=len(plays),
            scores_ranked=scores_ranked,
            pages_total=pages_total,
            pages_failed=pages_failed,
            plays=plays,
        )

    async def _count_leaderboards(self, session: AsyncSession, leaderboard_id: Optional[str]) -> int:
        query = select(func.count(Leaderboard.id))
        if leaderboard_id is not None:
            query = query.where(Leaderboard.id == leaderboard_id)
        result = await session.execute(query)
        return result.scalar() or 0

    async def _refresh_page(
        self, session: AsyncSession, leaderboard_id: Optional[str], offset: int
    ) -> Tuple[Dict[str, int], int]:
        """Rank one page of leaderboards and stage the updates in the session."""
        query = select(Leaderboard.id, Leaderboard.status).order_by(Leaderboard.id)
        if leaderboard_id is not None:
            query = query.where(Leaderboard.id == leaderboard_id)
        leaderboards = (await session.execute(query.offset(offset).limit(self.page_size))).all()

        if not leaderboards:
            return {}, 0

        rows_by_leaderboard = await self._load_ranking_rows(session, [lb.id for lb in leaderboards])

        rank_updates = []
        plays_updates = []
        plays = {}
        for leaderboard in leaderboards:
            rows = rows_by_leaderboard.get(leaderboard.id, [])
            for score_id, rank in RankingUtility.assign_ranks(rows, leaderboard.status):
                rank_updates.append({'id': score_id, 'rank': rank})

            plays[leaderboard.id] = len(rows)
            plays_updates.append({'id': leaderboard.id, 'plays': len(rows)})

        await self._persist_page(session, rank_updates, plays_updates)

        logger.debug(f"Ranked {len(rank_updates)} scores across {len(leaderboards)} leaderboards")
        return plays, len(rank_updates)

    async def _load_ranking_rows(
        self, session: AsyncSession, leaderboard_ids: List[str]
    ) -> Dict[str, List[RankingRow]]:
        """Batch fetch the ranking columns of all non-banned scores on a page."""
        result = await session.execute(
            select(
                Score.id,
                Score.leaderboard_id,
                Score.pp,
                Score.accuracy,
                Score.modified_score,
                Score.timeset,
            ).where(
                Score.leaderboard_id.in_(leaderboard_ids),
                Score.banned == False
            )
        )

        grouped: Dict[str, List[RankingRow]] = defaultdict(list)
        for row in result:
            grouped[row.leaderboard_id].append(RankingRow(
                score_id=row.id,
                pp=row.pp or 0.0,
                accuracy=row.accuracy or 0.0,
                modified_score=row.modified_score or 0,
                timeset=row.timeset or 0,
            ))
        return grouped

    async def _persist_page(self, session: AsyncSession, rank_updates: List[dict], plays_updates: List[dict]):
        """Bulk update ranks and play counts by primary key."""
        if rank_updates:
            await session.execute(update(Score), rank_updates)
        if plays_updates:
            await session.execute(update(Leaderboard), plays_updates)
