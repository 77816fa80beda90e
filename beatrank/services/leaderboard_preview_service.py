"""
Leaderboard Preview Service

Serves a page of a leaderboard's scores. Privileged viewers (ranking and
quality team members) see scores recomputed under a pending qualification or
reweight; everyone else sees the persisted values. A projection that fails
falls back to the persisted page instead of failing the request.
"""

import logging
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.orm import selectinload

from beatrank.config import Config
from beatrank.constants import PaginationConstants
from beatrank.data_models.leaderboard import LeaderboardScoresPage, LeaderboardSnapshot, ScoreSnapshot
from beatrank.database.models import Leaderboard, Player, Score
from beatrank.operations.provisional_projection import ProvisionalProjector, persisted_view
from beatrank.services.base import BaseService
from beatrank.utils.leaderboard_exceptions import LeaderboardNotFoundError
from beatrank.utils.rating_oracle import RatingOracle

logger = logging.getLogger(__name__)

class LeaderboardPreviewService(BaseService):
    """Read-only leaderboard pages with optional provisional projection."""

    def __init__(self, session_factory, oracle: RatingOracle):
        super().__init__(session_factory)
        self.projector = ProvisionalProjector(oracle)

    async def get_scores(
        self,
        leaderboard_id: str,
        page: int = 1,
        count: int = PaginationConstants.DEFAULT_PAGE_SIZE,
        privileged: bool = False,
    ) -> LeaderboardScoresPage:
        """
        Get one page of non-banned scores in persisted rank order.

        Args:
            leaderboard_id: Leaderboard to read
            page: 1-based page number
            count: Scores per page, capped at PaginationConstants.MAX_PAGE_SIZE
            privileged: Whether the viewer may see provisional projections

        Returns:
            LeaderboardScoresPage; `projected` is set when the values are provisional

        Raises:
            LeaderboardNotFoundError: If the leaderboard does not exist
        """
        page = max(page, 1)
        count = min(max(count, 1), PaginationConstants.MAX_PAGE_SIZE)

        async with self.get_session() as session:
            result = await session.execute(
                select(Leaderboard)
                .where(Leaderboard.id == leaderboard_id)
                .options(
                    selectinload(Leaderboard.qualification),
                    selectinload(Leaderboard.reweight),
                )
            )
            leaderboard = result.scalar_one_or_none()
            if leaderboard is None:
                raise LeaderboardNotFoundError(leaderboard_id)

            snapshot = LeaderboardSnapshot.from_model(leaderboard)
            plays = leaderboard.plays

            scores = await session.execute(
                select(Score)
                .where(Score.leaderboard_id == leaderboard_id, Score.banned == False)
                .order_by(Score.rank, Score.id)
                .offset((page - 1) * count)
                .limit(count)
            )
            score_snapshots = [ScoreSnapshot.from_model(s) for s in scores.scalars()]

        views = persisted_view(score_snapshots)
        projected = False

        if privileged and self.projector.can_project(snapshot):
            try:
                views = self.projector.project(snapshot, score_snapshots, page, count)
                projected = True
            except Exception as e:
                # The persisted page is still a valid answer
                logger.warning(f"Projection failed for leaderboard {leaderboard_id}, serving persisted values: {e}",
                               exc_info=True)

        return LeaderboardScoresPage(
            leaderboard_id=leaderboard_id,
            scores=views,
            page=page,
            count=count,
            plays=plays,
            projected=projected,
        )

    async def get_scores_for_viewer(
        self,
        leaderboard_id: str,
        viewer_id: Optional[str],
        page: int = 1,
        count: int = PaginationConstants.DEFAULT_PAGE_SIZE,
    ) -> LeaderboardScoresPage:
        """Same as get_scores, with privilege derived from the viewer's roles."""
        privileged = False
        if viewer_id is not None:
            async with self.get_session() as session:
                role = (await session.execute(select(Player.role).where(Player.id == viewer_id))).scalar_one_or_none()
            privileged = Config.is_privileged_role(role)

        return await self.get_scores(leaderboard_id, page=page, count=count, privileged=privileged)

    async def count_scores(self, leaderboard_id: str) -> int:
        """Number of non-banned scores on a leaderboard."""
        async with self.get_session() as session:
            result = await session.execute(
                select(func.count(Score.id)).where(Score.leaderboard_id == leaderboard_id, Score.banned == False)
            )
            return result.scalar() or 0
