"""
Services package for the ranking engine.

Batch jobs (rank refresh, clan refresh), ownership resolution, leaderboard
previews and the deferred player stats queue.
"""

from .base import BaseService
from .clan_ownership_service import ClanOwnershipService
from .clan_stats_service import ClanStatsService
from .leaderboard_locks import LeaderboardLocks
from .leaderboard_preview_service import LeaderboardPreviewService
from .player_stats_queue import PlayerStatsJob, PlayerStatsQueue
from .rank_refresh_service import RankRefreshService
from .refresh_scheduler import RefreshScheduler

__all__ = [
    'BaseService',
    'ClanOwnershipService',
    'ClanStatsService',
    'LeaderboardLocks',
    'LeaderboardPreviewService',
    'PlayerStatsJob',
    'PlayerStatsQueue',
    'RankRefreshService',
    'RefreshScheduler',
]
