import asyncio
import logging
import traceback
from typing import Optional

from beatrank.config import Config
from beatrank.database.database import Database
from beatrank.services.clan_ownership_service import ClanOwnershipService
from beatrank.services.clan_stats_service import ClanStatsService
from beatrank.services.leaderboard_locks import LeaderboardLocks
from beatrank.services.leaderboard_preview_service import LeaderboardPreviewService
from beatrank.services.player_stats_queue import PlayerStatsQueue
from beatrank.services.rank_refresh_service import RankRefreshService
from beatrank.services.refresh_scheduler import RefreshScheduler
from beatrank.utils.logger import setup_logger
from beatrank.utils.rating_oracle import RatingOracle

class RankingEngine:
    """Wires the database, services and background jobs together."""

    def __init__(self, oracle: Optional[RatingOracle] = None, database_url: Optional[str] = None):
        self.oracle = oracle
        self.db = Database(database_url)
        self.logger = setup_logger(__name__)

        self.locks: Optional[LeaderboardLocks] = None
        self.rank_refresh: Optional[RankRefreshService] = None
        self.clan_stats: Optional[ClanStatsService] = None
        self.clan_ownership: Optional[ClanOwnershipService] = None
        self.previews: Optional[LeaderboardPreviewService] = None
        self.player_stats: Optional[PlayerStatsQueue] = None
        self.scheduler: Optional[RefreshScheduler] = None

    async def setup(self):
        """Initialize storage and build the services"""
        self.logger.info("Setting up ranking engine...")

        await self.db.initialize()
        session_factory = self.db.session_factory

        self.locks = await LeaderboardLocks.create()
        self.rank_refresh = RankRefreshService(session_factory)
        self.clan_stats = ClanStatsService(session_factory)
        self.clan_ownership = ClanOwnershipService(session_factory, self.locks)
        self.player_stats = PlayerStatsQueue(session_factory)
        self.scheduler = RefreshScheduler.for_services(self.rank_refresh, self.clan_stats)

        # Previews need pp formulas, which live outside this engine
        if self.oracle is not None:
            self.previews = LeaderboardPreviewService(session_factory, self.oracle)
        else:
            self.logger.warning("No rating oracle configured, leaderboard previews disabled")

        self.logger.info("Ranking engine setup complete!")

    async def start(self):
        """Set up and start the background jobs"""
        await self.setup()
        self.player_stats.start()
        self.scheduler.start()

    async def close(self):
        """Cleanup when the engine is shutting down"""
        self.logger.info("Shutting down ranking engine...")

        if self.scheduler:
            await self.scheduler.stop()
        if self.player_stats:
            await self.player_stats.stop()
        if self.locks:
            await self.locks.close()
        await self.db.close()

async def main():
    """Main entry point"""
    Config.validate()

    engine = RankingEngine()

    try:
        await engine.start()
        await asyncio.Event().wait()
    except (KeyboardInterrupt, asyncio.CancelledError):
        pass
    except Exception as e:
        logging.error(f"Fatal error: {e}")
        traceback.print_exc()
    finally:
        await engine.close()

def run():
    asyncio.run(main())

if __name__ == "__main__":
    run()
