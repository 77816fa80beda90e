from typing import Optional, List, Iterable
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload
from sqlalchemy import select
from contextlib import asynccontextmanager

from beatrank.config import Config
from beatrank.database.models import (
    Base, Clan, Player, Leaderboard, Score, DifficultyStatus,
    RankQualification, RatingReweight
)
from beatrank.utils.leaderboard_exceptions import ClanNotFoundError, LeaderboardNotFoundError
from beatrank.utils.logger import setup_logger

class Database:
    def __init__(self, database_url: Optional[str] = None):
        self.logger = setup_logger(__name__)
        self.database_url = database_url or Config.DATABASE_URL
        self.engine = None
        self.session_factory = None

    async def initialize(self):
        """Initialize the database connection and create tables"""
        self.logger.info("Initializing database...")

        # Convert sqlite URL to async if needed
        database_url = self.database_url
        if database_url.startswith('sqlite:///'):
            database_url = database_url.replace('sqlite:///', 'sqlite+aiosqlite:///')

        self.engine = create_async_engine(
            database_url,
            echo=Config.DEBUG,
        )

        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        self.logger.info("Database initialized successfully")

    @asynccontextmanager
    async def get_session(self):
        """Get a database session"""
        async with self.session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    @asynccontextmanager
    async def transaction(self):
        """
        Create a transaction boundary for atomic operations.

        All operations within the context are committed together on success,
        or rolled back together on failure.

        Usage:
            async with db.transaction() as session:
                session.add(clan)
                session.add(leaderboard)
                # Both commit together here
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def close(self):
        """Close the database connection"""
        if self.engine:
            await self.engine.dispose()
            self.logger.info("Database connection closed")

    # Clan operations
    async def create_clan(self, tag: str, name: str = None, color: str = "#ffffff") -> Clan:
        """Create a new clan"""
        async with self.transaction() as session:
            clan = Clan(tag=tag, name=name or tag, color=color)
            session.add(clan)
            await session.flush()
            await session.refresh(clan)
            return clan

    async def get_clan_by_tag(self, tag: str) -> Optional[Clan]:
        """Get a clan by its tag"""
        async with self.get_session() as session:
            result = await session.execute(select(Clan).where(Clan.tag == tag))
            return result.scalar_one_or_none()

    async def add_clan_members(self, tag: str, player_ids: Iterable[str]):
        """Add existing players to a clan"""
        async with self.transaction() as session:
            result = await session.execute(
                select(Clan).where(Clan.tag == tag).options(selectinload(Clan.players))
            )
            clan = result.scalar_one_or_none()
            if clan is None:
                raise ClanNotFoundError(tag)

            players = await session.execute(select(Player).where(Player.id.in_(list(player_ids))))
            for player in players.scalars():
                if player not in clan.players:
                    clan.players.append(player)

    # Player operations
    async def create_player(self, player_id: str, name: str = None, **fields) -> Player:
        """Create a new player"""
        async with self.transaction() as session:
            player = Player(id=player_id, name=name or player_id, **fields)
            session.add(player)
            await session.flush()
            await session.refresh(player)
            return player

    async def get_player(self, player_id: str) -> Optional[Player]:
        """Get a player by id"""
        async with self.get_session() as session:
            return await session.get(Player, player_id)

    # Leaderboard operations
    async def create_leaderboard(self, leaderboard_id: str,
                                 status: DifficultyStatus = DifficultyStatus.UNRANKED,
                                 **fields) -> Leaderboard:
        """Create a new leaderboard"""
        async with self.transaction() as session:
            leaderboard = Leaderboard(id=leaderboard_id, status=status, **fields)
            session.add(leaderboard)
            await session.flush()
            await session.refresh(leaderboard)
            return leaderboard

    async def get_leaderboard(self, leaderboard_id: str) -> Optional[Leaderboard]:
        """Get a leaderboard with its pending changes and owning clan"""
        async with self.get_session() as session:
            result = await session.execute(
                select(Leaderboard)
                .where(Leaderboard.id == leaderboard_id)
                .options(
                    selectinload(Leaderboard.owning_clan),
                    selectinload(Leaderboard.qualification),
                    selectinload(Leaderboard.reweight),
                )
            )
            return result.scalar_one_or_none()

    async def set_qualification(self, leaderboard_id: str, **fields) -> RankQualification:
        """Attach a pending qualification to a leaderboard"""
        async with self.transaction() as session:
            if await session.get(Leaderboard, leaderboard_id) is None:
                raise LeaderboardNotFoundError(leaderboard_id)
            qualification = RankQualification(leaderboard_id=leaderboard_id, **fields)
            session.add(qualification)
            await session.flush()
            return qualification

    async def set_reweight(self, leaderboard_id: str, **fields) -> RatingReweight:
        """Attach a pending reweight to a leaderboard"""
        async with self.transaction() as session:
            if await session.get(Leaderboard, leaderboard_id) is None:
                raise LeaderboardNotFoundError(leaderboard_id)
            reweight = RatingReweight(leaderboard_id=leaderboard_id, **fields)
            session.add(reweight)
            await session.flush()
            return reweight

    # Score operations
    async def add_score(self, leaderboard_id: str, player_id: str, **fields) -> Score:
        """Store a score for a player on a leaderboard"""
        async with self.transaction() as session:
            score = Score(leaderboard_id=leaderboard_id, player_id=player_id, **fields)
            session.add(score)
            await session.flush()
            await session.refresh(score)
            return score

    async def get_scores(self, leaderboard_id: str, include_banned: bool = False) -> List[Score]:
        """Get scores on a leaderboard in persisted rank order"""
        async with self.get_session() as session:
            query = select(Score).where(Score.leaderboard_id == leaderboard_id)
            if not include_banned:
                query = query.where(Score.banned == False)
            query = query.order_by(Score.rank, Score.id)

            result = await session.execute(query)
            return list(result.scalars().all())
