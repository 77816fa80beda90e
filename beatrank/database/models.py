from sqlalchemy import (
    Column, Integer, String, DateTime, Boolean, Float,
    ForeignKey, JSON, Table, Enum as SQLEnum, UniqueConstraint, Index
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func
from enum import Enum

from beatrank.constants import RankingConstants

Base = declarative_base()

class DifficultyStatus(Enum):
    UNRANKED = "unranked"
    NOMINATED = "nominated"
    QUALIFIED = "qualified"
    RANKED = "ranked"
    UNRANKABLE = "unrankable"
    OUTDATED = "outdated"
    INEVENT = "inevent"
    OST = "OST"

    @property
    def ranks_by_pp(self) -> bool:
        return self.value in RankingConstants.PP_RANKED_STATUSES

class EndType(Enum):
    UNKNOWN = "unknown"
    CLEAR = "clear"
    FAIL = "fail"
    RESTART = "restart"
    QUIT = "quit"
    PRACTICE = "practice"

# Non-owning membership: deleting a clan never deletes its players
clan_members = Table(
    'clan_members',
    Base.metadata,
    Column('clan_id', Integer, ForeignKey('clans.id', ondelete='CASCADE'), primary_key=True),
    Column('player_id', String(32), ForeignKey('players.id', ondelete='CASCADE'), primary_key=True),
)

class Clan(Base):
    __tablename__ = 'clans'

    id = Column(Integer, primary_key=True)
    tag = Column(String(10), nullable=False, unique=True, index=True)
    name = Column(String(100), nullable=False)
    color = Column(String(10), default="#ffffff")

    # Summary stats written by the clan refresh job
    pp = Column(Float, default=0.0, nullable=False)
    average_accuracy = Column(Float, default=0.0, nullable=False)
    average_rank = Column(Float, default=0.0, nullable=False)
    players_count = Column(Integer, default=0, nullable=False)

    # Written only by ownership resolution
    owned_leaderboards_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=func.now())

    players = relationship("Player", secondary=clan_members, back_populates="clans")
    owned_leaderboards = relationship("Leaderboard", back_populates="owning_clan")

    def __repr__(self):
        return f"<Clan(tag='{self.tag}', pp={self.pp}, owned={self.owned_leaderboards_count})>"

class Player(Base):
    __tablename__ = 'players'

    id = Column(String(32), primary_key=True)
    name = Column(String(100), nullable=False)
    country = Column(String(4), default="")
    role = Column(String(200), default="")  # Comma-separated, e.g. "admin,supporter"

    pp = Column(Float, default=0.0, nullable=False)
    rank = Column(Integer, default=0, nullable=False)
    average_ranked_accuracy = Column(Float, default=0.0, nullable=False)
    banned = Column(Boolean, default=False, nullable=False)

    clans = relationship("Clan", secondary=clan_members, back_populates="players")
    scores = relationship("Score", back_populates="player")

    def __repr__(self):
        return f"<Player(id='{self.id}', name='{self.name}', pp={self.pp})>"

class Leaderboard(Base):
    __tablename__ = 'leaderboards'

    id = Column(String(64), primary_key=True)  # song id + difficulty value + mode
    song_name = Column(String(200), default="")
    difficulty_name = Column(String(50), default="")
    mode_name = Column(String(50), default="")

    # Difficulty description
    status = Column(SQLEnum(DifficultyStatus), default=DifficultyStatus.UNRANKED, nullable=False)
    max_score = Column(Integer, default=0, nullable=False)
    notes = Column(Integer, default=0, nullable=False)
    stars = Column(Float, nullable=True)
    acc_rating = Column(Float, nullable=True)
    pass_rating = Column(Float, nullable=True)
    tech_rating = Column(Float, nullable=True)
    modifier_values = Column(JSON, nullable=True)   # modifier token -> multiplier delta
    modifiers_rating = Column(JSON, nullable=True)  # per-modifier rating overrides, opaque to us

    # Counters
    plays = Column(Integer, default=0, nullable=False)       # non-banned scores, set by rank refresh
    play_count = Column(Integer, default=0, nullable=False)  # attempts, set by player stats queue

    owning_clan_id = Column(Integer, ForeignKey('clans.id', ondelete='SET NULL'), nullable=True)

    created_at = Column(DateTime, default=func.now())

    owning_clan = relationship("Clan", back_populates="owned_leaderboards")
    scores = relationship("Score", back_populates="leaderboard", cascade="all, delete-orphan")
    qualification = relationship("RankQualification", back_populates="leaderboard",
                                 uselist=False, cascade="all, delete-orphan")
    reweight = relationship("RatingReweight", back_populates="leaderboard",
                            uselist=False, cascade="all, delete-orphan")
    player_stats = relationship("PlayerLeaderboardStats", back_populates="leaderboard",
                                cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Leaderboard(id='{self.id}', status='{self.status.value}', plays={self.plays})>"

class RankQualification(Base):
    """Pending move of a nominated leaderboard into ranked, with its proposed modifiers."""
    __tablename__ = 'rank_qualifications'

    id = Column(Integer, primary_key=True)
    leaderboard_id = Column(String(64), ForeignKey('leaderboards.id', ondelete='CASCADE'),
                            nullable=False, unique=True)

    modifiers = Column(JSON, nullable=True)
    modifiers_rating = Column(JSON, nullable=True)

    # Predicted ratings, may be missing while the model has not run yet
    acc_rating = Column(Float, nullable=True)
    pass_rating = Column(Float, nullable=True)
    tech_rating = Column(Float, nullable=True)

    finished = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=func.now())

    leaderboard = relationship("Leaderboard", back_populates="qualification")

class RatingReweight(Base):
    """Pending rating change for an already ranked leaderboard."""
    __tablename__ = 'rating_reweights'

    id = Column(Integer, primary_key=True)
    leaderboard_id = Column(String(64), ForeignKey('leaderboards.id', ondelete='CASCADE'),
                            nullable=False, unique=True)

    modifiers = Column(JSON, nullable=True)
    modifiers_rating = Column(JSON, nullable=True)

    acc_rating = Column(Float, nullable=True)
    pass_rating = Column(Float, nullable=True)
    tech_rating = Column(Float, nullable=True)

    finished = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=func.now())

    leaderboard = relationship("Leaderboard", back_populates="reweight")

class Score(Base):
    __tablename__ = 'scores'

    id = Column(Integer, primary_key=True)
    leaderboard_id = Column(String(64), ForeignKey('leaderboards.id', ondelete='CASCADE'), nullable=False)
    player_id = Column(String(32), ForeignKey('players.id'), nullable=False)

    base_score = Column(Integer, default=0, nullable=False)
    modified_score = Column(Integer, default=0, nullable=False)
    accuracy = Column(Float, default=0.0, nullable=False)

    pp = Column(Float, default=0.0, nullable=False)
    acc_pp = Column(Float, default=0.0, nullable=False)
    pass_pp = Column(Float, default=0.0, nullable=False)
    tech_pp = Column(Float, default=0.0, nullable=False)
    bonus_pp = Column(Float, default=0.0, nullable=False)
    weight = Column(Float, default=0.0, nullable=False)

    rank = Column(Integer, default=0, nullable=False)
    modifiers = Column(String(100), default="", nullable=False)  # e.g. "GN,SS"

    timeset = Column(Integer, nullable=False)   # epoch seconds, played
    timepost = Column(Integer, nullable=True)   # epoch seconds, uploaded
    banned = Column(Boolean, default=False, nullable=False)
    play_count = Column(Integer, default=0, nullable=False)

    leaderboard = relationship("Leaderboard", back_populates="scores")
    player = relationship("Player", back_populates="scores")

    __table_args__ = (
        UniqueConstraint('leaderboard_id', 'player_id', name='uq_score_leaderboard_player'),
        Index('ix_scores_leaderboard_banned', 'leaderboard_id', 'banned'),
    )

    def __repr__(self):
        return f"<Score(id={self.id}, leaderboard='{self.leaderboard_id}', pp={self.pp}, rank={self.rank})>"

class PlayerLeaderboardStats(Base):
    """A single play attempt, recorded by the deferred player stats queue."""
    __tablename__ = 'player_leaderboard_stats'

    id = Column(Integer, primary_key=True)
    leaderboard_id = Column(String(64), ForeignKey('leaderboards.id', ondelete='CASCADE'),
                            nullable=False, index=True)
    player_id = Column(String(32), ForeignKey('players.id'), nullable=False, index=True)

    score = Column(Integer, nullable=False)
    time = Column(Float, default=0.0, nullable=False)  # seconds into the song when the attempt ended
    timeset = Column(Integer, nullable=False)
    type = Column(SQLEnum(EndType), default=EndType.UNKNOWN, nullable=False)

    leaderboard = relationship("Leaderboard", back_populates="player_stats")
    player = relationship("Player")
