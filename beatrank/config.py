import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    """Engine configuration settings"""

    # Database settings
    DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///beatrank.db')

    # Redis is optional; without it leaderboard locks are process-local
    REDIS_URL = os.getenv('REDIS_URL', '')

    DEBUG = os.getenv('DEBUG', 'False').lower() == 'true'

    # Empty disables the dated log file
    LOG_DIR = os.getenv('LOG_DIR', 'logs')

    # Batch job settings
    RANK_REFRESH_PAGE_SIZE = int(os.getenv('RANK_REFRESH_PAGE_SIZE', 1000))
    CLAN_REFRESH_PAGE_SIZE = int(os.getenv('CLAN_REFRESH_PAGE_SIZE', 1000))
    RANK_REFRESH_INTERVAL_MINUTES = int(os.getenv('RANK_REFRESH_INTERVAL_MINUTES', 60))
    CLAN_REFRESH_INTERVAL_MINUTES = int(os.getenv('CLAN_REFRESH_INTERVAL_MINUTES', 60))

    # Deferred player stats
    PLAYER_STATS_QUEUE_SIZE = int(os.getenv('PLAYER_STATS_QUEUE_SIZE', 1000))
    PLAYER_STATS_BATCH_SIZE = int(os.getenv('PLAYER_STATS_BATCH_SIZE', 100))

    # Ownership resolution
    LEADERBOARD_LOCK_TIMEOUT_SECONDS = int(os.getenv('LEADERBOARD_LOCK_TIMEOUT_SECONDS', 30))

    # Roles allowed to preview pending rating changes
    PRIVILEGED_ROLES = os.getenv('PRIVILEGED_ROLES', 'admin,rankedteam,qualityteam')

    @classmethod
    def get_privileged_roles(cls):
        """Get list of role names that may see provisional projections"""
        return [role.strip() for role in cls.PRIVILEGED_ROLES.split(',') if role.strip()]

    @classmethod
    def is_privileged_role(cls, role) -> bool:
        """Check a comma-separated player role string against the privileged roles"""
        if not role:
            return False
        player_roles = {r.strip() for r in role.split(',')}
        return any(r in player_roles for r in cls.get_privileged_roles())

    @classmethod
    def validate(cls):
        """Validate that required configuration is present"""
        if not cls.DATABASE_URL:
            raise ValueError("DATABASE_URL is required")
        if cls.RANK_REFRESH_PAGE_SIZE <= 0 or cls.CLAN_REFRESH_PAGE_SIZE <= 0:
            raise ValueError("Refresh page sizes must be positive")
        if cls.PLAYER_STATS_QUEUE_SIZE <= 0:
            raise ValueError("PLAYER_STATS_QUEUE_SIZE must be positive")
        if cls.REDIS_URL and not cls.REDIS_URL.startswith(('redis://', 'rediss://')):
            raise ValueError("REDIS_URL must use the redis:// or rediss:// scheme")
