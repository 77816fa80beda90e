"""
Redis utility module for the optional distributed leaderboard locks.

Redis is only used when REDIS_URL is configured. Without it, ownership
resolution falls back to locks that are local to the process.
"""

import logging
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from beatrank.config import Config

logger = logging.getLogger(__name__)


class RedisUtils:
    """Centralized Redis configuration and connection utilities."""

    @staticmethod
    def get_redis_url() -> Optional[str]:
        """Get the configured Redis URL if it passes security validation."""
        redis_url = Config.REDIS_URL
        if not redis_url:
            return None

        if not RedisUtils._validate_redis_security(redis_url):
            logger.error("REDIS_URL contains insecure configuration, distributed locks disabled")
            return None
        return redis_url

    @staticmethod
    def _validate_redis_security(redis_url: str) -> bool:
        """Production deployments need TLS and credentials; anything goes in debug mode."""
        if Config.DEBUG:
            if not redis_url.startswith(('redis://localhost', 'redis://127.0.0.1', 'rediss://')):
                logger.warning(f"Potentially insecure Redis URL in development: {redis_url}")
            return True

        if not redis_url.startswith('rediss://'):
            logger.error("Production Redis must use rediss:// (TLS) protocol")
            return False
        if '@' not in redis_url:
            logger.error("Production Redis must include authentication credentials")
            return False
        return True

    @staticmethod
    async def create_redis_client() -> Optional[redis.Redis]:
        """Create and ping a Redis client. Returns None if Redis is not configured or unreachable."""
        redis_url = RedisUtils.get_redis_url()
        if not redis_url:
            return None

        client = redis.from_url(redis_url)
        try:
            await client.ping()
        except RedisError as e:
            logger.error(f"Failed to connect to Redis: {e}. Using process-local leaderboard locks.")
            await client.aclose()
            return None

        logger.info("Successfully connected to Redis for leaderboard locks")
        return client
