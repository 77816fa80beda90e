"""
Per-leaderboard locks for ownership resolution.

Two resolutions of the same leaderboard must not interleave, otherwise both
could read the same previous owner and decrement its counter twice. With
Redis configured the lock is shared across processes; without it each
process keeps its own asyncio locks.
"""

import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from typing import Optional

from beatrank.config import Config
from beatrank.utils.redis_utils import RedisUtils

logger = logging.getLogger(__name__)


class LeaderboardLocks:
    """Mutual exclusion keyed by leaderboard id."""

    def __init__(self, redis_client=None, timeout: Optional[int] = None):
        self.redis_client = redis_client
        self.timeout = timeout or Config.LEADERBOARD_LOCK_TIMEOUT_SECONDS
        # Entries disappear once no coroutine holds or waits on the lock
        self._local_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    @classmethod
    async def create(cls) -> "LeaderboardLocks":
        """Build locks backed by Redis when it is configured and reachable."""
        client = await RedisUtils.create_redis_client()
        if client is None:
            logger.info("Leaderboard locks are process-local")
        return cls(redis_client=client)

    @property
    def distributed(self) -> bool:
        return self.redis_client is not None

    @asynccontextmanager
    async def hold(self, leaderboard_id: str):
        """Hold the lock for one leaderboard for the duration of the block."""
        if self.redis_client is not None:
            lock = self.redis_client.lock(
                f"leaderboard_owner_lock:{leaderboard_id}",
                timeout=self.timeout,
                blocking_timeout=self.timeout,
            )
            async with lock:
                yield
            return

        lock = self._local_locks.get(leaderboard_id)
        if lock is None:
            lock = asyncio.Lock()
            self._local_locks[leaderboard_id] = lock
        async with lock:
            yield

    async def close(self):
        if self.redis_client is not None:
            await self.redis_client.aclose()
