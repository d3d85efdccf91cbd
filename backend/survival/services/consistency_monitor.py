"""Consistency monitor - counts half-finished two-phase writes in Redis."""

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from survival.core.logging import get_logger

logger = get_logger(__name__)


class ConsistencyMonitor:
    """Records transitions whose previous record was never marked complete."""

    def __init__(self, redis: aioredis.Redis):
        self.redis = redis

    def _counter_key(self, story_id: int) -> str:
        return f"progress:incomplete:{story_id}"

    async def record_incomplete(self, story_id: int, player: str, record_id: int) -> None:
        """Bump the counter. Failures here are logged, never raised."""
        try:
            await self.redis.incr(self._counter_key(story_id))
        except RedisError as e:
            logger.warning(
                "could not record incomplete transition %s for %s: %s", record_id, player, e
            )

    async def incomplete_count(self, story_id: int) -> int:
        raw = await self.redis.get(self._counter_key(story_id))
        return int(raw) if raw else 0

    async def reset(self, story_id: int) -> None:
        await self.redis.delete(self._counter_key(story_id))
