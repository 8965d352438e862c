"""Dashboard cache invalidation over Redis."""

import logging

from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

SOC_PATTERNS = ("soc:*",)
ASSET_PATTERNS = ("asset:*", "assets:*")
METRICS_PATTERNS = ("soc:metrics:*", "ceo:*")


async def invalidate_patterns(redis, *patterns: str) -> int:
    """Delete every key matching any of *patterns*. Returns the number deleted.

    A missing Redis (local mode) is a no-op. Redis errors are logged and
    swallowed: stale dashboard cache must never fail a sync job.
    """
    if redis is None:
        return 0

    deleted = 0
    for pattern in patterns:
        try:
            keys = [key async for key in redis.scan_iter(match=pattern)]
            if keys:
                deleted += await redis.delete(*keys)
        except RedisError as exc:
            logger.warning("Cache invalidation failed for %s: %s", pattern, exc)
    if deleted:
        logger.debug("Invalidated %d cache keys (%s)", deleted, ", ".join(patterns))
    return deleted
