"""Redis pool for rate-limit counters and the achievement-check throttle.

Nothing in Redis is authoritative: every caller treats a missing or failing
pool as "no limit", so the engine keeps working without it.
"""

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

_pool: redis.Redis | None = None


async def init_redis(url: str, max_connections: int = 20) -> None:
    """Create the shared client. Connections are opened lazily."""
    global _pool  # noqa: PLW0603
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=max_connections,
    )
    logger.info("Redis client configured (max %d connections)", max_connections)


async def close_redis() -> None:
    global _pool  # noqa: PLW0603
    if _pool is not None:
        await _pool.aclose()
        _pool = None


def get_redis() -> redis.Redis:
    """Return the shared client; RuntimeError until init_redis() has run."""
    if _pool is None:
        msg = "Redis not initialized"
        raise RuntimeError(msg)
    return _pool


async def redis_status() -> str:
    """'ok', or the reason Redis is unusable, for the readiness check."""
    try:
        await get_redis().ping()
    except (RuntimeError, RedisError) as exc:
        return f"error: {exc}"
    return "ok"
