"""Cooldown for achievement-check polling, kept in Redis."""

from __future__ import annotations

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class AchievementCheckThrottle:
    """Allow one achievement check per user per cooldown window.

    With no Redis client, or when Redis errors, every check is allowed:
    the check itself is idempotent, so the throttle only saves work.
    """

    key_prefix = "achievement-check"

    def __init__(self, client: redis.Redis | None, cooldown_seconds: int) -> None:
        self.client = client
        self.cooldown_seconds = cooldown_seconds

    def _key(self, user_id: int) -> str:
        return f"{self.key_prefix}:{user_id}"

    async def allow(self, user_id: int) -> bool:
        """Claim the user's window; False if a check already ran within it."""
        if self.client is None or self.cooldown_seconds <= 0:
            return True
        try:
            acquired = await self.client.set(
                self._key(user_id), "1", nx=True, ex=self.cooldown_seconds
            )
        except RedisError:
            logger.warning("Achievement throttle unavailable, allowing check for user %d", user_id)
            return True
        return bool(acquired)
