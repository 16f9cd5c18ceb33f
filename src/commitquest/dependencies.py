"""Shared FastAPI dependencies."""

from commitquest.config import get_settings
from commitquest.gamification.throttle import AchievementCheckThrottle
from commitquest.redis_client import get_redis


def get_achievement_throttle() -> AchievementCheckThrottle:
    """Throttle backed by Redis when it is initialized, pass-through otherwise."""
    try:
        client = get_redis()
    except RuntimeError:
        client = None
    return AchievementCheckThrottle(client, get_settings().achievement_check_cooldown_seconds)
