"""Achievement-check throttle backed by Redis SET NX EX."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from commitquest.gamification.throttle import AchievementCheckThrottle


def _redis(set_result=True, side_effect=None) -> MagicMock:
    client = MagicMock()
    client.set = AsyncMock(return_value=set_result, side_effect=side_effect)
    return client


class TestAchievementCheckThrottle:

    @pytest.mark.asyncio
    async def test_first_check_allowed(self):
        client = _redis(set_result=True)
        throttle = AchievementCheckThrottle(client, cooldown_seconds=30)
        assert await throttle.allow(42) is True
        client.set.assert_awaited_once_with("achievement-check:42", "1", nx=True, ex=30)

    @pytest.mark.asyncio
    async def test_within_cooldown_denied(self):
        throttle = AchievementCheckThrottle(_redis(set_result=None), cooldown_seconds=30)
        assert await throttle.allow(42) is False

    @pytest.mark.asyncio
    async def test_no_client_allows(self):
        throttle = AchievementCheckThrottle(None, cooldown_seconds=30)
        assert await throttle.allow(42) is True

    @pytest.mark.asyncio
    async def test_zero_cooldown_disables(self):
        client = _redis(set_result=None)
        throttle = AchievementCheckThrottle(client, cooldown_seconds=0)
        assert await throttle.allow(42) is True
        client.set.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_redis_error_allows(self):
        client = _redis(side_effect=RedisConnectionError("down"))
        throttle = AchievementCheckThrottle(client, cooldown_seconds=30)
        assert await throttle.allow(42) is True
