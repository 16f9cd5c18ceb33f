"""Middleware tests: request ID, rate limiting, CORS, error handling."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from commitquest.config import get_settings
from commitquest.main import create_app


def _redis_returning(count: int) -> MagicMock:
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[count, True])
    redis = MagicMock()
    redis.pipeline.return_value = pipe
    return redis


@pytest.mark.asyncio
async def test_request_id_generated(client: AsyncClient) -> None:
    """Request ID is auto-generated when not provided."""
    response = await client.get("/health")
    assert "x-request-id" in response.headers
    assert len(response.headers["x-request-id"]) == 36  # UUID format


@pytest.mark.asyncio
async def test_request_id_preserved(client: AsyncClient) -> None:
    """Custom request ID is echoed back in response."""
    response = await client.get("/health", headers={"X-Request-Id": "test-abc-123"})
    assert response.headers["x-request-id"] == "test-abc-123"


@pytest.mark.asyncio
async def test_rate_limit_headers(client: AsyncClient) -> None:
    """Rate limit headers are present on counted endpoints."""
    with patch("commitquest.middleware.rate_limit.get_redis", return_value=_redis_returning(5)):
        response = await client.get("/api/v1/levels")
    assert response.status_code == 200
    assert response.headers["x-ratelimit-remaining"] == "95"
    assert response.headers["x-ratelimit-limit"] == "100"


@pytest.mark.asyncio
async def test_rate_limit_blocks_excess(client: AsyncClient) -> None:
    """101st request in the window returns 429 with Retry-After header."""
    with patch("commitquest.middleware.rate_limit.get_redis", return_value=_redis_returning(101)):
        response = await client.get("/api/v1/levels")
    assert response.status_code == 429
    assert response.headers["retry-after"] == "60"
    assert "detail" in response.json()


@pytest.mark.asyncio
async def test_rate_limit_skipped_without_redis(client: AsyncClient) -> None:
    """Redis never initialized: requests pass through without rate limit headers."""
    response = await client.get("/api/v1/levels")
    assert response.status_code == 200
    assert "x-ratelimit-limit" not in response.headers


@pytest.mark.asyncio
async def test_rate_limit_fails_open_on_redis_error(client: AsyncClient) -> None:
    redis = _redis_returning(0)
    redis.pipeline.return_value.execute = AsyncMock(side_effect=RedisConnectionError("down"))
    with patch("commitquest.middleware.rate_limit.get_redis", return_value=redis):
        response = await client.get("/api/v1/levels")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_health_exempt_from_rate_limit(client: AsyncClient) -> None:
    """Health checks are never counted, even when the window is exhausted."""
    redis = _redis_returning(1000)
    with patch("commitquest.middleware.rate_limit.get_redis", return_value=redis):
        response = await client.get("/health")
    assert response.status_code == 200
    redis.pipeline.assert_not_called()


@pytest.mark.asyncio
async def test_cors_preflight(client: AsyncClient) -> None:
    """CORS preflight returns access-control-allow-origin for configured origin."""
    response = await client.options(
        "/api/v1/challenges",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "POST",
        },
    )
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"


@pytest.mark.asyncio
async def test_404_returns_json(client: AsyncClient) -> None:
    """Unknown paths return 404 with JSON body."""
    response = await client.get("/nonexistent-path")
    assert response.status_code == 404
    assert response.headers["content-type"] == "application/json"
    assert response.json()["detail"] == "Not Found"


@pytest.mark.asyncio
async def test_domain_errors_map_to_status(authed_client: AsyncClient) -> None:
    """NotFoundError -> 404 and InvalidStateError -> 409, both as JSON."""
    missing = await authed_client.post("/api/v1/challenges/1/claim")
    assert missing.status_code == 404
    assert missing.json() == {"detail": "Challenge not found"}

    active = (await authed_client.get("/api/v1/challenges")).json()["active"]
    conflict = await authed_client.post(f"/api/v1/challenges/{active[0]['id']}/claim")
    assert conflict.status_code == 409
    assert conflict.json() == {"detail": "Challenge not completed", "error": "InvalidStateError"}


@pytest.mark.asyncio
async def test_rate_limit_disabled_by_zero_limit(monkeypatch: pytest.MonkeyPatch) -> None:
    """CQ_RATE_LIMIT_REQUESTS=0 leaves the rate limiter out of the stack."""
    monkeypatch.setenv("CQ_RATE_LIMIT_REQUESTS", "0")
    get_settings.cache_clear()
    try:
        app = create_app()
    finally:
        get_settings.cache_clear()

    redis = _redis_returning(1000)
    with patch("commitquest.middleware.rate_limit.get_redis", return_value=redis):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/api/v1/levels")
    assert response.status_code == 200
    redis.pipeline.assert_not_called()
