"""Health, readiness, and version endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from commitquest.config import get_settings
from commitquest.database import get_session
from commitquest.db.models import Achievement
from commitquest.redis_client import redis_status

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness check: returns 200 if the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Readiness check: database, achievement catalog and Redis."""
    checks: dict[str, object] = {}

    # Database + seeded catalog
    try:
        result = await db.execute(select(func.count()).select_from(Achievement))
        seeded = result.scalar_one()
        checks["database"] = "ok"
        checks["catalog"] = "ok" if seeded else "empty"
    except Exception as exc:
        checks["database"] = f"error: {exc}"

    # Redis only backs rate limits and the check throttle
    checks["redis"] = await redis_status()

    all_ok = all(v == "ok" for v in checks.values())
    return {"status": "ready" if all_ok else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    """Return API version and environment."""
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
