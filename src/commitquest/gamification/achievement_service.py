"""Achievement evaluation and unlock with duplicate prevention."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from commitquest.database import atomic
from commitquest.db.base import insert_for
from commitquest.db.models import (
    Achievement,
    Commit,
    ConnectedAccount,
    TrackedRepo,
    UserAchievement,
    UserStats,
)
from commitquest.errors import AlreadyUnlockedError, NotFoundError
from commitquest.gamification.achievements import AchievementContext, qualifies
from commitquest.gamification.calendar import utcnow
from commitquest.gamification.xp_service import add_xp

logger = logging.getLogger(__name__)


async def get_catalog(db: AsyncSession) -> list[Achievement]:
    """All achievement definitions in catalog order."""
    result = await db.execute(
        select(Achievement).order_by(Achievement.sort_order, Achievement.id)
    )
    return list(result.scalars().all())


async def get_unlocked_ids(db: AsyncSession, user_id: int) -> set[int]:
    result = await db.execute(
        select(UserAchievement.achievement_id).where(UserAchievement.user_id == user_id)
    )
    return set(result.scalars().all())


async def load_context(db: AsyncSession, user_id: int, stats: UserStats) -> AchievementContext:
    """Load the supporting data predicates read: providers, repos, commit times."""
    providers = await db.execute(
        select(ConnectedAccount.provider)
        .where(ConnectedAccount.user_id == user_id)
        .distinct()
    )
    repo_count = await db.execute(
        select(func.count()).select_from(TrackedRepo).where(TrackedRepo.user_id == user_id)
    )
    commit_times = await db.execute(
        select(Commit.committed_at).where(Commit.user_id == user_id)
    )
    return AchievementContext(
        stats=stats,
        commit_times=list(commit_times.scalars().all()),
        providers=set(providers.scalars().all()),
        tracked_repo_count=repo_count.scalar_one(),
    )


async def unlock_achievement(
    db: AsyncSession,
    user_id: int,
    achievement: Achievement,
    now: datetime,
) -> bool:
    """Insert the unlock row and grant its XP.

    Returns False if another writer unlocked it first; in that case no XP is
    granted here. Flush-only.
    """
    stmt = (
        insert_for(db, UserAchievement)
        .values(user_id=user_id, achievement_id=achievement.id, unlocked_at=now)
        .on_conflict_do_nothing(index_elements=["user_id", "achievement_id"])
        .returning(UserAchievement.id)
    )
    result = await db.execute(stmt)
    if result.scalar_one_or_none() is None:
        logger.info("Achievement %s already unlocked for user %d", achievement.slug, user_id)
        return False

    await add_xp(
        db,
        user_id,
        achievement.xp_reward,
        reason=f"achievement:{achievement.id}",
        idempotency_key=f"achievement:{user_id}:{achievement.id}",
        now=now,
    )
    logger.info("User %d unlocked achievement %s (+%d XP)", user_id, achievement.slug, achievement.xp_reward)
    return True


def unlock_event(achievement: Achievement) -> dict:
    return {
        "achievement_id": achievement.id,
        "slug": achievement.slug,
        "name": achievement.name,
        "icon": achievement.icon,
        "rarity": achievement.rarity,
        "xp_reward": achievement.xp_reward,
    }


async def evaluate_achievements(
    db: AsyncSession,
    user_id: int,
    now: datetime | None = None,
) -> list[dict]:
    """Evaluate every locked achievement for a user, unlocking those that qualify.

    Flush-only; used inside larger transactions such as commit ingestion.
    """
    if now is None:
        now = utcnow()

    result = await db.execute(
        select(UserStats)
        .where(UserStats.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    stats = result.scalar_one_or_none()
    if stats is None:
        return []

    catalog = await get_catalog(db)
    unlocked = await get_unlocked_ids(db, user_id)
    locked = [a for a in catalog if a.id not in unlocked]
    if not locked:
        return []

    ctx = await load_context(db, user_id, stats)

    events: list[dict] = []
    for achievement in locked:
        if not qualifies(achievement, ctx):
            continue
        if await unlock_achievement(db, user_id, achievement, now):
            events.append(unlock_event(achievement))
    return events


async def check_achievements(
    db: AsyncSession,
    user_id: int,
    now: datetime | None = None,
) -> list[dict]:
    """Unlock every newly qualifying achievement and return the unlock events.

    Safe to call redundantly: a second call with no new activity returns []
    and grants no XP.
    """
    async with atomic(db):
        return await evaluate_achievements(db, user_id, now=now)


async def grant_achievement(
    db: AsyncSession,
    user_id: int,
    slug: str,
    now: datetime | None = None,
) -> dict:
    """Unlock one achievement by slug regardless of its predicate.

    Unlike ``check_achievements`` this reports a repeat explicitly: raises
    NotFoundError for an unknown slug and AlreadyUnlockedError if the user
    already has it.
    """
    if now is None:
        now = utcnow()

    async with atomic(db):
        result = await db.execute(select(Achievement).where(Achievement.slug == slug))
        achievement = result.scalar_one_or_none()
        if achievement is None:
            raise NotFoundError(f"Achievement not found: {slug}")
        if not await unlock_achievement(db, user_id, achievement, now):
            raise AlreadyUnlockedError("Achievement already unlocked")
    return unlock_event(achievement)


async def list_achievements(db: AsyncSession, user_id: int) -> list[dict]:
    """The full catalog annotated with the user's unlock state."""
    catalog = await get_catalog(db)
    result = await db.execute(
        select(UserAchievement.achievement_id, UserAchievement.unlocked_at)
        .where(UserAchievement.user_id == user_id)
    )
    unlocked_at = dict(result.all())

    return [
        {
            "id": a.id,
            "slug": a.slug,
            "name": a.name,
            "description": a.description,
            "icon": a.icon,
            "category": a.category,
            "threshold": a.threshold,
            "rarity": a.rarity,
            "xp_reward": a.xp_reward,
            "unlocked": a.id in unlocked_at,
            "unlocked_at": unlocked_at.get(a.id),
        }
        for a in catalog
    ]
