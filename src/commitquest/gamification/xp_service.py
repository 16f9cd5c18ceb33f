"""XP grant service with idempotency and level-up detection."""

from __future__ import annotations

import logging
import math
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from commitquest.db.base import insert_for
from commitquest.db.models import UserLevel, XPLedger
from commitquest.gamification.calendar import utcnow
from commitquest.gamification.level_thresholds import (
    LEVEL_THRESHOLDS,
    compute_level,
    level_from_total_xp,
    required_xp_for_level,
    title_for_level,
)

logger = logging.getLogger(__name__)

XP_PER_COMMIT = 10
XP_STREAK_MULTIPLIER = 0.5

# (changed lines strictly above, bonus); tiers stack
COMMIT_SIZE_BONUSES: list[tuple[int, int]] = [
    (100, 5),
    (500, 10),
    (1000, 15),
]


def xp_for_commit(additions: int = 0, deletions: int = 0) -> int:
    """Base XP plus additive size-tier bonuses."""
    changed = (additions or 0) + (deletions or 0)
    xp = XP_PER_COMMIT
    for threshold, bonus in COMMIT_SIZE_BONUSES:
        if changed > threshold:
            xp += bonus
    return xp


def streak_bonus_xp(streak: int) -> int:
    """Bonus XP for an ongoing streak; nothing below three days."""
    if streak < 3:
        return 0
    return math.floor(streak * XP_STREAK_MULTIPLIER)


async def get_or_create_level(db: AsyncSession, user_id: int) -> UserLevel:
    """Get or create the level row for a user (race-safe insert-if-absent)."""
    stmt = insert_for(db, UserLevel).values(
        user_id=user_id,
        level=1,
        xp=0,
        total_xp=0,
        title=LEVEL_THRESHOLDS[0]["title"],
        updated_at=utcnow(),
    )
    await db.execute(stmt.on_conflict_do_nothing(index_elements=["user_id"]))
    result = await db.execute(
        select(UserLevel)
        .where(UserLevel.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def add_xp(
    db: AsyncSession,
    user_id: int,
    amount: int,
    reason: str,
    idempotency_key: str | None = None,
    now: datetime | None = None,
) -> dict:
    """Add XP to a user and report level changes.

    Flush-only: the caller's transaction commits or rolls back, so a failure
    never leaves a half-applied award. With an ``idempotency_key`` a repeat
    call is a no-op and returns ``awarded=False``.

    The total is bumped with a single ``UPDATE ... RETURNING`` so concurrent
    awards for the same user serialize on the row lock instead of losing an
    update.
    """
    if now is None:
        now = utcnow()

    await get_or_create_level(db, user_id)

    ledger = insert_for(db, XPLedger).values(
        user_id=user_id,
        amount=amount,
        reason=reason,
        idempotency_key=idempotency_key,
        created_at=now,
    )
    if idempotency_key is not None:
        ledger = ledger.on_conflict_do_nothing(index_elements=["idempotency_key"])
    inserted = await db.execute(ledger.returning(XPLedger.id))
    if inserted.scalar_one_or_none() is None:
        current = await get_or_create_level(db, user_id)
        return {
            "leveled_up": False,
            "new_level": current.level,
            "new_xp": current.xp,
            "awarded": False,
        }

    result = await db.execute(
        update(UserLevel)
        .where(UserLevel.user_id == user_id)
        .values(total_xp=UserLevel.total_xp + amount)
        .returning(UserLevel.total_xp)
    )
    new_total = result.scalar_one()
    old_level = level_from_total_xp(new_total - amount)
    new_level = level_from_total_xp(new_total)
    new_xp = new_total - required_xp_for_level(new_level)

    await db.execute(
        update(UserLevel)
        .where(UserLevel.user_id == user_id)
        .values(
            level=new_level,
            xp=new_xp,
            title=title_for_level(new_level),
            updated_at=now,
        )
    )
    await db.flush()

    if new_level > old_level:
        logger.info("User %d leveled up %d -> %d (%s)", user_id, old_level, new_level, reason)

    return {
        "leveled_up": new_level > old_level,
        "new_level": new_level,
        "new_xp": new_xp,
        "awarded": True,
    }


async def get_user_xp(db: AsyncSession, user_id: int) -> dict:
    """Current level summary; defaults for users who never earned XP."""
    result = await db.execute(
        select(UserLevel)
        .where(UserLevel.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    row = result.scalar_one_or_none()
    total_xp = row.total_xp if row else 0
    info = compute_level(total_xp)
    return {
        "level": info["level"],
        "xp": info["xp_into_level"],
        "total_xp": total_xp,
        "title": info["title"],
        "xp_to_next_level": info["xp_to_next_level"],
        "next_level": info["next_level"],
        "next_title": info["next_title"],
    }


async def get_xp_history(
    db: AsyncSession,
    user_id: int,
    page: int = 1,
    per_page: int = 50,
) -> tuple[list[XPLedger], int]:
    """Page through the user's ledger, newest first. Returns (entries, total)."""
    total_result = await db.execute(
        select(func.count()).select_from(XPLedger).where(XPLedger.user_id == user_id)
    )
    total = total_result.scalar_one()

    result = await db.execute(
        select(XPLedger)
        .where(XPLedger.user_id == user_id)
        .order_by(XPLedger.created_at.desc(), XPLedger.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all()), total
