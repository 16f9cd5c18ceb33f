"""Daily and weekly challenges: generation, progress recompute and claims.

Each user challenge moves pending -> completed -> claimed and never back.
Progress is re-derived from the commits inside the challenge window on every
recompute, clamped to the goal, and never lowered.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from commitquest.config import get_settings
from commitquest.database import atomic
from commitquest.db.base import insert_for
from commitquest.db.models import Challenge, Commit, UserChallenge, UserStats
from commitquest.errors import AlreadyClaimedError, InvalidStateError, NotFoundError
from commitquest.gamification.calendar import as_utc, day_window, period_key, utcnow, week_window
from commitquest.gamification.challenges import (
    DAILY_TEMPLATES,
    TEMPLATES_BY_KEY,
    WEEKLY_TEMPLATES,
    ChallengeTemplate,
    ChallengeType,
    measure,
)
from commitquest.gamification.xp_service import add_xp

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


async def _has_challenges_in_window(
    db: AsyncSession,
    user_id: int,
    challenge_type: ChallengeType,
    start: datetime,
    end: datetime,
) -> bool:
    result = await db.execute(
        select(func.count())
        .select_from(UserChallenge)
        .join(Challenge, Challenge.id == UserChallenge.challenge_id)
        .where(
            UserChallenge.user_id == user_id,
            Challenge.type == challenge_type.value,
            Challenge.start_date >= start,
            Challenge.start_date < end,
        )
    )
    return result.scalar_one() > 0


async def _generate(
    db: AsyncSession,
    user_id: int,
    challenge_type: ChallengeType,
    templates: Sequence[ChallengeTemplate],
    count: int,
    goal_range: tuple[int, int],
    window: tuple[datetime, datetime],
    now: datetime,
    rng: random.Random,
) -> list[int]:
    """Create up to ``count`` challenges for the window. Flush-only.

    Returns the ids of the user challenges created; empty when the period
    already has its set.
    """
    start, end = window
    if await _has_challenges_in_window(db, user_id, challenge_type, start, end):
        return []

    key = period_key(challenge_type.value, start)
    picks = rng.sample(list(templates), min(count, len(templates)))
    created: list[int] = []

    for slot, template in enumerate(picks):
        goal = template.roll_goal(rng, *goal_range)
        challenge = Challenge(
            template=template.key,
            title=template.title,
            description=template.render_description(goal),
            icon=template.icon,
            type=challenge_type.value,
            goal=goal,
            reward_xp=template.reward_xp,
            start_date=start,
            end_date=end,
            is_active=True,
            created_at=now,
        )
        db.add(challenge)
        await db.flush()

        stmt = (
            insert_for(db, UserChallenge)
            .values(
                user_id=user_id,
                challenge_id=challenge.id,
                period_key=key,
                slot=slot,
                progress=0,
                completed=False,
                created_at=now,
            )
            .on_conflict_do_nothing(index_elements=["user_id", "period_key", "slot"])
            .returning(UserChallenge.id)
        )
        result = await db.execute(stmt)
        user_challenge_id = result.scalar_one_or_none()
        if user_challenge_id is None:
            # Concurrent generation won this slot
            await db.delete(challenge)
            await db.flush()
            logger.info("Skipped %s slot %d for user %d: already generated", key, slot, user_id)
            continue
        created.append(user_challenge_id)

    if created:
        logger.info("Generated %d %s challenges for user %d", len(created), challenge_type.value, user_id)
    return created


async def generate_daily_challenges(
    db: AsyncSession,
    user_id: int,
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> list[int]:
    """Create today's daily challenges unless the user already has them."""
    settings = get_settings()
    if now is None:
        now = utcnow()
    async with atomic(db):
        return await _generate(
            db,
            user_id,
            ChallengeType.DAILY,
            DAILY_TEMPLATES,
            settings.daily_challenge_count,
            (settings.daily_goal_min, settings.daily_goal_max),
            day_window(now),
            now,
            rng or random.Random(),
        )


async def generate_weekly_challenges(
    db: AsyncSession,
    user_id: int,
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> list[int]:
    """Create this week's challenge unless the user already has one."""
    settings = get_settings()
    if now is None:
        now = utcnow()
    async with atomic(db):
        return await _generate(
            db,
            user_id,
            ChallengeType.WEEKLY,
            WEEKLY_TEMPLATES,
            settings.weekly_challenge_count,
            (settings.weekly_goal_min, settings.weekly_goal_max),
            week_window(now),
            now,
            rng or random.Random(),
        )


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


async def _window_commits(
    db: AsyncSession, user_id: int, start: datetime, end: datetime
) -> list[Commit]:
    result = await db.execute(
        select(Commit).where(
            Commit.user_id == user_id,
            Commit.committed_at >= start,
            Commit.committed_at < end,
        )
    )
    return list(result.scalars().all())


async def recompute_progress(
    db: AsyncSession,
    user_id: int,
    now: datetime | None = None,
) -> int:
    """Recompute every open challenge. Flush-only; returns how many completed."""
    if now is None:
        now = utcnow()

    result = await db.execute(
        select(UserChallenge)
        .join(Challenge, Challenge.id == UserChallenge.challenge_id)
        .where(
            UserChallenge.user_id == user_id,
            UserChallenge.completed.is_(False),
            Challenge.is_active.is_(True),
        )
    )
    open_challenges = list(result.scalars().all())
    if not open_challenges:
        return 0

    stats_result = await db.execute(select(UserStats).where(UserStats.user_id == user_id))
    stats = stats_result.scalar_one_or_none()

    newly_completed = 0
    for uc in open_challenges:
        challenge = uc.challenge
        template = TEMPLATES_BY_KEY.get(challenge.template)
        if template is None:
            logger.warning("Challenge %d has unknown template %r", challenge.id, challenge.template)
            continue

        commits = await _window_commits(db, user_id, challenge.start_date, challenge.end_date)
        value = measure(template, commits, stats)
        uc.progress = max(uc.progress, min(value, challenge.goal))

        if uc.progress >= challenge.goal:
            uc.completed = True
            uc.completed_at = now
            newly_completed += 1
            logger.info("User %d completed challenge %d (%s)", user_id, uc.id, challenge.title)

    await db.flush()
    return newly_completed


async def update_challenge_progress(
    db: AsyncSession,
    user_id: int,
    now: datetime | None = None,
) -> int:
    """Re-derive progress for the user's open challenges and persist it."""
    async with atomic(db):
        return await recompute_progress(db, user_id, now=now)


# ---------------------------------------------------------------------------
# Claim
# ---------------------------------------------------------------------------


async def _classify_claim_failure(db: AsyncSession, user_id: int, user_challenge_id: int) -> None:
    result = await db.execute(
        select(UserChallenge).where(UserChallenge.id == user_challenge_id)
        .execution_options(populate_existing=True)
    )
    uc = result.scalar_one_or_none()
    if uc is None or uc.user_id != user_id:
        raise NotFoundError("Challenge not found")
    if uc.claimed_at is not None:
        raise AlreadyClaimedError("Reward already claimed")
    raise InvalidStateError("Challenge not completed")


async def claim_challenge_reward(
    db: AsyncSession,
    user_id: int,
    user_challenge_id: int,
    now: datetime | None = None,
) -> dict:
    """Claim a completed challenge's XP exactly once.

    The claim is a compare-and-set on ``claimed_at IS NULL``: of two
    concurrent claims only one row update succeeds, and the loser is
    reported as AlreadyClaimedError.
    """
    if now is None:
        now = utcnow()

    async with atomic(db):
        result = await db.execute(
            update(UserChallenge)
            .where(
                UserChallenge.id == user_challenge_id,
                UserChallenge.user_id == user_id,
                UserChallenge.completed.is_(True),
                UserChallenge.claimed_at.is_(None),
            )
            .values(claimed_at=now)
            .returning(UserChallenge.challenge_id)
        )
        challenge_id = result.scalar_one_or_none()
        if challenge_id is None:
            await _classify_claim_failure(db, user_id, user_challenge_id)

        challenge = await db.get(Challenge, challenge_id)
        award = await add_xp(
            db,
            user_id,
            challenge.reward_xp,
            reason=f"challenge:{challenge.id}",
            idempotency_key=f"challenge:{user_challenge_id}",
            now=now,
        )

    logger.info("User %d claimed challenge %d (+%d XP)", user_id, user_challenge_id, challenge.reward_xp)
    return {
        "xp_awarded": challenge.reward_xp,
        "leveled_up": award["leveled_up"],
        "new_level": award["new_level"],
    }


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


def challenge_to_dict(uc: UserChallenge) -> dict:
    ch = uc.challenge
    return {
        "id": uc.id,
        "challenge_id": ch.id,
        "title": ch.title,
        "description": ch.description,
        "icon": ch.icon,
        "type": ch.type,
        "goal": ch.goal,
        "reward_xp": ch.reward_xp,
        "progress": uc.progress,
        "completed": uc.completed,
        "start_date": as_utc(ch.start_date),
        "end_date": as_utc(ch.end_date),
        "completed_at": as_utc(uc.completed_at) if uc.completed_at else None,
        "claimed_at": as_utc(uc.claimed_at) if uc.claimed_at else None,
    }


async def get_user_challenges(
    db: AsyncSession,
    user_id: int,
    now: datetime | None = None,
) -> dict[str, list[dict]]:
    """Partition the user's challenges into active, completed and claimed."""
    if now is None:
        now = utcnow()

    result = await db.execute(
        select(UserChallenge)
        .join(Challenge, Challenge.id == UserChallenge.challenge_id)
        .where(UserChallenge.user_id == user_id, Challenge.is_active.is_(True))
        .order_by(Challenge.start_date.desc(), UserChallenge.slot)
    )
    rows = list(result.scalars().all())

    active = [uc for uc in rows if not uc.completed and as_utc(uc.challenge.end_date) > now]
    completed = [uc for uc in rows if uc.completed and uc.claimed_at is None]
    claimed = sorted(
        (uc for uc in rows if uc.claimed_at is not None),
        key=lambda uc: as_utc(uc.claimed_at),
        reverse=True,
    )[: get_settings().challenge_history_limit]

    return {
        "active": [challenge_to_dict(uc) for uc in active],
        "completed": [challenge_to_dict(uc) for uc in completed],
        "claimed": [challenge_to_dict(uc) for uc in claimed],
    }


async def get_challenge_history(db: AsyncSession, user_id: int) -> list[dict]:
    """Claimed challenges, most recently claimed first."""
    result = await db.execute(
        select(UserChallenge)
        .where(UserChallenge.user_id == user_id, UserChallenge.claimed_at.is_not(None))
        .order_by(UserChallenge.claimed_at.desc(), UserChallenge.id.desc())
        .limit(get_settings().challenge_history_limit)
    )
    history = []
    for uc in result.scalars().all():
        ch = uc.challenge
        history.append({
            "id": uc.id,
            "challenge_id": ch.id,
            "title": ch.title,
            "description": ch.description,
            "icon": ch.icon,
            "reward_xp": ch.reward_xp,
            "type": ch.type,
            "completed_at": as_utc(uc.completed_at) if uc.completed_at else None,
            "claimed_at": as_utc(uc.claimed_at),
        })
    return history
