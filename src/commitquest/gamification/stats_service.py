"""User stat rollups, dashboard summary, insights and the commit calendar."""

from __future__ import annotations

import logging
import math
import re
from collections import Counter
from datetime import date, datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from commitquest.database import atomic
from commitquest.db.base import insert_for
from commitquest.db.models import Achievement, Commit, TrackedRepo, User, UserAchievement, UserStats
from commitquest.errors import NotFoundError
from commitquest.gamification.calendar import (
    as_utc,
    day_window,
    local_date,
    local_midnight,
    to_local,
    utcnow,
)
from commitquest.gamification.streaks import calculate_streak
from commitquest.gamification.xp_service import get_user_xp

logger = logging.getLogger(__name__)

CALENDAR_DAYS = 365
PROFILE_RECENT_COMMITS = 10


async def recompute_stats(
    db: AsyncSession,
    user_id: int,
    now: datetime | None = None,
) -> UserStats:
    """Rebuild the user's rollups from every stored commit. Flush-only."""
    if now is None:
        now = utcnow()

    result = await db.execute(
        select(Commit.committed_at)
        .where(Commit.user_id == user_id)
        .order_by(Commit.committed_at)
    )
    commit_times = [as_utc(t) for t in result.scalars().all()]
    streak = calculate_streak(commit_times, now=now)

    values = {
        "current_streak": streak["current"],
        "longest_streak": streak["longest"],
        "total_commits": len(commit_times),
        "last_commit_date": commit_times[-1] if commit_times else None,
        "updated_at": now,
    }
    stmt = insert_for(db, UserStats).values(user_id=user_id, **values)
    await db.execute(stmt.on_conflict_do_update(index_elements=["user_id"], set_=values))

    stats = await db.execute(
        select(UserStats)
        .where(UserStats.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return stats.scalar_one()


async def update_user_stats(
    db: AsyncSession,
    user_id: int,
    now: datetime | None = None,
) -> UserStats:
    """Recompute and persist streaks, totals and the last commit date."""
    async with atomic(db):
        stats = await recompute_stats(db, user_id, now=now)
    logger.debug(
        "Stats for user %d: %d commits, streak %d/%d",
        user_id, stats.total_commits, stats.current_streak, stats.longest_streak,
    )
    return stats


async def get_stats_summary(
    db: AsyncSession,
    user_id: int,
    now: datetime | None = None,
) -> dict:
    """Dashboard numbers: rollups, today's commits, achievements and line stats."""
    if now is None:
        now = utcnow()

    result = await db.execute(select(UserStats).where(UserStats.user_id == user_id))
    stats = result.scalar_one_or_none()

    start, end = day_window(now)
    today_commits = (await db.execute(
        select(func.count()).select_from(Commit).where(
            Commit.user_id == user_id,
            Commit.committed_at >= start,
            Commit.committed_at < end,
        )
    )).scalar_one()

    achievements_count = (await db.execute(
        select(func.count()).select_from(UserAchievement).where(UserAchievement.user_id == user_id)
    )).scalar_one()
    total_achievements = (await db.execute(
        select(func.count()).select_from(Achievement)
    )).scalar_one()

    totals = (await db.execute(
        select(
            func.count(Commit.id),
            func.coalesce(func.sum(Commit.additions), 0),
            func.coalesce(func.sum(Commit.deletions), 0),
        ).where(Commit.user_id == user_id)
    )).one()
    commit_count, lines_added, lines_deleted = totals

    biggest = (await db.execute(
        select(Commit)
        .where(Commit.user_id == user_id)
        .order_by(Commit.additions.desc(), Commit.deletions.desc(), Commit.id)
        .limit(1)
    )).scalar_one_or_none()

    by_repo = await db.execute(
        select(
            TrackedRepo.repo_name,
            func.coalesce(func.sum(Commit.additions), 0),
            func.coalesce(func.sum(Commit.deletions), 0),
        )
        .select_from(TrackedRepo)
        .outerjoin(Commit, Commit.repo_id == TrackedRepo.id)
        .where(TrackedRepo.user_id == user_id)
        .group_by(TrackedRepo.id, TrackedRepo.repo_name)
        .order_by(TrackedRepo.id)
    )

    return {
        "stats": {
            "current_streak": stats.current_streak if stats else 0,
            "longest_streak": stats.longest_streak if stats else 0,
            "total_commits": stats.total_commits if stats else 0,
            "today_commits": today_commits,
            "achievements_count": achievements_count,
            "total_achievements": total_achievements,
            "last_commit_date": as_utc(stats.last_commit_date) if stats and stats.last_commit_date else None,
        },
        "code_stats": {
            "total_lines_added": lines_added,
            "total_lines_deleted": lines_deleted,
            "net_lines_added": lines_added - lines_deleted,
            "avg_lines_per_commit": (lines_added + lines_deleted) // commit_count if commit_count else 0,
            "biggest_commit": {
                "sha": biggest.sha,
                "message": biggest.message.split("\n")[0],
                "additions": biggest.additions,
                "deletions": biggest.deletions,
            } if biggest else None,
            "lines_by_repo": [
                {"repo_name": name, "added": added, "deleted": deleted}
                for name, added, deleted in by_repo.all()
            ],
        },
    }


async def get_commit_calendar(
    db: AsyncSession,
    user_id: int,
    now: datetime | None = None,
    days: int = CALENDAR_DAYS,
) -> list[dict]:
    """Per-day commit counts for the last ``days`` canonical days, oldest first."""
    if now is None:
        now = utcnow()

    today = local_date(now)
    first_day = today - timedelta(days=days - 1)
    window_start, _ = day_window(now - timedelta(days=days - 1))

    result = await db.execute(
        select(Commit.committed_at).where(
            Commit.user_id == user_id,
            Commit.committed_at >= window_start,
        )
    )
    counts = Counter(local_date(t) for t in result.scalars().all())

    return [
        {"date": (first_day + timedelta(days=i)).isoformat(), "count": counts.get(first_day + timedelta(days=i), 0)}
        for i in range(days)
    ]


# ---------------------------------------------------------------------------
# Insights
# ---------------------------------------------------------------------------

DAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
TOP_WORDS_LIMIT = 20

# Words too common in commit messages to say anything about the work
COMMON_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of",
    "with", "by", "from", "fix", "add", "update", "remove", "delete", "create",
    "modify", "change", "refactor", "wip", "feat", "chore", "style", "test",
    "docs", "build", "ci", "perf", "revert", "init", "impl", "use",
})

_NON_WORD = re.compile(r"[^a-z0-9\s]")


def period_start(period: str, now: datetime) -> datetime | None:
    """UTC instant where an insights period begins; ``None`` for all time.

    ``week`` is the trailing seven days; ``month`` and ``year`` start at
    canonical midnight on the first day of the current month or year.
    """
    if period == "week":
        return now - timedelta(days=7)
    today = local_date(now)
    if period == "month":
        return local_midnight(today.replace(day=1))
    if period == "year":
        return local_midnight(date(today.year, 1, 1))
    if period == "all":
        return None
    raise ValueError(f"Unknown insights period: {period!r}")


def top_words(messages: list[str], limit: int = TOP_WORDS_LIMIT) -> list[dict]:
    """Most frequent meaningful words across commit messages."""
    counts: Counter[str] = Counter()
    for message in messages:
        words = _NON_WORD.sub("", message.lower()).split()
        counts.update(w for w in words if len(w) > 2 and w not in COMMON_WORDS)
    return [{"word": word, "count": count} for word, count in counts.most_common(limit)]


async def get_insights(
    db: AsyncSession,
    user_id: int,
    period: str = "all",
    now: datetime | None = None,
) -> dict:
    """Coding-pattern breakdown for one period, bucketed in canonical time."""
    if now is None:
        now = utcnow()
    start = period_start(period, now)

    query = select(Commit).where(Commit.user_id == user_id)
    if start is not None:
        query = query.where(Commit.committed_at >= start)
    result = await db.execute(query.order_by(Commit.committed_at.desc(), Commit.id.desc()))
    commits = list(result.scalars().all())

    if not commits:
        return {
            "period": period,
            "total_commits": 0,
            "day_of_week": [],
            "hourly": [],
            "repo_distribution": [],
            "best_day": None,
            "best_hour": None,
            "stats": {
                "avg_commits_per_day": 0.0,
                "longest_gap": 0,
                "total_additions": 0,
                "total_deletions": 0,
                "days_span": 0,
            },
            "top_words": [],
        }

    by_day = [0] * 7
    by_hour = [0] * 24
    repos: dict[str, dict] = {}
    for commit in commits:
        local = to_local(commit.committed_at)
        by_day[(local.weekday() + 1) % 7] += 1
        by_hour[local.hour] += 1

        name = commit.repo.repo_name
        entry = repos.setdefault(name, {"repo_name": name, "commits": 0, "additions": 0, "deletions": 0})
        entry["commits"] += 1
        entry["additions"] += commit.additions
        entry["deletions"] += commit.deletions

    times = [as_utc(c.committed_at) for c in commits]
    # Commits arrive newest first
    longest_gap = max((newer - older for newer, older in zip(times, times[1:])), default=timedelta(0))
    days_span = max(1, math.ceil((now - times[-1]) / timedelta(days=1)))

    best_day = max(range(7), key=lambda i: by_day[i])
    best_hour = max(range(24), key=lambda h: by_hour[h])

    return {
        "period": period,
        "total_commits": len(commits),
        "day_of_week": [{"day": DAY_NAMES[i], "count": by_day[i]} for i in range(7)],
        "hourly": [{"hour": h, "count": by_hour[h]} for h in range(24)],
        "repo_distribution": sorted(repos.values(), key=lambda r: (-r["commits"], r["repo_name"])),
        "best_day": DAY_NAMES[best_day],
        "best_hour": best_hour,
        "stats": {
            "avg_commits_per_day": round(len(commits) / days_span, 1),
            "longest_gap": math.floor(longest_gap / timedelta(days=1) + 0.5),
            "total_additions": sum(c.additions for c in commits),
            "total_deletions": sum(c.deletions for c in commits),
            "days_span": days_span,
        },
        "top_words": top_words([c.message for c in commits]),
    }


# ---------------------------------------------------------------------------
# Commit listing and public profile
# ---------------------------------------------------------------------------


def _commit_row(commit: Commit) -> dict:
    return {
        "id": commit.id,
        "sha": commit.sha,
        "message": commit.message,
        "committed_at": as_utc(commit.committed_at),
        "repo_name": commit.repo.repo_name,
        "provider": commit.provider,
        "additions": commit.additions,
        "deletions": commit.deletions,
    }


async def list_recent_commits(
    db: AsyncSession,
    user_id: int,
    page: int = 1,
    per_page: int = 20,
) -> dict:
    """Page through the user's commits, newest first."""
    total = (await db.execute(
        select(func.count()).select_from(Commit).where(Commit.user_id == user_id)
    )).scalar_one()

    result = await db.execute(
        select(Commit)
        .where(Commit.user_id == user_id)
        .order_by(Commit.committed_at.desc(), Commit.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return {
        "commits": [_commit_row(c) for c in result.scalars().all()],
        "total": total,
        "page": page,
        "per_page": per_page,
        "total_pages": math.ceil(total / per_page),
    }


async def get_public_profile(
    db: AsyncSession,
    username: str,
    now: datetime | None = None,
) -> dict:
    """Read-only profile: rollups, level, unlocked achievements and recent activity."""
    if now is None:
        now = utcnow()

    result = await db.execute(select(User).where(func.lower(User.username) == username.lower()))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("User not found")
    user_id = user.id

    stats = (await db.execute(
        select(UserStats).where(UserStats.user_id == user_id)
    )).scalar_one_or_none()
    level = await get_user_xp(db, user_id)

    unlocked = await db.execute(
        select(UserAchievement)
        .where(UserAchievement.user_id == user_id)
        .order_by(UserAchievement.unlocked_at.desc(), UserAchievement.id.desc())
    )
    recent = await db.execute(
        select(Commit)
        .where(Commit.user_id == user_id)
        .order_by(Commit.committed_at.desc(), Commit.id.desc())
        .limit(PROFILE_RECENT_COMMITS)
    )
    calendar = await get_commit_calendar(db, user_id, now=now)

    return {
        "user": {
            "id": user_id,
            "username": user.username,
            "display_name": user.display_name,
        },
        "stats": {
            "total_commits": stats.total_commits if stats else 0,
            "current_streak": stats.current_streak if stats else 0,
            "longest_streak": stats.longest_streak if stats else 0,
            "level": level["level"],
            "total_xp": level["total_xp"],
            "title": level["title"],
        },
        "achievements": [
            {
                "id": ua.achievement.id,
                "slug": ua.achievement.slug,
                "name": ua.achievement.name,
                "description": ua.achievement.description,
                "icon": ua.achievement.icon,
                "rarity": ua.achievement.rarity,
                "unlocked_at": as_utc(ua.unlocked_at),
            }
            for ua in unlocked.scalars().all()
        ],
        "recent_commits": [_commit_row(c) for c in recent.scalars().all()],
        "calendar": [day for day in calendar if day["count"]],
    }
