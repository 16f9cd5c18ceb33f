"""Commit ingestion: dedup, per-commit XP, stats and achievement evaluation.

The sync and webhook layers hand newly observed commits to
``ingest_commits``. XP is granted only for commits stored by this call, so
re-delivering or re-syncing the same history never awards twice.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from commitquest.database import atomic
from commitquest.db.base import insert_for
from commitquest.db.models import Commit, TrackedRepo
from commitquest.errors import NotFoundError
from commitquest.gamification.achievement_service import evaluate_achievements
from commitquest.gamification.calendar import as_utc, utcnow
from commitquest.gamification.schemas import CommitIn
from commitquest.gamification.stats_service import recompute_stats
from commitquest.gamification.xp_service import add_xp, get_or_create_level, xp_for_commit

logger = logging.getLogger(__name__)


async def get_active_repo(db: AsyncSession, user_id: int, repo_id: int) -> TrackedRepo:
    result = await db.execute(
        select(TrackedRepo).where(
            TrackedRepo.id == repo_id,
            TrackedRepo.user_id == user_id,
            TrackedRepo.is_active.is_(True),
        )
    )
    repo = result.scalar_one_or_none()
    if repo is None:
        raise NotFoundError("Repository not found")
    return repo


async def _store_commit(
    db: AsyncSession, user_id: int, repo: TrackedRepo, commit: CommitIn
) -> int | None:
    """Insert one commit; returns its id, or None if (repo, sha) already exists."""
    stmt = (
        insert_for(db, Commit)
        .values(
            user_id=user_id,
            repo_id=repo.id,
            provider=repo.provider,
            sha=commit.sha,
            message=commit.message.split("\n")[0],
            committed_at=as_utc(commit.committed_at),
            branch=commit.branch,
            additions=commit.additions,
            deletions=commit.deletions,
            xp_awarded=False,
        )
        .on_conflict_do_nothing(index_elements=["repo_id", "sha"])
        .returning(Commit.id)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def ingest_commits(
    db: AsyncSession,
    user_id: int,
    repo_id: int,
    commits: Sequence[CommitIn],
    now: datetime | None = None,
) -> dict:
    """Persist new commits and run stats -> achievements -> XP in one transaction.

    Duplicate (repo, sha) deliveries are skipped silently. Returns
    ``{commits_processed, xp_earned, leveled_up, new_level, newly_unlocked}``.
    """
    if now is None:
        now = utcnow()

    async with atomic(db):
        repo = await get_active_repo(db, user_id, repo_id)
        level_before = (await get_or_create_level(db, user_id)).level

        processed = 0
        xp_earned = 0
        for commit in commits:
            commit_id = await _store_commit(db, user_id, repo, commit)
            if commit_id is None:
                continue
            processed += 1

            amount = xp_for_commit(commit.additions, commit.deletions)
            award = await add_xp(
                db,
                user_id,
                amount,
                reason=f"commit:{commit.sha[:7]}",
                idempotency_key=f"commit:{commit_id}",
                now=now,
            )
            if award["awarded"]:
                xp_earned += amount
                await db.execute(
                    update(Commit).where(Commit.id == commit_id).values(xp_awarded=True)
                )

        await recompute_stats(db, user_id, now=now)
        unlocked = await evaluate_achievements(db, user_id, now=now)
        level_after = (await get_or_create_level(db, user_id)).level

    skipped = len(commits) - processed
    if skipped:
        logger.info("Skipped %d already-stored commits for repo %d", skipped, repo_id)
    logger.info(
        "Ingested %d commits for user %d (+%d XP, %d unlocks)",
        processed, user_id, xp_earned, len(unlocked),
    )

    return {
        "commits_processed": processed,
        "xp_earned": xp_earned,
        "leveled_up": level_after > level_before,
        "new_level": level_after,
        "newly_unlocked": unlocked,
    }
