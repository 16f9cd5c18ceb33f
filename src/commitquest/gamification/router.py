"""Gamification API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from commitquest.auth.dependencies import get_current_user
from commitquest.database import get_session
from commitquest.db.models import User
from commitquest.dependencies import get_achievement_throttle
from commitquest.gamification.achievement_service import check_achievements, list_achievements
from commitquest.gamification.challenge_service import (
    claim_challenge_reward,
    generate_daily_challenges,
    generate_weekly_challenges,
    get_challenge_history,
    get_user_challenges,
    update_challenge_progress,
)
from commitquest.gamification.ingest import ingest_commits
from commitquest.gamification.level_thresholds import LEVEL_THRESHOLDS
from commitquest.gamification.schemas import (
    AchievementCheckResponse,
    AchievementResponse,
    AchievementsResponse,
    AllLevelsResponse,
    CalendarDay,
    ChallengeHistoryItem,
    ChallengeHistoryResponse,
    ChallengesResponse,
    ClaimResponse,
    CommitCalendarResponse,
    CommitListResponse,
    IngestRequest,
    IngestResponse,
    InsightsResponse,
    LevelEntry,
    PublicProfileResponse,
    StatsResponse,
    XPHistoryEntry,
    XPHistoryResponse,
    XPResponse,
)
from commitquest.gamification.stats_service import (
    get_commit_calendar,
    get_insights,
    get_public_profile,
    get_stats_summary,
    list_recent_commits,
)
from commitquest.gamification.throttle import AchievementCheckThrottle
from commitquest.gamification.xp_service import get_user_xp
from commitquest.gamification.xp_service import get_xp_history as load_xp_history

router = APIRouter(prefix="/api/v1", tags=["Gamification"])


# ── Public endpoints ──


@router.get("/levels", response_model=AllLevelsResponse)
async def list_levels():
    """Get all level breakpoints."""
    return AllLevelsResponse(
        levels=[
            LevelEntry(level=t["level"], title=t["title"], cumulative=t["cumulative"])
            for t in LEVEL_THRESHOLDS
        ]
    )


@router.get("/profile/{username}", response_model=PublicProfileResponse)
async def get_profile(
    username: str,
    db: AsyncSession = Depends(get_session),
):
    """Public profile: stats, level, achievements and recent activity."""
    return PublicProfileResponse(**await get_public_profile(db, username))


# ── XP ──


@router.get("/xp", response_model=XPResponse)
async def get_my_xp(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Get current user's XP and level."""
    return XPResponse(**await get_user_xp(db, user.id))


@router.get("/xp/history", response_model=XPHistoryResponse)
async def get_xp_history(
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Get XP ledger history (paginated)."""
    entries, total = await load_xp_history(db, user.id, page=page, per_page=per_page)
    return XPHistoryResponse(
        entries=[
            XPHistoryEntry(amount=e.amount, reason=e.reason, created_at=e.created_at)
            for e in entries
        ],
        total=total,
        page=page,
        per_page=per_page,
    )


# ── Achievements ──


@router.get("/achievements", response_model=AchievementsResponse)
async def get_my_achievements(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Full catalog with the current user's unlock state."""
    items = await list_achievements(db, user.id)
    return AchievementsResponse(
        achievements=[AchievementResponse(**item) for item in items],
        unlocked_count=sum(1 for item in items if item["unlocked"]),
        total=len(items),
    )


@router.get("/achievements/check", response_model=AchievementCheckResponse)
async def check_my_achievements(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    throttle: AchievementCheckThrottle = Depends(get_achievement_throttle),
):
    """Evaluate achievements; polled by the dashboard, so throttled per user."""
    user_id = user.id
    if not await throttle.allow(user_id):
        return AchievementCheckResponse(newly_unlocked=[], throttled=True)
    events = await check_achievements(db, user_id)
    return AchievementCheckResponse(newly_unlocked=events)


# ── Challenges ──


@router.get("/challenges", response_model=ChallengesResponse)
async def get_my_challenges(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Generate this period's challenges if needed, refresh progress, list them."""
    user_id = user.id
    await generate_daily_challenges(db, user_id)
    await generate_weekly_challenges(db, user_id)
    await update_challenge_progress(db, user_id)
    return ChallengesResponse(**await get_user_challenges(db, user_id))


@router.post("/challenges/{user_challenge_id}/claim", response_model=ClaimResponse)
async def claim_challenge(
    user_challenge_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Claim a completed challenge's reward (exactly once)."""
    return ClaimResponse(**await claim_challenge_reward(db, user.id, user_challenge_id))


@router.get("/challenges/history", response_model=ChallengeHistoryResponse)
async def get_my_challenge_history(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Recently claimed challenges."""
    items = await get_challenge_history(db, user.id)
    return ChallengeHistoryResponse(history=[ChallengeHistoryItem(**item) for item in items])


# ── Stats ──


@router.get("/stats", response_model=StatsResponse)
async def get_my_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Streaks, totals, today's commits and line statistics."""
    return StatsResponse(**await get_stats_summary(db, user.id))


@router.get("/commits/calendar", response_model=CommitCalendarResponse)
async def get_my_commit_calendar(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Commit counts per day for the last year."""
    days = await get_commit_calendar(db, user.id)
    return CommitCalendarResponse(calendar=[CalendarDay(**d) for d in days])


@router.get("/commits", response_model=CommitListResponse)
async def get_my_commits(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Recent commits across tracked repos (paginated)."""
    return CommitListResponse(**await list_recent_commits(db, user.id, page=page, per_page=per_page))


@router.get("/insights", response_model=InsightsResponse)
async def get_my_insights(
    period: str = Query("all", pattern="^(week|month|year|all)$"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Day-of-week, hourly and per-repo breakdown of commits in a period."""
    return InsightsResponse(**await get_insights(db, user.id, period=period))


# ── Ingestion ──


@router.post("/repos/{repo_id}/commits", response_model=IngestResponse)
async def ingest_repo_commits(
    repo_id: int,
    body: IngestRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Store newly observed commits for a tracked repo and apply progression."""
    return IngestResponse(**await ingest_commits(db, user.id, repo_id, body.commits))
