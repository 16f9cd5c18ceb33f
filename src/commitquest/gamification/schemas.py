"""Pydantic request/response models for gamification endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


# --- Commit ingestion ---


class CommitIn(BaseModel):
    sha: str = Field(min_length=1, max_length=64)
    message: str = ""
    committed_at: datetime
    branch: str = ""
    additions: int = Field(default=0, ge=0)
    deletions: int = Field(default=0, ge=0)


class IngestRequest(BaseModel):
    commits: list[CommitIn]


class UnlockEvent(BaseModel):
    achievement_id: int
    slug: str
    name: str
    icon: str
    rarity: str
    xp_reward: int


class IngestResponse(BaseModel):
    commits_processed: int
    xp_earned: int
    leveled_up: bool
    new_level: int
    newly_unlocked: list[UnlockEvent]


# --- XP ---


class XPResponse(BaseModel):
    level: int
    xp: int
    total_xp: int
    title: str
    xp_to_next_level: int
    next_level: int
    next_title: str


class XPHistoryEntry(BaseModel):
    amount: int
    reason: str
    created_at: datetime


class XPHistoryResponse(BaseModel):
    entries: list[XPHistoryEntry]
    total: int
    page: int
    per_page: int


# --- Levels ---


class LevelEntry(BaseModel):
    level: int
    title: str
    cumulative: int


class AllLevelsResponse(BaseModel):
    levels: list[LevelEntry]


# --- Achievements ---


class AchievementResponse(BaseModel):
    id: int
    slug: str
    name: str
    description: str
    icon: str
    category: str
    threshold: int
    rarity: str
    xp_reward: int
    unlocked: bool
    unlocked_at: datetime | None = None


class AchievementsResponse(BaseModel):
    achievements: list[AchievementResponse]
    unlocked_count: int
    total: int


class AchievementCheckResponse(BaseModel):
    newly_unlocked: list[UnlockEvent]
    throttled: bool = False


# --- Challenges ---


class ChallengeResponse(BaseModel):
    id: int
    challenge_id: int
    title: str
    description: str
    icon: str
    type: str
    goal: int
    reward_xp: int
    progress: int
    completed: bool
    start_date: datetime
    end_date: datetime
    completed_at: datetime | None = None
    claimed_at: datetime | None = None


class ChallengesResponse(BaseModel):
    active: list[ChallengeResponse]
    completed: list[ChallengeResponse]
    claimed: list[ChallengeResponse]


class ClaimResponse(BaseModel):
    xp_awarded: int
    leveled_up: bool
    new_level: int


class ChallengeHistoryItem(BaseModel):
    id: int
    challenge_id: int
    title: str
    description: str
    icon: str
    reward_xp: int
    type: str
    completed_at: datetime | None = None
    claimed_at: datetime


class ChallengeHistoryResponse(BaseModel):
    history: list[ChallengeHistoryItem]


# --- Stats ---


class StatsBlock(BaseModel):
    current_streak: int
    longest_streak: int
    total_commits: int
    today_commits: int
    achievements_count: int
    total_achievements: int
    last_commit_date: datetime | None = None


class BiggestCommit(BaseModel):
    sha: str
    message: str
    additions: int
    deletions: int


class RepoLines(BaseModel):
    repo_name: str
    added: int
    deleted: int


class CodeStats(BaseModel):
    total_lines_added: int
    total_lines_deleted: int
    net_lines_added: int
    avg_lines_per_commit: int
    biggest_commit: BiggestCommit | None = None
    lines_by_repo: list[RepoLines] = []


class StatsResponse(BaseModel):
    stats: StatsBlock
    code_stats: CodeStats


class CalendarDay(BaseModel):
    date: str
    count: int


class CommitCalendarResponse(BaseModel):
    calendar: list[CalendarDay]


# --- Insights ---


class DayCount(BaseModel):
    day: str
    count: int


class HourCount(BaseModel):
    hour: int
    count: int


class RepoShare(BaseModel):
    repo_name: str
    commits: int
    additions: int
    deletions: int


class InsightStats(BaseModel):
    avg_commits_per_day: float
    longest_gap: int
    total_additions: int
    total_deletions: int
    days_span: int


class WordCount(BaseModel):
    word: str
    count: int


class InsightsResponse(BaseModel):
    period: str
    total_commits: int
    day_of_week: list[DayCount]
    hourly: list[HourCount]
    repo_distribution: list[RepoShare]
    best_day: str | None = None
    best_hour: int | None = None
    stats: InsightStats
    top_words: list[WordCount]


# --- Commits and profiles ---


class CommitItem(BaseModel):
    id: int
    sha: str
    message: str
    committed_at: datetime
    repo_name: str
    provider: str
    additions: int
    deletions: int


class CommitListResponse(BaseModel):
    commits: list[CommitItem]
    total: int
    page: int
    per_page: int
    total_pages: int


class ProfileUser(BaseModel):
    id: int
    username: str
    display_name: str | None = None


class ProfileStats(BaseModel):
    total_commits: int
    current_streak: int
    longest_streak: int
    level: int
    total_xp: int
    title: str


class ProfileAchievement(BaseModel):
    id: int
    slug: str
    name: str
    description: str
    icon: str
    rarity: str
    unlocked_at: datetime


class PublicProfileResponse(BaseModel):
    user: ProfileUser
    stats: ProfileStats
    achievements: list[ProfileAchievement]
    recent_commits: list[CommitItem]
    calendar: list[CalendarDay]
