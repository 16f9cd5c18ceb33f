"""Challenge templates and progress metrics.

Every template names a ChallengeMetric; ``METRICS`` maps each metric to the
function that derives raw progress from the commits inside a challenge
window. A template whose metric has no function fails at import.
"""

from __future__ import annotations

import random
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum

from commitquest.db.models import Commit, UserStats
from commitquest.gamification.calendar import to_local


class ChallengeType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"


class ChallengeMetric(str, Enum):
    COMMIT_COUNT = "commit_count"
    EARLY_COMMIT = "early_commit"
    LATE_COMMIT = "late_commit"
    LINES_ADDED = "lines_added"
    DISTINCT_REPOS = "distinct_repos"
    DESCRIPTIVE_MESSAGES = "descriptive_messages"
    CURRENT_STREAK = "current_streak"


EARLY_COMMIT_BEFORE_HOUR = 9
LATE_COMMIT_FROM_HOUR = 22
DESCRIPTIVE_MESSAGE_MIN_LENGTH = 11


@dataclass(frozen=True)
class ChallengeTemplate:
    key: str
    title: str
    description: str
    icon: str
    reward_xp: int
    type: ChallengeType
    metric: ChallengeMetric
    # Presence metrics only ever report 0 or 1
    fixed_goal: int | None = None
    goal_scale: int = 1

    def roll_goal(self, rng: random.Random, low: int, high: int) -> int:
        if self.fixed_goal is not None:
            return self.fixed_goal
        return rng.randint(low, high) * self.goal_scale

    def render_description(self, goal: int) -> str:
        return self.description.replace("{goal}", str(goal))


DAILY_TEMPLATES: list[ChallengeTemplate] = [
    ChallengeTemplate(
        key="commit-streak",
        title="Commit Streak",
        description="Make {goal} commits today",
        icon="\U0001f525",
        reward_xp=50,
        type=ChallengeType.DAILY,
        metric=ChallengeMetric.COMMIT_COUNT,
    ),
    ChallengeTemplate(
        key="early-bird",
        title="Early Bird",
        description="Make a commit before 9 AM",
        icon="\U0001f305",
        reward_xp=30,
        type=ChallengeType.DAILY,
        metric=ChallengeMetric.EARLY_COMMIT,
        fixed_goal=1,
    ),
    ChallengeTemplate(
        key="night-owl",
        title="Night Owl",
        description="Make a commit after 10 PM",
        icon="\U0001f989",
        reward_xp=30,
        type=ChallengeType.DAILY,
        metric=ChallengeMetric.LATE_COMMIT,
        fixed_goal=1,
    ),
    ChallengeTemplate(
        key="code-warrior",
        title="Code Warrior",
        description="Add {goal}+ lines of code",
        icon="⚔️",
        reward_xp=40,
        type=ChallengeType.DAILY,
        metric=ChallengeMetric.LINES_ADDED,
        goal_scale=50,
    ),
    ChallengeTemplate(
        key="repo-explorer",
        title="Repo Explorer",
        description="Commit to at least {goal} different repos",
        icon="\U0001f5fa️",
        reward_xp=35,
        type=ChallengeType.DAILY,
        metric=ChallengeMetric.DISTINCT_REPOS,
    ),
    ChallengeTemplate(
        key="message-master",
        title="Message Master",
        description="Make {goal} commits with descriptive messages",
        icon="✍️",
        reward_xp=25,
        type=ChallengeType.DAILY,
        metric=ChallengeMetric.DESCRIPTIVE_MESSAGES,
    ),
]

WEEKLY_TEMPLATES: list[ChallengeTemplate] = [
    ChallengeTemplate(
        key="week-warrior",
        title="Week Warrior",
        description="Make {goal} commits this week",
        icon="⚔️",
        reward_xp=200,
        type=ChallengeType.WEEKLY,
        metric=ChallengeMetric.COMMIT_COUNT,
    ),
    ChallengeTemplate(
        key="streak-master",
        title="Streak Master",
        description="Maintain a {goal} day commit streak",
        icon="\U0001f525",
        reward_xp=150,
        type=ChallengeType.WEEKLY,
        metric=ChallengeMetric.CURRENT_STREAK,
    ),
    ChallengeTemplate(
        key="polyglot",
        title="Polyglot",
        description="Commit to at least {goal} different repositories",
        icon="\U0001f310",
        reward_xp=100,
        type=ChallengeType.WEEKLY,
        metric=ChallengeMetric.DISTINCT_REPOS,
    ),
]

TEMPLATES_BY_KEY: dict[str, ChallengeTemplate] = {
    t.key: t for t in DAILY_TEMPLATES + WEEKLY_TEMPLATES
}


# --- Progress metrics ---

MetricFn = Callable[[Sequence[Commit], UserStats | None], int]


def _commit_count(commits: Sequence[Commit], stats: UserStats | None) -> int:
    return len(commits)


def _early_commit(commits: Sequence[Commit], stats: UserStats | None) -> int:
    return int(any(to_local(c.committed_at).hour < EARLY_COMMIT_BEFORE_HOUR for c in commits))


def _late_commit(commits: Sequence[Commit], stats: UserStats | None) -> int:
    return int(any(to_local(c.committed_at).hour >= LATE_COMMIT_FROM_HOUR for c in commits))


def _lines_added(commits: Sequence[Commit], stats: UserStats | None) -> int:
    return sum(c.additions or 0 for c in commits)


def _distinct_repos(commits: Sequence[Commit], stats: UserStats | None) -> int:
    return len({c.repo_id for c in commits})


def _descriptive_messages(commits: Sequence[Commit], stats: UserStats | None) -> int:
    return sum(1 for c in commits if len(c.message or "") >= DESCRIPTIVE_MESSAGE_MIN_LENGTH)


def _current_streak(commits: Sequence[Commit], stats: UserStats | None) -> int:
    return stats.current_streak if stats else 0


METRICS: dict[ChallengeMetric, MetricFn] = {
    ChallengeMetric.COMMIT_COUNT: _commit_count,
    ChallengeMetric.EARLY_COMMIT: _early_commit,
    ChallengeMetric.LATE_COMMIT: _late_commit,
    ChallengeMetric.LINES_ADDED: _lines_added,
    ChallengeMetric.DISTINCT_REPOS: _distinct_repos,
    ChallengeMetric.DESCRIPTIVE_MESSAGES: _descriptive_messages,
    ChallengeMetric.CURRENT_STREAK: _current_streak,
}

_missing = {t.metric for t in TEMPLATES_BY_KEY.values()} - set(METRICS)
if _missing:
    raise RuntimeError(f"Challenge metrics without a progress function: {sorted(_missing)}")


def measure(template: ChallengeTemplate, commits: Sequence[Commit], stats: UserStats | None) -> int:
    """Raw (unclamped) progress for ``template`` over the window's commits."""
    return METRICS[template.metric](commits, stats)
