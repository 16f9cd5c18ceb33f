"""Achievement categories and unlock predicates.

Threshold categories compare a rollup counter with the catalog threshold.
Slug-keyed categories look their predicate up in ``SLUG_PREDICATES``; an
entry without one is rejected when the catalog is seeded.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from commitquest.db.models import Achievement, UserStats
from commitquest.gamification.calendar import to_local


class AchievementCategory(str, Enum):
    STREAK = "streak"
    VOLUME = "volume"
    TIME = "time"
    SPECIAL = "special"


class Rarity(str, Enum):
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


@dataclass
class AchievementContext:
    """Everything a predicate may look at for one user."""

    stats: UserStats
    commit_times: list[datetime] = field(default_factory=list)
    providers: set[str] = field(default_factory=set)
    tracked_repo_count: int = 0


Predicate = Callable[[AchievementContext], bool]


def _any_commit_in_hours(ctx: AchievementContext, start: int, end: int) -> bool:
    return any(start <= to_local(t).hour < end for t in ctx.commit_times)


def _weekend_warrior(ctx: AchievementContext) -> bool:
    weekdays = {to_local(t).weekday() for t in ctx.commit_times}
    return 5 in weekdays and 6 in weekdays  # Saturday, Sunday


# --- Threshold categories ---
THRESHOLD_FIELDS: dict[AchievementCategory, Callable[[UserStats], int]] = {
    AchievementCategory.STREAK: lambda s: s.current_streak,
    AchievementCategory.VOLUME: lambda s: s.total_commits,
}

# --- Slug-keyed categories ---
SLUG_PREDICATES: dict[AchievementCategory, dict[str, Predicate]] = {
    AchievementCategory.TIME: {
        "night-owl": lambda ctx: _any_commit_in_hours(ctx, 0, 5),
        "early-bird": lambda ctx: _any_commit_in_hours(ctx, 5, 7),
        "weekend-warrior": _weekend_warrior,
    },
    AchievementCategory.SPECIAL: {
        "multi-platform": lambda ctx: {"github", "gitlab"} <= ctx.providers,
        "first-repo": lambda ctx: ctx.tracked_repo_count >= 1,
    },
}


def uncovered_categories(
    threshold_fields: dict = THRESHOLD_FIELDS,
    slug_predicates: dict = SLUG_PREDICATES,
) -> set[AchievementCategory]:
    """Categories with neither a stats field nor a predicate table."""
    return set(AchievementCategory) - set(threshold_fields) - set(slug_predicates)


_uncovered = uncovered_categories()
if _uncovered:
    raise RuntimeError(f"Achievement categories without an evaluator: {sorted(c.value for c in _uncovered)}")


def validate_definition(slug: str, category: str) -> None:
    """Raise ValueError if a catalog entry could never be evaluated."""
    try:
        cat = AchievementCategory(category)
    except ValueError:
        raise ValueError(f"Unknown achievement category {category!r} for {slug!r}") from None
    if cat in SLUG_PREDICATES and slug not in SLUG_PREDICATES[cat]:
        raise ValueError(f"No predicate registered for {cat.value} achievement {slug!r}")


def qualifies(achievement: Achievement, ctx: AchievementContext) -> bool:
    """Evaluate one catalog entry against the user's context."""
    category = AchievementCategory(achievement.category)
    if category in THRESHOLD_FIELDS:
        return THRESHOLD_FIELDS[category](ctx.stats) >= achievement.threshold
    return SLUG_PREDICATES[category][achievement.slug](ctx)
