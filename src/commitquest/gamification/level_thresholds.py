"""Level thresholds and computation.

The table is sparse: levels between two breakpoints are never reached by
XP alone and share the lower breakpoint's title.
"""

from __future__ import annotations

import math

LEVEL_THRESHOLDS: list[dict] = [
    {"level": 1, "title": "Code Novice", "cumulative": 0},
    {"level": 2, "title": "App Developer", "cumulative": 100},
    {"level": 3, "title": "Bug Hunter", "cumulative": 250},
    {"level": 4, "title": "Code Apprentice", "cumulative": 500},
    {"level": 5, "title": "Merge Apprentice", "cumulative": 1000},
    {"level": 6, "title": "Committer", "cumulative": 2000},
    {"level": 7, "title": "Streak Keeper", "cumulative": 3500},
    {"level": 8, "title": "Code Warrior", "cumulative": 5000},
    {"level": 9, "title": "Git Apprentice", "cumulative": 7500},
    {"level": 10, "title": "Merge Master", "cumulative": 10000},
    {"level": 11, "title": "Git Knight", "cumulative": 15000},
    {"level": 12, "title": "Code Crusader", "cumulative": 20000},
    {"level": 13, "title": "Streak Legend", "cumulative": 30000},
    {"level": 14, "title": "Achievement Hunter", "cumulative": 40000},
    {"level": 15, "title": "Git Champion", "cumulative": 50000},
    {"level": 16, "title": "Code Warlord", "cumulative": 75000},
    {"level": 17, "title": "Streak God", "cumulative": 100000},
    {"level": 18, "title": "Git Legend", "cumulative": 150000},
    {"level": 19, "title": "Code Titan", "cumulative": 200000},
    {"level": 20, "title": "Master Coder", "cumulative": 250000},
    {"level": 25, "title": "Elite Developer", "cumulative": 500000},
    {"level": 30, "title": "Git Grandmaster", "cumulative": 1000000},
    {"level": 50, "title": "Code Immortal", "cumulative": 5000000},
    {"level": 100, "title": "Commit God", "cumulative": 10000000},
]

_BY_LEVEL = {t["level"]: t for t in LEVEL_THRESHOLDS}

# Extrapolation for levels missing from the table
GROWTH_BASE_XP = 100
GROWTH_FACTOR = 1.5


def level_from_total_xp(total_xp: int) -> int:
    """Highest breakpoint level whose cumulative XP is <= total_xp."""
    level = LEVEL_THRESHOLDS[0]["level"]
    for t in LEVEL_THRESHOLDS:
        if total_xp >= t["cumulative"]:
            level = t["level"]
    return level


def title_for_level(level: int) -> str:
    """Title of the highest breakpoint at or below ``level``."""
    title = LEVEL_THRESHOLDS[0]["title"]
    for t in LEVEL_THRESHOLDS:
        if level >= t["level"]:
            title = t["title"]
    return title


def required_xp_for_level(level: int) -> int:
    """Cumulative XP for ``level``; geometric growth for untabulated levels."""
    if level in _BY_LEVEL:
        return _BY_LEVEL[level]["cumulative"]
    return math.floor(GROWTH_BASE_XP * GROWTH_FACTOR ** (level - 1))


def compute_level(total_xp: int) -> dict:
    """Compute level info from total XP.

    ``next_level`` is the next breakpoint; past the top of the table it is
    ``level + 1`` priced by the geometric rule.
    """
    level = level_from_total_xp(total_xp)
    current = _BY_LEVEL[level]

    upcoming = [t for t in LEVEL_THRESHOLDS if t["level"] > level]
    if upcoming:
        next_level = upcoming[0]["level"]
        next_required = upcoming[0]["cumulative"]
    else:
        next_level = level + 1
        next_required = required_xp_for_level(next_level)

    return {
        "level": level,
        "title": current["title"],
        "xp_into_level": total_xp - current["cumulative"],
        "xp_for_level": next_required - current["cumulative"],
        "next_level": next_level,
        "next_title": title_for_level(next_level),
        "xp_to_next_level": max(0, next_required - total_xp),
    }
