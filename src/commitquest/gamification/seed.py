"""Achievement seed data: the fixed catalog, upserted by slug."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from commitquest.database import atomic
from commitquest.db.base import insert_for
from commitquest.db.models import Achievement
from commitquest.gamification.achievements import Rarity, validate_definition

logger = logging.getLogger(__name__)

ACHIEVEMENT_SEED_DATA: list[dict] = [
    # Streaks
    {
        "slug": "streak-7",
        "name": "Week Warrior",
        "description": "7-day commit streak",
        "icon": "\U0001f525",
        "category": "streak",
        "threshold": 7,
        "rarity": "common",
        "xp_reward": 50,
    },
    {
        "slug": "streak-30",
        "name": "Monthly Master",
        "description": "30-day commit streak",
        "icon": "\U0001f4aa",
        "category": "streak",
        "threshold": 30,
        "rarity": "rare",
        "xp_reward": 200,
    },
    {
        "slug": "streak-100",
        "name": "Centurion",
        "description": "100-day commit streak",
        "icon": "\U0001f451",
        "category": "streak",
        "threshold": 100,
        "rarity": "legendary",
        "xp_reward": 1000,
    },
    # Volume
    {
        "slug": "commits-1",
        "name": "First Blood",
        "description": "Your first tracked commit",
        "icon": "\U0001f3af",
        "category": "volume",
        "threshold": 1,
        "rarity": "common",
        "xp_reward": 10,
    },
    {
        "slug": "commits-100",
        "name": "Century",
        "description": "100 total commits",
        "icon": "\U0001f4af",
        "category": "volume",
        "threshold": 100,
        "rarity": "common",
        "xp_reward": 100,
    },
    {
        "slug": "commits-500",
        "name": "Prolific",
        "description": "500 total commits",
        "icon": "⚡",
        "category": "volume",
        "threshold": 500,
        "rarity": "rare",
        "xp_reward": 500,
    },
    {
        "slug": "commits-1000",
        "name": "Thousand Club",
        "description": "1000 total commits",
        "icon": "\U0001f3c6",
        "category": "volume",
        "threshold": 1000,
        "rarity": "epic",
        "xp_reward": 1000,
    },
    # Time of day
    {
        "slug": "night-owl",
        "name": "Night Owl",
        "description": "Commit between midnight and 5am",
        "icon": "\U0001f989",
        "category": "time",
        "threshold": 1,
        "rarity": "rare",
        "xp_reward": 50,
    },
    {
        "slug": "early-bird",
        "name": "Early Bird",
        "description": "Commit between 5am and 7am",
        "icon": "\U0001f426",
        "category": "time",
        "threshold": 1,
        "rarity": "rare",
        "xp_reward": 50,
    },
    {
        "slug": "weekend-warrior",
        "name": "Weekend Warrior",
        "description": "Commit on Saturday and Sunday",
        "icon": "⚔️",
        "category": "time",
        "threshold": 1,
        "rarity": "common",
        "xp_reward": 30,
    },
    # Special
    {
        "slug": "multi-platform",
        "name": "Multiverse",
        "description": "Connect both GitHub and GitLab",
        "icon": "\U0001f310",
        "category": "special",
        "threshold": 1,
        "rarity": "rare",
        "xp_reward": 100,
    },
    {
        "slug": "first-repo",
        "name": "Pioneer",
        "description": "Track your first repository",
        "icon": "\U0001f680",
        "category": "special",
        "threshold": 1,
        "rarity": "common",
        "xp_reward": 20,
    },
]


async def seed_achievements(db: AsyncSession, data: list[dict] | None = None) -> int:
    """Insert catalog entries that are missing. Existing slugs are left as-is.

    Returns the number of entries processed.
    """
    entries = ACHIEVEMENT_SEED_DATA if data is None else data
    for entry in entries:
        validate_definition(entry["slug"], entry["category"])
        Rarity(entry["rarity"])

    async with atomic(db):
        for sort_order, entry in enumerate(entries, start=1):
            stmt = insert_for(db, Achievement).values(sort_order=sort_order, **entry)
            await db.execute(stmt.on_conflict_do_nothing(index_elements=["slug"]))

    logger.info("Seeded %d achievement definitions", len(entries))
    return len(entries)
