"""Streak calculation over canonical calendar days."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timedelta, tzinfo

from commitquest.gamification.calendar import local_date, utcnow

ONE_DAY = timedelta(days=1)


def unique_days(commit_times: Iterable[datetime], tz: tzinfo | None = None) -> set[date]:
    """Collapse commit instants into the set of canonical days they fall on."""
    return {local_date(t, tz) for t in commit_times}


def calculate_streak(
    commit_times: Iterable[datetime],
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> dict:
    """Compute current and longest daily commit streaks.

    The result depends only on the set of unique days, so several commits on
    the same day count once. ``current`` is 0 unless there is a commit today
    or yesterday; a streak that ends yesterday is still alive until the end
    of today.
    """
    days = unique_days(commit_times, tz)
    if not days:
        return {"current": 0, "longest": 0}

    if now is None:
        now = utcnow()
    today = local_date(now, tz)
    yesterday = today - ONE_DAY

    current = 0
    if today in days or yesterday in days:
        cursor = today if today in days else yesterday
        while cursor in days:
            current += 1
            cursor -= ONE_DAY

    ordered = sorted(days)
    longest = run = 1
    for prev, day in zip(ordered, ordered[1:]):
        if day - prev == ONE_DAY:
            run += 1
        else:
            run = 1
        longest = max(longest, run)

    return {"current": current, "longest": longest}
