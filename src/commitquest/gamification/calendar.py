"""Canonical-timezone calendar helpers.

Every day/week bucket in the engine (streaks, time-of-day achievements,
challenge windows, the commit calendar) goes through these functions so
they all agree on where midnight is.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo

from commitquest.config import get_settings


def canonical_tz() -> tzinfo:
    """Fixed-offset canonical timezone (UTC+7 by default)."""
    return timezone(timedelta(hours=get_settings().canonical_utc_offset_hours))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops the offset), convert the rest."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_local(dt: datetime, tz: tzinfo | None = None) -> datetime:
    """Convert an instant to canonical local time."""
    return as_utc(dt).astimezone(tz or canonical_tz())


def local_date(dt: datetime, tz: tzinfo | None = None) -> date:
    """Canonical calendar day containing the instant ``dt``."""
    return to_local(dt, tz).date()


def local_midnight(day: date, tz: tzinfo | None = None) -> datetime:
    """UTC instant of canonical midnight at the start of ``day``."""
    return datetime.combine(day, time.min, tzinfo=tz or canonical_tz()).astimezone(timezone.utc)


def get_sunday(day: date) -> date:
    """Sunday on or before ``day`` (weeks start on Sunday)."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def day_window(now: datetime | None = None) -> tuple[datetime, datetime]:
    """[midnight today, midnight tomorrow) in canonical time, as UTC instants."""
    if now is None:
        now = utcnow()
    today = local_date(now)
    return local_midnight(today), local_midnight(today + timedelta(days=1))


def week_window(now: datetime | None = None) -> tuple[datetime, datetime]:
    """[Sunday midnight, following Sunday midnight) in canonical time."""
    if now is None:
        now = utcnow()
    sunday = get_sunday(local_date(now))
    return local_midnight(sunday), local_midnight(sunday + timedelta(days=7))


def period_key(challenge_type: str, window_start: datetime) -> str:
    """Stable key for a challenge period, e.g. 'daily:2026-10-19'."""
    return f"{challenge_type}:{local_date(window_start).isoformat()}"
