"""Streak calculation and canonical-day boundaries (UTC+7)."""

from datetime import date, datetime, timedelta, timezone

import pytest

from commitquest.gamification.calendar import (
    day_window,
    get_sunday,
    local_date,
    period_key,
    week_window,
)
from commitquest.gamification.streaks import calculate_streak, unique_days
from tests.conftest import NOW, local_time


class TestCalculateStreak:
    """Streak values depend only on the set of canonical days."""

    def test_no_commits(self):
        assert calculate_streak([], now=NOW) == {"current": 0, "longest": 0}

    def test_only_three_days_ago(self):
        result = calculate_streak([local_time(-3, 12)], now=NOW)
        assert result == {"current": 0, "longest": 1}

    def test_today_yesterday_day_before(self):
        times = [local_time(0, 10), local_time(-1, 10), local_time(-2, 10)]
        assert calculate_streak(times, now=NOW) == {"current": 3, "longest": 3}

    def test_gap_breaks_current_run(self):
        times = [local_time(d, 10) for d in (0, -1, -5, -6)]
        assert calculate_streak(times, now=NOW) == {"current": 2, "longest": 2}

    def test_streak_ending_yesterday_is_still_current(self):
        times = [local_time(-1, 10), local_time(-2, 10)]
        assert calculate_streak(times, now=NOW)["current"] == 2

    def test_single_commit_today(self):
        assert calculate_streak([local_time(0, 9)], now=NOW) == {"current": 1, "longest": 1}

    def test_longest_run_in_the_past(self):
        times = [local_time(-d, 10) for d in range(10, 15)] + [local_time(0, 10)]
        assert calculate_streak(times, now=NOW) == {"current": 1, "longest": 5}

    def test_same_day_duplicates_do_not_change_result(self):
        base = [local_time(0, 10), local_time(-1, 10)]
        dupes = base + [local_time(0, 11), local_time(0, 23), local_time(-1, 0, 5)]
        assert calculate_streak(base, now=NOW) == calculate_streak(dupes, now=NOW)

    def test_order_does_not_matter(self):
        times = [local_time(-2, 10), local_time(0, 10), local_time(-1, 10)]
        assert calculate_streak(times, now=NOW) == calculate_streak(sorted(times), now=NOW)

    def test_late_utc_commit_counts_for_next_canonical_day(self):
        """20:00 UTC is 03:00 the next day at UTC+7."""
        late_utc = datetime(2026, 10, 18, 20, 0, tzinfo=timezone.utc)
        assert local_date(late_utc) == date(2026, 10, 19)
        assert calculate_streak([late_utc], now=NOW)["current"] == 1

    def test_naive_timestamps_are_treated_as_utc(self):
        naive = datetime(2026, 10, 19, 1, 0)
        assert calculate_streak([naive], now=NOW)["current"] == 1


class TestUniqueDays:
    def test_collapses_same_day(self):
        days = unique_days([local_time(0, 1), local_time(0, 23, 59)])
        assert days == {date(2026, 10, 19)}


class TestWindows:
    """Daily and weekly challenge windows."""

    def test_day_window_bounds(self):
        start, end = day_window(NOW)
        assert start == datetime(2026, 10, 18, 17, 0, tzinfo=timezone.utc)
        assert end - start == timedelta(days=1)

    def test_day_window_just_before_local_midnight(self):
        instant = datetime(2026, 10, 19, 16, 59, 59, tzinfo=timezone.utc)  # 23:59:59 local
        start, _ = day_window(instant)
        assert local_date(start) == date(2026, 10, 19)

    def test_day_window_at_local_midnight(self):
        instant = datetime(2026, 10, 19, 17, 0, tzinfo=timezone.utc)  # 00:00 local on the 20th
        start, _ = day_window(instant)
        assert local_date(start) == date(2026, 10, 20)

    def test_week_starts_on_sunday(self):
        start, end = week_window(NOW)
        assert local_date(start) == date(2026, 10, 18)
        assert end - start == timedelta(days=7)

    @pytest.mark.parametrize(
        "day,expected",
        [
            (date(2026, 10, 18), date(2026, 10, 18)),  # Sunday
            (date(2026, 10, 19), date(2026, 10, 18)),  # Monday
            (date(2026, 10, 24), date(2026, 10, 18)),  # Saturday
            (date(2026, 10, 25), date(2026, 10, 25)),  # next Sunday
        ],
    )
    def test_get_sunday(self, day, expected):
        assert get_sunday(day) == expected

    def test_period_key_uses_canonical_date(self):
        start, _ = day_window(NOW)
        assert period_key("daily", start) == "daily:2026-10-19"
