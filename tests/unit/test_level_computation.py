"""Level table, XP amounts and level computation."""

import pytest

from commitquest.gamification.level_thresholds import (
    LEVEL_THRESHOLDS,
    compute_level,
    level_from_total_xp,
    required_xp_for_level,
    title_for_level,
)
from commitquest.gamification.xp_service import streak_bonus_xp, xp_for_commit


class TestLevelComputation:

    def test_level_1_at_zero_xp(self):
        result = compute_level(0)
        assert result["level"] == 1
        assert result["title"] == "Code Novice"

    def test_level_boundary_99_xp(self):
        """99 XP is still level 1."""
        assert compute_level(99)["level"] == 1

    def test_level_2_at_100_xp(self):
        result = compute_level(100)
        assert result["level"] == 2
        assert result["title"] == "App Developer"

    def test_xp_into_level(self):
        result = compute_level(150)
        assert result["xp_into_level"] == 50
        assert result["xp_for_level"] == 150  # 250 - 100
        assert result["xp_to_next_level"] == 100

    def test_sparse_table_jumps_breakpoints(self):
        """20 -> 25 has no intermediate levels."""
        result = compute_level(300_000)
        assert result["level"] == 20
        assert result["title"] == "Master Coder"
        assert result["next_level"] == 25
        assert result["xp_to_next_level"] == 200_000

    def test_top_of_table(self):
        result = compute_level(10_000_000)
        assert result["level"] == 100
        assert result["title"] == "Commit God"
        assert result["next_level"] == 101
        assert result["next_title"] == "Commit God"

    @pytest.mark.parametrize(
        "xp,expected_level",
        [
            (0, 1),
            (100, 2),
            (249, 2),
            (250, 3),
            (1000, 5),
            (10_000, 10),
            (49_999, 14),
            (250_000, 20),
            (499_999, 20),
            (500_000, 25),
            (1_000_000, 30),
            (5_000_000, 50),
            (10_000_000, 100),
            (50_000_000, 100),
        ],
    )
    def test_level_from_total_xp(self, xp, expected_level):
        assert level_from_total_xp(xp) == expected_level

    def test_monotonic(self):
        previous = 0
        for xp in range(0, 300_000, 137):
            level = level_from_total_xp(xp)
            assert level >= previous
            previous = level

    def test_round_trip_for_every_breakpoint(self):
        for t in LEVEL_THRESHOLDS:
            assert level_from_total_xp(required_xp_for_level(t["level"])) >= t["level"]

    def test_untabulated_level_uses_growth_rule(self):
        assert required_xp_for_level(21) == int(100 * 1.5 ** 20)
        assert required_xp_for_level(10) == 10_000

    def test_title_for_untabulated_level(self):
        assert title_for_level(22) == "Master Coder"
        assert title_for_level(101) == "Commit God"

    def test_table_is_strictly_increasing(self):
        cumulative = [t["cumulative"] for t in LEVEL_THRESHOLDS]
        levels = [t["level"] for t in LEVEL_THRESHOLDS]
        assert cumulative == sorted(cumulative) and len(set(cumulative)) == len(cumulative)
        assert levels == sorted(levels)


class TestCommitXP:

    @pytest.mark.parametrize(
        "additions,deletions,expected",
        [
            (0, 0, 10),
            (60, 40, 10),  # exactly 100 is not "more than"
            (61, 40, 15),
            (400, 101, 25),
            (1000, 1, 40),
            (5000, 5000, 40),
        ],
    )
    def test_size_tiers_stack(self, additions, deletions, expected):
        assert xp_for_commit(additions, deletions) == expected

    def test_none_counts_as_zero(self):
        assert xp_for_commit(None, None) == 10


class TestStreakBonus:

    @pytest.mark.parametrize("streak,expected", [(0, 0), (2, 0), (3, 1), (7, 3), (30, 15)])
    def test_bonus(self, streak, expected):
        assert streak_bonus_xp(streak) == expected
