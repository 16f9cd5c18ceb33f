"""Challenge templates, goal rolls and progress metrics."""

import random
from datetime import datetime, timezone

from commitquest.db.models import Commit, UserStats
from commitquest.gamification.challenges import (
    DAILY_TEMPLATES,
    METRICS,
    TEMPLATES_BY_KEY,
    WEEKLY_TEMPLATES,
    ChallengeMetric,
    ChallengeType,
    measure,
)
from tests.conftest import local_time


def _commit(at: datetime, repo_id: int = 1, additions: int = 0, message: str = "wip") -> Commit:
    return Commit(committed_at=at, repo_id=repo_id, additions=additions, deletions=0, message=message)


class TestTemplates:

    def test_template_sets(self):
        assert len(DAILY_TEMPLATES) == 6
        assert len(WEEKLY_TEMPLATES) == 3
        assert all(t.type is ChallengeType.DAILY for t in DAILY_TEMPLATES)
        assert all(t.type is ChallengeType.WEEKLY for t in WEEKLY_TEMPLATES)

    def test_every_metric_has_a_function(self):
        assert set(METRICS) == set(ChallengeMetric)

    def test_keys_are_unique(self):
        assert len(TEMPLATES_BY_KEY) == len(DAILY_TEMPLATES) + len(WEEKLY_TEMPLATES)

    def test_goal_substituted(self):
        template = TEMPLATES_BY_KEY["commit-streak"]
        assert template.render_description(5) == "Make 5 commits today"

    def test_daily_goal_range(self):
        rng = random.Random(7)
        template = TEMPLATES_BY_KEY["commit-streak"]
        goals = {template.roll_goal(rng, 3, 7) for _ in range(200)}
        assert goals == {3, 4, 5, 6, 7}

    def test_presence_templates_have_fixed_goal(self):
        rng = random.Random(1)
        assert TEMPLATES_BY_KEY["early-bird"].roll_goal(rng, 3, 7) == 1
        assert TEMPLATES_BY_KEY["night-owl"].roll_goal(rng, 3, 7) == 1

    def test_code_warrior_goal_is_scaled(self):
        rng = random.Random(3)
        goal = TEMPLATES_BY_KEY["code-warrior"].roll_goal(rng, 3, 7)
        assert goal % 50 == 0 and 150 <= goal <= 350


class TestMetrics:

    def test_commit_count(self):
        commits = [_commit(local_time(0, 10)), _commit(local_time(0, 11))]
        assert measure(TEMPLATES_BY_KEY["commit-streak"], commits, None) == 2

    def test_early_commit_before_nine_local(self):
        assert measure(TEMPLATES_BY_KEY["early-bird"], [_commit(local_time(0, 8, 59))], None) == 1
        assert measure(TEMPLATES_BY_KEY["early-bird"], [_commit(local_time(0, 9, 0))], None) == 0

    def test_late_commit_from_ten_pm_local(self):
        assert measure(TEMPLATES_BY_KEY["night-owl"], [_commit(local_time(0, 22, 0))], None) == 1
        assert measure(TEMPLATES_BY_KEY["night-owl"], [_commit(local_time(0, 21, 59))], None) == 0

    def test_lines_added(self):
        commits = [_commit(local_time(0, 10), additions=120), _commit(local_time(0, 11), additions=30)]
        assert measure(TEMPLATES_BY_KEY["code-warrior"], commits, None) == 150

    def test_distinct_repos(self):
        commits = [_commit(local_time(0, 10), repo_id=1), _commit(local_time(0, 11), repo_id=1),
                   _commit(local_time(0, 12), repo_id=2)]
        assert measure(TEMPLATES_BY_KEY["repo-explorer"], commits, None) == 2
        assert measure(TEMPLATES_BY_KEY["polyglot"], commits, None) == 2

    def test_descriptive_messages_longer_than_ten(self):
        commits = [
            _commit(local_time(0, 10), message="0123456789"),  # exactly 10
            _commit(local_time(0, 11), message="01234567890"),  # 11
        ]
        assert measure(TEMPLATES_BY_KEY["message-master"], commits, None) == 1

    def test_current_streak(self):
        stats = UserStats(user_id=1, current_streak=4, longest_streak=9, total_commits=20)
        assert measure(TEMPLATES_BY_KEY["streak-master"], [], stats) == 4
        assert measure(TEMPLATES_BY_KEY["streak-master"], [], None) == 0

    def test_utc_hour_is_not_used(self):
        """02:00 UTC is 09:00 local: not early."""
        t = datetime(2026, 10, 19, 2, 0, tzinfo=timezone.utc)
        assert measure(TEMPLATES_BY_KEY["early-bird"], [_commit(t)], None) == 0
