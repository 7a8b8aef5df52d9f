"""Tests for commit message classification."""

from datetime import datetime, timezone

import pytest

from git_vitals.analyzers.classification import (
    CommitCategory,
    analyze_commit_types,
    classify_message,
)
from git_vitals.history.models import Commit, FileChange


def make_commit(sha: str, message: str, author: str = "alice", month: int = 1, day: int = 15) -> Commit:
    """Create a test commit."""
    return Commit(
        hash=sha,
        author_name=author,
        author_email=f"{author}@example.com",
        date=datetime(2024, month, day, 10, 0, tzinfo=timezone.utc),
        message=message,
        files=(FileChange("app.py", 1, 0),),
    )


class TestClassifyMessage:
    """Tests for the ordered rule table."""

    @pytest.mark.parametrize(
        "message, expected",
        [
            ("fix: null pointer in parser", CommitCategory.BUGFIX),
            ("Hotfix for login", CommitCategory.BUGFIX),
            ("Resolve crash on startup", CommitCategory.BUGFIX),
            ("feat: add export", CommitCategory.FEATURE),
            ("Add CSV importer", CommitCategory.FEATURE),
            ("Implement caching layer", CommitCategory.FEATURE),
            ("chore: bump dep", CommitCategory.MAINTENANCE),
            ("refactor: split module", CommitCategory.MAINTENANCE),
            ("docs: update readme", CommitCategory.MAINTENANCE),
            ("Merge branch 'main' into feature", CommitCategory.MERGE),
            ("wip", CommitCategory.OTHER),
            ("", CommitCategory.OTHER),
        ],
    )
    def test_categories(self, message, expected):
        assert classify_message(message) is expected

    def test_merge_takes_precedence_over_bugfix(self):
        """A merge of a fix branch is still a merge."""
        assert classify_message("Merge branch 'fix/login'") is CommitCategory.MERGE

    def test_bugfix_takes_precedence_over_feature(self):
        assert classify_message("fix: improve error message") is CommitCategory.BUGFIX

    def test_case_and_whitespace_insensitive(self):
        assert classify_message("   FIX: Something  ") is CommitCategory.BUGFIX

    def test_none_message(self):
        assert classify_message(None) is CommitCategory.OTHER


class TestAnalyzeCommitTypes:
    """Tests for the aggregate commit-type analysis."""

    def test_fix_feat_chore_scenario(self, scenario_commits):
        """One of each splits evenly and quality is balanced."""
        result = analyze_commit_types(scenario_commits)

        assert result.total_commits == 3
        assert result.bugfix_ratio == pytest.approx(33.33)
        assert result.feature_ratio == pytest.approx(33.33)
        assert result.ratios[CommitCategory.MAINTENANCE] == pytest.approx(33.33)
        assert result.quality_score == pytest.approx(0.5)

    def test_every_commit_classified(self, scenario_commits):
        result = analyze_commit_types(scenario_commits)
        assert set(result.categories) == {c.hash for c in scenario_commits}
        assert sum(result.counts.values()) == len(scenario_commits)

    def test_empty_history(self):
        """No commits gives zero ratios and neutral quality."""
        result = analyze_commit_types([])

        assert result.total_commits == 0
        assert all(v == 0 for v in result.counts.values())
        assert all(v == 0.0 for v in result.ratios.values())
        assert result.quality_score == 1.0
        assert result.by_author == {}
        assert result.bugfix_patterns.trend == "insufficient_data"

    def test_only_maintenance_keeps_neutral_quality(self):
        commits = [make_commit("1" * 40, "chore: tidy"), make_commit("2" * 40, "refactor: x")]
        assert analyze_commit_types(commits).quality_score == 1.0

    def test_by_author(self):
        commits = [
            make_commit("1" * 40, "fix: a", author="alice"),
            make_commit("2" * 40, "fix: b", author="alice"),
            make_commit("3" * 40, "feat: c", author="alice"),
            make_commit("4" * 40, "feat: d", author="bob"),
        ]
        result = analyze_commit_types(commits)

        alice = result.by_author["alice"]
        assert alice.total_commits == 3
        assert alice.bugfix_commits == 2
        assert alice.feature_commits == 1
        assert alice.bugfix_ratio == pytest.approx(66.67)
        assert result.by_author["bob"].bugfix_ratio == 0.0

    def test_urgent_fix_keywords(self):
        commits = [
            make_commit("1" * 40, "hotfix: critical outage"),
            make_commit("2" * 40, "fix: minor typo in label"),
        ]
        patterns = analyze_commit_types(commits).bugfix_patterns

        assert patterns.urgent_fixes == 1
        assert patterns.urgency_keywords["critical"] == 1
        assert patterns.severity_keywords["minor"] == 1

    def test_bugfix_trend_increasing(self):
        commits = [make_commit(f"{i:040x}", "fix: thing", month=1) for i in range(1, 3)]
        commits += [make_commit(f"{i:040x}", "fix: thing", month=2) for i in range(3, 8)]
        patterns = analyze_commit_types(commits).bugfix_patterns

        assert patterns.trend == "increasing"
        assert patterns.trend_change_percentage == pytest.approx(150.0)
        assert patterns.timing.by_month == {"2024-01": 2, "2024-02": 5}

    def test_idempotent(self, scenario_commits):
        assert analyze_commit_types(scenario_commits) == analyze_commit_types(scenario_commits)
