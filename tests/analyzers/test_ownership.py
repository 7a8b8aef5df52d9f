"""Tests for per-file ownership concentration."""

from datetime import datetime, timezone

import pytest

from git_vitals.analyzers.churn import analyze_file_churn
from git_vitals.analyzers.ownership import (
    ConcentrationCategory,
    OwnershipType,
    analyze_file_ownership,
    ownership_concentration,
    ownership_type,
)
from git_vitals.history.models import Commit, FileChange


def make_commit(seed: int, author: str, files) -> Commit:
    """Create a test commit from (filename, additions, deletions) tuples."""
    return Commit(
        hash=f"{seed:040x}",
        author_name=author,
        author_email=f"{author}@example.com",
        date=datetime(2024, 1, 15, 10, seed, tzinfo=timezone.utc),
        message="change",
        files=tuple(FileChange(*f) for f in files),
    )


def ownership_of(commits):
    return analyze_file_ownership(analyze_file_churn(commits))


class TestOwnershipHelpers:
    """Tests for the band helpers."""

    def test_single_contributor_concentration(self):
        assert ownership_concentration({"alice": 100.0}) == 100.0

    def test_even_split_concentration(self):
        assert ownership_concentration({"a": 50.0, "b": 50.0}) == 50.0

    @pytest.mark.parametrize(
        "pct, count, expected",
        [
            (100.0, 1, OwnershipType.SINGLE_OWNER),
            (85.0, 2, OwnershipType.DOMINANT_OWNER),
            (80.0, 2, OwnershipType.DOMINANT_OWNER),
            (65.0, 3, OwnershipType.PRIMARY_OWNER),
            (45.0, 3, OwnershipType.SHARED_OWNERSHIP),
            (30.0, 4, OwnershipType.DISTRIBUTED_OWNERSHIP),
        ],
    )
    def test_ownership_type(self, pct, count, expected):
        assert ownership_type(pct, count) is expected


class TestAnalyzeFileOwnership:
    """Tests for per-file ownership records."""

    def test_distribution_sums_to_100(self):
        commits = [
            make_commit(1, "alice", [("a.py", 30, 0)]),
            make_commit(2, "bob", [("a.py", 20, 0)]),
            make_commit(3, "carol", [("a.py", 10, 0)]),
        ]
        record = ownership_of(commits).files["a.py"]

        assert sum(record.ownership_distribution.values()) == pytest.approx(100.0, abs=0.2)
        assert record.primary_owner == "alice"
        assert record.primary_owner_percentage == max(record.ownership_distribution.values())
        assert record.primary_owner_percentage == 50.0
        assert record.contributor_count == 3
        assert record.ownership_type is OwnershipType.SHARED_OWNERSHIP

    def test_single_owner(self):
        record = ownership_of([make_commit(1, "alice", [("a.py", 5, 5)])]).files["a.py"]

        assert record.ownership_type is OwnershipType.SINGLE_OWNER
        assert record.ownership_concentration == 100.0
        assert record.concentration_category is ConcentrationCategory.HIGH

    def test_tie_broken_by_name(self):
        commits = [make_commit(1, "zed", [("a.py", 10, 0)]), make_commit(2, "amy", [("a.py", 10, 0)])]
        assert ownership_of(commits).files["a.py"].primary_owner == "amy"

    def test_binary_file_falls_back_to_commit_counts(self):
        commits = [
            make_commit(1, "alice", [("logo.png", 0, 0)]),
            make_commit(2, "alice", [("logo.png", 0, 0)]),
            make_commit(3, "bob", [("logo.png", 0, 0)]),
        ]
        record = ownership_of(commits).files["logo.png"]

        assert record.primary_owner == "alice"
        assert record.primary_owner_percentage == pytest.approx(66.7)

    def test_summary(self):
        commits = [
            make_commit(1, "alice", [("solo.py", 10, 0), ("pair.py", 10, 0)]),
            make_commit(2, "bob", [("pair.py", 10, 0)]),
        ]
        result = ownership_of(commits)

        assert result.summary.total_files == 2
        assert result.summary.single_owner_files == 1
        assert result.summary.avg_concentration == 75.0
        assert list(result.files) == ["solo.py", "pair.py"]

    def test_empty(self):
        result = ownership_of([])
        assert result.files == {}
        assert result.summary.total_files == 0
        assert all(v == 0 for v in result.summary.type_counts.values())

    def test_idempotent(self):
        churn = analyze_file_churn([
            make_commit(1, "alice", [("a.py", 30, 0), ("b.py", 5, 5)]),
            make_commit(2, "bob", [("a.py", 20, 0)]),
        ])
        assert analyze_file_ownership(churn) == analyze_file_ownership(churn)
