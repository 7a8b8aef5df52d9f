"""Tests for deployment identification and cadence metrics."""

from datetime import datetime, timedelta, timezone

import pytest

from git_vitals.analyzers.deployments import (
    Deployment,
    DeploymentAnalyzer,
    DeploymentMethod,
    DeploymentType,
    deduplicate_deployments,
    deployment_intervals,
    is_production_tag,
)
from git_vitals.exceptions import MissingInputError
from git_vitals.history.models import Commit, FileChange, Tag, TimeWindow

# Monday
START = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)


def make_commit(seed: int, message: str, at: datetime) -> Commit:
    """Create a test commit."""
    return Commit(
        hash=f"{seed:040x}",
        author_name="alice",
        author_email="alice@example.com",
        date=at,
        message=message,
        files=(FileChange("app.py", 1, 0),),
    )


def make_deployment(identifier: str, at: datetime, tagged: bool = True) -> Deployment:
    return Deployment(
        type=DeploymentType.PRODUCTION_RELEASE if tagged else DeploymentType.MERGE_DEPLOYMENT,
        identifier=identifier,
        date=at,
        commit_hash=None,
        method=DeploymentMethod.TAG if tagged else DeploymentMethod.MERGE,
    )


def tags_every(days: list, prefix: str = "v1.0.") -> list:
    return [Tag(name=f"{prefix}{i}", date=START + timedelta(days=d)) for i, d in enumerate(days)]


class TestProductionTags:
    """Tests for the production tag patterns."""

    @pytest.mark.parametrize(
        "name",
        ["v1.0.0", "2.3.4", "v1.2.0-rc1", "release-1.4", "prod-2024-01", "api_deploy", "v2024.01.15", "v20240115", "v3"],
    )
    def test_production(self, name):
        assert is_production_tag(name)

    @pytest.mark.parametrize("name", ["wip-test", "experiment", "v1.0", "backup-2024", "latest"])
    def test_not_production(self, name):
        assert not is_production_tag(name)


class TestMissingInput:
    """The analyzer refuses to run without a window."""

    def test_window_required(self):
        with pytest.raises(MissingInputError) as exc_info:
            DeploymentAnalyzer(None)
        assert exc_info.value.analyzer == "DeploymentAnalyzer"


class TestMergeDeployments:
    """Tests for merge-commit recognition."""

    @pytest.fixture
    def analyzer(self, window):
        return DeploymentAnalyzer(window)

    @pytest.mark.parametrize(
        "message",
        [
            "Merge pull request #42 from org/feature-x",
            "Merge branch 'feature' into 'main'",
            "Merge branch 'hotfix' into master",
            "Merge remote-tracking branch 'origin/main'",
            "Merged in feature/login (pull request #7)",
        ],
    )
    def test_merge_deployments(self, analyzer, message):
        assert analyzer.is_merge_deployment(message)

    @pytest.mark.parametrize(
        "message",
        ["Merge branch 'main' into feature/x", "feat: merge sort", "Add merge helper"],
    )
    def test_not_merge_deployments(self, analyzer, message):
        assert not analyzer.is_merge_deployment(message)

    def test_extra_main_branches(self, window):
        analyzer = DeploymentAnalyzer(window, branches=["trunk"])
        assert analyzer.is_merge_deployment("Merge branch 'x' into trunk")

    def test_current_branch_is_main_like(self, window):
        analyzer = DeploymentAnalyzer(window, current_branch="develop")
        assert analyzer.is_merge_deployment("Merge branch 'x' into develop")
        assert analyzer.is_main_branch("origin/develop")


class TestIdentify:
    """Tests for deployment identification."""

    def test_release_tags(self, window, release_tags):
        """Production tags become deployments, scratch tags do not."""
        deployments = DeploymentAnalyzer(window).identify([], release_tags)

        assert [d.identifier for d in deployments] == ["v1.0.0", "v1.1.0"]
        assert all(d.type is DeploymentType.PRODUCTION_RELEASE for d in deployments)

    def test_tags_outside_window_ignored(self, window):
        tags = [Tag("v0.9.0", window.start - timedelta(days=1)), Tag("v1.0.0", START)]
        assert [d.identifier for d in DeploymentAnalyzer(window).identify([], tags)] == ["v1.0.0"]

    def test_merge_identifier_is_short_hash(self, window):
        commit = make_commit(0xABCDEF12, "Merge pull request #1 from org/x", START)
        deployment = DeploymentAnalyzer(window).identify([commit], [])[0]

        assert deployment.identifier == commit.hash[:8]
        assert deployment.method is DeploymentMethod.MERGE
        assert deployment.commit_hash == commit.hash

    def test_tag_beats_merge_on_same_day(self, window):
        """A tagged release wins over a later merge the same day."""
        merge = make_commit(1, "Merge pull request #12 from org/x", START + timedelta(hours=3))
        tag = Tag("v1.0.0", START)

        deployments = DeploymentAnalyzer(window).identify([merge], [tag])

        assert len(deployments) == 1
        assert deployments[0].identifier == "v1.0.0"

    def test_at_most_one_per_day(self, window):
        tags = [Tag("v1.0.0", START), Tag("v1.0.1", START + timedelta(hours=4)), Tag("v1.0.2", START + timedelta(days=1))]
        deployments = DeploymentAnalyzer(window).identify([], tags)

        days = [d.date.date() for d in deployments]
        assert len(days) == len(set(days))
        assert [d.identifier for d in deployments] == ["v1.0.1", "v1.0.2"]

    def test_dedup_latest_merge_of_day(self):
        early = make_deployment("aaaa1111", START, tagged=False)
        late = make_deployment("bbbb2222", START + timedelta(hours=2), tagged=False)
        assert deduplicate_deployments([late, early]) == (late,)

    def test_no_deployments(self, window):
        result = DeploymentAnalyzer(window).analyze([make_commit(1, "feat: x", START)], [])

        assert result.deployments == ()
        assert result.frequency.total_deployments == 0
        assert result.frequency.category == "none"
        assert result.frequency.days_since_last_deployment is None
        assert result.quality.velocity == "unknown"
        assert result.trend.direction == "insufficient_data"

    def test_idempotent(self, window, release_tags):
        commits = [make_commit(1, "Merge pull request #3 from org/x", START + timedelta(days=5))]
        analyzer = DeploymentAnalyzer(window)
        assert analyzer.analyze(commits, release_tags) == analyzer.analyze(commits, release_tags)


class TestFrequency:
    """Tests for deployment frequency over the window."""

    def test_two_releases_ten_days_apart(self, window, release_tags):
        result = DeploymentAnalyzer(window).analyze([], release_tags)
        frequency = result.frequency

        assert frequency.total_deployments == 2
        assert frequency.avg_days_between_deployments == pytest.approx(10.0)
        assert frequency.period_days == pytest.approx(90.0)
        assert frequency.deployments_per_week == pytest.approx(0.16)
        assert frequency.category == "moderate"
        # Window ends 60 days after the first release
        assert frequency.days_since_last_deployment == 50

    def test_naive_tag_dates_read_as_utc(self, window):
        tags = [Tag("v1.0.0", START.replace(tzinfo=None)), Tag("v1.1.0", START.replace(tzinfo=None) + timedelta(days=10))]
        frequency = DeploymentAnalyzer(window).analyze([], tags).frequency

        assert tags[0].date == START
        assert frequency.total_deployments == 2
        assert frequency.avg_days_between_deployments == pytest.approx(10.0)
        assert frequency.days_since_last_deployment == 50

    def test_intervals(self):
        deployments = [make_deployment("a", START + timedelta(days=d)) for d in (3, 0, 1)]
        assert deployment_intervals(deployments) == [1.0, 2.0]

    def test_daily_deploys_are_very_high(self):
        window = TimeWindow(START, START + timedelta(days=7))
        tags = tags_every([0, 1, 2, 3, 4, 5, 6])
        assert DeploymentAnalyzer(window).analyze([], tags).frequency.category == "very_high"


class TestStabilityAndQuality:
    """Tests for interval regularity, batch size and trend."""

    def test_regular_cadence_is_predictable(self, window):
        result = DeploymentAnalyzer(window).analyze([], tags_every([0, 7, 14, 21]))

        assert result.stability.coefficient_of_variation == 0.0
        assert result.stability.consistency_score == 1.0
        assert result.stability.predictability == "very_predictable"
        assert result.quality.velocity == "moderate"

    def test_irregular_cadence(self, window):
        result = DeploymentAnalyzer(window).analyze([], tags_every([0, 1, 30, 31]))
        assert result.stability.consistency_score < 0.4
        assert result.stability.predictability == "unpredictable"

    def test_single_deployment_stability_unknown(self, window):
        result = DeploymentAnalyzer(window).analyze([], tags_every([0]))
        assert result.stability.predictability == "unknown"
        assert result.quality.velocity == "unknown"

    def test_commits_per_deployment(self, window):
        commits = [make_commit(i, "feat: x", START + timedelta(hours=i)) for i in range(1, 7)]
        result = DeploymentAnalyzer(window).analyze(commits, tags_every([0, 7]))

        assert result.quality.commits_per_deployment == 3.0
        assert result.quality.batch_size == "small"

    def test_trend_improving(self, window):
        result = DeploymentAnalyzer(window).analyze([], tags_every([0, 10, 20, 22]))
        assert result.trend.direction == "improving"
        assert result.trend.first_half_avg_days == 10.0
        assert result.trend.second_half_avg_days == 2.0

    def test_patterns(self, window):
        # Monday 10:00 and Saturday 10:00
        result = DeploymentAnalyzer(window).analyze([], tags_every([0, 5]))
        assert result.patterns.weekday_ratio == 0.5
        assert result.patterns.working_hours_ratio == 1.0
