"""Public API for Git Vitals.

Runs every analyzer over one repository's history and collects one
``MetricResult`` per metric. A metric that fails is reported with its error
and does not stop the others.

Example:
    >>> from git_vitals import analyze
    >>> report = analyze("/path/to/repo", since="30d")
    >>> report["deployments"].value.frequency.deployments_per_week
    1.5
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

from .analyzers import (
    DeploymentAnalyzer,
    LeadTimeAnalyzer,
    analyze_cochange,
    analyze_commit_activity,
    analyze_commit_sizes,
    analyze_commit_types,
    analyze_file_churn,
    analyze_file_ownership,
    analyze_reverts,
)
from .config import AnalysisConfig, load_config
from .exceptions import GitVitalsError, InvalidConfigError, MissingInputError
from .history import Commit, GitLogReader, Tag, TimeWindow
from .logging_config import get_logger

logger = get_logger(__name__)

METRICS = (
    "commit_types",
    "commit_sizes",
    "file_churn",
    "file_ownership",
    "cochange",
    "reverts",
    "deployments",
    "lead_time",
    "activity",
)


@dataclass(frozen=True)
class MetricResult:
    metric_name: str
    value: Any
    window: TimeWindow
    repository: str
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class HistoryReport:
    repository: str
    window: TimeWindow
    commit_count: int
    results: dict[str, MetricResult] = field(default_factory=dict)

    def __getitem__(self, metric_name: str) -> MetricResult:
        return self.results[metric_name]

    @property
    def failed(self) -> list[str]:
        return [name for name, result in self.results.items() if not result.succeeded]


class HistoryAnalysis:
    """Runs the analyzers for one repository and window.

    Args:
        repository: Name or path used to label results; required
        window: Time window in scope; required
        config: Analysis configuration, defaults when None
    """

    def __init__(
        self,
        repository: Optional[str],
        window: Optional[TimeWindow],
        config: Optional[AnalysisConfig] = None,
    ):
        if not repository:
            raise MissingInputError("repository", analyzer=type(self).__name__)
        if window is None:
            raise MissingInputError("time window", analyzer=type(self).__name__)
        self.repository = str(repository)
        self.window = window
        self.config = config or AnalysisConfig()

    def _result(self, name: str, value: Any = None, error: Optional[str] = None) -> MetricResult:
        return MetricResult(
            metric_name=name,
            value=value,
            window=self.window,
            repository=self.repository,
            error=error,
        )

    def _run(self, name: str, compute: Callable[[], Any]) -> MetricResult:
        try:
            return self._result(name, compute())
        except GitVitalsError as e:
            logger.warning("Metric %s failed: %s", name, e)
            return self._result(name, error=str(e))
        except Exception as e:
            # Keep independent metrics alive; the traceback goes to the log
            logger.exception("Metric %s crashed", name)
            return self._result(name, error=f"{type(e).__name__}: {e}")

    def run(
        self,
        commits: Sequence[Commit],
        tags: Sequence[Tag] = (),
        branches: Sequence[str] = (),
        current_branch: Optional[str] = None,
        metrics: Optional[Sequence[str]] = None,
    ) -> HistoryReport:
        selected = set(metrics or METRICS)
        unknown = selected - set(METRICS)
        if unknown:
            raise ValueError(f"Unknown metrics: {', '.join(sorted(unknown))}")

        # Dependencies are computed even when only their consumer is requested
        if "file_ownership" in selected:
            selected.add("file_churn")
        if "lead_time" in selected:
            selected.add("deployments")

        in_window = [c for c in commits if self.window.contains(c.date)]
        thresholds = self.config.thresholds
        results: dict[str, MetricResult] = {}

        def add(name: str, compute: Callable[[], Any]) -> None:
            if name in selected:
                results[name] = self._run(name, compute)

        add("commit_types", lambda: analyze_commit_types(in_window))
        add("commit_sizes", lambda: analyze_commit_sizes(in_window, thresholds))
        add("file_churn", lambda: analyze_file_churn(in_window))
        add("file_ownership", lambda: self._after(results, "file_churn", analyze_file_ownership))
        add("cochange", lambda: analyze_cochange(in_window, thresholds))
        add("reverts", lambda: analyze_reverts(in_window))
        add(
            "deployments",
            lambda: DeploymentAnalyzer(
                self.window, [*self.config.main_branches, *branches], current_branch
            ).analyze(in_window, tags),
        )
        add(
            "lead_time",
            lambda: self._after(
                results,
                "deployments",
                lambda d: LeadTimeAnalyzer(d.deployments, thresholds).analyze(in_window),
            ),
        )
        add("activity", lambda: analyze_commit_activity(in_window))

        failed = [name for name, r in results.items() if not r.succeeded]
        if failed:
            logger.warning("%d metric(s) failed: %s", len(failed), ", ".join(failed))

        return HistoryReport(
            repository=self.repository,
            window=self.window,
            commit_count=len(in_window),
            results=results,
        )

    @staticmethod
    def _after(results: dict[str, MetricResult], dependency: str, compute: Callable[[Any], Any]):
        upstream = results.get(dependency)
        if upstream is None or not upstream.succeeded:
            raise MissingInputError(dependency)
        return compute(upstream.value)


def analyze_history(
    commits: Sequence[Commit],
    tags: Sequence[Tag],
    window: Optional[TimeWindow],
    repository: Optional[str] = "repository",
    branches: Sequence[str] = (),
    current_branch: Optional[str] = None,
    config: Optional[AnalysisConfig] = None,
    metrics: Optional[Sequence[str]] = None,
) -> HistoryReport:
    """Analyze already-parsed records. See ``HistoryAnalysis``."""
    analysis = HistoryAnalysis(repository, window, config)
    return analysis.run(
        commits, tags, branches=branches, current_branch=current_branch, metrics=metrics
    )


def analyze(
    path: str | Path = ".",
    since: Optional[str] = None,
    until: Optional[str] = None,
    config_file: Optional[Path] = None,
    metrics: Optional[Sequence[str]] = None,
    **overrides,
) -> HistoryReport:
    """Read a repository's history with git and analyze it.

    Args:
        path: Path inside a git work tree
        since: Window start (``90d``, ``2w``, ISO date); config default when None
        until: Window end (ISO date); now when None
        config_file: Optional explicit config file path
        metrics: Subset of ``METRICS`` to compute, all when None
        **overrides: Configuration overrides

    Raises:
        InvalidPathError: If ``path`` is not a git repository
        ConfigurationError: If configuration is invalid
    """
    config = load_config(config_file=config_file, since=since, until=until, **overrides)
    try:
        window = TimeWindow.parse(config.since, config.until)
    except ValueError as e:
        raise InvalidConfigError("since/until", f"{config.since}..{config.until}", str(e)) from e

    reader = GitLogReader(
        path, timeout_seconds=config.git_timeout_seconds, max_commits=config.git_max_commits
    )
    logger.info("Reading history of %s from %s to %s", reader.repo_path, window.start, window.end)

    commits = reader.read_commits(window)
    tags = reader.read_tags()
    current_branch = reader.current_branch()

    return analyze_history(
        commits,
        tags,
        window,
        repository=reader.repo_path,
        current_branch=current_branch,
        config=config,
        metrics=metrics,
    )
