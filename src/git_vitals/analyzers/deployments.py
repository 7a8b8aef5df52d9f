"""Deployment identification, frequency, stability and quality.

Deployments come from two sources: production-looking tags, and merge
commits into a main-like branch. Both are folded into at most one
deployment per calendar day, and a tagged release always beats a merge.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional, Sequence

from ..exceptions import MissingInputError
from ..history.models import Commit, Tag, TimeWindow, ensure_aware
from ..logging_config import get_logger
from ..math import Statistics, ratio
from ._patterns import TimeDistribution, is_weekend, time_distribution

logger = get_logger(__name__)


class DeploymentType(Enum):
    PRODUCTION_RELEASE = "production_release"
    MERGE_DEPLOYMENT = "merge_deployment"


class DeploymentMethod(Enum):
    TAG = "tag"
    MERGE = "merge"


PRODUCTION_TAG_PATTERNS = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"^v?\d+\.\d+\.\d+$",
        r"^v?\d+\.\d+\.\d+[-_](alpha|beta|rc\d*)",
        r"^release[-_]v?\d+\.\d+",
        r"^prod[-_]",
        r"^production[-_]",
        r"[-_]prod$",
        r"[-_]release$",
        r"^deploy[-_]",
        r"[-_]deploy$",
        r"^v\d{4}\.\d{2}\.\d{2}(\.\d+)?$",
        r"^v\d{4}\.\d{2}\.\d{2}[-_](alpha|beta|rc\d*)",
        r"^v\d{8}(\.\d+)?$",
        r"^v\d{8}[-_](alpha|beta|rc\d*)",
        r"^v\d{8}[-_]\d+$",
        r"^v\d+$",
    )
)

MERGE_PATTERNS = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"^merge pull request",
        r"^merge branch",
        r"^merge remote-tracking branch",
        r"^merged in",
    )
)

MAIN_BRANCH_NAMES = ("main", "master", "production", "prod")

_INTO_RE = re.compile(r"\binto\s+['\"]?([\w./-]+?)['\"]?(?:\s|$)", re.IGNORECASE)

MERGE_IDENTIFIER_LENGTH = 8

# (upper bound exclusive, label) in deployments per week
FREQUENCY_BANDS = ((0.14, "low"), (0.5, "moderate"), (2.0, "high"))
PREDICTABILITY_BANDS = (
    (0.8, "very_predictable"),
    (0.6, "predictable"),
    (0.4, "somewhat_predictable"),
)
VELOCITY_BANDS = ((5, "fast"), (15, "moderate"), (30, "slow"))
BATCH_BANDS = ((5, "small"), (15, "medium"), (30, "large"))

TREND_FACTOR = 1.2
MIN_DEPLOYMENTS_FOR_TREND = 4


def is_production_tag(name: str) -> bool:
    return any(p.search(name) for p in PRODUCTION_TAG_PATTERNS)


def _band(value: float, bands, fallback: str) -> str:
    for bound, label in bands:
        if value < bound:
            return label
    return fallback


@dataclass(frozen=True)
class Deployment:
    type: DeploymentType
    identifier: str
    date: datetime
    commit_hash: Optional[str]
    method: DeploymentMethod
    message: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "date", ensure_aware(self.date))


@dataclass(frozen=True)
class DeploymentFrequency:
    total_deployments: int = 0
    period_days: float = 0.0
    deployments_per_week: float = 0.0
    avg_days_between_deployments: float = 0.0
    days_since_last_deployment: Optional[int] = None
    category: str = "none"


@dataclass(frozen=True)
class DeploymentStability:
    consistency_score: float = 0.0
    predictability: str = "unknown"
    coefficient_of_variation: float = 1.0
    intervals_days: tuple[float, ...] = ()


@dataclass(frozen=True)
class DeploymentQuality:
    commits_per_deployment: float = 0.0
    velocity: str = "unknown"
    batch_size: str = "unknown"
    deployment_efficiency: float = 0.0


@dataclass(frozen=True)
class DeploymentPatterns:
    timing: TimeDistribution = field(default_factory=TimeDistribution)
    working_hours_ratio: float = 0.0
    weekday_ratio: float = 0.0


@dataclass(frozen=True)
class DeploymentTrend:
    direction: str = "insufficient_data"
    first_half_avg_days: float = 0.0
    second_half_avg_days: float = 0.0


@dataclass(frozen=True)
class DeploymentAnalysis:
    deployments: tuple[Deployment, ...] = ()
    frequency: DeploymentFrequency = field(default_factory=DeploymentFrequency)
    stability: DeploymentStability = field(default_factory=DeploymentStability)
    quality: DeploymentQuality = field(default_factory=DeploymentQuality)
    patterns: DeploymentPatterns = field(default_factory=DeploymentPatterns)
    trend: DeploymentTrend = field(default_factory=DeploymentTrend)

    @property
    def production_releases(self) -> tuple[Deployment, ...]:
        return tuple(d for d in self.deployments if d.type is DeploymentType.PRODUCTION_RELEASE)


def deduplicate_deployments(candidates: Iterable[Deployment]) -> tuple[Deployment, ...]:
    """Keep one deployment per calendar day, preferring tagged releases.

    Within the preferred kind the latest candidate of the day wins.
    """
    by_day: dict = {}
    for candidate in candidates:
        day = candidate.date.date()
        current = by_day.get(day)
        if current is None or _outranks(candidate, current):
            by_day[day] = candidate
    return tuple(sorted(by_day.values(), key=lambda d: (d.date, d.identifier)))


def _outranks(candidate: Deployment, current: Deployment) -> bool:
    candidate_tagged = candidate.type is DeploymentType.PRODUCTION_RELEASE
    current_tagged = current.type is DeploymentType.PRODUCTION_RELEASE
    if candidate_tagged != current_tagged:
        return candidate_tagged
    return (candidate.date, candidate.identifier) > (current.date, current.identifier)


def deployment_intervals(deployments: Sequence[Deployment]) -> list[float]:
    """Days between consecutive deployments, in chronological order."""
    moments = sorted(d.date for d in deployments)
    return [round((b - a).total_seconds() / 86400, 2) for a, b in zip(moments, moments[1:])]


class DeploymentAnalyzer:
    """Identify and characterize deployments inside one time window.

    Args:
        window: Required; bounds which tags and merges count
        branches: Extra branch names treated as main-like
        current_branch: The checked-out branch, also treated as main-like
    """

    def __init__(
        self,
        window: Optional[TimeWindow],
        branches: Sequence[str] = (),
        current_branch: Optional[str] = None,
    ):
        if window is None:
            raise MissingInputError("time window", analyzer=type(self).__name__)
        self.window = window
        names = {n.lower() for n in MAIN_BRANCH_NAMES}
        names.update(b.lower() for b in branches if b)
        if current_branch:
            names.add(current_branch.lower())
        self.main_branches = frozenset(names)

    def is_main_branch(self, name: str) -> bool:
        name = name.lower()
        return name in self.main_branches or name.rsplit("/", 1)[-1] in self.main_branches

    def is_merge_deployment(self, message: str) -> bool:
        """A merge counts unless it names a target that is not main-like."""
        text = (message or "").strip()
        if not any(p.search(text) for p in MERGE_PATTERNS):
            return False
        target = _INTO_RE.search(text)
        if target is None:
            return True
        return self.is_main_branch(target.group(1))

    def tag_candidates(self, tags: Sequence[Tag]) -> list[Deployment]:
        return [
            Deployment(
                type=DeploymentType.PRODUCTION_RELEASE,
                identifier=tag.name,
                date=tag.date,
                commit_hash=tag.commit_hash,
                method=DeploymentMethod.TAG,
            )
            for tag in tags
            if self.window.contains(tag.date) and is_production_tag(tag.name)
        ]

    def merge_candidates(self, commits: Sequence[Commit]) -> list[Deployment]:
        return [
            Deployment(
                type=DeploymentType.MERGE_DEPLOYMENT,
                identifier=commit.hash[:MERGE_IDENTIFIER_LENGTH],
                date=commit.date,
                commit_hash=commit.hash,
                method=DeploymentMethod.MERGE,
                message=commit.message,
            )
            for commit in commits
            if self.window.contains(commit.date) and self.is_merge_deployment(commit.message)
        ]

    def identify(self, commits: Sequence[Commit], tags: Sequence[Tag]) -> tuple[Deployment, ...]:
        """Deduplicated deployments from both sources, oldest first."""
        tagged = self.tag_candidates(tags)
        merged = self.merge_candidates(commits)
        deployments = deduplicate_deployments([*tagged, *merged])
        logger.debug(
            "%d tag and %d merge candidates reduced to %d deployments",
            len(tagged),
            len(merged),
            len(deployments),
        )
        return deployments

    def analyze(self, commits: Sequence[Commit], tags: Sequence[Tag]) -> DeploymentAnalysis:
        deployments = self.identify(commits, tags)
        in_window = sum(1 for c in commits if self.window.contains(c.date))
        stability = self.stability(deployments)
        return DeploymentAnalysis(
            deployments=deployments,
            frequency=self.frequency(deployments),
            stability=stability,
            quality=self.quality(deployments, in_window, stability),
            patterns=self.patterns(deployments),
            trend=self.trend(deployments),
        )

    def frequency(self, deployments: Sequence[Deployment]) -> DeploymentFrequency:
        period_days = max(round(self.window.days, 2), 1.0)
        if not deployments:
            return DeploymentFrequency(period_days=period_days)

        per_week = round(len(deployments) / (period_days / 7), 2)
        intervals = deployment_intervals(deployments)
        last = max(d.date for d in deployments)
        return DeploymentFrequency(
            total_deployments=len(deployments),
            period_days=period_days,
            deployments_per_week=per_week,
            avg_days_between_deployments=round(Statistics.mean(intervals), 2),
            days_since_last_deployment=max((self.window.end - last).days, 0),
            category=_band(per_week, FREQUENCY_BANDS, "very_high"),
        )

    def stability(self, deployments: Sequence[Deployment]) -> DeploymentStability:
        intervals = deployment_intervals(deployments)
        if not intervals:
            return DeploymentStability()

        cv = Statistics.coefficient_of_variation(intervals, default=1.0)
        consistency = round(max(1 - cv, 0.0), 3)
        predictability = "unpredictable"
        for bound, label in PREDICTABILITY_BANDS:
            if consistency >= bound:
                predictability = label
                break
        return DeploymentStability(
            consistency_score=consistency,
            predictability=predictability,
            coefficient_of_variation=round(cv, 3),
            intervals_days=tuple(intervals),
        )

    def quality(
        self,
        deployments: Sequence[Deployment],
        commit_count: int,
        stability: DeploymentStability,
    ) -> DeploymentQuality:
        if not deployments:
            return DeploymentQuality()

        per_deployment = round(commit_count / len(deployments), 2)
        intervals = deployment_intervals(deployments)
        velocity = "unknown"
        if intervals:
            velocity = _band(Statistics.mean(intervals), VELOCITY_BANDS, "very_slow")
        efficiency = min(len(deployments) * 10, 100) + stability.consistency_score * 20
        return DeploymentQuality(
            commits_per_deployment=per_deployment,
            velocity=velocity,
            batch_size=_band(per_deployment, BATCH_BANDS, "very_large"),
            deployment_efficiency=round(efficiency, 1),
        )

    def patterns(self, deployments: Sequence[Deployment]) -> DeploymentPatterns:
        if not deployments:
            return DeploymentPatterns()
        moments = [d.date for d in deployments]
        working = sum(1 for m in moments if 9 <= m.hour <= 17)
        weekdays = sum(1 for m in moments if not is_weekend(m))
        return DeploymentPatterns(
            timing=time_distribution(moments),
            working_hours_ratio=ratio(working, len(moments)),
            weekday_ratio=ratio(weekdays, len(moments)),
        )

    def trend(self, deployments: Sequence[Deployment]) -> DeploymentTrend:
        """Compare average spacing of the earlier half of deployments with the later half."""
        if len(deployments) < MIN_DEPLOYMENTS_FOR_TREND:
            return DeploymentTrend()

        ordered = sorted(deployments, key=lambda d: d.date)
        middle = len(ordered) // 2
        first = Statistics.mean(deployment_intervals(ordered[:middle]))
        second = Statistics.mean(deployment_intervals(ordered[middle:]))

        if second * TREND_FACTOR < first:
            direction = "improving"
        elif second > first * TREND_FACTOR:
            direction = "declining"
        else:
            direction = "stable"
        return DeploymentTrend(
            direction=direction,
            first_half_avg_days=round(first, 2),
            second_half_avg_days=round(second, 2),
        )
