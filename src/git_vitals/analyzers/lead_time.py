"""Lead time from commit to deployment, and where delivery gets stuck.

A commit's lead time is measured to the earliest deployment strictly after
it. Commits with no later deployment have no lead time: they are left out
of every average but still counted in ``total_commits``, so ``coverage``
tells how much of the history has shipped.
"""

from __future__ import annotations

from bisect import bisect_right
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Sequence

from ..config import DEFAULT_THRESHOLDS, ThresholdConfig
from ..exceptions import MissingInputError
from ..history.models import Commit, ensure_aware
from ..logging_config import get_logger
from ..math import Statistics, percentage, ratio
from ._patterns import is_off_hours, is_weekend
from .deployments import Deployment

logger = get_logger(__name__)


class LeadTimeBand(Enum):
    """Speed band by lead time in hours (upper bounds inclusive)."""

    VERY_FAST = "very_fast"
    FAST = "fast"
    MODERATE = "moderate"
    SLOW = "slow"
    VERY_SLOW = "very_slow"


LEAD_TIME_BANDS = (
    (4, LeadTimeBand.VERY_FAST),
    (24, LeadTimeBand.FAST),
    (168, LeadTimeBand.MODERATE),
    (672, LeadTimeBand.SLOW),
)

# (max average hours, min flow efficiency, label); first satisfied wins
PERFORMANCE_BANDS = (
    (24, 0.9, "excellent"),
    (72, 0.7, "good"),
    (168, 0.5, "fair"),
)

LARGE_MESSAGE_LENGTH = 100
VAGUE_MESSAGE_LENGTH = 20
MIN_COMMITS_FOR_TREND = 10
TREND_IMPROVING = 0.9
TREND_DETERIORATING = 1.1
OUTLIER_IQR_FACTOR = 1.5


def lead_time_band(hours: float) -> LeadTimeBand:
    for bound, band in LEAD_TIME_BANDS:
        if hours <= bound:
            return band
    return LeadTimeBand.VERY_SLOW


def performance_category(avg_hours: float, flow_efficiency: float) -> str:
    for max_hours, min_efficiency, label in PERFORMANCE_BANDS:
        if avg_hours < max_hours and flow_efficiency > min_efficiency:
            return label
    return "needs_improvement"


@dataclass(frozen=True)
class CommitLeadTime:
    hash: str
    author: str
    message: str
    date: datetime
    lead_time_hours: float
    deployment_identifier: str
    deployment_date: datetime
    is_weekend: bool
    is_off_hours: bool
    is_friday: bool
    is_merge: bool
    is_large_message: bool

    @property
    def lead_time_days(self) -> float:
        return round(self.lead_time_hours / 24, 2)

    @property
    def band(self) -> LeadTimeBand:
        return lead_time_band(self.lead_time_hours)


@dataclass(frozen=True)
class LeadTimeMetrics:
    total_commits: int = 0
    commits_with_lead_time: int = 0
    coverage: float = 0.0
    avg_lead_time_hours: float = 0.0
    median_lead_time_hours: float = 0.0
    p95_lead_time_hours: float = 0.0
    min_lead_time_hours: float = 0.0
    max_lead_time_hours: float = 0.0
    flow_efficiency: float = 0.0
    performance_category: str = "needs_improvement"

    @property
    def avg_lead_time_days(self) -> float:
        return round(self.avg_lead_time_hours / 24, 2)


@dataclass(frozen=True)
class AuthorLeadTime:
    deployed_commits: int
    total_commits: int
    deployment_rate: float
    avg_lead_time_hours: float
    median_lead_time_hours: float
    min_lead_time_hours: float
    max_lead_time_hours: float


@dataclass(frozen=True)
class DelayProfile:
    """Lead time of a subset of commits that tends to wait longer."""

    count: int = 0
    avg_lead_time_hours: float = 0.0
    worst_commit: Optional[str] = None
    worst_lead_time_hours: float = 0.0


@dataclass(frozen=True)
class Bottlenecks:
    slow_authors: dict[str, float] = field(default_factory=dict)
    blocked_commits: tuple[str, ...] = ()
    weekend_avg_hours: float = 0.0
    weekday_avg_hours: float = 0.0
    weekend_bottleneck_factor: float = 0.0
    merge_commits: DelayProfile = field(default_factory=DelayProfile)
    large_message_commits: DelayProfile = field(default_factory=DelayProfile)
    p95_threshold_hours: float = 0.0
    high_lead_time_commits: tuple[str, ...] = ()
    common_factors: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class LeadTimeDistribution:
    band_counts: dict[LeadTimeBand, int] = field(default_factory=dict)
    q1_hours: float = 0.0
    q2_hours: float = 0.0
    q3_hours: float = 0.0
    outliers: tuple[str, ...] = ()


@dataclass(frozen=True)
class LeadTimeTrend:
    direction: str = "insufficient_data"
    monthly_avg_hours: dict[str, float] = field(default_factory=dict)
    first_half_avg_hours: float = 0.0
    second_half_avg_hours: float = 0.0


@dataclass(frozen=True)
class LeadTimeAnalysis:
    commits: tuple[CommitLeadTime, ...] = ()
    metrics: LeadTimeMetrics = field(default_factory=LeadTimeMetrics)
    by_author: dict[str, AuthorLeadTime] = field(default_factory=dict)
    bottlenecks: Bottlenecks = field(default_factory=Bottlenecks)
    distribution: LeadTimeDistribution = field(default_factory=LeadTimeDistribution)
    trend: LeadTimeTrend = field(default_factory=LeadTimeTrend)


class LeadTimeAnalyzer:
    """Map commits onto the deployments that shipped them.

    Args:
        deployments: Required (may be empty); typically DeploymentAnalyzer.identify output
        thresholds: Tuning knobs for flow efficiency and slow-author detection
    """

    def __init__(
        self,
        deployments: Optional[Sequence[Deployment]],
        thresholds: ThresholdConfig = DEFAULT_THRESHOLDS,
    ):
        if deployments is None:
            raise MissingInputError("deployments", analyzer=type(self).__name__)
        self.deployments = tuple(sorted(deployments, key=lambda d: d.date))
        self._dates = [d.date for d in self.deployments]
        self.thresholds = thresholds

    def next_deployment(self, moment: datetime) -> Optional[Deployment]:
        """The earliest deployment strictly after ``moment``."""
        index = bisect_right(self._dates, ensure_aware(moment))
        if index >= len(self.deployments):
            return None
        return self.deployments[index]

    def commit_lead_time(self, commit: Commit) -> Optional[CommitLeadTime]:
        deployment = self.next_deployment(commit.date)
        if deployment is None:
            return None
        hours = round((deployment.date - commit.date).total_seconds() / 3600, 2)
        message = commit.message or ""
        return CommitLeadTime(
            hash=commit.hash,
            author=commit.author,
            message=message,
            date=commit.date,
            lead_time_hours=hours,
            deployment_identifier=deployment.identifier,
            deployment_date=deployment.date,
            is_weekend=is_weekend(commit.date),
            is_off_hours=is_off_hours(commit.date),
            is_friday=commit.date.weekday() == 4,
            is_merge="merge" in message.lower(),
            is_large_message=len(message) > LARGE_MESSAGE_LENGTH,
        )

    def analyze(self, commits: Sequence[Commit]) -> LeadTimeAnalysis:
        lead_times = tuple(
            lt for lt in (self.commit_lead_time(c) for c in commits) if lt is not None
        )
        metrics = self.metrics(lead_times, total_commits=len(commits))
        logger.debug(
            "%d of %d commits reached a deployment (avg %.2fh)",
            metrics.commits_with_lead_time,
            metrics.total_commits,
            metrics.avg_lead_time_hours,
        )
        if not lead_times:
            return LeadTimeAnalysis(
                metrics=metrics,
                distribution=LeadTimeDistribution(band_counts={b: 0 for b in LeadTimeBand}),
            )
        return LeadTimeAnalysis(
            commits=lead_times,
            metrics=metrics,
            by_author=self.author_metrics(lead_times, commits),
            bottlenecks=self.bottlenecks(lead_times),
            distribution=self.distribution(lead_times),
            trend=self.trend(lead_times),
        )

    def metrics(self, lead_times: Sequence[CommitLeadTime], total_commits: int) -> LeadTimeMetrics:
        if not lead_times:
            return LeadTimeMetrics(total_commits=total_commits)

        hours = [lt.lead_time_hours for lt in lead_times]
        avg = round(Statistics.mean(hours), 2)
        flowing = sum(1 for h in hours if h <= self.thresholds.lead_time_acceptable_hours)
        efficiency = ratio(flowing, len(hours))
        return LeadTimeMetrics(
            total_commits=total_commits,
            commits_with_lead_time=len(hours),
            coverage=ratio(len(hours), total_commits),
            avg_lead_time_hours=avg,
            median_lead_time_hours=round(Statistics.median(hours), 2),
            p95_lead_time_hours=Statistics.percentile(hours, 95),
            min_lead_time_hours=min(hours),
            max_lead_time_hours=max(hours),
            flow_efficiency=efficiency,
            performance_category=performance_category(avg, efficiency),
        )

    def author_metrics(
        self, lead_times: Sequence[CommitLeadTime], commits: Sequence[Commit]
    ) -> dict[str, AuthorLeadTime]:
        totals: dict[str, int] = defaultdict(int)
        for commit in commits:
            totals[commit.author] += 1
        grouped: dict[str, list[float]] = defaultdict(list)
        for lt in lead_times:
            grouped[lt.author].append(lt.lead_time_hours)

        return {
            author: AuthorLeadTime(
                deployed_commits=len(hours),
                total_commits=totals[author],
                deployment_rate=percentage(len(hours), totals[author]),
                avg_lead_time_hours=round(Statistics.mean(hours), 2),
                median_lead_time_hours=round(Statistics.median(hours), 2),
                min_lead_time_hours=min(hours),
                max_lead_time_hours=max(hours),
            )
            for author, hours in sorted(grouped.items())
        }

    def bottlenecks(self, lead_times: Sequence[CommitLeadTime]) -> Bottlenecks:
        hours = [lt.lead_time_hours for lt in lead_times]
        median = Statistics.median(hours)

        by_author: dict[str, list[float]] = defaultdict(list)
        for lt in lead_times:
            by_author[lt.author].append(lt.lead_time_hours)
        slow_limit = median * self.thresholds.slow_author_factor
        slow_authors = {
            author: round(Statistics.mean(values), 2)
            for author, values in sorted(by_author.items())
            if Statistics.mean(values) > slow_limit
        }

        weekend = [lt.lead_time_hours for lt in lead_times if lt.is_weekend]
        weekday = [lt.lead_time_hours for lt in lead_times if not lt.is_weekend]
        weekend_avg = round(Statistics.mean(weekend), 2)
        weekday_avg = round(Statistics.mean(weekday), 2)

        p95 = Statistics.percentile(hours, 95)
        high = [lt for lt in lead_times if lt.lead_time_hours > p95]

        return Bottlenecks(
            slow_authors=slow_authors,
            blocked_commits=tuple(
                lt.hash for lt in lead_times if lt.band is LeadTimeBand.VERY_SLOW
            ),
            weekend_avg_hours=weekend_avg,
            weekday_avg_hours=weekday_avg,
            weekend_bottleneck_factor=round(weekend_avg / weekday_avg, 2) if weekday_avg else 0.0,
            merge_commits=_delay_profile([lt for lt in lead_times if lt.is_merge]),
            large_message_commits=_delay_profile([lt for lt in lead_times if lt.is_large_message]),
            p95_threshold_hours=p95,
            high_lead_time_commits=tuple(lt.hash for lt in high),
            common_factors=_common_factors(high),
        )

    def distribution(self, lead_times: Sequence[CommitLeadTime]) -> LeadTimeDistribution:
        hours = [lt.lead_time_hours for lt in lead_times]
        bands = {b: 0 for b in LeadTimeBand}
        for lt in lead_times:
            bands[lt.band] += 1

        outliers: tuple[str, ...] = ()
        fences = Statistics.iqr_bounds(hours, OUTLIER_IQR_FACTOR)
        if fences is not None:
            low, high = fences
            outliers = tuple(lt.hash for lt in lead_times if not low <= lt.lead_time_hours <= high)

        return LeadTimeDistribution(
            band_counts=bands,
            q1_hours=Statistics.percentile(hours, 25),
            q2_hours=Statistics.percentile(hours, 50),
            q3_hours=Statistics.percentile(hours, 75),
            outliers=outliers,
        )

    def trend(self, lead_times: Sequence[CommitLeadTime]) -> LeadTimeTrend:
        """Compare the average lead time of the earlier half of months with the later half.

        With an odd number of months the middle one sits in neither half.
        """
        monthly: dict[str, list[float]] = defaultdict(list)
        for lt in lead_times:
            monthly[lt.date.strftime("%Y-%m")].append(lt.lead_time_hours)
        averages = {month: round(Statistics.mean(v), 2) for month, v in sorted(monthly.items())}

        if len(lead_times) < MIN_COMMITS_FOR_TREND or len(averages) < 2:
            return LeadTimeTrend(monthly_avg_hours=averages)

        values = list(averages.values())
        half = len(values) // 2
        first = Statistics.mean(values[:half])
        second = Statistics.mean(values[-half:])
        if second < first * TREND_IMPROVING:
            direction = "improving"
        elif second > first * TREND_DETERIORATING:
            direction = "deteriorating"
        else:
            direction = "stable"
        return LeadTimeTrend(
            direction=direction,
            monthly_avg_hours=averages,
            first_half_avg_hours=round(first, 2),
            second_half_avg_hours=round(second, 2),
        )


def _delay_profile(subset: Sequence[CommitLeadTime]) -> DelayProfile:
    if not subset:
        return DelayProfile()
    worst = max(subset, key=lambda lt: (lt.lead_time_hours, lt.hash))
    return DelayProfile(
        count=len(subset),
        avg_lead_time_hours=round(Statistics.mean([lt.lead_time_hours for lt in subset]), 2),
        worst_commit=worst.hash,
        worst_lead_time_hours=worst.lead_time_hours,
    )


def _common_factors(commits: Sequence[CommitLeadTime]) -> dict[str, int]:
    factors = {
        "weekend": sum(1 for lt in commits if lt.is_weekend),
        "after_hours": sum(1 for lt in commits if lt.is_off_hours),
        "friday": sum(1 for lt in commits if lt.is_friday),
        "merge": sum(1 for lt in commits if lt.is_merge),
        "hotfix": sum(1 for lt in commits if "hotfix" in lt.message.lower()),
        "large_message": sum(1 for lt in commits if lt.is_large_message),
        "vague_message": sum(1 for lt in commits if len(lt.message) < VAGUE_MESSAGE_LENGTH),
    }
    return {name: count for name, count in factors.items() if count}
