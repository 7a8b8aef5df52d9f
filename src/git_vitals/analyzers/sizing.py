"""Commit size, percentile thresholds and risk scoring.

Size thresholds are relative: they are percentiles of the sizes observed in
the analyzed history, not fixed constants. Compare churn, which uses fixed
absolute bands.
"""

from __future__ import annotations

import re
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Sequence

from ..config import DEFAULT_THRESHOLDS, ThresholdConfig
from ..history.models import Commit
from ..logging_config import get_logger
from ..math import Statistics, percentage
from ._patterns import TimeDistribution, is_off_hours, is_weekend, time_distribution

logger = get_logger(__name__)


class SizeCategory(Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    HUGE = "huge"


class RiskFactor(Enum):
    HUGE_SIZE = "HUGE_SIZE"
    LARGE_SIZE = "LARGE_SIZE"
    MANY_FILES = "MANY_FILES"
    EXCESSIVE_FILES = "EXCESSIVE_FILES"
    MERGE_COMMIT = "MERGE_COMMIT"
    VAGUE_MESSAGE = "VAGUE_MESSAGE"
    MULTIPLE_CONCERNS = "MULTIPLE_CONCERNS"
    OFF_HOURS = "OFF_HOURS"
    WEEKEND = "WEEKEND"


# Used only when there is nothing to take percentiles of
FALLBACK_THRESHOLDS = (50.0, 200.0, 500.0, 1000.0)
THRESHOLD_PERCENTILES = (25, 50, 75, 90)

MANY_FILES = 20
EXCESSIVE_FILES = 50
VAGUE_MESSAGE_LENGTH = 10

# Risk weight per category; risk_score normalizes by the maximum weight
_RISK_WEIGHTS = {SizeCategory.LARGE: 1, SizeCategory.HUGE: 3}
_MAX_RISK_WEIGHT = 3

_AND_RE = re.compile(r"\band\b")


@dataclass(frozen=True)
class SizeThresholds:
    small: float
    medium: float
    large: float
    huge: float


@dataclass(frozen=True)
class CommitSize:
    hash: str
    author: str
    message: str
    date: datetime
    size: int
    files_changed: int
    category: SizeCategory


@dataclass(frozen=True)
class AuthorSizeStats:
    total_commits: int
    total_size: int
    avg_commit_size: float
    large_commits: int
    huge_commits: int
    risk_score: float


@dataclass(frozen=True)
class SizeDistribution:
    min: float = 0.0
    max: float = 0.0
    median: float = 0.0
    p75: float = 0.0
    p90: float = 0.0
    p95: float = 0.0
    p99: float = 0.0
    std_deviation: float = 0.0


@dataclass(frozen=True)
class RiskyCommit:
    hash: str
    author: str
    message: str
    size: int
    files_changed: int
    factors: tuple[RiskFactor, ...]


@dataclass(frozen=True)
class RiskPatterns:
    risky_commits: tuple[RiskyCommit, ...] = ()
    factor_counts: dict[RiskFactor, int] = field(default_factory=dict)
    huge_commit_timing: TimeDistribution = field(default_factory=TimeDistribution)


@dataclass(frozen=True)
class SizeAnalysis:
    thresholds: SizeThresholds
    commits: tuple[CommitSize, ...] = ()
    category_counts: dict[SizeCategory, int] = field(default_factory=dict)
    risk_score: float = 0.0
    large_commit_ratio: float = 0.0
    huge_commit_ratio: float = 0.0
    avg_commit_size: float = 0.0
    by_author: dict[str, AuthorSizeStats] = field(default_factory=dict)
    distribution: SizeDistribution = field(default_factory=SizeDistribution)
    risk_patterns: RiskPatterns = field(default_factory=RiskPatterns)

    @property
    def total_commits(self) -> int:
        return len(self.commits)


def commit_size(commit: Commit, file_weight: int = 10) -> int:
    """Changed lines plus ``file_weight`` per distinct file touched."""
    return commit.additions + commit.deletions + file_weight * commit.files_changed


def calculate_size_thresholds(sizes: Sequence[float]) -> SizeThresholds:
    """Take the 25th/50th/75th/90th percentiles as small/medium/large/huge."""
    if not sizes:
        return SizeThresholds(*FALLBACK_THRESHOLDS)
    values = [Statistics.percentile(sizes, p) for p in THRESHOLD_PERCENTILES]
    return SizeThresholds(*values)


def categorize_size(size: float, thresholds: SizeThresholds) -> SizeCategory:
    """Place a size in its threshold band; each band includes its lower bound.

    Below ``small`` is small, below ``large`` is medium, below ``huge`` is
    large, and anything at or above the ``huge`` threshold is huge.
    """
    if size >= thresholds.huge:
        return SizeCategory.HUGE
    if size >= thresholds.large:
        return SizeCategory.LARGE
    if size >= thresholds.small:
        return SizeCategory.MEDIUM
    return SizeCategory.SMALL


def risk_score(categories: Sequence[SizeCategory]) -> float:
    """``(large + 3 * huge) / (3 * total) * 100``, 0.0 for no commits."""
    if not categories:
        return 0.0
    weighted = sum(_RISK_WEIGHTS.get(c, 0) for c in categories)
    return round(weighted / (len(categories) * _MAX_RISK_WEIGHT) * 100, 2)


def analyze_commit_sizes(
    commits: Sequence[Commit], thresholds: ThresholdConfig = DEFAULT_THRESHOLDS
) -> SizeAnalysis:
    """Size, categorize and risk-score every commit."""
    sizes = [commit_size(c, thresholds.size_file_weight) for c in commits]
    bounds = calculate_size_thresholds(sizes)

    records = tuple(
        CommitSize(
            hash=c.hash,
            author=c.author,
            message=c.message,
            date=c.date,
            size=size,
            files_changed=c.files_changed,
            category=categorize_size(size, bounds),
        )
        for c, size in zip(commits, sizes)
    )
    if not records:
        return SizeAnalysis(
            thresholds=bounds,
            category_counts={category: 0 for category in SizeCategory},
        )

    tally = Counter(r.category for r in records)
    category_counts = {category: tally.get(category, 0) for category in SizeCategory}
    total = len(records)

    logger.debug(
        "Size thresholds small=%s medium=%s large=%s huge=%s over %d commits",
        bounds.small,
        bounds.medium,
        bounds.large,
        bounds.huge,
        total,
    )

    return SizeAnalysis(
        thresholds=bounds,
        commits=records,
        category_counts=category_counts,
        risk_score=risk_score([r.category for r in records]),
        large_commit_ratio=percentage(category_counts[SizeCategory.LARGE], total),
        huge_commit_ratio=percentage(category_counts[SizeCategory.HUGE], total),
        avg_commit_size=round(Statistics.mean(sizes), 2),
        by_author=_author_stats(records),
        distribution=_distribution(sizes),
        risk_patterns=_risk_patterns(records, bounds, thresholds.risky_commit_limit),
    )


def _author_stats(records: Sequence[CommitSize]) -> dict[str, AuthorSizeStats]:
    grouped: dict[str, list[CommitSize]] = defaultdict(list)
    for record in records:
        grouped[record.author].append(record)

    stats = {}
    for author in sorted(grouped):
        own = grouped[author]
        total_size = sum(r.size for r in own)
        categories = [r.category for r in own]
        stats[author] = AuthorSizeStats(
            total_commits=len(own),
            total_size=total_size,
            avg_commit_size=round(total_size / len(own), 2),
            large_commits=categories.count(SizeCategory.LARGE),
            huge_commits=categories.count(SizeCategory.HUGE),
            risk_score=risk_score(categories),
        )
    return stats


def _distribution(sizes: Sequence[int]) -> SizeDistribution:
    return SizeDistribution(
        min=float(min(sizes)),
        max=float(max(sizes)),
        median=Statistics.percentile(sizes, 50),
        p75=Statistics.percentile(sizes, 75),
        p90=Statistics.percentile(sizes, 90),
        p95=Statistics.percentile(sizes, 95),
        p99=Statistics.percentile(sizes, 99),
        std_deviation=round(Statistics.pstdev(sizes), 2),
    )


def risk_factors(record: CommitSize, thresholds: SizeThresholds) -> tuple[RiskFactor, ...]:
    """List the reasons a single commit deserves review attention."""
    factors = []
    if record.size >= thresholds.huge:
        factors.append(RiskFactor.HUGE_SIZE)
    elif record.size >= thresholds.large:
        factors.append(RiskFactor.LARGE_SIZE)

    if record.files_changed > EXCESSIVE_FILES:
        factors.append(RiskFactor.EXCESSIVE_FILES)
    elif record.files_changed > MANY_FILES:
        factors.append(RiskFactor.MANY_FILES)

    message = record.message.strip().lower()
    if "merge" in message:
        factors.append(RiskFactor.MERGE_COMMIT)
    if len(message) < VAGUE_MESSAGE_LENGTH:
        factors.append(RiskFactor.VAGUE_MESSAGE)
    if len(_AND_RE.findall(message)) > 1:
        factors.append(RiskFactor.MULTIPLE_CONCERNS)

    if is_off_hours(record.date):
        factors.append(RiskFactor.OFF_HOURS)
    if is_weekend(record.date):
        factors.append(RiskFactor.WEEKEND)
    return tuple(factors)


def _risk_patterns(
    records: Sequence[CommitSize], thresholds: SizeThresholds, limit: int
) -> RiskPatterns:
    flagged = []
    factor_counts: Counter[RiskFactor] = Counter()
    for record in records:
        factors = risk_factors(record, thresholds)
        factor_counts.update(factors)
        if RiskFactor.HUGE_SIZE in factors or RiskFactor.LARGE_SIZE in factors:
            flagged.append((record, factors))

    # Most factors first, then biggest, then hash for a stable order
    flagged.sort(key=lambda item: (-len(item[1]), -item[0].size, item[0].hash))
    risky = tuple(
        RiskyCommit(
            hash=record.hash,
            author=record.author,
            message=record.message,
            size=record.size,
            files_changed=record.files_changed,
            factors=factors,
        )
        for record, factors in flagged[:limit]
    )
    huge = [r.date for r in records if r.category is SizeCategory.HUGE]
    return RiskPatterns(
        risky_commits=risky,
        factor_counts={f: factor_counts[f] for f in RiskFactor if factor_counts[f]},
        huge_commit_timing=time_distribution(huge),
    )
