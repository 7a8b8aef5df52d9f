"""Per-file churn aggregation and author-count (bus factor) analysis."""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Sequence

from ..history.models import Commit
from ..logging_config import get_logger
from ..math import percentage

logger = get_logger(__name__)


class ChurnCategory(Enum):
    """Absolute churn bands: > 1000 lines HIGH, > 100 MEDIUM."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class AuthorCountType(Enum):
    SINGLE_OWNER = "SINGLE_OWNER"
    SHARED = "SHARED"
    COLLABORATIVE = "COLLABORATIVE"
    HIGHLY_COLLABORATIVE = "HIGHLY_COLLABORATIVE"


class BusFactorRisk(Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


CHURN_BANDS = ((1000, ChurnCategory.HIGH), (100, ChurnCategory.MEDIUM))


def churn_category(total_changes: int) -> ChurnCategory:
    for bound, category in CHURN_BANDS:
        if total_changes > bound:
            return category
    return ChurnCategory.LOW


def author_count_type(author_count: int) -> AuthorCountType:
    if author_count <= 1:
        return AuthorCountType.SINGLE_OWNER
    if author_count <= 3:
        return AuthorCountType.SHARED
    if author_count <= 10:
        return AuthorCountType.COLLABORATIVE
    return AuthorCountType.HIGHLY_COLLABORATIVE


def bus_factor_risk(author_count: int) -> BusFactorRisk:
    if author_count <= 1:
        return BusFactorRisk.HIGH
    if author_count <= 3:
        return BusFactorRisk.MEDIUM
    return BusFactorRisk.LOW


@dataclass(frozen=True)
class FileChangeStats:
    filename: str
    additions: int
    deletions: int
    commits: int
    authors: frozenset[str]
    author_changes: dict[str, int] = field(default_factory=dict)
    author_commits: dict[str, int] = field(default_factory=dict)
    last_modified_by: Optional[str] = None
    last_modified_date: Optional[datetime] = None

    @property
    def total_changes(self) -> int:
        return self.additions + self.deletions

    @property
    def net_changes(self) -> int:
        return self.additions - self.deletions

    @property
    def avg_churn_per_commit(self) -> float:
        if not self.commits:
            return 0.0
        return round(self.total_changes / self.commits, 2)

    @property
    def churn_ratio(self) -> float:
        """Share of changed lines that were deletions, as a percentage."""
        return percentage(self.deletions, self.total_changes, digits=1)

    @property
    def churn_category(self) -> ChurnCategory:
        return churn_category(self.total_changes)

    @property
    def author_count(self) -> int:
        return len(self.authors)


@dataclass(frozen=True)
class ChurnSummary:
    total_files_changed: int = 0
    total_file_changes: int = 0
    avg_changes_per_file: float = 0.0
    high_churn_files: int = 0
    medium_churn_files: int = 0
    low_churn_files: int = 0
    hotspot_percentage: float = 0.0


@dataclass(frozen=True)
class FileAuthorship:
    filename: str
    author_count: int
    authors: tuple[str, ...]
    author_type: AuthorCountType
    bus_factor_risk: BusFactorRisk


@dataclass(frozen=True)
class BusFactorSummary:
    total_files: int = 0
    avg_authors_per_file: float = 0.0
    type_counts: dict[AuthorCountType, int] = field(default_factory=dict)
    bus_factor_risk_percentage: float = 0.0
    collaboration_score: float = 0.0


@dataclass(frozen=True)
class ChurnAnalysis:
    files: dict[str, FileChangeStats] = field(default_factory=dict)
    summary: ChurnSummary = field(default_factory=ChurnSummary)
    authorship: dict[str, FileAuthorship] = field(default_factory=dict)
    bus_factor: BusFactorSummary = field(default_factory=BusFactorSummary)


def aggregate_file_changes(commits: Sequence[Commit]) -> dict[str, FileChangeStats]:
    """Fold every per-file change into one FileChangeStats per filename.

    Commits are folded in the given order; the most recent commit by date is
    recorded as the last modification.
    """
    additions: Counter[str] = Counter()
    deletions: Counter[str] = Counter()
    commit_counts: Counter[str] = Counter()
    author_changes: dict[str, Counter[str]] = defaultdict(Counter)
    author_commits: dict[str, Counter[str]] = defaultdict(Counter)
    last: dict[str, tuple[datetime, str]] = {}

    for commit in commits:
        seen_in_commit: set[str] = set()
        for change in commit.files:
            name = change.filename
            additions[name] += change.additions
            deletions[name] += change.deletions
            author_changes[name][commit.author] += change.total
            if name in seen_in_commit:
                continue
            seen_in_commit.add(name)
            commit_counts[name] += 1
            author_commits[name][commit.author] += 1
            if name not in last or commit.date >= last[name][0]:
                last[name] = (commit.date, commit.author)

    stats = {}
    for name in commit_counts:
        modified_at, modified_by = last[name]
        stats[name] = FileChangeStats(
            filename=name,
            additions=additions[name],
            deletions=deletions[name],
            commits=commit_counts[name],
            authors=frozenset(author_commits[name]),
            author_changes=dict(sorted(author_changes[name].items())),
            author_commits=dict(sorted(author_commits[name].items())),
            last_modified_by=modified_by,
            last_modified_date=modified_at,
        )
    return stats


def analyze_file_churn(commits: Sequence[Commit]) -> ChurnAnalysis:
    """Aggregate churn per file, ordered by total changed lines descending."""
    stats = aggregate_file_changes(commits)
    if not stats:
        return ChurnAnalysis(bus_factor=BusFactorSummary(type_counts=_zero_types()))

    ordered = dict(sorted(stats.items(), key=lambda item: (-item[1].total_changes, item[0])))

    bands = Counter(s.churn_category for s in ordered.values())
    total_files = len(ordered)
    total_changes = sum(s.total_changes for s in ordered.values())
    summary = ChurnSummary(
        total_files_changed=total_files,
        total_file_changes=total_changes,
        avg_changes_per_file=round(total_changes / total_files, 2),
        high_churn_files=bands[ChurnCategory.HIGH],
        medium_churn_files=bands[ChurnCategory.MEDIUM],
        low_churn_files=bands[ChurnCategory.LOW],
        hotspot_percentage=percentage(bands[ChurnCategory.HIGH], total_files),
    )
    logger.debug("Churn over %d files, %d changed lines", total_files, total_changes)

    authorship = {
        name: FileAuthorship(
            filename=name,
            author_count=s.author_count,
            authors=tuple(sorted(s.authors)),
            author_type=author_count_type(s.author_count),
            bus_factor_risk=bus_factor_risk(s.author_count),
        )
        for name, s in sorted(ordered.items(), key=lambda item: (-item[1].author_count, item[0]))
    }
    return ChurnAnalysis(
        files=ordered,
        summary=summary,
        authorship=authorship,
        bus_factor=_bus_factor_summary(authorship),
    )


def _zero_types() -> dict[AuthorCountType, int]:
    return {t: 0 for t in AuthorCountType}


def _bus_factor_summary(authorship: dict[str, FileAuthorship]) -> BusFactorSummary:
    total = len(authorship)
    types = _zero_types()
    for entry in authorship.values():
        types[entry.author_type] += 1

    single = types[AuthorCountType.SINGLE_OWNER]
    score = (
        types[AuthorCountType.SHARED] * 50
        + types[AuthorCountType.COLLABORATIVE] * 100
        + types[AuthorCountType.HIGHLY_COLLABORATIVE] * 100
        - single * 10
    ) / total
    return BusFactorSummary(
        total_files=total,
        avg_authors_per_file=round(sum(e.author_count for e in authorship.values()) / total, 2),
        type_counts=types,
        bus_factor_risk_percentage=percentage(single, total, digits=1),
        collaboration_score=round(max(min(score, 100.0), 0.0), 1),
    )
