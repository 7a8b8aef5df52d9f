"""Per-file ownership distribution and concentration.

Concentration is a Herfindahl-Hirschman style index: the sum of squared
author share fractions, scaled to 0-100. One author means 100.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from ..logging_config import get_logger
from ..math import Statistics
from .churn import ChurnAnalysis, FileChangeStats

logger = get_logger(__name__)


class OwnershipType(Enum):
    """Ownership shape, judged by contributor count then primary owner share."""

    SINGLE_OWNER = "SINGLE_OWNER"
    DOMINANT_OWNER = "DOMINANT_OWNER"
    PRIMARY_OWNER = "PRIMARY_OWNER"
    SHARED_OWNERSHIP = "SHARED_OWNERSHIP"
    DISTRIBUTED_OWNERSHIP = "DISTRIBUTED_OWNERSHIP"


class ConcentrationCategory(Enum):
    HIGH = "HIGH"
    MODERATE = "MODERATE"
    DISTRIBUTED = "DISTRIBUTED"


OWNERSHIP_BANDS = (
    (80.0, OwnershipType.DOMINANT_OWNER),
    (60.0, OwnershipType.PRIMARY_OWNER),
    (40.0, OwnershipType.SHARED_OWNERSHIP),
)
CONCENTRATION_BANDS = (
    (80.0, ConcentrationCategory.HIGH),
    (50.0, ConcentrationCategory.MODERATE),
)


def ownership_type(primary_percentage: float, contributor_count: int) -> OwnershipType:
    if contributor_count <= 1:
        return OwnershipType.SINGLE_OWNER
    for bound, kind in OWNERSHIP_BANDS:
        if primary_percentage >= bound:
            return kind
    return OwnershipType.DISTRIBUTED_OWNERSHIP


def concentration_category(concentration: float) -> ConcentrationCategory:
    for bound, category in CONCENTRATION_BANDS:
        if concentration > bound:
            return category
    return ConcentrationCategory.DISTRIBUTED


def ownership_concentration(shares: dict[str, float]) -> float:
    """HHI over percentage shares, 100.0 for a single contributor."""
    if len(shares) <= 1:
        return 100.0
    return round(sum((pct / 100) ** 2 for pct in shares.values()) * 100, 1)


@dataclass(frozen=True)
class FileOwnershipStats:
    filename: str
    primary_owner: str
    primary_owner_percentage: float
    ownership_distribution: dict[str, float]
    ownership_concentration: float
    ownership_type: OwnershipType
    contributor_count: int
    total_changes: int
    total_commits: int
    last_modified_by: Optional[str]
    last_modified_date: Optional[datetime]

    @property
    def concentration_category(self) -> ConcentrationCategory:
        return concentration_category(self.ownership_concentration)


@dataclass(frozen=True)
class OwnershipSummary:
    total_files: int = 0
    avg_concentration: float = 0.0
    category_counts: dict[ConcentrationCategory, int] = field(default_factory=dict)
    type_counts: dict[OwnershipType, int] = field(default_factory=dict)
    single_owner_files: int = 0


@dataclass(frozen=True)
class OwnershipAnalysis:
    files: dict[str, FileOwnershipStats] = field(default_factory=dict)
    summary: OwnershipSummary = field(default_factory=OwnershipSummary)


def file_ownership(stats: FileChangeStats) -> FileOwnershipStats:
    """Compute one file's ownership from its aggregated churn."""
    weights = stats.author_changes
    if not any(weights.values()):
        # Only binary or empty changes: fall back to who committed
        weights = stats.author_commits
    total = sum(weights.values())

    ranked = sorted(weights.items(), key=lambda item: (-item[1], item[0]))
    distribution = {author: round(count / total * 100, 1) for author, count in ranked}
    primary_owner, primary_pct = next(iter(distribution.items()))
    concentration = ownership_concentration(distribution)

    return FileOwnershipStats(
        filename=stats.filename,
        primary_owner=primary_owner,
        primary_owner_percentage=primary_pct,
        ownership_distribution=distribution,
        ownership_concentration=concentration,
        ownership_type=ownership_type(primary_pct, len(distribution)),
        contributor_count=len(distribution),
        total_changes=stats.total_changes,
        total_commits=stats.commits,
        last_modified_by=stats.last_modified_by,
        last_modified_date=stats.last_modified_date,
    )


def analyze_file_ownership(churn: ChurnAnalysis) -> OwnershipAnalysis:
    """Ownership for every file the churn analysis saw, most concentrated first."""
    records = [file_ownership(s) for s in churn.files.values()]
    if not records:
        return OwnershipAnalysis(
            summary=OwnershipSummary(
                category_counts={c: 0 for c in ConcentrationCategory},
                type_counts={t: 0 for t in OwnershipType},
            )
        )

    records.sort(key=lambda r: (-r.ownership_concentration, r.filename))
    categories = Counter(r.concentration_category for r in records)
    types = Counter(r.ownership_type for r in records)
    summary = OwnershipSummary(
        total_files=len(records),
        avg_concentration=round(Statistics.mean([r.ownership_concentration for r in records]), 1),
        category_counts={c: categories[c] for c in ConcentrationCategory},
        type_counts={t: types[t] for t in OwnershipType},
        single_owner_files=types[OwnershipType.SINGLE_OWNER],
    )
    logger.debug("Ownership over %d files, avg concentration %s", len(records), summary.avg_concentration)
    return OwnershipAnalysis(files={r.filename: r for r in records}, summary=summary)
