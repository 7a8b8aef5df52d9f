"""Co-change coupling between files that are committed together."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from itertools import combinations
from typing import Optional, Sequence

from ..config import DEFAULT_THRESHOLDS, ThresholdConfig
from ..history.models import Commit
from ..logging_config import get_logger
from ..math import Statistics

logger = get_logger(__name__)

PAIR_SEPARATOR = " <-> "


class CouplingCategory(Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    MINIMAL = "MINIMAL"


COUPLING_BANDS = (
    (0.5, CouplingCategory.HIGH),
    (0.2, CouplingCategory.MEDIUM),
    (0.1, CouplingCategory.LOW),
)


def coupling_category(strength: float) -> CouplingCategory:
    for bound, category in COUPLING_BANDS:
        if strength >= bound:
            return category
    return CouplingCategory.MINIMAL


def pair_key(file_a: str, file_b: str) -> str:
    """Canonical key for an unordered pair, independent of argument order."""
    first, second = sorted((file_a, file_b))
    return f"{first}{PAIR_SEPARATOR}{second}"


def coupling_strength(co_changes: int, total_a: int, total_b: int) -> float:
    """Jaccard similarity of the two files' commit sets."""
    union = total_a + total_b - co_changes
    if union <= 0:
        return 0.0
    return round(min(max(co_changes / union, 0.0), 1.0), 3)


def coupling_percentage(co_changes: int, total_a: int, total_b: int) -> float:
    """Co-changes relative to the less frequently changed file."""
    smaller = min(total_a, total_b)
    if smaller <= 0:
        return 0.0
    return round(co_changes / smaller * 100, 1)


@dataclass(frozen=True)
class FilePairStats:
    file1: str
    file2: str
    co_changes: int
    file1_total_changes: int
    file2_total_changes: int
    coupling_strength: float
    coupling_percentage: float
    coupling_category: CouplingCategory

    @property
    def pair_key(self) -> str:
        return pair_key(self.file1, self.file2)


@dataclass(frozen=True)
class CouplingSummary:
    total_file_pairs: int = 0
    avg_coupling_strength: float = 0.0
    max_coupling_strength: float = 0.0
    high_coupling_pairs: int = 0
    medium_coupling_pairs: int = 0
    low_coupling_pairs: int = 0


@dataclass(frozen=True)
class CoChangeAnalysis:
    pairs: dict[str, FilePairStats] = field(default_factory=dict)
    file_change_counts: dict[str, int] = field(default_factory=dict)
    hotspots: dict[str, int] = field(default_factory=dict)
    summary: CouplingSummary = field(default_factory=CouplingSummary)


def analyze_cochange(
    commits: Sequence[Commit],
    thresholds: ThresholdConfig = DEFAULT_THRESHOLDS,
    max_files_per_commit: Optional[int] = None,
) -> CoChangeAnalysis:
    """Count how often each pair of files changes in the same commit.

    Commits touching more than ``max_files_per_commit`` files (bulk reformats,
    vendoring) are skipped when a limit is given; the limit defaults to
    ``thresholds.cochange_max_files_per_commit`` where 0 means no limit.
    """
    if max_files_per_commit is None:
        max_files_per_commit = thresholds.cochange_max_files_per_commit or None

    file_change_counts: dict[str, int] = defaultdict(int)
    pair_counts: dict[tuple[str, str], int] = defaultdict(int)
    skipped = 0

    for commit in commits:
        files = sorted(commit.filenames)
        if not files:
            continue
        if max_files_per_commit is not None and len(files) > max_files_per_commit:
            skipped += 1
            continue

        for f in files:
            file_change_counts[f] += 1
        for a, b in combinations(files, 2):
            pair_counts[(a, b)] += 1

    if skipped:
        logger.debug("Skipped %d commits wider than %s files", skipped, max_files_per_commit)

    pairs = []
    for (a, b), co_changes in pair_counts.items():
        total_a = file_change_counts[a]
        total_b = file_change_counts[b]
        strength = coupling_strength(co_changes, total_a, total_b)
        pairs.append(
            FilePairStats(
                file1=a,
                file2=b,
                co_changes=co_changes,
                file1_total_changes=total_a,
                file2_total_changes=total_b,
                coupling_strength=strength,
                coupling_percentage=coupling_percentage(co_changes, total_a, total_b),
                coupling_category=coupling_category(strength),
            )
        )
    pairs.sort(key=lambda p: (-p.coupling_strength, p.pair_key))

    return CoChangeAnalysis(
        pairs={p.pair_key: p for p in pairs},
        file_change_counts=dict(sorted(file_change_counts.items())),
        hotspots=find_hotspots(
            pairs,
            min_strength=thresholds.coupling_hotspot_strength,
            min_relationships=thresholds.coupling_hotspot_min_relationships,
        ),
        summary=_summary(pairs),
    )


def find_hotspots(
    pairs: Sequence[FilePairStats], min_strength: float = 0.3, min_relationships: int = 3
) -> dict[str, int]:
    """Files coupled to at least ``min_relationships`` others above ``min_strength``."""
    strong: dict[str, int] = defaultdict(int)
    for pair in pairs:
        if pair.coupling_strength > min_strength:
            strong[pair.file1] += 1
            strong[pair.file2] += 1

    hotspots = {f: n for f, n in strong.items() if n >= min_relationships}
    return dict(sorted(hotspots.items(), key=lambda item: (-item[1], item[0])))


def _summary(pairs: Sequence[FilePairStats]) -> CouplingSummary:
    if not pairs:
        return CouplingSummary()
    strengths = [p.coupling_strength for p in pairs]
    return CouplingSummary(
        total_file_pairs=len(pairs),
        avg_coupling_strength=round(Statistics.mean(strengths), 3),
        max_coupling_strength=max(strengths),
        high_coupling_pairs=sum(1 for s in strengths if s > 0.5),
        medium_coupling_pairs=sum(1 for s in strengths if 0.2 < s <= 0.5),
        low_coupling_pairs=sum(1 for s in strengths if s <= 0.2),
    )
