"""Commit message classification and bugfix pattern analysis."""

from __future__ import annotations

import re
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from ..history.models import Commit
from ..logging_config import get_logger
from ..math import Statistics, percentage, ratio
from ._patterns import TimeDistribution, time_distribution

logger = get_logger(__name__)


class CommitCategory(Enum):
    """What a commit is for, judged from its message.

    Categories are tested in declaration order and the first match wins, so
    "Merge branch 'fix/login'" is a merge and never a bugfix.
    """

    MERGE = "merge"
    BUGFIX = "bugfix"
    FEATURE = "feature"
    MAINTENANCE = "maintenance"
    OTHER = "other"


def _compile(*patterns: str) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(p) for p in patterns)


CLASSIFICATION_RULES: tuple[tuple[CommitCategory, tuple[re.Pattern[str], ...]], ...] = (
    (
        CommitCategory.MERGE,
        _compile(r"^merge\b", r"^merged\b", r"^auto-merge"),
    ),
    (
        CommitCategory.BUGFIX,
        _compile(
            r"^fix\b",
            r"^bugfix",
            r"\bfix\s+(bug|issue|error|problem)",
            r"\b(bug|error|issue)\s+fix",
            r"\bresol(ve|ution)\b",
            r"\bhotfix",
            r"\bpatch",
            r"\bcorrect",
            r"\brepair",
            r"\bhandle\s+(error|exception)",
        ),
    ),
    (
        CommitCategory.FEATURE,
        _compile(
            r"^feat\b",
            r"^feature",
            r"^add\b",
            r"^implement",
            r"^create",
            r"^new\s+",
            r"\benhance",
            r"\bimprove",
            r"\bupgrade",
            r"\bextend",
        ),
    ),
    (
        CommitCategory.MAINTENANCE,
        _compile(
            r"^refactor",
            r"^clean",
            r"^update",
            r"^chore",
            r"^style",
            r"^format",
            r"^lint",
            r"^test",
            r"^spec",
            r"^build",
            r"^ci\b",
            r"^docs?\b",
            r"\bbump",
            r"\bdependenc",
            r"\bdeps?\b",
            r"\bdocument",
            r"\bcomment",
            r"\btypo",
            r"\bwhitespace",
            r"\breorg",
            r"\bmove\s",
            r"\brename",
        ),
    ),
)

URGENCY_KEYWORDS = ("urgent", "critical", "hotfix", "emergency", "immediate", "asap")
SEVERITY_KEYWORDS = ("critical", "major", "minor", "trivial", "blocker")


def classify_message(message: str) -> CommitCategory:
    """Return the first category whose patterns match the normalized message."""
    normalized = (message or "").strip().lower()
    for category, patterns in CLASSIFICATION_RULES:
        if any(p.search(normalized) for p in patterns):
            return category
    return CommitCategory.OTHER


@dataclass(frozen=True)
class AuthorBugfixStats:
    total_commits: int
    bugfix_commits: int
    feature_commits: int
    bugfix_ratio: float


@dataclass(frozen=True)
class BugfixPatterns:
    timing: TimeDistribution
    urgent_fixes: int
    urgency_keywords: dict[str, int]
    severity_keywords: dict[str, int]
    trend: str
    trend_change_percentage: float


@dataclass(frozen=True)
class CommitTypeAnalysis:
    total_commits: int
    categories: dict[str, CommitCategory] = field(default_factory=dict)
    counts: dict[CommitCategory, int] = field(default_factory=dict)
    ratios: dict[CommitCategory, float] = field(default_factory=dict)
    quality_score: float = 1.0
    by_author: dict[str, AuthorBugfixStats] = field(default_factory=dict)
    bugfix_patterns: BugfixPatterns | None = None

    @property
    def bugfix_ratio(self) -> float:
        return self.ratios.get(CommitCategory.BUGFIX, 0.0)

    @property
    def feature_ratio(self) -> float:
        return self.ratios.get(CommitCategory.FEATURE, 0.0)


def analyze_commit_types(commits: Sequence[Commit]) -> CommitTypeAnalysis:
    """Classify every commit and derive ratios, quality and bugfix patterns."""
    categories = {c.hash: classify_message(c.message) for c in commits}
    tally = Counter(categories[c.hash] for c in commits)
    total = len(commits)

    counts = {category: tally.get(category, 0) for category in CommitCategory}
    ratios = {category: percentage(counts[category], total) for category in CommitCategory}

    bugfixes = counts[CommitCategory.BUGFIX]
    features = counts[CommitCategory.FEATURE]
    quality = ratio(features, bugfixes + features) if bugfixes + features else 1.0

    logger.debug("Classified %d commits: %s", total, {k.value: v for k, v in counts.items()})

    bugfix_commits = [c for c in commits if categories[c.hash] is CommitCategory.BUGFIX]
    return CommitTypeAnalysis(
        total_commits=total,
        categories=categories,
        counts=counts,
        ratios=ratios,
        quality_score=quality,
        by_author=_author_stats(commits, categories),
        bugfix_patterns=_bugfix_patterns(bugfix_commits),
    )


def _author_stats(
    commits: Sequence[Commit], categories: dict[str, CommitCategory]
) -> dict[str, AuthorBugfixStats]:
    grouped: dict[str, list[CommitCategory]] = defaultdict(list)
    for commit in commits:
        grouped[commit.author].append(categories[commit.hash])

    stats = {}
    for author in sorted(grouped):
        labels = grouped[author]
        fixes = labels.count(CommitCategory.BUGFIX)
        stats[author] = AuthorBugfixStats(
            total_commits=len(labels),
            bugfix_commits=fixes,
            feature_commits=labels.count(CommitCategory.FEATURE),
            bugfix_ratio=percentage(fixes, len(labels)),
        )
    return stats


def _bugfix_patterns(bugfix_commits: Sequence[Commit]) -> BugfixPatterns:
    messages = [c.message.lower() for c in bugfix_commits]
    urgency = {k: sum(1 for m in messages if k in m) for k in URGENCY_KEYWORDS}
    severity = {k: sum(1 for m in messages if k in m) for k in SEVERITY_KEYWORDS}
    urgent = sum(1 for m in messages if any(k in m for k in URGENCY_KEYWORDS))

    timing = time_distribution(c.date for c in bugfix_commits)
    trend, change = _bugfix_trend(timing.by_month)
    return BugfixPatterns(
        timing=timing,
        urgent_fixes=urgent,
        urgency_keywords=urgency,
        severity_keywords=severity,
        trend=trend,
        trend_change_percentage=change,
    )


def _bugfix_trend(by_month: dict[str, int]) -> tuple[str, float]:
    """Compare average monthly bugfixes of the earlier half against the later half."""
    if len(by_month) < 2:
        return "insufficient_data", 0.0

    monthly = list(by_month.values())
    middle = len(monthly) // 2
    first = Statistics.mean(monthly[:middle])
    second = Statistics.mean(monthly[middle:])
    if first == 0:
        return "stable", 0.0

    change = round((second - first) / first * 100, 1)
    if change > 10:
        return "increasing", change
    if change < -10:
        return "decreasing", change
    return "stable", change
