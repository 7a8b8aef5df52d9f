"""Revert detection, revert-to-reverted pairing and author reliability.

Pairing is best-effort: hex words in a revert message are looked up in an
index of full and 7-character short hashes. A fragment that names no commit
in the analyzed range simply produces no pair.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ..history.models import Commit
from ..logging_config import get_logger
from ..math import Statistics, percentage
from ._patterns import TimeDistribution, time_distribution

logger = get_logger(__name__)

REVERT_PATTERNS = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"^revert\s",
        r"^this reverts commit",
        r"\breverts?\s+commit",
        r"^rollback",
        r"^undo\s",
    )
)

_HASH_FRAGMENT_RE = re.compile(r"\b[0-9a-f]{7,40}\b", re.IGNORECASE)
SHORT_HASH_LENGTH = 7

# Ordered; the first matching bucket names the reason
REVERT_REASONS = (
    ("Bug fixes", re.compile(r"bug|error|fix|issue|problem")),
    ("Test issues", re.compile(r"test|spec|failing")),
    ("Breaking changes", re.compile(r"break|broken|regression")),
    ("Performance issues", re.compile(r"performance|slow|timeout")),
    ("Security concerns", re.compile(r"security|vulnerabilit")),
)
OTHER_REASON = "Other"

HIGH_RISK_REVERTED_RATE = 5.0


def is_revert(message: str) -> bool:
    text = (message or "").strip()
    return any(p.search(text) for p in REVERT_PATTERNS)


def extract_reverted_hashes(message: str) -> list[str]:
    """Lowercased 7-40 character hex words, in order of appearance."""
    seen: list[str] = []
    for fragment in _HASH_FRAGMENT_RE.findall(message or ""):
        fragment = fragment.lower()
        if fragment not in seen:
            seen.append(fragment)
    return seen


def revert_reason(message: str) -> str:
    text = (message or "").lower()
    for label, pattern in REVERT_REASONS:
        if pattern.search(text):
            return label
    return OTHER_REASON


class HashIndex:
    """Full and short hash lookup over one commit collection."""

    def __init__(self, commits: Sequence[Commit]):
        self._by_hash: dict[str, Commit] = {}
        for commit in commits:
            self._by_hash.setdefault(commit.hash.lower(), commit)
            self._by_hash.setdefault(commit.short_hash.lower(), commit)

    def lookup(self, fragment: str) -> Optional[Commit]:
        fragment = fragment.lower()
        found = self._by_hash.get(fragment)
        if found is None and len(fragment) > SHORT_HASH_LENGTH:
            found = self._by_hash.get(fragment[:SHORT_HASH_LENGTH])
        return found


@dataclass(frozen=True)
class RevertPair:
    revert: Commit
    reverted: Commit


@dataclass(frozen=True)
class RevertOverview:
    total_commits: int = 0
    revert_commits: int = 0
    reverted_commits: int = 0
    revert_rate: float = 0.0
    reverted_rate: float = 0.0
    stability_score: float = 1.0


@dataclass(frozen=True)
class AuthorRevertStats:
    total_commits: int
    reverts_made: int
    commits_reverted: int
    revert_rate: float
    reverted_rate: float
    reliability_score: float


@dataclass(frozen=True)
class RevertAnalysis:
    revert_commits: tuple[Commit, ...] = ()
    reverted_commits: tuple[Commit, ...] = ()
    pairs: tuple[RevertPair, ...] = ()
    overview: RevertOverview = field(default_factory=RevertOverview)
    by_author: dict[str, AuthorRevertStats] = field(default_factory=dict)
    reasons: dict[str, int] = field(default_factory=dict)
    timing: TimeDistribution = field(default_factory=TimeDistribution)
    avg_days_between_reverts: float = 0.0
    high_risk_authors: int = 0


def find_revert_pairs(commits: Sequence[Commit]) -> tuple[RevertPair, ...]:
    """Build the hash index once, then probe it with each revert's fragments."""
    index = HashIndex(commits)
    pairs = []
    for commit in commits:
        if not is_revert(commit.message):
            continue
        for fragment in extract_reverted_hashes(commit.message):
            target = index.lookup(fragment)
            if target is not None and target.hash != commit.hash:
                pairs.append(RevertPair(revert=commit, reverted=target))
                break
    return tuple(pairs)


def analyze_reverts(commits: Sequence[Commit]) -> RevertAnalysis:
    """Detect reverts, pair them with their targets and score authors."""
    reverts = tuple(c for c in commits if is_revert(c.message))
    pairs = find_revert_pairs(commits)

    reverted: list[Commit] = []
    for pair in pairs:
        if pair.reverted not in reverted:
            reverted.append(pair.reverted)

    total = len(commits)
    overview = RevertOverview(
        total_commits=total,
        revert_commits=len(reverts),
        reverted_commits=len(reverted),
        revert_rate=percentage(len(reverts), total),
        reverted_rate=percentage(len(reverted), total),
        stability_score=_reliability(len(reverted), total),
    )
    by_author = _author_stats(commits, reverts, reverted)

    logger.debug("Found %d reverts and %d reverted commits", len(reverts), len(reverted))

    return RevertAnalysis(
        revert_commits=reverts,
        reverted_commits=tuple(reverted),
        pairs=pairs,
        overview=overview,
        by_author=by_author,
        reasons=dict(Counter(revert_reason(c.message) for c in reverts).most_common()),
        timing=time_distribution(c.date for c in reverts),
        avg_days_between_reverts=_avg_days_between(reverts),
        high_risk_authors=sum(
            1 for s in by_author.values() if s.reverted_rate > HIGH_RISK_REVERTED_RATE
        ),
    )


def _reliability(reverted: int, total: int) -> float:
    if not total:
        return 1.0
    return round(max(1 - reverted / total, 0.0), 3)


def _author_stats(
    commits: Sequence[Commit], reverts: Sequence[Commit], reverted: Sequence[Commit]
) -> dict[str, AuthorRevertStats]:
    totals = Counter(c.author for c in commits)
    made = Counter(c.author for c in reverts)
    suffered = Counter(c.author for c in reverted)

    stats: dict[str, AuthorRevertStats] = {}
    for author in sorted(totals):
        total = totals[author]
        stats[author] = AuthorRevertStats(
            total_commits=total,
            reverts_made=made[author],
            commits_reverted=suffered[author],
            revert_rate=percentage(made[author], total),
            reverted_rate=percentage(suffered[author], total),
            reliability_score=_reliability(suffered[author], total),
        )
    return stats


def _avg_days_between(reverts: Sequence[Commit]) -> float:
    if len(reverts) < 2:
        return 0.0
    moments = sorted(c.date for c in reverts)
    gaps = [(b - a).total_seconds() / 86400 for a, b in zip(moments, moments[1:])]
    return round(Statistics.mean(gaps), 1)

