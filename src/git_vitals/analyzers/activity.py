"""Commit activity: who commits, how much, and when."""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ..history.models import Commit
from ..math import Statistics, percentage
from ._patterns import TimeDistribution, is_weekend, time_distribution


@dataclass(frozen=True)
class AuthorActivity:
    commits: int
    commit_share: float
    additions: int
    deletions: int

    @property
    def net_lines(self) -> int:
        return self.additions - self.deletions

    @property
    def lines_changed(self) -> int:
        return self.additions + self.deletions


@dataclass(frozen=True)
class ActivityAnalysis:
    total_commits: int = 0
    by_author: dict[str, AuthorActivity] = field(default_factory=dict)
    by_day: dict[str, int] = field(default_factory=dict)
    timing: TimeDistribution = field(default_factory=TimeDistribution)
    busiest_day: Optional[str] = None
    working_hours_commits: int = 0
    after_hours_commits: int = 0
    avg_commits_per_active_day: float = 0.0
    consistency_score: float = 0.0

    @property
    def working_hours_percentage(self) -> float:
        return percentage(self.working_hours_commits, self.total_commits, digits=1)


def is_working_hours(commit: Commit) -> bool:
    """Weekdays from 09:00 to 18:59 in the author's own timezone."""
    return not is_weekend(commit.date) and 9 <= commit.date.hour <= 18


def analyze_commit_activity(commits: Sequence[Commit]) -> ActivityAnalysis:
    """Per-author volume plus calendar and clock distributions."""
    if not commits:
        return ActivityAnalysis()

    counts: Counter[str] = Counter()
    additions: dict[str, int] = defaultdict(int)
    deletions: dict[str, int] = defaultdict(int)
    for commit in commits:
        counts[commit.author] += 1
        additions[commit.author] += commit.additions
        deletions[commit.author] += commit.deletions

    total = len(commits)
    by_author = {
        author: AuthorActivity(
            commits=n,
            commit_share=percentage(n, total, digits=1),
            additions=additions[author],
            deletions=deletions[author],
        )
        for author, n in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    }

    by_day = dict(sorted(Counter(c.date.date().isoformat() for c in commits).items()))
    daily = list(by_day.values())
    working = sum(1 for c in commits if is_working_hours(c))
    cv = Statistics.coefficient_of_variation(daily, default=0.0)

    return ActivityAnalysis(
        total_commits=total,
        by_author=by_author,
        by_day=by_day,
        timing=time_distribution(c.date for c in commits),
        busiest_day=max(by_day, key=lambda day: by_day[day]),
        working_hours_commits=working,
        after_hours_commits=total - working,
        avg_commits_per_active_day=round(total / len(by_day), 2),
        consistency_score=round(max(100 - cv * 50, 0.0), 1),
    )
