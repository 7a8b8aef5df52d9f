"""Data models for parsed git history."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from ..exceptions import InvalidTimeWindowError

_RELATIVE_RE = re.compile(r"^(\d+)\s*([dwmy])$", re.IGNORECASE)
_UNIT_DAYS = {"d": 1, "w": 7, "m": 30, "y": 365}


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so every comparison is well defined."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class FileChange:
    filename: str
    additions: int = 0
    deletions: int = 0

    @property
    def total(self) -> int:
        return self.additions + self.deletions


@dataclass(frozen=True)
class Commit:
    """One log entry. ``date`` keeps the author's UTC offset; a naive date is read as UTC."""

    hash: str
    author_name: str
    author_email: str
    date: datetime
    message: str
    files: tuple[FileChange, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "date", ensure_aware(self.date))

    @property
    def author(self) -> str:
        return self.author_name

    @property
    def short_hash(self) -> str:
        return self.hash[:7]

    @property
    def additions(self) -> int:
        return sum(f.additions for f in self.files)

    @property
    def deletions(self) -> int:
        return sum(f.deletions for f in self.files)

    @property
    def filenames(self) -> frozenset[str]:
        return frozenset(f.filename for f in self.files)

    @property
    def files_changed(self) -> int:
        return len(self.filenames)


@dataclass(frozen=True)
class Tag:
    name: str
    date: datetime
    commit_hash: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "date", ensure_aware(self.date))


@dataclass(frozen=True)
class Contributor:
    name: str
    email: str
    commit_count: int


@dataclass(frozen=True)
class TimeWindow:
    """Closed interval bounding the commits in scope."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        start = ensure_aware(self.start)
        end = ensure_aware(self.end)
        if start >= end:
            raise InvalidTimeWindowError(start, end)
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @property
    def days(self) -> float:
        return (self.end - self.start).total_seconds() / 86400

    def contains(self, moment: datetime) -> bool:
        return self.start <= ensure_aware(moment) <= self.end

    @classmethod
    def parse(
        cls, since: str, until: Optional[str] = None, now: Optional[datetime] = None
    ) -> "TimeWindow":
        """Build a window from ``30d``/``2w``/``3m``/``1y`` or ISO date strings.

        Relative expressions count back from ``until`` (or ``now``).
        """
        end = _parse_point(until, now) if until else ensure_aware(now or datetime.now(timezone.utc))
        match = _RELATIVE_RE.match(since.strip())
        if match:
            amount, unit = int(match.group(1)), match.group(2).lower()
            start = end - timedelta(days=amount * _UNIT_DAYS[unit])
        else:
            start = _parse_point(since, now)
        return cls(start=start, end=end)


def _parse_point(text: str, now: Optional[datetime]) -> datetime:
    text = text.strip()
    match = _RELATIVE_RE.match(text)
    if match:
        reference = ensure_aware(now or datetime.now(timezone.utc))
        amount, unit = int(match.group(1)), match.group(2).lower()
        return reference - timedelta(days=amount * _UNIT_DAYS[unit])
    return ensure_aware(datetime.fromisoformat(text))
