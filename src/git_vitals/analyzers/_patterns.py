"""When-did-it-happen distributions shared by several analyzers."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


@dataclass(frozen=True)
class TimeDistribution:
    by_hour: dict[int, int] = field(default_factory=dict)
    by_weekday: dict[str, int] = field(default_factory=dict)
    by_month: dict[str, int] = field(default_factory=dict)
    peak_hour: Optional[int] = None
    peak_day: Optional[str] = None

    @property
    def total(self) -> int:
        return sum(self.by_hour.values())


def time_distribution(moments: Iterable[datetime]) -> TimeDistribution:
    """Count events by local hour, weekday name and ``YYYY-MM`` month."""
    hours: Counter[int] = Counter()
    days: Counter[str] = Counter()
    months: Counter[str] = Counter()
    for moment in moments:
        hours[moment.hour] += 1
        days[WEEKDAYS[moment.weekday()]] += 1
        months[moment.strftime("%Y-%m")] += 1

    by_hour = {h: hours[h] for h in sorted(hours)}
    by_weekday = {d: days[d] for d in WEEKDAYS if d in days}
    by_month = {m: months[m] for m in sorted(months)}
    return TimeDistribution(
        by_hour=by_hour,
        by_weekday=by_weekday,
        by_month=by_month,
        peak_hour=_peak(by_hour),
        peak_day=_peak(by_weekday),
    )


def _peak(counts: dict):
    # First key wins ties; keys are already in canonical order
    if not counts:
        return None
    return max(counts, key=lambda k: counts[k])


def is_weekend(moment: datetime) -> bool:
    return moment.weekday() >= 5


def is_off_hours(moment: datetime) -> bool:
    return moment.hour < 9 or moment.hour > 18
