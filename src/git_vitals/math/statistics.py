"""Descriptive statistics shared by the analyzers: percentiles, spread, ratios."""

import math
import statistics as stdlib_stats
from typing import Optional, Sequence

import numpy as np


class Statistics:
    """Statistical helpers. All methods accept empty input and return 0.0."""

    @staticmethod
    def mean(values: Sequence[float]) -> float:
        """Compute arithmetic mean."""
        if not values:
            return 0.0
        return float(stdlib_stats.mean(values))

    @staticmethod
    def median(values: Sequence[float]) -> float:
        """Compute the median, averaging the middle pair for even counts."""
        if not values:
            return 0.0
        return float(stdlib_stats.median(values))

    @staticmethod
    def pstdev(values: Sequence[float]) -> float:
        """Compute population standard deviation."""
        if len(values) < 2:
            return 0.0
        return float(np.std(np.asarray(values, dtype=float)))

    @staticmethod
    def percentile(values: Sequence[float], pct: float) -> float:
        """
        Nearest-rank percentile over the sorted values.

        The rank is ``round(pct / 100 * (n - 1))`` with halves rounded away
        from zero, so the result is always an observed value and percentiles
        are monotonic in ``pct``.

        Args:
            values: Observations, in any order
            pct: Percentile in [0, 100]

        Returns:
            The observation at that rank, or 0.0 for empty input
        """
        if not values:
            return 0.0
        ordered = np.sort(np.asarray(values, dtype=float))
        index = int(math.floor(pct / 100.0 * (len(ordered) - 1) + 0.5))
        index = min(max(index, 0), len(ordered) - 1)
        return float(ordered[index])

    @staticmethod
    def coefficient_of_variation(values: Sequence[float], default: float = 1.0) -> float:
        """Compute population CV = sigma / mu, ``default`` when the mean is zero."""
        mean_val = Statistics.mean(values)
        if mean_val == 0:
            return default
        return Statistics.pstdev(values) / mean_val

    @staticmethod
    def iqr_bounds(values: Sequence[float], factor: float = 1.5) -> Optional[tuple[float, float]]:
        """Tukey fences ``(Q1 - k*IQR, Q3 + k*IQR)``; None below four samples."""
        if len(values) < 4:
            return None
        q1 = Statistics.percentile(values, 25)
        q3 = Statistics.percentile(values, 75)
        iqr = q3 - q1
        return q1 - factor * iqr, q3 + factor * iqr


def ratio(part: float, whole: float, digits: int = 3) -> float:
    """``part / whole`` rounded, 0.0 when ``whole`` is zero."""
    if not whole:
        return 0.0
    return round(part / whole, digits)


def percentage(part: float, whole: float, digits: int = 2) -> float:
    """``part / whole * 100`` rounded, 0.0 when ``whole`` is zero."""
    if not whole:
        return 0.0
    return round(part / whole * 100, digits)
