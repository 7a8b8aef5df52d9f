"""Mathematical helpers for Git Vitals."""

from .statistics import Statistics, percentage, ratio

__all__ = ["Statistics", "percentage", "ratio"]
