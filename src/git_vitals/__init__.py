"""
Git Vitals - engineering-health metrics from version-control history.

Parses git log output into typed change records and derives commit sizing,
file churn, ownership concentration, co-change coupling, revert patterns,
deployment cadence and lead time.
"""

__version__ = "0.1.0"

from .api import METRICS, HistoryReport, MetricResult, analyze, analyze_history
from .history import Commit, FileChange, Tag, TimeWindow

__all__ = [
    "analyze",
    "analyze_history",
    "METRICS",
    "HistoryReport",
    "MetricResult",
    "Commit",
    "FileChange",
    "Tag",
    "TimeWindow",
]
