"""Git history records, parsers and the subprocess reader."""

from .models import Commit, Contributor, FileChange, Tag, TimeWindow
from .parser import (
    parse_branches,
    parse_commit_stats,
    parse_commits,
    parse_contributors,
    parse_tags,
)
from .reader import GitLogReader

__all__ = [
    "Commit",
    "Contributor",
    "FileChange",
    "Tag",
    "TimeWindow",
    "GitLogReader",
    "parse_branches",
    "parse_commit_stats",
    "parse_commits",
    "parse_contributors",
    "parse_tags",
]
