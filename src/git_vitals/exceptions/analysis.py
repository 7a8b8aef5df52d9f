"""Analysis-related exceptions: construction boundaries and git access."""

from datetime import datetime
from typing import Optional, Sequence

from .base import GitVitalsError


class AnalysisError(GitVitalsError):
    """Base class for analysis-related errors."""

    pass


class MissingInputError(AnalysisError):
    """Raised when an analyzer is built without a required collaborator.

    Malformed or empty history is never an error; only an absent
    repository, time window or deployment list is.
    """

    def __init__(self, name: str, analyzer: Optional[str] = None):
        details = {"input": name}
        if analyzer:
            details["analyzer"] = analyzer
        super().__init__(f"Required input is missing: {name}", details=details)
        self.name = name
        self.analyzer = analyzer


class InvalidTimeWindowError(AnalysisError):
    """Raised when a time window does not start before it ends."""

    def __init__(self, start: datetime, end: datetime):
        super().__init__(
            "Time window start must precede its end",
            details={"start": start.isoformat(), "end": end.isoformat()},
        )
        self.start = start
        self.end = end


class GitError(GitVitalsError):
    """Base class for failures talking to git."""

    pass


class GitCommandError(GitError):
    """Raised when a git subprocess fails or times out."""

    def __init__(self, command: Sequence[str], returncode: Optional[int], stderr: str = ""):
        details = {"command": " ".join(command)}
        if returncode is not None:
            details["returncode"] = str(returncode)
        if stderr:
            details["stderr"] = stderr.strip()
        super().__init__("git command failed", details=details)
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr
