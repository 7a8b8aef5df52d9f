"""Exception hierarchy for Git Vitals."""

from .analysis import (
    AnalysisError,
    GitCommandError,
    GitError,
    InvalidTimeWindowError,
    MissingInputError,
)
from .base import GitVitalsError
from .config import (
    ConfigurationError,
    InvalidConfigError,
    InvalidPathError,
)

__all__ = [
    "GitVitalsError",
    "AnalysisError",
    "MissingInputError",
    "InvalidTimeWindowError",
    "GitError",
    "GitCommandError",
    "ConfigurationError",
    "InvalidPathError",
    "InvalidConfigError",
]
