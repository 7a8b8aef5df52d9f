"""Configuration loading and management for Git Vitals.

Configuration sources are merged in priority order:
    1. Defaults (defined in AnalysisConfig)
    2. Global config (~/.git-vitals.toml)
    3. Project config (./git-vitals.toml)
    4. Explicit config file
    5. Environment variables (GIT_VITALS_* prefix)
    6. Overrides passed as kwargs (typically CLI flags)

Example:
    >>> config = load_config(since="30d", verbose=True)
    >>> config.verbosity
    'verbose'
    >>> config.thresholds.coupling_hotspot_strength
    0.3
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .exceptions import ConfigurationError, InvalidConfigError

Verbosity = Literal["quiet", "normal", "verbose"]

ENV_PREFIX = "GIT_VITALS_"


@dataclass(frozen=True)
class ThresholdConfig:
    """Tuning knobs for the analyzers.

    Category cut-offs (churn bands, ownership types, coupling categories,
    lead-time bands) are fixed tables inside each analyzer. Only the
    parameters below are meant to be tuned per repository.

    Attributes:
        size_file_weight: Lines-equivalent weight of each file a commit touches
        coupling_hotspot_strength: A relationship counts toward a hotspot above this strength
        coupling_hotspot_min_relationships: Relationships needed to mark a file as a hotspot
        cochange_max_files_per_commit: Skip wider commits in co-change analysis (0 = no limit)
        lead_time_acceptable_hours: Lead time counted as "flowing" for flow efficiency
        slow_author_factor: Authors above this multiple of the median lead time are slow
        risky_commit_limit: Number of risky commits reported by the size analyzer
    """

    size_file_weight: int = 10
    coupling_hotspot_strength: float = 0.3
    coupling_hotspot_min_relationships: int = 3
    cochange_max_files_per_commit: int = 0
    lead_time_acceptable_hours: float = 168.0
    slow_author_factor: float = 2.0
    risky_commit_limit: int = 20

    def __post_init__(self) -> None:
        """Validate threshold configuration."""
        if self.size_file_weight < 0:
            raise ValueError("size_file_weight must be non-negative")
        if not 0.0 <= self.coupling_hotspot_strength <= 1.0:
            raise ValueError("coupling_hotspot_strength must be between 0.0 and 1.0")
        if self.coupling_hotspot_min_relationships < 1:
            raise ValueError("coupling_hotspot_min_relationships must be at least 1")
        if self.cochange_max_files_per_commit < 0:
            raise ValueError("cochange_max_files_per_commit must be non-negative")
        if self.lead_time_acceptable_hours <= 0:
            raise ValueError("lead_time_acceptable_hours must be positive")
        if self.slow_author_factor <= 0:
            raise ValueError("slow_author_factor must be positive")
        if self.risky_commit_limit < 0:
            raise ValueError("risky_commit_limit must be non-negative")


DEFAULT_THRESHOLDS = ThresholdConfig()


@dataclass(frozen=True)
class AnalysisConfig:
    """Configuration for one analysis run.

    Attributes:
        since: Window start, relative (``90d``, ``2w``, ``6m``, ``1y``) or an ISO date
        until: Window end as an ISO date, None for now
        git_timeout_seconds: Timeout for each git subprocess
        git_max_commits: Maximum commits read from git (0 = unlimited)
        main_branches: Extra branch names treated as main-like for merge deployments
        verbosity: Logging verbosity level
        thresholds: Nested analyzer knobs
    """

    since: str = "90d"
    until: Optional[str] = None
    git_timeout_seconds: int = 60
    git_max_commits: int = 0
    main_branches: list[str] = field(default_factory=list)
    verbosity: Verbosity = "normal"
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not self.since:
            raise ValueError("since must not be empty")
        if self.git_timeout_seconds < 1:
            raise ValueError("git_timeout_seconds must be at least 1")
        if self.git_max_commits < 0:
            raise ValueError("git_max_commits must be non-negative")
        if self.verbosity not in ("quiet", "normal", "verbose"):
            raise ValueError(f"verbosity must be quiet, normal or verbose, got {self.verbosity!r}")


def load_config(config_file: Optional[Path] = None, **overrides) -> AnalysisConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides; ``verbose``/``quiet`` booleans map to verbosity

    Returns:
        Validated AnalysisConfig instance

    Raises:
        ConfigurationError: If a config file is missing or invalid
    """
    merged: dict = {}

    global_config = Path.home() / ".git-vitals.toml"
    if global_config.exists():
        merged.update(_load_toml_section(global_config))

    project_config = Path.cwd() / "git-vitals.toml"
    if project_config.exists():
        merged.update(_load_toml_section(project_config))

    if config_file is not None:
        config_file = Path(config_file)
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_file}")
        merged.update(_load_toml_section(config_file))

    merged.update(_load_env_vars())

    if "verbose" in overrides:
        if overrides["verbose"]:
            overrides["verbosity"] = "verbose"
        del overrides["verbose"]
    if "quiet" in overrides:
        if overrides["quiet"]:
            overrides["verbosity"] = "quiet"
        del overrides["quiet"]

    merged.update({k: v for k, v in overrides.items() if v is not None})

    thresholds = merged.pop("thresholds", None)
    if isinstance(thresholds, dict):
        try:
            merged["thresholds"] = ThresholdConfig(**thresholds)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid [thresholds] config: {e}") from e
    elif isinstance(thresholds, ThresholdConfig):
        merged["thresholds"] = thresholds

    try:
        return AnalysisConfig(**merged)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from GIT_VITALS_* environment variables.

    Only scalar fields are read (e.g. GIT_VITALS_SINCE, GIT_VITALS_GIT_TIMEOUT_SECONDS);
    list and nested fields are file-only.
    """
    type_hints = get_type_hints(AnalysisConfig)
    result: dict[str, Any] = {}

    for field_name in AnalysisConfig.__dataclass_fields__:
        env_key = f"{ENV_PREFIX}{field_name.upper()}"
        env_value = os.environ.get(env_key)
        if env_value is None:
            continue

        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        try:
            parsed = _parse_env_value(env_value, type_hint)
        except ValueError as e:
            raise InvalidConfigError(env_key, env_value, str(e)) from e
        if parsed is not None:
            result[field_name] = parsed

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse an environment string to the field's type, None if unsupported."""
    origin = getattr(type_hint, "__origin__", None)

    # Optional[X] is Union[X, None]
    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            type_hint = non_none_types[0]
            origin = getattr(type_hint, "__origin__", None)

    if origin is list or type_hint is list or type_hint is ThresholdConfig:
        return None

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        if lower in ("false", "0", "no", "off"):
            return False
        raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is float:
        return float(value)

    if type_hint is str or origin is Literal:
        return value

    return None


def _load_toml_section(path: Path) -> dict:
    """Read a TOML file, accepting either top-level keys or a [git-vitals] table."""
    try:
        data = _load_toml_file(path)
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Invalid config file '{path}': {e}") from e
    return dict(data.get("git-vitals", data))


def _load_toml_file(path: Path) -> dict:
    """Load TOML file and return parsed dict."""
    try:
        import tomllib
    except ModuleNotFoundError:
        # Python 3.9-3.10
        import tomli as tomllib  # type: ignore

    with open(path, "rb") as f:
        return tomllib.load(f)
