"""Shared CLI helpers."""

import dataclasses
from datetime import datetime
from enum import Enum
from typing import Any

from rich.console import Console

console = Console()


def to_jsonable(value: Any) -> Any:
    """Convert analyzer results into JSON-ready builtins.

    Dataclasses become dicts of their fields, enums their values, datetimes
    ISO strings and sets sorted lists. Mapping keys are stringified.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {_key(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (set, frozenset)):
        return sorted(to_jsonable(v) for v in value)
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def _key(key: Any) -> str:
    if isinstance(key, Enum):
        return str(key.value)
    return str(key)
