"""Shared test fixtures for Git Vitals."""

from datetime import datetime, timedelta, timezone

import pytest

from git_vitals.history.models import Commit, FileChange, Tag, TimeWindow


def pytest_addoption(parser):
    """Add --run-slow option for slow tests."""
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="run slow tests",
    )


def pytest_configure(config):
    """Configure slow marker."""
    config.addinivalue_line("markers", "slow: mark test as slow to run")


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is given."""
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


# Monday 2024-01-15 10:00 UTC
BASE_DATE = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)


def _commit(seed: int, message: str, files, date: datetime, author: str = "alice") -> Commit:
    return Commit(
        hash=f"{seed:040x}",
        author_name=author,
        author_email=f"{author}@example.com",
        date=date,
        message=message,
        files=tuple(FileChange(name, added, deleted) for name, added, deleted in files),
    )


@pytest.fixture
def base_date():
    """Monday 2024-01-15 10:00 UTC."""
    return BASE_DATE


@pytest.fixture
def window():
    """A window comfortably covering January and February 2024."""
    return TimeWindow(start=BASE_DATE - timedelta(days=30), end=BASE_DATE + timedelta(days=60))


@pytest.fixture
def scenario_commits():
    """One bug fix, one feature and one chore, an hour apart."""
    return [
        _commit(1, "fix: null check", [("src/a.py", 5, 2)], BASE_DATE),
        _commit(2, "feat: add export", [("src/export.py", 120, 0)], BASE_DATE + timedelta(hours=1)),
        _commit(3, "chore: bump dep", [("requirements.txt", 3, 3)], BASE_DATE + timedelta(hours=2)),
    ]


@pytest.fixture
def release_tags():
    """Two production tags and a scratch tag, ten days apart."""
    return [
        Tag(name="v1.0.0", date=BASE_DATE),
        Tag(name="v1.1.0", date=BASE_DATE + timedelta(days=10)),
        Tag(name="wip-test", date=BASE_DATE + timedelta(days=20)),
    ]
