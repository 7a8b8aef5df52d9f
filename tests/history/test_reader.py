"""Tests for GitLogReader against a throwaway repository."""

import os
import shutil
import subprocess
from datetime import datetime, timezone

import pytest

from git_vitals.exceptions import GitCommandError, InvalidPathError
from git_vitals.history.models import TimeWindow
from git_vitals.history.reader import GitLogReader

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def git(repo, *args, date=None):
    env = {
        "GIT_AUTHOR_NAME": "Alice",
        "GIT_AUTHOR_EMAIL": "alice@example.com",
        "GIT_COMMITTER_NAME": "Alice",
        "GIT_COMMITTER_EMAIL": "alice@example.com",
        "HOME": str(repo),
        "PATH": os.environ.get("PATH", ""),
    }
    if date:
        env["GIT_AUTHOR_DATE"] = date
        env["GIT_COMMITTER_DATE"] = date
    subprocess.run(["git", "-C", str(repo), *args], check=True, capture_output=True, env=env)


@pytest.fixture
def repo(tmp_path):
    """A repository with two commits and one release tag."""
    git(tmp_path, "init", "-q", "-b", "main")
    (tmp_path / "app.py").write_text("print('hi')\n")
    git(tmp_path, "add", "app.py")
    git(tmp_path, "commit", "-q", "-m", "feat: first", date="2024-01-15T10:00:00+00:00")
    (tmp_path / "app.py").write_text("print('hello')\nprint('bye')\n")
    git(tmp_path, "commit", "-q", "-am", "fix: greeting", date="2024-01-16T10:00:00+00:00")
    git(tmp_path, "tag", "v1.0.0", date="2024-01-16T12:00:00+00:00")
    return tmp_path


@pytest.fixture
def january():
    return TimeWindow(
        start=datetime(2024, 1, 1, tzinfo=timezone.utc),
        end=datetime(2024, 1, 31, tzinfo=timezone.utc),
    )


class TestGitLogReader:
    """Tests for reading and parsing real git output."""

    def test_rejects_missing_directory(self, tmp_path):
        with pytest.raises(InvalidPathError):
            GitLogReader(tmp_path / "missing")

    def test_rejects_plain_directory(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path.parent))
        with pytest.raises(InvalidPathError):
            GitLogReader(tmp_path)

    def test_read_commits(self, repo, january):
        commits = GitLogReader(repo).read_commits(january)

        assert [c.message for c in commits] == ["fix: greeting", "feat: first"]
        assert commits[0].filenames == frozenset({"app.py"})
        assert commits[0].additions == 2
        assert commits[0].deletions == 1
        assert commits[1].author == "Alice"

    def test_window_excludes_other_months(self, repo):
        february = TimeWindow(
            start=datetime(2024, 2, 1, tzinfo=timezone.utc),
            end=datetime(2024, 2, 28, tzinfo=timezone.utc),
        )
        assert GitLogReader(repo).read_commits(february) == []

    def test_max_commits(self, repo, january):
        assert len(GitLogReader(repo, max_commits=1).read_commits(january)) == 1

    def test_read_tags(self, repo):
        tags = GitLogReader(repo).read_tags()
        assert [t.name for t in tags] == ["v1.0.0"]

    def test_current_branch(self, repo):
        assert GitLogReader(repo).current_branch() == "main"

    def test_read_branches(self, repo):
        assert GitLogReader(repo).read_branches() == ["main"]

    def test_read_contributors(self, repo, january):
        contributors = GitLogReader(repo).read_contributors(january)
        assert contributors[0].name == "Alice"
        assert contributors[0].commit_count == 2

    def test_failed_command_raises(self, repo):
        reader = GitLogReader(repo)
        with pytest.raises(GitCommandError):
            reader._run(["log", "--no-such-flag"])
