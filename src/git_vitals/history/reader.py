"""Read raw history text from a git work tree via subprocess."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Optional

from ..exceptions import GitCommandError, InvalidPathError
from ..logging_config import get_logger
from .models import Commit, Contributor, Tag, TimeWindow
from .parser import (
    COMMIT_FORMAT,
    TAG_FORMAT,
    parse_branches,
    parse_commit_stats,
    parse_commits,
    parse_contributors,
    parse_tags,
)

logger = get_logger(__name__)


class GitLogReader:
    """Run git commands against one repository and return their raw output.

    The ``read_*`` helpers pipe that output straight through the parsers.
    """

    # Maximum git output size (50MB) to prevent OOM on huge repos
    _MAX_OUTPUT_BYTES = 50 * 1024 * 1024

    def __init__(self, repo_path: str | Path, timeout_seconds: int = 60, max_commits: int = 0):
        path = Path(repo_path).expanduser().resolve()
        if not path.is_dir():
            raise InvalidPathError(path, "not a directory")
        self.repo_path = str(path)
        self.timeout_seconds = timeout_seconds
        self.max_commits = max_commits
        if not self._is_git_repo():
            raise InvalidPathError(path, "not a git repository")

    def _is_git_repo(self) -> bool:
        try:
            result = subprocess.run(
                ["git", "-C", self.repo_path, "rev-parse", "--git-dir"],
                capture_output=True,
                text=True,
                timeout=5,
            )
            return result.returncode == 0
        except (FileNotFoundError, subprocess.TimeoutExpired):
            return False

    # -- raw text blocks -------------------------------------------------

    def commit_log(self, window: TimeWindow) -> str:
        return self._run(self._log_args(window))

    def commit_stats(self, window: TimeWindow) -> str:
        return self._run(self._log_args(window) + ["--numstat"])

    def tags(self) -> str:
        return self._run(["for-each-ref", "--sort=creatordate", f"--format={TAG_FORMAT}", "refs/tags"])

    def contributors(self, window: TimeWindow) -> str:
        return self._run(
            [
                "shortlog",
                "-sne",
                f"--since={window.start.isoformat()}",
                f"--until={window.end.isoformat()}",
                "HEAD",
            ]
        )

    def branches(self) -> str:
        return self._run(["branch", "-a"])

    def current_branch(self) -> Optional[str]:
        try:
            name = self._run(["rev-parse", "--abbrev-ref", "HEAD"]).strip()
        except GitCommandError as e:
            # Fresh repositories have no HEAD yet
            logger.warning("Could not detect current branch: %s", e)
            return None
        return None if not name or name == "HEAD" else name

    # -- parsed records --------------------------------------------------

    def read_commits(self, window: TimeWindow, with_stats: bool = True) -> list[Commit]:
        if with_stats:
            return parse_commit_stats(self.commit_stats(window))
        return parse_commits(self.commit_log(window))

    def read_tags(self) -> list[Tag]:
        return parse_tags(self.tags())

    def read_contributors(self, window: TimeWindow) -> list[Contributor]:
        return parse_contributors(self.contributors(window))

    def read_branches(self) -> list[str]:
        return parse_branches(self.branches())

    # -- subprocess ------------------------------------------------------

    def _log_args(self, window: TimeWindow) -> list[str]:
        args = [
            "log",
            f"--since={window.start.isoformat()}",
            f"--until={window.end.isoformat()}",
            f"--format={COMMIT_FORMAT}",
        ]
        if self.max_commits:
            args.append(f"-n{self.max_commits}")
        return args

    def _run(self, args: list[str]) -> str:
        cmd = ["git", "-C", self.repo_path, *args]
        logger.debug("Running %s", " ".join(cmd))
        try:
            proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except FileNotFoundError as e:
            raise GitCommandError(cmd, None, str(e)) from e

        try:
            chunks = []
            total_size = 0
            stdout = proc.stdout
            if stdout is not None:
                while True:
                    chunk = stdout.read(1024 * 1024)
                    if not chunk:
                        break
                    total_size += len(chunk)
                    if total_size > self._MAX_OUTPUT_BYTES:
                        logger.warning(
                            "git output exceeded %dMB limit, truncating",
                            self._MAX_OUTPUT_BYTES // (1024 * 1024),
                        )
                        proc.kill()
                        break
                    chunks.append(chunk)

            try:
                proc.wait(timeout=self.timeout_seconds)
            except subprocess.TimeoutExpired as e:
                proc.kill()
                raise GitCommandError(cmd, None, f"timed out after {self.timeout_seconds}s") from e

            # -9 = killed by the size guard above
            if proc.returncode not in (0, -9):
                stderr = proc.stderr.read() if proc.stderr else ""
                logger.warning("git %s failed: %s", args[0], stderr.strip())
                raise GitCommandError(cmd, proc.returncode, stderr)
            return "".join(chunks)
        finally:
            if proc.stdout:
                proc.stdout.close()
            if proc.stderr:
                proc.stderr.close()
