"""Parse raw git log text into Commit, Tag and Contributor records.

Every parser here is line-tolerant: a line that does not fit its format is
dropped (and logged at DEBUG), never raised. Empty input yields an empty list.

Line formats:

    commit header   <hash>|<author name>|<author email>|<timestamp>|<subject>
    numstat         <additions>\\t<deletions>\\t<path>      ("-" = binary, counted as 0)
    tag             <name>|<timestamp>   or   tag: v1.2.0, origin/main|<timestamp>
    contributor     <count>\\t<name> <<email>>
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Optional

from ..logging_config import get_logger
from .models import Commit, Contributor, FileChange, Tag, ensure_aware

logger = get_logger(__name__)

FIELD_SEPARATOR = "|"
HEADER_FIELDS = 5

# Format strings the reader passes to git so its output fits these parsers
COMMIT_FORMAT = "%H|%an|%ae|%ai|%s"
TAG_FORMAT = "%(refname:short)|%(creatordate:iso)"

_HASH_RE = re.compile(r"^[0-9a-fA-F]{7,40}$")
_NUMSTAT_RE = re.compile(r"^(\d+|-)\s+(\d+|-)\s+(.+)$")
_CONTRIBUTOR_RE = re.compile(r"^\s*(\d+)\s+(.+?)\s*$")
_EMAIL_RE = re.compile(r"^(.*?)\s*<([^>]*)>$")
_BRACE_RENAME_RE = re.compile(r"\{([^{}]*) => ([^{}]*)\}")
_TIMESTAMP_FORMATS = ("%Y-%m-%d %H:%M:%S %z", "%Y-%m-%d %H:%M:%S")


def parse_timestamp(text: str) -> datetime:
    """Parse ``%ai``/``%aI``/``%ci`` style timestamps. Naive values are UTC.

    Raises:
        ValueError: If the text is not a recognizable timestamp
    """
    text = text.strip()
    for fmt in _TIMESTAMP_FORMATS:
        try:
            return ensure_aware(datetime.strptime(text, fmt))
        except ValueError:
            continue
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_aware(datetime.fromisoformat(text))


def resolve_rename(path: str) -> str:
    """Return the destination of numstat rename notation.

    ``src/{old => new}/mod.py`` becomes ``src/new/mod.py``; ``a.py => b.py``
    becomes ``b.py``. Other paths are returned unchanged.
    """
    if " => " not in path:
        return path
    if "{" in path:
        resolved = _BRACE_RENAME_RE.sub(lambda m: m.group(2), path)
        return resolved.replace("//", "/")
    return path.split(" => ", 1)[1]


def _parse_header(line: str) -> Optional[tuple[str, str, str, datetime, str]]:
    parts = line.split(FIELD_SEPARATOR, HEADER_FIELDS - 1)
    if len(parts) != HEADER_FIELDS:
        return None
    commit_hash, name, email, timestamp, subject = parts
    commit_hash = commit_hash.strip()
    if not _HASH_RE.match(commit_hash):
        return None
    try:
        moment = parse_timestamp(timestamp)
    except ValueError:
        logger.debug("Skipping commit %s: bad timestamp %r", commit_hash[:8], timestamp)
        return None
    return commit_hash.lower(), name.strip(), email.strip(), moment, subject.strip()


def _parse_numstat(line: str) -> Optional[FileChange]:
    match = _NUMSTAT_RE.match(line)
    if not match:
        return None
    added, deleted, path = match.groups()
    return FileChange(
        filename=resolve_rename(path.strip()),
        additions=0 if added == "-" else int(added),
        deletions=0 if deleted == "-" else int(deleted),
    )


def parse_commit_stats(text: str) -> list[Commit]:
    """Parse commit headers followed by their numstat lines.

    A header that cannot be parsed discards the numstat lines that follow it,
    so a bad entry never leaks its files into the previous commit.
    """
    commits: list[Commit] = []
    header: Optional[tuple[str, str, str, datetime, str]] = None
    files: list[FileChange] = []
    skipped = 0

    def flush() -> None:
        if header is not None:
            commit_hash, name, email, moment, subject = header
            commits.append(Commit(commit_hash, name, email, moment, subject, tuple(files)))

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        change = _parse_numstat(line)
        if change is not None:
            if header is not None:
                files.append(change)
            continue

        if FIELD_SEPARATOR in line:
            flush()
            header = _parse_header(line)
            files = []
            if header is None:
                skipped += 1
            continue

        skipped += 1

    flush()

    if skipped:
        logger.debug("Skipped %d unparseable log lines", skipped)
    return commits


def parse_commits(text: str) -> list[Commit]:
    """Parse header-only log output (no numstat)."""
    return parse_commit_stats(text)


def parse_tags(text: str) -> list[Tag]:
    """Parse ``name|timestamp`` lines, or ``%D|%ai`` decoration lines."""
    tags: list[Tag] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or FIELD_SEPARATOR not in line:
            continue

        names_part, timestamp = line.rsplit(FIELD_SEPARATOR, 1)
        try:
            moment = parse_timestamp(timestamp)
        except ValueError:
            logger.debug("Skipping tag line with bad timestamp: %r", line)
            continue

        for name in _tag_names(names_part):
            tags.append(Tag(name=name, date=moment))
    return tags


def _tag_names(refs: str) -> list[str]:
    refs = refs.strip()
    if "tag:" not in refs:
        # Plain for-each-ref names; branch decorations are not tags
        if not refs or "," in refs or "->" in refs:
            return []
        return [refs]
    names = []
    for ref in refs.split(","):
        ref = ref.strip()
        if ref.startswith("tag:"):
            name = ref[len("tag:"):].strip()
            if name:
                names.append(name)
    return names


def parse_contributors(text: str) -> list[Contributor]:
    """Parse ``git shortlog -sne`` output."""
    contributors: list[Contributor] = []
    for raw_line in text.splitlines():
        match = _CONTRIBUTOR_RE.match(raw_line)
        if not match:
            continue
        count, identity = match.groups()
        email_match = _EMAIL_RE.match(identity)
        if email_match:
            name, email = email_match.group(1).strip(), email_match.group(2).strip()
        else:
            name, email = identity, ""
        contributors.append(Contributor(name=name, email=email, commit_count=int(count)))
    return contributors


def parse_branches(text: str) -> list[str]:
    """Parse ``git branch -a`` output into unique short branch names."""
    branches: list[str] = []
    for raw_line in text.splitlines():
        line = raw_line.strip().lstrip("*").strip()
        if not line or "->" in line or line.startswith("("):
            continue
        for prefix in ("remotes/origin/", "origin/"):
            if line.startswith(prefix):
                line = line[len(prefix):]
        if line not in branches:
            branches.append(line)
    return branches
