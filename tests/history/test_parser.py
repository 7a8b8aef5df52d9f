"""Tests for git_vitals.history.parser."""

from datetime import datetime, timedelta, timezone

import pytest

from git_vitals.history.parser import (
    parse_branches,
    parse_commit_stats,
    parse_commits,
    parse_contributors,
    parse_tags,
    parse_timestamp,
    resolve_rename,
)

HASH_A = "a" * 40
HASH_B = "b" * 40


class TestParseTimestamp:
    """Tests for timestamp parsing."""

    def test_git_iso_format_keeps_offset(self):
        """%ai output keeps the author's UTC offset."""
        moment = parse_timestamp("2024-01-15 10:30:00 +0200")
        assert moment.utcoffset() == timedelta(hours=2)
        assert moment.hour == 10

    def test_strict_iso_with_z(self):
        """%aI-style Z suffix is UTC."""
        moment = parse_timestamp("2024-01-15T10:30:00Z")
        assert moment == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    def test_naive_is_utc(self):
        """Timestamps without an offset are treated as UTC."""
        moment = parse_timestamp("2024-01-15 10:30:00")
        assert moment.tzinfo is not None
        assert moment.utcoffset() == timedelta(0)

    def test_garbage_raises(self):
        """Unrecognized text raises ValueError."""
        with pytest.raises(ValueError):
            parse_timestamp("yesterday-ish")


class TestResolveRename:
    """Tests for numstat rename notation."""

    def test_plain_path_unchanged(self):
        assert resolve_rename("src/app.py") == "src/app.py"

    def test_arrow_rename(self):
        assert resolve_rename("old.py => new.py") == "new.py"

    def test_brace_rename(self):
        assert resolve_rename("src/{old => new}/mod.py") == "src/new/mod.py"

    def test_brace_rename_into_parent(self):
        """An empty destination segment collapses the double slash."""
        assert resolve_rename("src/{pkg => }/mod.py") == "src/mod.py"


class TestParseCommitStats:
    """Tests for header + numstat parsing."""

    def test_empty_input(self):
        """Empty input yields no commits."""
        assert parse_commit_stats("") == []

    def test_header_with_files(self):
        """Numstat lines attach to the preceding header."""
        text = (
            f"{HASH_A}|Alice|alice@example.com|2024-01-15 10:00:00 +0000|feat: add export\n"
            "\n"
            "10\t2\tsrc/export.py\n"
            "3\t0\tREADME.md\n"
        )
        commits = parse_commit_stats(text)

        assert len(commits) == 1
        commit = commits[0]
        assert commit.hash == HASH_A
        assert commit.author == "Alice"
        assert commit.author_email == "alice@example.com"
        assert commit.message == "feat: add export"
        assert commit.additions == 13
        assert commit.deletions == 2
        assert commit.filenames == frozenset({"src/export.py", "README.md"})

    def test_multiple_commits(self):
        """Each header starts a new commit."""
        text = (
            f"{HASH_A}|Alice|a@x.io|2024-01-15 10:00:00 +0000|first\n"
            "1\t1\ta.py\n"
            f"{HASH_B}|Bob|b@x.io|2024-01-16 10:00:00 +0000|second\n"
            "2\t0\tb.py\n"
        )
        commits = parse_commit_stats(text)

        assert [c.hash for c in commits] == [HASH_A, HASH_B]
        assert commits[0].filenames == frozenset({"a.py"})
        assert commits[1].filenames == frozenset({"b.py"})

    def test_subject_may_contain_separator(self):
        """Pipes after the fourth field belong to the subject."""
        text = f"{HASH_A}|Alice|a@x.io|2024-01-15 10:00:00 +0000|fix: a | b parsing\n"
        commits = parse_commits(text)
        assert commits[0].message == "fix: a | b parsing"

    def test_binary_counts_as_zero(self):
        """'-' numstat columns count as zero lines."""
        text = f"{HASH_A}|Alice|a@x.io|2024-01-15 10:00:00 +0000|logo\n-\t-\tlogo.png\n"
        commit = parse_commit_stats(text)[0]
        assert commit.filenames == frozenset({"logo.png"})
        assert commit.additions == 0
        assert commit.deletions == 0

    def test_hash_is_lowercased(self):
        text = f"{'A' * 40}|Alice|a@x.io|2024-01-15 10:00:00 +0000|x\n"
        assert parse_commits(text)[0].hash == "a" * 40

    def test_malformed_header_skipped(self):
        """A bad header is dropped with its files, later commits survive."""
        text = (
            f"{HASH_A}|Alice|a@x.io|2024-01-15 10:00:00 +0000|good\n"
            "1\t0\tgood.py\n"
            "not-a-hash|Bob|b@x.io|2024-01-15 11:00:00 +0000|bad\n"
            "5\t5\tleaked.py\n"
            f"{HASH_B}|Carol|c@x.io|2024-01-15 12:00:00 +0000|also good\n"
        )
        commits = parse_commit_stats(text)

        assert [c.hash for c in commits] == [HASH_A, HASH_B]
        assert commits[0].filenames == frozenset({"good.py"})
        assert commits[1].files == ()

    def test_bad_timestamp_skipped(self):
        text = f"{HASH_A}|Alice|a@x.io|someday|oops\n"
        assert parse_commits(text) == []

    def test_wrong_field_count_skipped(self):
        text = f"{HASH_A}|Alice|2024-01-15 10:00:00 +0000\n"
        assert parse_commits(text) == []

    def test_numstat_before_any_header_ignored(self):
        text = "3\t1\torphan.py\n" f"{HASH_A}|Alice|a@x.io|2024-01-15 10:00:00 +0000|x\n"
        commits = parse_commit_stats(text)
        assert len(commits) == 1
        assert commits[0].files == ()

    def test_rename_resolved_in_numstat(self):
        text = f"{HASH_A}|Alice|a@x.io|2024-01-15 10:00:00 +0000|move\n" "0\t0\tsrc/{a => b}/m.py\n"
        assert parse_commit_stats(text)[0].filenames == frozenset({"src/b/m.py"})


class TestParseTags:
    """Tests for tag line parsing."""

    def test_for_each_ref_lines(self):
        text = "v1.0.0|2024-01-15 10:00:00 +0000\nv1.1.0|2024-01-25 10:00:00 +0000\n"
        tags = parse_tags(text)
        assert [t.name for t in tags] == ["v1.0.0", "v1.1.0"]
        assert tags[1].date - tags[0].date == timedelta(days=10)

    def test_decoration_lines(self):
        """%D decorations yield every tag and no branches."""
        text = "HEAD -> main, tag: v2.0.0, tag: release-2|2024-02-01 09:00:00 +0000\n"
        assert [t.name for t in parse_tags(text)] == ["v2.0.0", "release-2"]

    def test_branch_only_decoration_has_no_tags(self):
        text = "HEAD -> main, origin/main|2024-02-01 09:00:00 +0000\n"
        assert parse_tags(text) == []

    def test_bad_lines_skipped(self):
        text = "no separator here\nv1.0.0|not a date\nv1.2.0|2024-03-01 00:00:00 +0000\n"
        assert [t.name for t in parse_tags(text)] == ["v1.2.0"]

    def test_empty_input(self):
        assert parse_tags("") == []


class TestParseContributors:
    """Tests for shortlog parsing."""

    def test_shortlog_lines(self):
        text = "    42\tAlice Smith <alice@example.com>\n     7\tBob <bob@example.com>\n"
        contributors = parse_contributors(text)

        assert len(contributors) == 2
        assert contributors[0].name == "Alice Smith"
        assert contributors[0].email == "alice@example.com"
        assert contributors[0].commit_count == 42
        assert contributors[1].commit_count == 7

    def test_missing_email(self):
        contributors = parse_contributors("3\tNo Mail\n")
        assert contributors[0].name == "No Mail"
        assert contributors[0].email == ""

    def test_garbage_skipped(self):
        assert parse_contributors("garbage line\n") == []


class TestParseBranches:
    """Tests for `git branch -a` parsing."""

    def test_strips_markers_and_remotes(self):
        text = (
            "* main\n"
            "  feature/login\n"
            "  remotes/origin/HEAD -> origin/main\n"
            "  remotes/origin/main\n"
            "  remotes/origin/release\n"
        )
        assert parse_branches(text) == ["main", "feature/login", "release"]

    def test_detached_head_skipped(self):
        text = "* (HEAD detached at 1a2b3c4)\n  main\n"
        assert parse_branches(text) == ["main"]
