"""Tests for git plumbing output parsers."""

from __future__ import annotations

import pytest

from repo_access.domain.entities import DiffStatus, TreeEntryType
from repo_access.domain.exceptions import RefResolutionError
from repo_access.services.plumbing_parser import (
    normalize_timestamp,
    parse_batch,
    parse_commit,
    parse_diff,
    parse_signature,
    parse_tree,
    unix_to_iso,
)

A, B, C = "a" * 40, "b" * 40, "c" * 40

ROOT_COMMIT = """tree 4b825dc642cb6eb9a060e54bf8d69288fbee4904
author Ada Lovelace <ada@example.com> 1704103200 +0200
committer Bob <bob@example.com> 1704103260 +0000

Subject line

Body paragraph.
"""

SIGNED_MERGE = f"""tree 4b825dc642cb6eb9a060e54bf8d69288fbee4904
parent {A}
parent {B}
author Ada Lovelace <ada@example.com> 1704103200 +0000
committer Ada Lovelace <ada@example.com> 1704103200 +0000
gpgsig -----BEGIN PGP SIGNATURE-----
 
 iQEzBAABCAAdFiEE
 -----END PGP SIGNATURE-----

Merge branch 'feature'
"""

DIFF = """diff --git a/new.txt b/new.txt
new file mode 100644
index 0000000..ce01362
--- /dev/null
+++ b/new.txt
@@ -0,0 +1 @@
+hello
diff --git a/gone.txt b/gone.txt
deleted file mode 100644
index ce01362..0000000
--- a/gone.txt
+++ /dev/null
@@ -1 +0,0 @@
-bye
diff --git a/old.txt b/renamed.txt
similarity index 100%
rename from old.txt
rename to renamed.txt
diff --git a/mod.txt b/mod.txt
index 1111111..2222222 100644
--- a/mod.txt
+++ b/mod.txt
@@ -1 +1 @@
-a
+b
"""


class TestTimestamps:
    def test_unix_to_iso(self) -> None:
        assert unix_to_iso(1704103200) == "2024-01-01T10:00:00Z"

    def test_normalize_offset(self) -> None:
        assert normalize_timestamp("2024-01-03T09:30:00+02:00") == "2024-01-03T07:30:00Z"
        assert normalize_timestamp("2024-01-03T09:30:00Z") == "2024-01-03T09:30:00Z"

    def test_normalize_keeps_garbage(self) -> None:
        assert normalize_timestamp("yesterday") == "yesterday"

    def test_signature(self) -> None:
        sig = parse_signature("Ada Lovelace <ada@example.com> 1704103200 -0500")
        assert sig is not None
        assert (sig.name, sig.email, sig.timestamp) == (
            "Ada Lovelace",
            "ada@example.com",
            "2024-01-01T10:00:00Z",
        )
        assert parse_signature("garbage") is None


class TestParseCommit:
    def test_root_commit(self) -> None:
        commit = parse_commit(A, ROOT_COMMIT)
        assert commit.id == A
        assert commit.is_root
        assert commit.author.name == "Ada Lovelace"
        assert commit.author.timestamp == "2024-01-01T10:00:00Z"
        assert commit.committer.name == "Bob"
        assert commit.committer.timestamp == "2024-01-01T10:01:00Z"
        assert commit.message == "Subject line\n\nBody paragraph."

    def test_signed_merge(self) -> None:
        commit = parse_commit(C, SIGNED_MERGE)
        assert commit.parents == (A, B)
        assert commit.is_merge
        assert commit.message == "Merge branch 'feature'"


class TestParseTree:
    def test_nul_separated(self) -> None:
        data = (
            f"100644 blob {A}\tREADME.md\0"
            f"040000 tree {B}\tsrc\0"
            f"100644 blob {C}\tsrc/with space.py\0"
            f"160000 commit {A}\tvendor/lib\0"
        )
        entries = parse_tree(data)
        assert [e.path for e in entries] == ["README.md", "src", "src/with space.py", "vendor/lib"]
        assert [e.type for e in entries] == [
            TreeEntryType.BLOB,
            TreeEntryType.TREE,
            TreeEntryType.BLOB,
            TreeEntryType.SUBMODULE,
        ]
        assert entries[0].mode == "100644"

    def test_newline_separated(self) -> None:
        entries = parse_tree(f"100644 blob {A}\ta.txt\n100755 blob {B}\tbin/run\n")
        assert [e.oid for e in entries] == [A, B]

    def test_empty(self) -> None:
        assert parse_tree("") == []

    def test_invalid_line(self) -> None:
        with pytest.raises(ValueError):
            parse_tree("not a tree line\n")


class TestParseDiff:
    def test_statuses(self) -> None:
        diff = parse_diff(A, B, DIFF)
        assert (diff.from_commit, diff.to_commit) == (A, B)
        summary = [(f.path, f.status, f.old_path) for f in diff.files]
        assert summary == [
            ("new.txt", DiffStatus.ADDED, None),
            ("gone.txt", DiffStatus.DELETED, None),
            ("renamed.txt", DiffStatus.RENAMED, "old.txt"),
            ("mod.txt", DiffStatus.MODIFIED, None),
        ]

    def test_patch_is_verbatim(self) -> None:
        added = parse_diff(A, B, DIFF).files[0]
        assert added.patch is not None
        assert added.patch.startswith("new file mode 100644\n")
        assert added.patch.endswith("+hello\n")

    def test_copy(self) -> None:
        data = "diff --git a/a.txt b/b.txt\nsimilarity index 100%\ncopy from a.txt\ncopy to b.txt\n"
        (copied,) = parse_diff(A, B, data).files
        assert copied.status is DiffStatus.COPIED
        assert (copied.old_path, copied.path) == ("a.txt", "b.txt")

    def test_empty(self) -> None:
        assert parse_diff(A, B, "").files == ()


class TestParseBatch:
    def test_records_in_order(self) -> None:
        data = f"{A} commit 5\nhello\n{B} commit 3\nbye\n".encode()
        assert parse_batch(data) == [(A, "commit", b"hello"), (B, "commit", b"bye")]

    def test_body_may_contain_newlines(self) -> None:
        data = f"{A} commit 11\nline1\nline2\n".encode()
        assert parse_batch(data) == [(A, "commit", b"line1\nline2")]

    def test_missing_object(self) -> None:
        with pytest.raises(RefResolutionError):
            parse_batch(f"{A} missing\n".encode())
