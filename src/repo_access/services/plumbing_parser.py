"""Parsers for ``git`` plumbing output.

All functions are pure: text (or bytes) in, domain objects out.  The diff
parser is structural only — it keeps file boundaries and status
classification and leaves hunks untouched.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone

from repo_access.domain.entities import (
    Commit,
    Diff,
    DiffFile,
    DiffStatus,
    Signature,
    TreeEntry,
    TreeEntryType,
)
from repo_access.domain.exceptions import RefResolutionError

_SIGNATURE_RE = re.compile(r"^(?P<name>.*?) <(?P<email>[^>]*)> (?P<ts>-?\d+) (?P<tz>[+-]\d{4})$")
_TREE_LINE_RE = re.compile(
    r"^(?P<mode>\d+) (?P<type>blob|tree|commit) (?P<oid>[0-9a-f]{40,64})\t(?P<path>.+)$",
    re.DOTALL,
)
_DIFF_HEADER_RE = re.compile(r"^diff --git a/(?P<old>.+) b/(?P<new>.+)$")

_EMPTY_SIGNATURE = Signature(name="", email="", timestamp="")


def unix_to_iso(seconds: int) -> str:
    """Unix timestamp to ``YYYY-MM-DDTHH:MM:SSZ`` in UTC."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def normalize_timestamp(value: str) -> str:
    """Any ISO-8601 timestamp with an offset to the UTC ``...Z`` form.

    Values that do not parse are returned unchanged.
    """
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_signature(value: str) -> Signature | None:
    """Parse ``Name <email> 1700000000 +0200``; ``None`` when malformed."""
    match = _SIGNATURE_RE.match(value)
    if not match:
        return None
    return Signature(
        name=match["name"],
        email=match["email"],
        timestamp=unix_to_iso(int(match["ts"])),
    )


def parse_commit(oid: str, data: str) -> Commit:
    """Parse the raw text of a commit object (``git cat-file -p <oid>``)."""
    parents: list[str] = []
    author = committer = _EMPTY_SIGNATURE
    message = ""

    lines = data.split("\n")
    for index, line in enumerate(lines):
        if line == "":
            message = "\n".join(lines[index + 1 :]).strip()
            break
        if line.startswith(" "):
            # continuation of a multi-line header (gpgsig, mergetag)
            continue
        key, _, value = line.partition(" ")
        if key == "parent":
            parents.append(value.strip())
        elif key == "author":
            author = parse_signature(value) or author
        elif key == "committer":
            committer = parse_signature(value) or committer

    return Commit(
        id=oid,
        parents=tuple(parents),
        author=author,
        committer=committer,
        message=message,
    )


def parse_tree(data: str) -> list[TreeEntry]:
    """Parse ``git ls-tree`` output (NUL- or newline-terminated records)."""
    separator = "\0" if "\0" in data else "\n"
    entries: list[TreeEntry] = []
    for record in data.split(separator):
        if not record.strip():
            continue
        match = _TREE_LINE_RE.match(record.lstrip("\n"))
        if not match:
            raise ValueError(f"Invalid tree line: {record!r}")
        kind = match["type"]
        entries.append(
            TreeEntry(
                path=match["path"],
                mode=match["mode"],
                oid=match["oid"],
                type=TreeEntryType.SUBMODULE if kind == "commit" else TreeEntryType(kind),
            )
        )
    return entries


@dataclass(slots=True)
class _PendingFile:
    path: str
    old_path: str | None
    status: DiffStatus = DiffStatus.MODIFIED
    patch: list[str] = field(default_factory=list)

    def build(self) -> DiffFile:
        return DiffFile(
            path=self.path,
            status=self.status,
            old_path=self.old_path,
            patch="".join(self.patch),
        )


def parse_diff(base: str, head: str, data: str) -> Diff:
    """Split ``git diff-tree -p`` output into per-file records."""
    files: list[DiffFile] = []
    current: _PendingFile | None = None

    for line in data.splitlines():
        header = _DIFF_HEADER_RE.match(line)
        if header:
            if current is not None:
                files.append(current.build())
            old, new = header["old"], header["new"]
            current = _PendingFile(path=new, old_path=old if old != new else None)
            continue
        if current is None:
            continue

        current.patch.append(line + "\n")
        if line.startswith("new file mode"):
            current.status = DiffStatus.ADDED
        elif line.startswith("deleted file mode"):
            current.status = DiffStatus.DELETED
        elif line.startswith("rename from "):
            current.status = DiffStatus.RENAMED
            current.old_path = line.removeprefix("rename from ")
        elif line.startswith("rename to "):
            current.path = line.removeprefix("rename to ")
        elif line.startswith("copy from "):
            current.status = DiffStatus.COPIED
            current.old_path = line.removeprefix("copy from ")
        elif line.startswith("copy to "):
            current.path = line.removeprefix("copy to ")

    if current is not None:
        files.append(current.build())
    return Diff(from_commit=base, to_commit=head, files=tuple(files))


def parse_batch(data: bytes) -> list[tuple[str, str, bytes]]:
    """Split ``git cat-file --batch`` output into ``(oid, type, body)`` records.

    Raises :class:`RefResolutionError` for objects reported as missing.
    """
    records: list[tuple[str, str, bytes]] = []
    pos = 0
    while pos < len(data):
        end = data.find(b"\n", pos)
        if end == -1:
            break
        header = data[pos:end].decode("utf-8", errors="replace")
        pos = end + 1
        if not header:
            continue
        parts = header.split()
        if len(parts) == 2 and parts[1] in ("missing", "ambiguous"):
            raise RefResolutionError(parts[0], f"object {parts[1]}")
        if len(parts) != 3:
            raise ValueError(f"Invalid batch header: {header!r}")
        oid, kind, size = parts[0], parts[1], int(parts[2])
        records.append((oid, kind, data[pos : pos + size]))
        pos += size + 1
    return records
