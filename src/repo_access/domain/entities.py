"""Domain entities — pure data structures with no external dependencies."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class TreeEntryType(str, Enum):
    """Kind of object a tree entry points at."""

    BLOB = "blob"
    TREE = "tree"
    SUBMODULE = "submodule"


class DiffStatus(str, Enum):
    """How a file changed between two commits."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"
    COPIED = "copied"


class CredentialType(str, Enum):
    """Transport an authentication strategy applies to."""

    HTTPS = "https"
    SSH = "ssh"


@dataclass(frozen=True, slots=True)
class RepositoryInfo:
    """Canonical descriptor of a remote repository.

    ``default_branch`` is a provider convention until a backend has asked the
    remote for its real default ref.  ``clone_url`` is the remote exactly as
    the caller gave it (trimmed), port, nested path and ``.git`` suffix included.
    """

    url: str
    host: str
    owner: str
    name: str
    default_branch: str = "main"
    clone_url: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True, slots=True)
class Signature:
    """Author or committer identity with an ISO-8601 UTC timestamp."""

    name: str
    email: str
    timestamp: str


@dataclass(frozen=True, slots=True)
class Commit:
    """A commit object; ``parents`` are ordered first-parent first."""

    id: str
    parents: tuple[str, ...]
    author: Signature
    committer: Signature
    message: str

    @property
    def is_root(self) -> bool:
        return not self.parents

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1


@dataclass(frozen=True, slots=True)
class TreeEntry:
    """A single item from a recursive tree listing."""

    path: str
    mode: str
    oid: str
    type: TreeEntryType


@dataclass(frozen=True, slots=True)
class GitBlob:
    """File content addressed by ``oid``.

    ``content`` is text when the payload decodes as UTF-8, raw bytes otherwise.
    """

    oid: str
    size: int
    content: str | bytes

    @property
    def is_text(self) -> bool:
        return isinstance(self.content, str)


@dataclass(frozen=True, slots=True)
class DiffFile:
    """One file's entry in a diff."""

    path: str
    status: DiffStatus
    old_path: str | None = None
    patch: str | None = None


@dataclass(frozen=True, slots=True)
class Diff:
    """Changes between two commits."""

    from_commit: str
    to_commit: str
    files: tuple[DiffFile, ...] = ()


@dataclass(frozen=True, slots=True)
class CredentialInfo:
    """Authentication strategy for one host.

    Only the HTTPS fields (``username``, ``token_or_password``) or the SSH
    fields (``private_key_path``, ``passphrase``, ``ssh_agent``) are set.
    """

    type: CredentialType
    username: str | None = None
    token_or_password: str | None = None
    private_key_path: str | None = None
    passphrase: str | None = None
    ssh_agent: str | None = None

    @classmethod
    def anonymous(cls) -> CredentialInfo:
        """No-auth HTTPS strategy used for public access."""
        return cls(type=CredentialType.HTTPS)

    @property
    def has_token(self) -> bool:
        return self.type is CredentialType.HTTPS and bool(self.token_or_password)

    def __repr__(self) -> str:
        # Secrets stay out of logs and tracebacks.
        return (
            f"CredentialInfo(type={self.type.value!r}, username={self.username!r}, "
            f"has_token={self.has_token}, private_key_path={self.private_key_path!r}, "
            f"ssh_agent={self.ssh_agent!r})"
        )


@dataclass(frozen=True, slots=True)
class ListCommitsOptions:
    """History walk options; ``from_`` excludes its own ancestry."""

    from_: str | None = None
    to: str | None = None
    topo: bool = False
    max_count: int | None = None
    skip: int | None = None


@dataclass(frozen=True, slots=True)
class DiffOptions:
    include_renames: bool = False
    include_copies: bool = False
    context_lines: int | None = None


@dataclass(frozen=True, slots=True)
class FormattedCommit:
    """Caller-facing commit shape used by commit lists."""

    sha: str
    message: str
    author_name: str
    commit_date: str
    author_html_url: str | None = None
    html_url: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "sha": self.sha,
            "message": self.message,
            "author": {"name": self.author_name, "html_url": self.author_html_url},
            "commit_date": self.commit_date,
            "html_url": self.html_url,
        }


@dataclass(frozen=True, slots=True)
class CommitGroup:
    """Commits sharing the same author calendar day (``YYYY-MM-DD``)."""

    date: str
    commits: list[FormattedCommit] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {"date": self.date, "commits": [c.to_dict() for c in self.commits]}
