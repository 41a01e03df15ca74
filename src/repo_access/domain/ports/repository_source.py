"""Port: repository source — defined by the domain, implemented by infrastructure."""

from __future__ import annotations

from typing import Protocol

from repo_access.domain.entities import (
    Commit,
    Diff,
    DiffOptions,
    GitBlob,
    ListCommitsOptions,
    RepositoryInfo,
    TreeEntry,
)


class RepositorySource(Protocol):
    """Read-only contract shared by the plumbing and the HTTP API backends."""

    async def init(self, local_dir: str, remote_url: str) -> None:
        """Prepare the source for *remote_url* (clone, attach or validate)."""
        ...

    async def update(self, refs: list[str] | None = None) -> None:
        """Fetch the latest state of *refs* (default: all branches)."""
        ...

    async def resolve_ref(self, ref: str) -> str:
        """Resolve a branch, tag or revision expression to a commit id."""
        ...

    async def list_commits(self, opts: ListCommitsOptions | None = None) -> list[Commit]:
        """Walk history and return commits in the native walk order."""
        ...

    async def get_commit(self, oid: str) -> Commit:
        """Return one commit by id."""
        ...

    async def get_tree(self, oid: str, path: str | None = None) -> list[TreeEntry]:
        """Return the recursive tree of a commit, optionally under *path*."""
        ...

    async def get_blob(self, oid: str) -> GitBlob:
        """Return the content and size of a blob."""
        ...

    async def diff(self, base: str, head: str, opts: DiffOptions | None = None) -> Diff:
        """Return the per-file changes between two commits."""
        ...

    async def get_repository_info(self) -> RepositoryInfo:
        """Return the descriptor, with the default branch refined if possible."""
        ...
