"""Process-wide repository service — the catch-to-absence boundary.

Callers (page renderers, background jobs) get ``None`` instead of an
exception whenever a repository cannot be reached or a ref does not exist.
Every failure is logged once here, at WARNING, and nowhere else.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TYPE_CHECKING, TypeVar

from repo_access.domain.entities import (
    CommitGroup,
    ListCommitsOptions,
    RepositoryInfo,
    TreeEntryType,
)
from repo_access.domain.ports.repository_source import RepositorySource
from repo_access.services.commit_formatter import (
    format_commit,
    group_commits_by_date,
    to_api_commit,
)
from repo_access.services.url_parser import GitUrlParser

if TYPE_CHECKING:
    from repo_access.infrastructure.repository_cache import RepositoryCache

logger = logging.getLogger(__name__)

T = TypeVar("T")

README_PATH = "README.md"


def _local_dir_name(info: RepositoryInfo, key: str, known_host: bool) -> str:
    raw = f"{info.host}-{info.owner}-{info.name}"
    if not known_host:
        # generic hosts keep only the first path segment as owner
        raw += "-" + hashlib.sha1(key.encode("utf-8")).hexdigest()[:10]
    return raw.replace("/", "-").replace("\\", "-").replace(":", "-").lstrip(".") or "repo"


class GitRepositoryService:
    """Read-only repository queries keyed by remote URL.

    Parameters
    ----------
    create_source:
        Returns a fresh, uninitialised ``RepositorySource``; called once per
        remote the first time it is requested.
    cache:
        Holds initialised sources keyed by :meth:`GitUrlParser.canonical_url`.
    url_parser:
        Normalises caller URLs.
    repos_dir:
        Parent directory for the plumbing backend's local clones.
    """

    def __init__(
        self,
        create_source: Callable[[], RepositorySource],
        cache: RepositoryCache,
        url_parser: GitUrlParser,
        repos_dir: Path,
    ) -> None:
        self._create_source = create_source
        self._cache = cache
        self._parser = url_parser
        self._repos_dir = Path(repos_dir)

    # ── Public API ──────────────────────────────────────────────────────

    async def get_commit_history(
        self,
        owner: str,
        repo: str,
        page: int = 1,
        per_page: int = 30,
        host: str = "github.com",
    ) -> list[CommitGroup] | None:
        """One page of history in topological order, grouped by author day."""
        remote_url = f"https://{host}/{owner}/{repo}"

        async def run() -> list[CommitGroup]:
            info = self._parser.parse(remote_url)
            source = await self._repository(remote_url)
            opts = ListCommitsOptions(
                topo=True,
                max_count=max(per_page, 0),
                skip=max(page - 1, 0) * max(per_page, 0),
            )
            commits = await source.list_commits(opts)
            return group_commits_by_date(format_commit(c, info) for c in commits)

        return await self._absent_on_error(f"get commit history for {owner}/{repo}", run())

    async def get_commit_data_from_sha(
        self,
        owner: str,
        repo: str,
        sha: str,
        host: str = "github.com",
    ) -> dict[str, object] | None:
        """GitHub-compatible record of commit *sha*."""
        return await self._absent_on_error(
            f"get commit {sha} of {owner}/{repo}",
            self._commit_record(f"https://{host}/{owner}/{repo}", sha),
        )

    async def get_latest_commit_data(
        self, config_url: str, sha: str
    ) -> dict[str, object] | None:
        """Same record as :meth:`get_commit_data_from_sha`, addressed by URL."""
        return await self._absent_on_error(
            f"get commit {sha} of {config_url}", self._commit_record(config_url, sha)
        )

    async def get_latest_commit_hash(self, remote_url: str) -> str | None:
        """Tip of the remote's default branch."""

        async def run() -> str:
            source = await self._repository(remote_url)
            info = await source.get_repository_info()
            return await source.resolve_ref(info.default_branch)

        return await self._absent_on_error(f"get latest commit of {remote_url}", run())

    async def fetch_file_content_from_git(
        self, remote_url: str, file_path: str, ref: str = "HEAD"
    ) -> str | None:
        """Text of *file_path* at *ref*; binary files and directories yield ``None``."""

        async def run() -> str | None:
            source = await self._repository(remote_url)
            commit_id = await source.resolve_ref(ref)
            entries = await source.get_tree(commit_id)
            entry = next((e for e in entries if e.path == file_path), None)
            if entry is None or entry.type is not TreeEntryType.BLOB:
                return None
            blob = await source.get_blob(entry.oid)
            return blob.content if isinstance(blob.content, str) else None

        return await self._absent_on_error(
            f"fetch {file_path}@{ref} from {remote_url}", run()
        )

    async def fetch_readme_content(self, remote_url: str) -> str | None:
        return await self.fetch_file_content_from_git(remote_url, README_PATH)

    # ── Internals ───────────────────────────────────────────────────────

    async def _commit_record(self, remote_url: str, sha: str) -> dict[str, object]:
        info = self._parser.parse(remote_url)
        source = await self._repository(remote_url)
        commit = await source.get_commit(sha)
        return to_api_commit(commit, info)

    async def _repository(self, remote_url: str) -> RepositorySource:
        info = self._parser.parse(remote_url)
        key = self._parser.canonical_url(remote_url)
        local_dir = self._repos_dir / _local_dir_name(
            info, key, self._parser.is_supported_host(info.host)
        )

        async def build() -> RepositorySource:
            source = self._create_source()
            await source.init(str(local_dir), remote_url)
            await source.update()
            return source

        return await self._cache.get_or_create(key, build)

    @staticmethod
    async def _absent_on_error(action: str, operation: Awaitable[T]) -> T | None:
        try:
            return await operation
        except Exception as exc:
            logger.warning("Failed to %s: %s", action, exc)
            return None
