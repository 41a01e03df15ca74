"""Query use case behind ``GET /api/git`` — reads from on-disk mirrors.

Unlike :class:`GitRepositoryService` this raises: the interface layer maps
each domain error onto an HTTP status.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from repo_access.domain.entities import ListCommitsOptions, TreeEntryType
from repo_access.domain.exceptions import InputValidationError, PathNotFoundError
from repo_access.services.commit_formatter import (
    format_commit,
    group_commits_by_date,
    to_api_commit,
)
from repo_access.services.input_validation import (
    DEFAULT_DEPTH,
    sanitize_file_path,
    sanitize_page,
    sanitize_per_page,
    sanitize_repo_url,
    sanitize_revision,
)

if TYPE_CHECKING:
    from repo_access.infrastructure.mirror_store import MirrorStore

logger = logging.getLogger(__name__)

ACTIONS = ("history", "commit", "latest", "file")


class GitQueryService:
    """Dispatches the ``action`` query parameter to a mirror read."""

    def __init__(self, mirrors: MirrorStore) -> None:
        self._mirrors = mirrors

    async def handle(
        self,
        action: str | None,
        repo_url: str | None,
        *,
        page: object = None,
        per_page: object = None,
        sha: str | None = None,
        path: str | None = None,
    ) -> object:
        """Validate every parameter, then run *action*."""
        url = sanitize_repo_url(repo_url)
        if action == "history":
            return await self.history(url, sanitize_page(page), sanitize_per_page(per_page))
        if action == "commit":
            return await self.commit(url, sanitize_revision(sha))
        if action == "latest":
            return await self.latest(url)
        if action == "file":
            return await self.file(url, sanitize_file_path(path))
        raise InputValidationError("Unsupported action")

    async def history(self, repo_url: str, page: int, per_page: int) -> list[dict[str, object]]:
        # The mirror keeps one extra page so "next page" is cheap to serve.
        source = await self._mirrors.ensure(repo_url, page * per_page + per_page)
        commits = await source.list_commits(
            ListCommitsOptions(max_count=per_page, skip=(page - 1) * per_page)
        )
        groups = group_commits_by_date(format_commit(c) for c in commits)
        return [group.to_dict() for group in groups]

    async def commit(self, repo_url: str, sha: str) -> dict[str, object]:
        source = await self._mirrors.ensure(repo_url, DEFAULT_DEPTH)
        commit_id = await source.resolve_ref(sha)
        return to_api_commit(await source.get_commit(commit_id))

    async def latest(self, repo_url: str) -> dict[str, str]:
        source = await self._mirrors.ensure(repo_url, 1)
        return {"sha": await source.resolve_ref("HEAD")}

    async def file(self, repo_url: str, path: str) -> dict[str, str]:
        source = await self._mirrors.ensure(repo_url, 1)
        head = await source.resolve_ref("HEAD")
        entries = await source.get_tree(head, path)
        entry = next((e for e in entries if e.path == path), None)
        if entry is None or entry.type is not TreeEntryType.BLOB:
            raise PathNotFoundError(path, "HEAD")
        blob = await source.get_blob(entry.oid)
        content = blob.content
        if isinstance(content, bytes):
            logger.debug("%s is not UTF-8, decoding with replacement", path)
            content = content.decode("utf-8", errors="replace")
        return {"content": content}
