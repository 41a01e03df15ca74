"""Provider dialects — map the RepositorySource operations onto REST shapes.

Each dialect knows one provider's endpoints and JSON field names.  Requests
go through the ``get`` callable supplied by :class:`RestApiSource`, which
owns the HTTP client and error translation.
"""

from __future__ import annotations

import base64
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from typing import Any
from urllib.parse import quote

import httpx

from repo_access.domain.entities import (
    Commit,
    Diff,
    DiffFile,
    DiffOptions,
    DiffStatus,
    GitBlob,
    ListCommitsOptions,
    RepositoryInfo,
    Signature,
    TreeEntry,
    TreeEntryType,
)
from repo_access.services.plumbing_parser import normalize_timestamp

logger = logging.getLogger(__name__)

ApiGet = Callable[[str, Mapping[str, str] | None], Awaitable[httpx.Response]]

DEFAULT_PAGE_SIZE = 30
MAX_PAGE_SIZE = 100


def page_window(skip: int, max_count: int, limit: int = MAX_PAGE_SIZE) -> tuple[int, int, int, int]:
    """Translate ``skip``/``max_count`` into ``(first_page, per_page, pages, offset)``.

    Picks the smallest page size (up to *limit*) for which the window
    ``[skip, skip + max_count)`` falls inside a single page.  When none does,
    the window is covered by consecutive pages of *limit* items.  Either way
    the caller concatenates *pages* pages starting at *first_page* and slices
    ``offset:offset + max_count`` out of them.
    """
    skip = max(skip, 0)
    max_count = max(max_count, 1)
    for size in range(max_count, limit + 1):
        if skip // size == (skip + max_count - 1) // size:
            return skip // size + 1, size, 1, skip % size
    first = skip // limit
    last = (skip + max_count - 1) // limit
    return first + 1, limit, last - first + 1, skip % limit


def _decode_content(raw: bytes) -> str | bytes:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw


def _decode_blob_payload(data: Mapping[str, Any]) -> bytes:
    content = data.get("content") or ""
    if data.get("encoding") == "base64":
        return base64.b64decode("".join(content.split()))
    return content.encode("utf-8")


def _truncate_at(commits: list[Commit], stop: str | None) -> list[Commit]:
    """Drop *stop* and everything after it (mirrors ``stop..tip``)."""
    if not stop:
        return commits
    for index, commit in enumerate(commits):
        if commit.id == stop or commit.id.startswith(stop.lower()):
            return commits[:index]
    return commits


class ApiDialect(ABC):
    """Base class holding the repository coordinates and the request hook."""

    def __init__(self, info: RepositoryInfo, get: ApiGet) -> None:
        self._info = info
        self._get = get

    @staticmethod
    def auth_headers(token: str | None) -> dict[str, str]:
        return {}

    @abstractmethod
    async def resolve_ref(self, ref: str) -> str: ...

    @abstractmethod
    async def list_commits(self, opts: ListCommitsOptions) -> list[Commit]: ...

    @abstractmethod
    async def get_commit(self, oid: str) -> Commit: ...

    @abstractmethod
    async def get_tree(self, oid: str, path: str | None = None) -> list[TreeEntry]: ...

    @abstractmethod
    async def get_blob(self, oid: str) -> GitBlob: ...

    @abstractmethod
    async def diff(self, base: str, head: str, opts: DiffOptions) -> Diff: ...

    @abstractmethod
    async def default_branch(self) -> str: ...

    async def _commit_window(
        self,
        endpoint: str,
        params: Mapping[str, str],
        opts: ListCommitsOptions,
        parse: Callable[[Mapping[str, Any]], Commit],
    ) -> list[Commit]:
        """Items ``[skip, skip + max_count)`` of a paginated commit listing."""
        max_count = opts.max_count if opts.max_count is not None else DEFAULT_PAGE_SIZE
        if max_count <= 0:
            return []
        first, per_page, pages, offset = page_window(opts.skip or 0, max_count)
        items: list[Mapping[str, Any]] = []
        for page in range(first, first + pages):
            query = {**params, "page": str(page), "per_page": str(per_page)}
            resp = await self._get(endpoint, query)
            batch = resp.json()
            items.extend(batch)
            if len(batch) < per_page:
                break
        commits = [parse(item) for item in items[offset : offset + max_count]]
        return _truncate_at(commits, opts.from_)


# ── GitHub ──────────────────────────────────────────────────────────────────

_GITHUB_STATUS = {
    "added": DiffStatus.ADDED,
    "removed": DiffStatus.DELETED,
    "modified": DiffStatus.MODIFIED,
    "renamed": DiffStatus.RENAMED,
    "copied": DiffStatus.COPIED,
    "changed": DiffStatus.MODIFIED,
    "unchanged": DiffStatus.MODIFIED,
}

_TREE_TYPES = {
    "blob": TreeEntryType.BLOB,
    "tree": TreeEntryType.TREE,
    "commit": TreeEntryType.SUBMODULE,
}


class GitHubDialect(ApiDialect):
    """GitHub v3 REST API."""

    @staticmethod
    def auth_headers(token: str | None) -> dict[str, str]:
        headers = {"Accept": "application/vnd.github.v3+json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    @property
    def _repo(self) -> str:
        return f"/repos/{self._info.owner}/{self._info.name}"

    async def resolve_ref(self, ref: str) -> str:
        resp = await self._get(f"{self._repo}/commits/{quote(ref, safe='/')}", None)
        return str(resp.json()["sha"]).lower()

    async def list_commits(self, opts: ListCommitsOptions) -> list[Commit]:
        params = {"sha": opts.to} if opts.to else {}
        return await self._commit_window(f"{self._repo}/commits", params, opts, self._commit)

    async def get_commit(self, oid: str) -> Commit:
        resp = await self._get(f"{self._repo}/commits/{quote(oid, safe='/')}", None)
        return self._commit(resp.json())

    async def get_tree(self, oid: str, path: str | None = None) -> list[TreeEntry]:
        resp = await self._get(f"{self._repo}/git/trees/{quote(oid, safe='')}", {"recursive": "1"})
        data = resp.json()
        if data.get("truncated"):
            logger.warning("Tree %s of %s was truncated by the API", oid, self._info.full_name)
        entries = [
            TreeEntry(
                path=item["path"],
                mode=str(item.get("mode", "")),
                oid=item["sha"],
                type=_TREE_TYPES.get(item.get("type", "blob"), TreeEntryType.BLOB),
            )
            for item in data.get("tree", [])
        ]
        return _filter_path(entries, path)

    async def get_blob(self, oid: str) -> GitBlob:
        resp = await self._get(f"{self._repo}/git/blobs/{quote(oid, safe='')}", None)
        data = resp.json()
        raw = _decode_blob_payload(data)
        return GitBlob(oid=oid, size=int(data.get("size", len(raw))), content=_decode_content(raw))

    async def diff(self, base: str, head: str, opts: DiffOptions) -> Diff:
        spec = f"{quote(base, safe='/')}...{quote(head, safe='/')}"
        resp = await self._get(f"{self._repo}/compare/{spec}", None)
        files = tuple(
            DiffFile(
                path=item["filename"],
                status=_GITHUB_STATUS.get(item.get("status", ""), DiffStatus.MODIFIED),
                old_path=item.get("previous_filename"),
                patch=item.get("patch"),
            )
            for item in resp.json().get("files", [])
        )
        return Diff(from_commit=base, to_commit=head, files=files)

    async def default_branch(self) -> str:
        resp = await self._get(self._repo, None)
        return str(resp.json().get("default_branch") or self._info.default_branch)

    @staticmethod
    def _commit(data: Mapping[str, Any]) -> Commit:
        detail = data.get("commit", {})

        def signature(key: str) -> Signature:
            person = detail.get(key) or {}
            return Signature(
                name=person.get("name", ""),
                email=person.get("email", ""),
                timestamp=normalize_timestamp(person.get("date", "")),
            )

        return Commit(
            id=str(data["sha"]).lower(),
            parents=tuple(p["sha"] for p in data.get("parents") or []),
            author=signature("author"),
            committer=signature("committer"),
            message=detail.get("message", ""),
        )


# ── GitLab ──────────────────────────────────────────────────────────────────


class GitLabDialect(ApiDialect):
    """GitLab v4 REST API; the project id is the URL-encoded full path."""

    @staticmethod
    def auth_headers(token: str | None) -> dict[str, str]:
        return {"PRIVATE-TOKEN": token} if token else {}

    @property
    def _project(self) -> str:
        return f"/projects/{quote(self._info.full_name, safe='')}"

    async def resolve_ref(self, ref: str) -> str:
        resp = await self._get(
            f"{self._project}/repository/commits/{quote(ref, safe='')}", None
        )
        return str(resp.json()["id"]).lower()

    async def list_commits(self, opts: ListCommitsOptions) -> list[Commit]:
        params: dict[str, str] = {}
        if opts.to:
            params["ref_name"] = opts.to
        if opts.topo:
            params["order"] = "topo"
        return await self._commit_window(
            f"{self._project}/repository/commits", params, opts, self._commit
        )

    async def get_commit(self, oid: str) -> Commit:
        resp = await self._get(
            f"{self._project}/repository/commits/{quote(oid, safe='')}", None
        )
        return self._commit(resp.json())

    async def get_tree(self, oid: str, path: str | None = None) -> list[TreeEntry]:
        params = {"ref": oid, "recursive": "true", "per_page": str(MAX_PAGE_SIZE), "page": "1"}
        if path:
            params["path"] = path
        entries: list[TreeEntry] = []
        while True:
            resp = await self._get(f"{self._project}/repository/tree", params)
            entries.extend(
                TreeEntry(
                    path=item["path"],
                    mode=str(item.get("mode", "")),
                    oid=item["id"],
                    type=_TREE_TYPES.get(item.get("type", "blob"), TreeEntryType.BLOB),
                )
                for item in resp.json()
            )
            next_page = resp.headers.get("x-next-page", "")
            if not next_page:
                return entries
            params = {**params, "page": next_page}

    async def get_blob(self, oid: str) -> GitBlob:
        resp = await self._get(f"{self._project}/repository/blobs/{quote(oid, safe='')}", None)
        data = resp.json()
        raw = _decode_blob_payload(data)
        return GitBlob(oid=oid, size=int(data.get("size", len(raw))), content=_decode_content(raw))

    async def diff(self, base: str, head: str, opts: DiffOptions) -> Diff:
        resp = await self._get(
            f"{self._project}/repository/compare", {"from": base, "to": head}
        )
        files = tuple(self._diff_file(item) for item in resp.json().get("diffs", []))
        return Diff(from_commit=base, to_commit=head, files=files)

    async def default_branch(self) -> str:
        resp = await self._get(self._project, None)
        return str(resp.json().get("default_branch") or self._info.default_branch)

    @staticmethod
    def _diff_file(item: Mapping[str, Any]) -> DiffFile:
        if item.get("new_file"):
            status = DiffStatus.ADDED
        elif item.get("deleted_file"):
            status = DiffStatus.DELETED
        elif item.get("renamed_file"):
            status = DiffStatus.RENAMED
        else:
            status = DiffStatus.MODIFIED
        old_path = item.get("old_path")
        new_path = item.get("new_path") or old_path or ""
        return DiffFile(
            path=new_path,
            status=status,
            old_path=old_path if old_path and old_path != new_path else None,
            patch=item.get("diff"),
        )

    @staticmethod
    def _commit(data: Mapping[str, Any]) -> Commit:
        return Commit(
            id=str(data["id"]).lower(),
            parents=tuple(data.get("parent_ids") or []),
            author=Signature(
                name=data.get("author_name", ""),
                email=data.get("author_email", ""),
                timestamp=normalize_timestamp(data.get("authored_date", "")),
            ),
            committer=Signature(
                name=data.get("committer_name", ""),
                email=data.get("committer_email", ""),
                timestamp=normalize_timestamp(data.get("committed_date", "")),
            ),
            message=data.get("message", ""),
        )


def _filter_path(entries: list[TreeEntry], path: str | None) -> list[TreeEntry]:
    if not path:
        return entries
    prefix = path.rstrip("/")
    return [e for e in entries if e.path == prefix or e.path.startswith(prefix + "/")]


DIALECTS: dict[str, type[ApiDialect]] = {
    "github": GitHubDialect,
    "gitlab": GitLabDialect,
}
