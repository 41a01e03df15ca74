"""Provider REST API adapter — implements the RepositorySource port over HTTP."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import replace
from datetime import datetime, timezone

import httpx

from repo_access.domain.entities import (
    Commit,
    Diff,
    DiffOptions,
    GitBlob,
    ListCommitsOptions,
    RepositoryInfo,
    TreeEntry,
)
from repo_access.domain.exceptions import InitializationError, RemoteApiError
from repo_access.domain.ports.credential_provider import CredentialProvider
from repo_access.infrastructure.api_dialects import DIALECTS, ApiDialect
from repo_access.services.url_parser import GitUrlParser

logger = logging.getLogger(__name__)

_USER_AGENT = "repo-access/1.0"


class RestApiSource:
    """Concrete ``RepositorySource`` backed by a hosting provider's REST API.

    One HTTP request per operation, except tree listings on paginated
    providers and commit windows spanning several pages.  There is no local
    state to refresh, so :meth:`update` is a no-op.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        credentials: CredentialProvider,
        url_parser: GitUrlParser,
    ) -> None:
        self._client = client
        self._credentials = credentials
        self._parser = url_parser
        self._repo_info: RepositoryInfo | None = None
        self._dialect: ApiDialect | None = None
        self._base_url = ""
        self._headers: dict[str, str] = {"User-Agent": _USER_AGENT}

    async def init(self, local_dir: str, remote_url: str) -> None:
        """Bind to *remote_url*; *local_dir* is unused by this backend."""
        info = self._parser.parse(remote_url)
        provider = self._parser.provider_for(info.host)
        dialect_cls = DIALECTS.get(provider.api_flavor or "")
        if not provider.supports_api or provider.api_base_url is None or dialect_cls is None:
            raise InitializationError(f"No HTTP API available for {info.host}")

        credentials = self._credentials.for_host(info.host)
        token = credentials.token_or_password if credentials.has_token else None

        self._repo_info = info
        self._base_url = provider.api_base_url.rstrip("/")
        self._headers = {"User-Agent": _USER_AGENT, **dialect_cls.auth_headers(token)}
        self._dialect = dialect_cls(info, self._api_get)

    async def update(self, refs: list[str] | None = None) -> None:
        return None

    async def resolve_ref(self, ref: str) -> str:
        return await self._require_dialect().resolve_ref(ref)

    async def list_commits(self, opts: ListCommitsOptions | None = None) -> list[Commit]:
        return await self._require_dialect().list_commits(opts or ListCommitsOptions())

    async def get_commit(self, oid: str) -> Commit:
        return await self._require_dialect().get_commit(oid)

    async def get_tree(self, oid: str, path: str | None = None) -> list[TreeEntry]:
        return await self._require_dialect().get_tree(oid, path)

    async def get_blob(self, oid: str) -> GitBlob:
        return await self._require_dialect().get_blob(oid)

    async def diff(self, base: str, head: str, opts: DiffOptions | None = None) -> Diff:
        return await self._require_dialect().diff(base, head, opts or DiffOptions())

    async def get_repository_info(self) -> RepositoryInfo:
        """GET the repository resource and refine the default branch."""
        info = self._require_info()
        branch = await self._require_dialect().default_branch()
        self._repo_info = replace(info, default_branch=branch)
        return self._repo_info

    def _require_dialect(self) -> ApiDialect:
        if self._dialect is None:
            raise InitializationError("Repository not initialized")
        return self._dialect

    def _require_info(self) -> RepositoryInfo:
        if self._repo_info is None:
            raise InitializationError("Repository not initialized")
        return self._repo_info

    async def _api_get(
        self,
        endpoint: str,
        params: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        """Perform a provider API GET request with error translation."""
        url = f"{self._base_url}{endpoint}"
        logger.debug("GET %s params=%s", url, dict(params or {}))
        try:
            resp = await self._client.get(url, headers=self._headers, params=params)
        except httpx.HTTPError as exc:
            raise RemoteApiError(f"Network error fetching {url}: {exc}", url=url) from exc

        if resp.is_success:
            return resp

        if resp.status_code == 404:
            raise RemoteApiError(
                f"Not found: {url}. The repository or object may not exist or be private.",
                status_code=404,
                url=url,
            )

        if resp.status_code in (403, 429):
            remaining = resp.headers.get("x-ratelimit-remaining", resp.headers.get("ratelimit-remaining", ""))
            if resp.status_code == 429 or remaining == "0":
                reset_raw = resp.headers.get("x-ratelimit-reset", resp.headers.get("ratelimit-reset", ""))
                try:
                    reset_str = datetime.fromtimestamp(int(reset_raw), tz=timezone.utc).strftime(
                        "%Y-%m-%d %H:%M:%S UTC"
                    )
                except (ValueError, OSError):
                    reset_str = reset_raw or "unknown"
                raise RemoteApiError(
                    f"API rate limit exceeded for {self._base_url}. Resets at {reset_str}. "
                    "Configure a token for this host to increase the limit.",
                    status_code=resp.status_code,
                    url=url,
                )
            raise RemoteApiError(
                "Access denied. The repository may be private.",
                status_code=403,
                url=url,
            )

        raise RemoteApiError(
            f"API returned HTTP {resp.status_code} for {url}",
            status_code=resp.status_code,
            url=url,
        )
