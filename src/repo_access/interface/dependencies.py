"""FastAPI dependency injection wiring."""

from __future__ import annotations

import httpx

from repo_access.infrastructure.config import get_settings
from repo_access.infrastructure.mirror_store import MirrorStore
from repo_access.infrastructure.repository_cache import RepositoryCache
from repo_access.infrastructure.source_factory import RepositoryFactory
from repo_access.services.credentials import CredentialResolver
from repo_access.services.git_query import GitQueryService
from repo_access.services.git_repository_service import GitRepositoryService
from repo_access.services.url_parser import GitUrlParser

_http_client: httpx.AsyncClient | None = None
_repository_service: GitRepositoryService | None = None
_query_service: GitQueryService | None = None


async def startup() -> None:
    """Initialise shared resources — called from the lifespan context manager."""
    global _http_client, _repository_service, _query_service  # noqa: PLW0603

    settings = get_settings()
    _http_client = httpx.AsyncClient(timeout=httpx.Timeout(settings.http_timeout_seconds))

    parser = GitUrlParser()
    factory = RepositoryFactory(
        settings=settings,
        credentials=CredentialResolver(settings),
        url_parser=parser,
        client=_http_client,
    )
    _repository_service = GitRepositoryService(
        create_source=factory.create_repository_source,
        cache=RepositoryCache(),
        url_parser=parser,
        repos_dir=settings.repos_dir,
    )
    _query_service = GitQueryService(
        MirrorStore(settings.cache_dir, factory, max_depth=settings.mirror_max_depth)
    )


async def shutdown() -> None:
    """Release shared resources."""
    global _http_client, _repository_service, _query_service  # noqa: PLW0603

    if _http_client:
        await _http_client.aclose()
        _http_client = None
    _repository_service = None
    _query_service = None


def get_query_service() -> GitQueryService:
    assert _query_service is not None, "startup() was not called"
    return _query_service


def get_repository_service() -> GitRepositoryService:
    """Process-wide service for in-process callers (built once at startup)."""
    assert _repository_service is not None, "startup() was not called"
    return _repository_service
