"""Source selection — picks the best RepositorySource for this environment."""

from __future__ import annotations

import logging
import sys

import httpx

from repo_access.domain.ports.credential_provider import CredentialProvider
from repo_access.domain.ports.repository_source import RepositorySource
from repo_access.infrastructure.api_source import RestApiSource
from repo_access.infrastructure.config import Settings
from repo_access.infrastructure.git_cli_source import GitCliSource
from repo_access.infrastructure.git_process import GitRunner, check_git
from repo_access.services.url_parser import GitUrlParser

logger = logging.getLogger(__name__)

_NO_SUBPROCESS_PLATFORMS = frozenset({"emscripten", "wasi"})


def can_spawn_subprocesses() -> bool:
    """Whether the interpreter runs somewhere that can start child processes."""
    return sys.platform not in _NO_SUBPROCESS_PLATFORMS


def git_available(binary: str = "git") -> bool:
    """Whether the plumbing backend can run here with *binary*."""
    return can_spawn_subprocesses() and check_git(binary)


class RepositoryFactory:
    """Builds repository sources sharing one parser, credential provider and HTTP client."""

    def __init__(
        self,
        settings: Settings,
        credentials: CredentialProvider,
        url_parser: GitUrlParser,
        client: httpx.AsyncClient,
    ) -> None:
        self._settings = settings
        self._credentials = credentials
        self._parser = url_parser
        self._client = client

    @property
    def url_parser(self) -> GitUrlParser:
        return self._parser

    @property
    def credentials(self) -> CredentialProvider:
        return self._credentials

    def create_repository_source(self) -> RepositorySource:
        """Plumbing backend when ``git`` can run here, API backend otherwise.

        The check runs on every call so a binary installed (or removed) after
        startup is noticed.
        """
        if git_available(self._settings.git_binary):
            return self.create_git_cli_source()
        logger.info("git is not available, using the HTTP API backend")
        return self.create_api_source()

    def create_git_cli_source(
        self,
        *,
        bare: bool = False,
        depth: int | None = None,
        prune: bool = False,
    ) -> GitCliSource:
        runner = GitRunner(self._settings.git_binary, self._settings.git_timeout_seconds)
        return GitCliSource(
            self._credentials,
            self._parser,
            runner,
            bare=bare,
            depth=depth,
            prune=prune,
            clone_fallback=self._settings.clone_fallback,
        )

    def create_api_source(self) -> RestApiSource:
        return RestApiSource(self._client, self._credentials, self._parser)
