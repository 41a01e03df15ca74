"""Tests for backend selection."""

from __future__ import annotations

import httpx
import pytest

from repo_access.infrastructure import source_factory
from repo_access.infrastructure.api_source import RestApiSource
from repo_access.infrastructure.config import Settings
from repo_access.infrastructure.git_cli_source import GitCliSource
from repo_access.infrastructure.source_factory import RepositoryFactory
from repo_access.services.credentials import CredentialResolver
from repo_access.services.url_parser import GitUrlParser


@pytest.fixture
def factory(settings: Settings) -> RepositoryFactory:
    return RepositoryFactory(
        settings=settings,
        credentials=CredentialResolver(settings),
        url_parser=GitUrlParser(),
        client=httpx.AsyncClient(),
    )


class TestCreateRepositorySource:
    def test_git_available(self, factory: RepositoryFactory, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(source_factory, "check_git", lambda binary: True)
        assert isinstance(factory.create_repository_source(), GitCliSource)

    def test_git_missing(self, factory: RepositoryFactory, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(source_factory, "check_git", lambda binary: False)
        assert isinstance(factory.create_repository_source(), RestApiSource)

    def test_no_subprocess_support(
        self, factory: RepositoryFactory, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(source_factory.sys, "platform", "emscripten")
        monkeypatch.setattr(source_factory, "check_git", lambda binary: True)
        assert isinstance(factory.create_repository_source(), RestApiSource)

    def test_checks_on_every_call(
        self, factory: RepositoryFactory, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        answers = iter([True, False])
        calls: list[str] = []

        def check(binary: str) -> bool:
            calls.append(binary)
            return next(answers)

        monkeypatch.setattr(source_factory, "check_git", check)
        assert isinstance(factory.create_repository_source(), GitCliSource)
        assert isinstance(factory.create_repository_source(), RestApiSource)
        assert calls == ["git", "git"]


class TestVariants:
    def test_git_cli_options(self, factory: RepositoryFactory) -> None:
        source = factory.create_git_cli_source(bare=True, depth=5, prune=True)
        assert isinstance(source, GitCliSource)
        assert source.local_dir is None

    def test_api_source(self, factory: RepositoryFactory) -> None:
        assert isinstance(factory.create_api_source(), RestApiSource)
