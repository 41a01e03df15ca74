"""Shared fixtures: clean environment, settings, an in-memory source and local git repos."""

from __future__ import annotations

import os
import subprocess
from dataclasses import replace
from pathlib import Path

import pytest

from repo_access.domain.entities import (
    Commit,
    Diff,
    DiffOptions,
    GitBlob,
    ListCommitsOptions,
    RepositoryInfo,
    Signature,
    TreeEntry,
    TreeEntryType,
)
from repo_access.domain.exceptions import RefResolutionError
from repo_access.infrastructure.config import Settings, get_settings

_CREDENTIAL_ENV = (
    "GITHUB_TOKEN",
    "GH_TOKEN",
    "GITLAB_TOKEN",
    "CI_JOB_TOKEN",
    "BITBUCKET_TOKEN",
    "AZURE_DEVOPS_TOKEN",
    "GIT_TOKEN",
    "GIT_SSH_KEY_PATH",
    "GIT_SSH_PASSPHRASE",
    "GIT_SSH_AGENT_SOCK",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's real tokens out of every test."""
    for name in _CREDENTIAL_ENV:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        repos_dir=tmp_path / "repos",
        cache_dir=tmp_path / "cache",
        git_timeout_seconds=60,
    )


# ── In-memory repository source ─────────────────────────────────────────────


def make_commit(oid: str, parents: tuple[str, ...], when: str, message: str) -> Commit:
    signature = Signature(name="Ada Lovelace", email="ada@example.com", timestamp=when)
    return Commit(id=oid, parents=parents, author=signature, committer=signature, message=message)


class FakeSource:
    """``RepositorySource`` over a fixed linear history, newest first."""

    def __init__(self) -> None:
        self.init_calls: list[tuple[str, str]] = []
        self.update_calls = 0
        self.list_calls: list[ListCommitsOptions] = []
        self.info = RepositoryInfo(
            url="https://github.com/octo/demo",
            host="github.com",
            owner="octo",
            name="demo",
        )
        self.commits = [
            make_commit("c" * 40, ("b" * 40,), "2024-01-02T01:00:00Z", "third"),
            make_commit("b" * 40, ("a" * 40,), "2024-01-01T23:00:00Z", "second"),
            make_commit("a" * 40, (), "2024-01-01T10:00:00Z", "first"),
        ]
        self.tree = [
            TreeEntry(path="README.md", mode="100644", oid="1" * 40, type=TreeEntryType.BLOB),
            TreeEntry(path="docs", mode="040000", oid="2" * 40, type=TreeEntryType.TREE),
            TreeEntry(path="logo.png", mode="100644", oid="3" * 40, type=TreeEntryType.BLOB),
            TreeEntry(path="vendor/lib", mode="160000", oid="4" * 40, type=TreeEntryType.SUBMODULE),
        ]
        self.blobs = {
            "1" * 40: GitBlob(oid="1" * 40, size=8, content="# Demo\n\n"),
            "3" * 40: GitBlob(oid="3" * 40, size=4, content=b"\x89PNG"),
        }

    async def init(self, local_dir: str, remote_url: str) -> None:
        self.init_calls.append((local_dir, remote_url))

    async def update(self, refs: list[str] | None = None) -> None:
        self.update_calls += 1

    async def resolve_ref(self, ref: str) -> str:
        if ref in ("HEAD", self.info.default_branch):
            return self.commits[0].id
        for commit in self.commits:
            if commit.id.startswith(ref):
                return commit.id
        raise RefResolutionError(ref)

    async def list_commits(self, opts: ListCommitsOptions | None = None) -> list[Commit]:
        opts = opts or ListCommitsOptions()
        self.list_calls.append(opts)
        start = opts.skip or 0
        end = None if opts.max_count is None else start + opts.max_count
        return self.commits[start:end]

    async def get_commit(self, oid: str) -> Commit:
        full = await self.resolve_ref(oid)
        return next(c for c in self.commits if c.id == full)

    async def get_tree(self, oid: str, path: str | None = None) -> list[TreeEntry]:
        if path is None:
            return list(self.tree)
        return [e for e in self.tree if e.path == path or e.path.startswith(path + "/")]

    async def get_blob(self, oid: str) -> GitBlob:
        if oid not in self.blobs:
            raise RefResolutionError(oid)
        return self.blobs[oid]

    async def diff(self, base: str, head: str, opts: DiffOptions | None = None) -> Diff:
        return Diff(from_commit=base, to_commit=head)

    async def get_repository_info(self) -> RepositoryInfo:
        self.info = replace(self.info, default_branch="main")
        return self.info


@pytest.fixture
def fake_source() -> FakeSource:
    return FakeSource()


# ── Real git repositories ───────────────────────────────────────────────────


def _git(cwd: Path, *args: str, when: str = "2024-01-01T10:00:00+00:00") -> str:
    env = {
        **os.environ,
        "GIT_AUTHOR_NAME": "Ada Lovelace",
        "GIT_AUTHOR_EMAIL": "ada@example.com",
        "GIT_COMMITTER_NAME": "Ada Lovelace",
        "GIT_COMMITTER_EMAIL": "ada@example.com",
        "GIT_AUTHOR_DATE": when,
        "GIT_COMMITTER_DATE": when,
        "GIT_CONFIG_NOSYSTEM": "1",
        "HOME": str(cwd),
    }
    result = subprocess.run(
        ["git", *args], cwd=cwd, env=env, capture_output=True, text=True, check=True
    )
    return result.stdout


@pytest.fixture
def git():
    """The helper used to build upstream repositories in tests."""
    return _git


@pytest.fixture
def upstream_repo(tmp_path: Path) -> Path:
    """Non-bare repository on ``main`` with five commits, a binary file and a submodule link."""
    repo = tmp_path / "upstream"
    repo.mkdir()
    _git(repo, "init", "--quiet", "--initial-branch=main")

    (repo / "README.md").write_text("# Demo\n", encoding="utf-8")
    _git(repo, "add", "README.md")
    _git(repo, "commit", "--quiet", "-m", "Initial commit", when="2024-01-01T10:00:00+00:00")

    (repo / "src").mkdir()
    (repo / "src" / "app.py").write_text("print('hello')\n", encoding="utf-8")
    _git(repo, "add", "src/app.py")
    _git(repo, "commit", "--quiet", "-m", "Add app", when="2024-01-01T23:00:00+00:00")

    (repo / "logo.bin").write_bytes(b"\x89PNG\r\n\x1a\n\xff\xfe\x00")
    _git(repo, "add", "logo.bin")
    _git(repo, "commit", "--quiet", "-m", "Add logo", when="2024-01-02T01:00:00+00:00")

    (repo / "src" / "app.py").write_text("print('hello, world')\n", encoding="utf-8")
    _git(repo, "commit", "--quiet", "-am", "Greet the world", when="2024-01-03T09:30:00+02:00")

    _git(
        repo,
        "update-index",
        "--add",
        "--cacheinfo",
        f"160000,{'a' * 40},vendor/lib",
    )
    _git(repo, "commit", "--quiet", "-m", "Link vendored lib", when="2024-01-04T12:00:00+00:00")

    _git(repo, "branch", "feature")
    return repo
