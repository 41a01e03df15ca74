"""Application configuration — loaded from environment variables."""

from __future__ import annotations

import tempfile
from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration loaded from env vars (or ``.env`` file)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # ── Credentials ─────────────────────────────────────────────────────
    github_token: SecretStr | None = Field(
        default=None, validation_alias=AliasChoices("github_token", "gh_token")
    )
    gitlab_token: SecretStr | None = Field(
        default=None, validation_alias=AliasChoices("gitlab_token", "ci_job_token")
    )
    bitbucket_token: SecretStr | None = None
    azure_devops_token: SecretStr | None = None
    git_token: SecretStr | None = None
    git_ssh_key_path: str | None = None
    git_ssh_passphrase: SecretStr | None = None
    git_ssh_agent_sock: str | None = None

    # ── Git plumbing ────────────────────────────────────────────────────
    git_binary: str = "git"
    git_timeout_seconds: float | None = 300.0
    repos_dir: Path = Path(tempfile.gettempdir()) / "git-repos"
    cache_dir: Path = Path(".git-cache")
    mirror_max_depth: int = 2048
    clone_fallback: bool = True

    # ── HTTP ────────────────────────────────────────────────────────────
    http_timeout_seconds: float = 30.0

    # ── Server ──────────────────────────────────────────────────────────
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton application settings (cached after first call)."""
    return Settings()
