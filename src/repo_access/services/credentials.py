"""Credential resolution per Git host.

Precedence, most specific first:

1. credentials registered explicitly for the exact host;
2. the provider's HTTPS template filled with its own token;
3. the catch-all ``GIT_TOKEN`` for hosts without a host-specific token;
4. SSH key material, for SSH-capable known providers only;
5. anonymous HTTPS.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import SecretStr

from repo_access.domain.entities import CredentialInfo, CredentialType
from repo_access.domain.value_objects import provider_for_host

if TYPE_CHECKING:
    from repo_access.infrastructure.config import Settings

logger = logging.getLogger(__name__)


def _secret(value: SecretStr | None) -> str | None:
    if value is None:
        return None
    raw = value.get_secret_value().strip()
    return raw or None


class CredentialResolver:
    """Concrete ``CredentialProvider`` backed by :class:`Settings`."""

    def __init__(self, settings: Settings) -> None:
        self._explicit: dict[str, CredentialInfo] = {}
        self._host_tokens: dict[str, str] = {}
        self._generic_token = _secret(settings.git_token)
        self._ssh_key_path = settings.git_ssh_key_path or None
        self._ssh_passphrase = _secret(settings.git_ssh_passphrase)
        self._ssh_agent = settings.git_ssh_agent_sock or None

        for host, token in (
            ("github.com", settings.github_token),
            ("gitlab.com", settings.gitlab_token),
            ("bitbucket.org", settings.bitbucket_token),
            ("dev.azure.com", settings.azure_devops_token),
        ):
            value = _secret(token)
            if value:
                self._host_tokens[host] = value

    def add_credentials(self, host: str, credentials: CredentialInfo) -> None:
        """Register *credentials* for *host*; they win over everything else."""
        self._explicit[host.strip().lower()] = credentials

    def for_host(self, host: str) -> CredentialInfo:
        """Return the authentication strategy for *host*.  Never raises."""
        key = (host or "").strip().lower()

        explicit = self._explicit.get(key)
        if explicit is not None:
            return explicit

        provider = provider_for_host(key)
        token = self._host_tokens.get(key) or self._generic_token
        if token:
            return CredentialInfo(
                type=CredentialType.HTTPS,
                username=provider.token_username,
                token_or_password=token,
            )

        if provider.supports_ssh and (self._ssh_key_path or self._ssh_agent):
            logger.debug("Using SSH credentials for %s", key)
            return CredentialInfo(
                type=CredentialType.SSH,
                private_key_path=self._ssh_key_path,
                passphrase=self._ssh_passphrase if self._ssh_key_path else None,
                ssh_agent=None if self._ssh_key_path else self._ssh_agent,
            )

        return CredentialInfo.anonymous()
