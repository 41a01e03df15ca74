"""Port: credential provider — defined by the domain, implemented by services."""

from __future__ import annotations

from typing import Protocol

from repo_access.domain.entities import CredentialInfo


class CredentialProvider(Protocol):
    """Abstract contract for looking up authentication per Git host."""

    def for_host(self, host: str) -> CredentialInfo:
        """Return the strategy for *host*; anonymous HTTPS when nothing applies."""
        ...
