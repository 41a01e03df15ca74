"""Value objects — static provider metadata keyed by normalised host."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ProviderInfo:
    """What we know about a Git hosting provider without asking it."""

    name: str
    host: str
    default_branch: str = "main"
    supports_api: bool = False
    api_base_url: str | None = None
    api_flavor: str | None = None
    supports_ssh: bool = False
    token_username: str = ""


GENERIC_PROVIDER = ProviderInfo(name="generic", host="")

LOCAL_HOST = "localhost"

_PROVIDERS: dict[str, ProviderInfo] = {
    "github.com": ProviderInfo(
        name="github",
        host="github.com",
        supports_api=True,
        api_base_url="https://api.github.com",
        api_flavor="github",
        supports_ssh=True,
        token_username="x-access-token",
    ),
    "gitlab.com": ProviderInfo(
        name="gitlab",
        host="gitlab.com",
        supports_api=True,
        api_base_url="https://gitlab.com/api/v4",
        api_flavor="gitlab",
        supports_ssh=True,
        token_username="oauth2",
    ),
    "bitbucket.org": ProviderInfo(
        name="bitbucket",
        host="bitbucket.org",
        default_branch="master",
        supports_ssh=True,
        token_username="x-token-auth",
    ),
    "dev.azure.com": ProviderInfo(
        name="azure-devops",
        host="dev.azure.com",
        supports_ssh=True,
    ),
    LOCAL_HOST: ProviderInfo(name="local", host=LOCAL_HOST),
}


def provider_for_host(host: str) -> ProviderInfo:
    """Return provider metadata for *host*, or the generic fallback entry."""
    return _PROVIDERS.get(host.strip().lower(), GENERIC_PROVIDER)


def known_hosts() -> tuple[str, ...]:
    """Hosts with a dedicated provider entry (the local pseudo-host excluded)."""
    return tuple(h for h in _PROVIDERS if h != LOCAL_HOST)
