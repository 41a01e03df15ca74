"""Git URL normalisation — every supported remote syntax to one descriptor.

Patterns are tried in a fixed order: provider specific host+path patterns
first (Azure DevOps organisation paths, GitLab nested groups, GitHub and
Bitbucket web links), then the generic SSH and HTTPS shapes that cover
self-hosted servers, and finally ``file://``.  The first match wins, so an
input that several patterns accept always normalises the same way.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from repo_access.domain.entities import RepositoryInfo
from repo_access.domain.exceptions import MalformedUrlError
from repo_access.domain.value_objects import (
    LOCAL_HOST,
    ProviderInfo,
    known_hosts,
    provider_for_host,
)

_AZURE_HOST = "dev.azure.com"

# ── Compiled patterns (priority order) ──────────────────────────────────────

_AZURE_SSH_RE = re.compile(
    r"^(?:[\w.-]+@)?(?i:ssh\.dev\.azure\.com):v3/"
    r"(?P<org>[^/]+)/(?P<project>[^/]+)/(?P<name>[^/]+)$"
)
_AZURE_HTTPS_RE = re.compile(
    r"^https?://(?:[^@/]+@)?(?i:dev\.azure\.com)/"
    r"(?P<org>[^/]+)/(?P<project>[^/]+)/_git/(?P<name>[^/?#]+)(?:[/?#].*)?$"
)
_AZURE_LEGACY_RE = re.compile(
    r"^https?://(?:[^@/]+@)?(?P<org>[^./@]+)(?i:\.visualstudio\.com)/"
    r"(?:DefaultCollection/)?(?P<project>[^/]+)/_git/(?P<name>[^/?#]+)(?:[/?#].*)?$"
)
_GITLAB_HTTPS_RE = re.compile(
    r"^https?://(?:[^@/]+@)?(?P<host>(?i:gitlab\.com))/"
    r"(?P<owner>[^?#]+?)/(?P<name>[^/?#]+)(?:/-(?:/[^?#]*)?)?(?:[?#].*)?$"
)
_HOSTED_HTTPS_RE = re.compile(
    r"^https?://(?:[^@/]+@)?(?P<host>(?i:github\.com|bitbucket\.org))/"
    r"(?P<owner>[^/]+)/(?P<name>[^/?#]+)(?:[/?#].*)?$"
)
_SSH_SCHEME_RE = re.compile(
    r"^ssh://(?:[^@/]+@)?(?P<host>[^/:]+)(?::\d+)?/(?P<owner>.+)/(?P<name>[^/]+)$"
)
_SCP_SSH_RE = re.compile(
    r"^[\w.-]+@(?P<host>[^:/\s]+):(?P<owner>[^/\s].*?)/(?P<name>[^/\s]+)$"
)
_GENERIC_RE = re.compile(
    r"^(?:https?|git)://(?:[^@/]+@)?(?P<host>[^/:?#]+)(?::\d+)?/"
    r"(?P<owner>[^/]+)/(?P<name>[^/?#]+)(?:[/?#].*)?$"
)
_FILE_RE = re.compile(r"^file://(?P<path>.+)$")
_SSH_TRANSPORT_RE = re.compile(r"^(?:ssh://|[\w.-]+@[^:/\s]+:(?!//))")


def _clean(url: str) -> str:
    cleaned = url.strip().rstrip("/")
    return cleaned.removesuffix(".git")


def _azure(match: re.Match[str]) -> tuple[str, str, str]:
    return _AZURE_HOST, f"{match['org']}/{match['project']}", match["name"]


def _hosted(match: re.Match[str]) -> tuple[str, str, str]:
    return match["host"], match["owner"], match["name"]


def _local(match: re.Match[str]) -> tuple[str, str, str]:
    name = match["path"].rstrip("/").split("/")[-1]
    return LOCAL_HOST, "local", name


_PATTERNS: list[tuple[re.Pattern[str], Callable[[re.Match[str]], tuple[str, str, str]]]] = [
    (_AZURE_SSH_RE, _azure),
    (_AZURE_HTTPS_RE, _azure),
    (_AZURE_LEGACY_RE, _azure),
    (_GITLAB_HTTPS_RE, _hosted),
    (_HOSTED_HTTPS_RE, _hosted),
    (_SSH_SCHEME_RE, _hosted),
    (_SCP_SSH_RE, _hosted),
    (_GENERIC_RE, _hosted),
    (_FILE_RE, _local),
]


class GitUrlParser:
    """Parses, validates and converts Git remote URLs."""

    def parse(self, url: str) -> RepositoryInfo:
        """Normalise *url* into a :class:`RepositoryInfo`.

        Raises :class:`MalformedUrlError` when no pattern matches.
        """
        given = url.strip().rstrip("/")
        cleaned = _clean(url)
        for pattern, extract in _PATTERNS:
            match = pattern.match(cleaned)
            if match is None:
                continue
            host, owner, name = extract(match)
            if not name:
                break
            host = host.lower()
            return RepositoryInfo(
                # a local path must keep its ``.git`` suffix to stay openable
                url=given if host == LOCAL_HOST else cleaned,
                host=host,
                owner=owner,
                name=name,
                default_branch=provider_for_host(host).default_branch,
                clone_url=given,
            )
        raise MalformedUrlError(url)

    def is_valid_git_url(self, url: str) -> bool:
        try:
            self.parse(url)
        except MalformedUrlError:
            return False
        return True

    def provider_for(self, host: str) -> ProviderInfo:
        return provider_for_host(host)

    def is_supported_host(self, host: str) -> bool:
        """Whether *host* is one of the known hosting providers."""
        return host.strip().lower() in known_hosts()

    def to_https_url(self, info: RepositoryInfo) -> str:
        """HTTPS clone URL for the repository described by *info*."""
        if info.host == LOCAL_HOST:
            return info.url
        if info.host == _AZURE_HOST:
            org, _, project = info.owner.partition("/")
            return f"https://{_AZURE_HOST}/{org}/{project}/_git/{info.name}"
        return f"https://{info.host}/{info.owner}/{info.name}"

    def to_ssh_url(self, info: RepositoryInfo) -> str:
        """SSH clone URL for the repository described by *info*."""
        if info.host == LOCAL_HOST:
            raise MalformedUrlError(info.url, "local repositories have no SSH form")
        if info.host == _AZURE_HOST:
            return f"git@ssh.{_AZURE_HOST}:v3/{info.owner}/{info.name}"
        return f"git@{info.host}:{info.owner}/{info.name}.git"

    def clone_url(self, info: RepositoryInfo, *, ssh: bool = False) -> str:
        """URL to hand to ``git clone`` over SSH (*ssh*) or HTTPS.

        The caller's URL is used as given when it already uses the wanted
        transport.  Only known providers are converted between SSH and HTTPS;
        for any other host the given URL is the only one known to be right.
        """
        given = info.clone_url or info.url
        if info.host == LOCAL_HOST:
            return info.url
        if is_ssh_url(given) == ssh or not self.is_supported_host(info.host):
            return given
        return self.to_ssh_url(info) if ssh else self.to_https_url(info)

    def canonical_url(self, url: str) -> str:
        """Cache key for *url*.

        Known providers collapse every transport onto the HTTPS form; other
        hosts keep the port and full path, so nested groups stay distinct.
        """
        info = self.parse(url)
        if self.is_supported_host(info.host):
            return self.to_https_url(info)
        return info.url


def is_ssh_url(url: str) -> bool:
    """Whether *url* is an ``ssh://`` or scp-style ``user@host:path`` remote."""
    return _SSH_TRANSPORT_RE.match(url.strip()) is not None
