"""Tests for Git URL normalisation."""

from __future__ import annotations

import pytest

from repo_access.domain.exceptions import MalformedUrlError
from repo_access.services.url_parser import GitUrlParser, is_ssh_url


@pytest.fixture
def parser() -> GitUrlParser:
    return GitUrlParser()


class TestParse:
    @pytest.mark.parametrize(
        ("url", "host", "owner", "name"),
        [
            ("https://github.com/octo/demo", "github.com", "octo", "demo"),
            ("https://github.com/octo/demo.git", "github.com", "octo", "demo"),
            ("https://github.com/octo/demo/", "github.com", "octo", "demo"),
            ("  https://github.com/octo/demo  ", "github.com", "octo", "demo"),
            ("https://github.com/octo/demo/tree/main/src", "github.com", "octo", "demo"),
            ("https://GitHub.com/Octo/Demo", "github.com", "Octo", "Demo"),
            ("git@github.com:octo/demo.git", "github.com", "octo", "demo"),
            ("https://bitbucket.org/team/repo", "bitbucket.org", "team", "repo"),
            ("https://gitlab.com/group/subgroup/project", "gitlab.com", "group/subgroup", "project"),
            (
                "https://gitlab.com/group/subgroup/project/-/tree/main",
                "gitlab.com",
                "group/subgroup",
                "project",
            ),
            ("git@gitlab.com:group/sub/project.git", "gitlab.com", "group/sub", "project"),
            ("https://dev.azure.com/org/proj/_git/repo", "dev.azure.com", "org/proj", "repo"),
            ("https://user@dev.azure.com/org/proj/_git/repo", "dev.azure.com", "org/proj", "repo"),
            ("git@ssh.dev.azure.com:v3/org/proj/repo", "dev.azure.com", "org/proj", "repo"),
            ("https://org.visualstudio.com/proj/_git/repo", "dev.azure.com", "org/proj", "repo"),
            (
                "ssh://git@git.example.com:2222/team/sub/repo.git",
                "git.example.com",
                "team/sub",
                "repo",
            ),
            ("https://git.example.com:8443/team/repo/extra", "git.example.com", "team", "repo"),
            ("git://example.org/team/repo.git", "example.org", "team", "repo"),
            ("file:///tmp/repos/demo", "localhost", "local", "demo"),
        ],
    )
    def test_supported_forms(
        self, parser: GitUrlParser, url: str, host: str, owner: str, name: str
    ) -> None:
        info = parser.parse(url)
        assert (info.host, info.owner, info.name) == (host, owner, name)

    def test_strips_suffix_from_url(self, parser: GitUrlParser) -> None:
        assert parser.parse("https://github.com/octo/demo.git/").url == "https://github.com/octo/demo"

    def test_local_url_keeps_git_suffix(self, parser: GitUrlParser) -> None:
        info = parser.parse("file:///srv/repos/demo.git")
        assert info.name == "demo"
        assert info.url == "file:///srv/repos/demo.git"

    def test_default_branch_from_provider(self, parser: GitUrlParser) -> None:
        assert parser.parse("https://bitbucket.org/team/repo").default_branch == "master"
        assert parser.parse("https://github.com/octo/demo").default_branch == "main"

    @pytest.mark.parametrize(
        "url",
        ["", "not a url", "https://github.com/onlyowner", "ftp://example.com/a/b", "github.com/octo"],
    )
    def test_malformed(self, parser: GitUrlParser, url: str) -> None:
        with pytest.raises(MalformedUrlError):
            parser.parse(url)

    @pytest.mark.parametrize(
        "url",
        ["https://github.com/octo/demo", "git@github.com:octo/demo.git", "nonsense", ""],
    )
    def test_is_valid_agrees_with_parse(self, parser: GitUrlParser, url: str) -> None:
        try:
            parser.parse(url)
            parsed = True
        except MalformedUrlError:
            parsed = False
        assert parser.is_valid_git_url(url) is parsed


class TestConversions:
    def test_https_and_ssh(self, parser: GitUrlParser) -> None:
        info = parser.parse("git@github.com:octo/demo.git")
        assert parser.to_https_url(info) == "https://github.com/octo/demo"
        assert parser.to_ssh_url(info) == "git@github.com:octo/demo.git"

    def test_azure_templates(self, parser: GitUrlParser) -> None:
        info = parser.parse("https://org.visualstudio.com/proj/_git/repo")
        assert parser.to_https_url(info) == "https://dev.azure.com/org/proj/_git/repo"
        assert parser.to_ssh_url(info) == "git@ssh.dev.azure.com:v3/org/proj/repo"

    @pytest.mark.parametrize(
        "url",
        [
            "https://github.com/octo/demo",
            "https://gitlab.com/group/subgroup/project",
            "https://dev.azure.com/org/proj/_git/repo",
            "https://git.example.com/team/repo",
        ],
    )
    def test_conversions_parse_back(self, parser: GitUrlParser, url: str) -> None:
        info = parser.parse(url)
        for converted in (parser.to_https_url(info), parser.to_ssh_url(info)):
            again = parser.parse(converted)
            assert (again.host, again.owner, again.name) == (info.host, info.owner, info.name)

    def test_local_has_no_ssh_form(self, parser: GitUrlParser) -> None:
        info = parser.parse("file:///tmp/repos/demo")
        assert parser.to_https_url(info) == "file:///tmp/repos/demo"
        with pytest.raises(MalformedUrlError):
            parser.to_ssh_url(info)

    def test_canonical_url(self, parser: GitUrlParser) -> None:
        assert parser.canonical_url("git@github.com:octo/demo.git") == "https://github.com/octo/demo"


class TestHosts:
    def test_supported_hosts(self, parser: GitUrlParser) -> None:
        assert parser.is_supported_host("GitHub.com")
        assert parser.is_supported_host("dev.azure.com")
        assert not parser.is_supported_host("git.example.com")
        assert not parser.is_supported_host("localhost")

    def test_provider_for_unknown_host(self, parser: GitUrlParser) -> None:
        assert not parser.provider_for("git.example.com").supports_api


class TestCloneUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "https://git.example.com:8443/team/repo.git",
            "https://gitlab.example.com/group/sub/repo.git",
            "ssh://git@git.example.com:2222/team/repo.git",
            "git@git.example.com:group/sub/repo.git",
        ],
    )
    def test_self_hosted_remote_is_cloned_as_given(self, parser: GitUrlParser, url: str) -> None:
        info = parser.parse(url)
        assert parser.clone_url(info) == url
        assert parser.clone_url(info, ssh=True) == url

    def test_given_url_is_trimmed(self, parser: GitUrlParser) -> None:
        info = parser.parse("  https://git.example.com:8443/team/repo.git/ ")
        assert info.clone_url == "https://git.example.com:8443/team/repo.git"

    def test_known_provider_switches_transport(self, parser: GitUrlParser) -> None:
        ssh = parser.parse("git@github.com:octo/demo.git")
        assert parser.clone_url(ssh) == "https://github.com/octo/demo"
        assert parser.clone_url(ssh, ssh=True) == "git@github.com:octo/demo.git"
        https = parser.parse("https://gitlab.com/group/sub/project.git")
        assert parser.clone_url(https) == "https://gitlab.com/group/sub/project.git"
        assert parser.clone_url(https, ssh=True) == "git@gitlab.com:group/sub/project.git"

    def test_local_path(self, parser: GitUrlParser) -> None:
        info = parser.parse("file:///srv/repos/demo.git")
        assert parser.clone_url(info, ssh=True) == "file:///srv/repos/demo.git"

    @pytest.mark.parametrize(
        ("url", "ssh"),
        [
            ("ssh://git@host/a/b", True),
            ("git@github.com:octo/demo.git", True),
            ("https://github.com/octo/demo", False),
            ("https://user@host/a/b", False),
            ("file:///srv/repo", False),
        ],
    )
    def test_transport_detection(self, url: str, ssh: bool) -> None:
        assert is_ssh_url(url) is ssh


class TestCanonicalUrl:
    def test_self_hosted_keeps_port_and_path(self, parser: GitUrlParser) -> None:
        repo = parser.canonical_url("https://gitlab.example.com:8443/group/sub/repo.git")
        other = parser.canonical_url("https://gitlab.example.com:8443/group/sub/other")
        assert repo == "https://gitlab.example.com:8443/group/sub/repo"
        assert repo != other
