"""Commit Formatter — maps domain commits to the caller-facing shapes."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from urllib.parse import quote

from repo_access.domain.entities import Commit, CommitGroup, FormattedCommit, RepositoryInfo
from repo_access.domain.value_objects import LOCAL_HOST


def web_url(info: RepositoryInfo) -> str | None:
    """Browser URL of the repository; local repositories have none."""
    if info.host == LOCAL_HOST:
        return None
    return f"https://{info.host}/{info.owner}/{info.name}"


def _author_url(commit: Commit, info: RepositoryInfo | None) -> str | None:
    # Best effort: the author's display name used as a profile handle.
    if info is None or info.host == LOCAL_HOST or not commit.author.name:
        return None
    return f"https://{info.host}/{quote(commit.author.name)}"


def _commit_url(commit: Commit, info: RepositoryInfo | None) -> str | None:
    base = web_url(info) if info is not None else None
    return f"{base}/commit/{commit.id}" if base else None


def format_commit(commit: Commit, info: RepositoryInfo | None = None) -> FormattedCommit:
    """Build the list-item shape; links are only filled in when *info* is known."""
    return FormattedCommit(
        sha=commit.id,
        message=commit.message,
        author_name=commit.author.name,
        commit_date=commit.author.timestamp,
        author_html_url=_author_url(commit, info),
        html_url=_commit_url(commit, info),
    )


def _calendar_day(timestamp: str) -> str | None:
    try:
        moment = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).date().isoformat()


def group_commits_by_date(commits: Iterable[FormattedCommit]) -> list[CommitGroup]:
    """Group commits by the UTC calendar day of their author date.

    Groups appear in order of first occurrence and keep the input order
    inside each group.  Commits without a parseable date are dropped.
    """
    groups: dict[str, CommitGroup] = {}
    for commit in commits:
        day = _calendar_day(commit.commit_date)
        if day is None:
            continue
        group = groups.get(day)
        if group is None:
            group = groups[day] = CommitGroup(date=day)
        group.commits.append(commit)
    return list(groups.values())


def to_api_commit(commit: Commit, info: RepositoryInfo | None = None) -> dict[str, object]:
    """GitHub-compatible commit record."""
    return {
        "sha": commit.id,
        "commit": {
            "message": commit.message,
            "author": {
                "name": commit.author.name,
                "email": commit.author.email,
                "date": commit.author.timestamp,
            },
            "committer": {
                "name": commit.committer.name,
                "email": commit.committer.email,
                "date": commit.committer.timestamp,
            },
        },
        "author": {
            "login": commit.author.name,
            "html_url": _author_url(commit, info),
        },
        "html_url": _commit_url(commit, info),
        "parents": [{"sha": parent} for parent in commit.parents],
    }
