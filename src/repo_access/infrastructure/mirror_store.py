"""On-disk store of bare, shallow, blob-filtered mirrors keyed by remote URL."""

from __future__ import annotations

import asyncio
import hashlib
import logging
from pathlib import Path

from repo_access.domain.exceptions import SubprocessError
from repo_access.infrastructure.git_cli_source import GitCliSource
from repo_access.infrastructure.source_factory import RepositoryFactory

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 2048


class MirrorStore:
    """Creates or refreshes ``<cache_dir>/<sha1(url)>.git`` on demand.

    Writers for the same URL are serialised by a per-key lock inside this
    process; the staging-directory rename performed by the clone guards
    against other processes sharing the cache directory.
    """

    def __init__(
        self,
        cache_dir: Path,
        factory: RepositoryFactory,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        self._cache_dir = Path(cache_dir)
        self._factory = factory
        self._max_depth = max(max_depth, 1)
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    def clamp_depth(self, depth: int) -> int:
        return min(max(depth, 1), self._max_depth)

    def mirror_path(self, repo_url: str) -> Path:
        digest = hashlib.sha1(repo_url.encode("utf-8")).hexdigest()
        return self._cache_dir / f"{digest}.git"

    async def ensure(self, repo_url: str, depth: int) -> GitCliSource:
        """Return an up-to-date mirror of *repo_url* holding at least *depth* commits."""
        depth = self.clamp_depth(depth)
        path = self.mirror_path(repo_url)
        lock = self._locks.setdefault(path.name, asyncio.Lock())

        async with lock:
            self._cache_dir.mkdir(parents=True, exist_ok=True)
            source = self._factory.create_git_cli_source(bare=True, depth=depth, prune=True)
            existed = GitCliSource.has_repository(path)
            await source.init(str(path), repo_url)
            if existed:
                logger.info("Refreshing mirror %s (depth %d)", path.name, depth)
                await source.update()
            else:
                logger.info("Created mirror %s (depth %d)", path.name, depth)

            try:
                await source.refresh_default_branch()
            except SubprocessError as exc:
                logger.warning("Could not refresh default branch of %s: %s", path.name, exc)
        return source
