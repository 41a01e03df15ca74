"""In-process cache of initialised repository sources."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from repo_access.domain.ports.repository_source import RepositorySource

logger = logging.getLogger(__name__)

SourceFactory = Callable[[], Awaitable[RepositorySource]]


class RepositoryCache:
    """Maps a canonical remote URL to its initialised source.

    Concurrent requests for the same missing key wait on one per-key lock:
    the first caller initialises, later callers reuse its result.  A failed
    initialisation is not stored, so the next request tries again.
    """

    def __init__(self) -> None:
        self._sources: dict[str, RepositorySource] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._sources

    def __len__(self) -> int:
        return len(self._sources)

    def get(self, key: str) -> RepositorySource | None:
        return self._sources.get(key)

    async def get_or_create(self, key: str, factory: SourceFactory) -> RepositorySource:
        source = self._sources.get(key)
        if source is not None:
            return source

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            source = self._sources.get(key)
            if source is None:
                logger.debug("Initialising repository source for %s", key)
                source = await factory()
                self._sources[key] = source
        return source

    def evict(self, key: str) -> None:
        self._sources.pop(key, None)
        self._locks.pop(key, None)

    def clear(self) -> None:
        self._sources.clear()
        self._locks.clear()
