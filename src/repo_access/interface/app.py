"""FastAPI application factory."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from repo_access.infrastructure.config import get_settings
from repo_access.infrastructure.source_factory import git_available
from repo_access.interface.dependencies import shutdown, startup
from repo_access.interface.error_handlers import register_error_handlers
from repo_access.interface.routes import router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage startup / shutdown of shared resources."""
    await startup()
    settings = get_settings()
    if not await asyncio.to_thread(git_available, settings.git_binary):
        logger.warning(
            "%s is not runnable: /api/git will fail and the service falls back to the HTTP API",
            settings.git_binary,
        )
    yield
    await shutdown()


def create_app() -> FastAPI:
    """Build and wire the FastAPI application."""
    app = FastAPI(
        title="Repository Access",
        version="1.0.0",
        description=(
            "Read-only access to Git repositories on GitHub, GitLab, Bitbucket, "
            "Azure DevOps and self-hosted servers: commit history, single "
            "commits, the latest commit and file contents."
        ),
        lifespan=_lifespan,
    )

    register_error_handlers(app)
    app.include_router(router)

    # ── Health check (liveness plus plumbing backend availability) ──────

    @app.get("/health", include_in_schema=False)
    async def health() -> dict[str, object]:
        git = await asyncio.to_thread(git_available, get_settings().git_binary)
        return {"status": "ok", "git": git}

    return app
