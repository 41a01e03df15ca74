"""API routes — thin controllers that delegate to the query service."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from repo_access.interface.dependencies import get_query_service
from repo_access.interface.schemas import ErrorResponse
from repo_access.services.git_query import GitQueryService

router = APIRouter()


@router.get(
    "/api/git",
    responses={
        200: {"description": "History groups, a commit record, {sha} or {content}"},
        400: {"model": ErrorResponse, "description": "Invalid URL, path, SHA or action"},
        404: {"model": ErrorResponse, "description": "Commit or file not found"},
        500: {"model": ErrorResponse, "description": "Git command failed"},
        502: {"model": ErrorResponse, "description": "Repository could not be cloned"},
    },
)
async def query_repository(
    action: str | None = Query(None, description="history, commit, latest or file"),
    repo_url: str | None = Query(None, alias="repoUrl"),
    page: str | None = Query(None),
    per_page: str | None = Query(None, alias="perPage"),
    sha: str | None = Query(None),
    path: str | None = Query(None),
    service: GitQueryService = Depends(get_query_service),
) -> Any:
    """Read commit history, one commit, the latest SHA or a file from a mirror."""
    return await service.handle(
        action,
        repo_url,
        page=page,
        per_page=per_page,
        sha=sha,
        path=path,
    )
