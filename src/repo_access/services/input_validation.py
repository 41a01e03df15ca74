"""Boundary validation for query parameters.

Everything here runs before any git process is started, so rejected input
never reaches a command line.
"""

from __future__ import annotations

import math
from urllib.parse import urlsplit

from repo_access.domain.exceptions import InputValidationError

DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 30
MAX_PER_PAGE = 100
DEFAULT_DEPTH = 50


def sanitize_positive_int(value: object, fallback: int) -> int:
    """Floor *value* to a positive integer, or return *fallback*.

    Accepts ints, floats and numeric strings; anything else (including zero,
    negatives, NaN and infinity) yields *fallback*.
    """
    if value is None or isinstance(value, bool):
        return fallback
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(number) or number <= 0:
        return fallback
    return max(1, math.floor(number))


def sanitize_page(value: object) -> int:
    return sanitize_positive_int(value, DEFAULT_PAGE)


def sanitize_per_page(value: object) -> int:
    return min(sanitize_positive_int(value, DEFAULT_PER_PAGE), MAX_PER_PAGE)


def sanitize_depth(value: object, max_depth: int) -> int:
    return min(sanitize_positive_int(value, DEFAULT_DEPTH), max_depth)


def sanitize_repo_url(value: str | None) -> str:
    """Return *value* stripped when it is an absolute http(s) URL."""
    candidate = (value or "").strip()
    try:
        parts = urlsplit(candidate)
    except ValueError as exc:
        raise InputValidationError("Invalid repository URL") from exc
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise InputValidationError("Invalid repository URL")
    return candidate


def sanitize_revision(value: str | None) -> str:
    """A commit id or ref name that git cannot mistake for an option."""
    candidate = (value or "").strip()
    if not candidate:
        raise InputValidationError("Missing commit SHA")
    if candidate.startswith("-") or any(ch.isspace() or ch == "\x00" for ch in candidate):
        raise InputValidationError("Invalid commit SHA")
    return candidate


def sanitize_file_path(value: str | None) -> str:
    """Reject empty, absolute and parent-escaping repository paths."""
    if not value or "\x00" in value:
        raise InputValidationError("Invalid file path")
    if value.startswith(("/", "\\")):
        raise InputValidationError("Invalid file path")
    segments = value.replace("\\", "/").split("/")
    if ".." in segments:
        raise InputValidationError("Invalid file path")
    return value
