"""Domain exception hierarchy.

Backends raise these; the service layer turns them into absence for UI
callers and the interface layer maps each one to an HTTP status code.
"""

from __future__ import annotations

from collections.abc import Sequence


class RepoAccessError(Exception):
    """Base exception for the entire application."""


# ── Input validation ────────────────────────────────────────────────────────


class MalformedUrlError(RepoAccessError):
    """The supplied URL matches no supported Git URL pattern."""

    def __init__(self, url: str, reason: str | None = None) -> None:
        self.url = url
        message = f"Unsupported Git URL format: '{url}'"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class InputValidationError(RepoAccessError):
    """A boundary parameter was rejected before touching any repository."""


# ── Repository state ────────────────────────────────────────────────────────


class InitializationError(RepoAccessError):
    """Cloning or preparing a repository source failed."""


class RefResolutionError(RepoAccessError):
    """A ref, branch or object id could not be found."""

    def __init__(self, ref: str, detail: str | None = None) -> None:
        self.ref = ref
        message = f"Could not resolve '{ref}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class PathNotFoundError(RefResolutionError):
    """No file exists at the requested path for the resolved commit."""

    def __init__(self, path: str, ref: str) -> None:
        self.path = path
        super().__init__(ref, f"no file at '{path}'")


# ── Backend failures ────────────────────────────────────────────────────────


class SubprocessError(RepoAccessError):
    """The ``git`` binary exited non-zero (or timed out)."""

    def __init__(
        self,
        command: Sequence[str],
        stderr: str,
        returncode: int | None = None,
    ) -> None:
        self.command = list(command)
        self.stderr = stderr
        self.returncode = returncode
        detail = stderr.strip() or f"exit status {returncode}"
        super().__init__(f"Git command failed: {' '.join(self.command)}\n{detail}")


class RemoteApiError(RepoAccessError):
    """A provider HTTP API call did not return a success status."""

    def __init__(self, message: str, status_code: int = 0, url: str | None = None) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)
