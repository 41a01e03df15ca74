"""Async ``git`` subprocess runner and credential-aware environments."""

from __future__ import annotations

import asyncio
import base64
import logging
import os
import shlex
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path

from repo_access.domain.entities import CredentialInfo, CredentialType
from repo_access.domain.exceptions import SubprocessError
from repo_access.services.security_sentinel import redact, redact_command

logger = logging.getLogger(__name__)


def build_git_env(credentials: CredentialInfo | None = None) -> dict[str, str]:
    """Process environment for a git invocation authenticated with *credentials*.

    HTTPS tokens become an ``http.extraHeader`` passed through the
    ``GIT_CONFIG_COUNT`` protocol, so they never land in argv or in the
    repository's config file.
    """
    env = os.environ.copy()
    env["GIT_TERMINAL_PROMPT"] = "0"
    if credentials is None:
        return env

    if credentials.type is CredentialType.HTTPS and credentials.token_or_password:
        pair = f"{credentials.username or ''}:{credentials.token_or_password}"
        encoded = base64.b64encode(pair.encode("utf-8")).decode("ascii")
        index = int(env.get("GIT_CONFIG_COUNT", "0") or 0)
        env[f"GIT_CONFIG_KEY_{index}"] = "http.extraHeader"
        env[f"GIT_CONFIG_VALUE_{index}"] = f"Authorization: Basic {encoded}"
        env["GIT_CONFIG_COUNT"] = str(index + 1)
    elif credentials.type is CredentialType.SSH:
        if credentials.private_key_path:
            key = shlex.quote(credentials.private_key_path)
            env["GIT_SSH_COMMAND"] = f"ssh -i {key} -o IdentitiesOnly=yes -o BatchMode=yes"
        elif credentials.ssh_agent:
            env["SSH_AUTH_SOCK"] = credentials.ssh_agent
    return env


def check_git(binary: str = "git", timeout: float = 5.0) -> bool:
    """Whether ``<binary> --version`` runs successfully."""
    try:
        subprocess.run(
            [binary, "--version"],
            capture_output=True,
            timeout=timeout,
            check=True,
        )
    except (OSError, subprocess.SubprocessError):
        return False
    return True


class GitRunner:
    """Runs git commands and raises :class:`SubprocessError` on failure."""

    def __init__(self, binary: str = "git", timeout: float | None = None) -> None:
        self._binary = binary
        self._timeout = timeout

    @property
    def binary(self) -> str:
        return self._binary

    async def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | str | None = None,
        env: Mapping[str, str] | None = None,
        stdin: bytes | None = None,
    ) -> bytes:
        """Run ``git <args>`` and return its raw stdout."""
        command = [self._binary, *args]
        display = redact_command(command)
        logger.debug("Executing command: %s", " ".join(display))

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=str(cwd) if cwd else None,
                env=dict(env) if env is not None else None,
                stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise SubprocessError(display, str(exc)) from exc

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(stdin), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            await self._kill(process)
            raise SubprocessError(display, f"timed out after {self._timeout}s") from None
        except asyncio.CancelledError:
            await self._kill(process)
            raise

        if process.returncode != 0:
            message = redact(stderr.decode("utf-8", errors="replace"))
            raise SubprocessError(display, message, process.returncode)
        return stdout

    async def run_text(
        self,
        args: Sequence[str],
        *,
        cwd: Path | str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> str:
        output = await self.run(args, cwd=cwd, env=env)
        return output.decode("utf-8", errors="replace")

    @staticmethod
    async def _kill(process: asyncio.subprocess.Process) -> None:
        if process.returncode is None:
            process.kill()
            await process.wait()
