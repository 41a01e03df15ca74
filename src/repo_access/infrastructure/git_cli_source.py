"""Git plumbing adapter — implements the RepositorySource port with ``git``.

Works against a local clone (``--no-checkout``) or a bare mirror.  The
layouts differ only in where branches live: a working clone keeps them as
``refs/remotes/origin/*``, a bare mirror fetches them straight into
``refs/heads/*``.
"""

from __future__ import annotations

import asyncio
import logging
import re
import shutil
import uuid
from dataclasses import replace
from pathlib import Path

from repo_access.domain.entities import (
    Commit,
    CredentialInfo,
    CredentialType,
    Diff,
    DiffOptions,
    GitBlob,
    ListCommitsOptions,
    RepositoryInfo,
    TreeEntry,
)
from repo_access.domain.exceptions import (
    InitializationError,
    RefResolutionError,
    SubprocessError,
)
from repo_access.domain.ports.credential_provider import CredentialProvider
from repo_access.infrastructure.git_process import GitRunner, build_git_env
from repo_access.services.plumbing_parser import (
    parse_batch,
    parse_commit,
    parse_diff,
    parse_tree,
)
from repo_access.services.security_sentinel import redact
from repo_access.services.url_parser import GitUrlParser

logger = logging.getLogger(__name__)

_FALLBACK_BRANCHES = ("main", "master", "develop")
_FULL_OID_RE = re.compile(r"^(?:[0-9a-f]{40}|[0-9a-f]{64})$")
_SYMREF_RE = re.compile(r"^ref: refs/heads/(?P<branch>\S+)\tHEAD$", re.MULTILINE)


class GitCliSource:
    """Concrete ``RepositorySource`` driving the ``git`` binary.

    Parameters
    ----------
    credentials:
        Resolves the authentication strategy for the remote's host.
    url_parser:
        Normalises the remote URL and builds clone URLs.
    runner:
        Executes git; a default runner is created when omitted.
    bare:
        Clone as a bare mirror instead of a ``--no-checkout`` working clone.
    depth:
        Keep history shallow: clone and fetch at most this many commits.
    prune:
        Drop branches deleted on the remote when fetching.
    clone_fallback:
        Retry without the blob filter when a partial clone is refused.
    """

    def __init__(
        self,
        credentials: CredentialProvider,
        url_parser: GitUrlParser,
        runner: GitRunner | None = None,
        *,
        bare: bool = False,
        depth: int | None = None,
        prune: bool = False,
        clone_fallback: bool = True,
    ) -> None:
        self._credentials = credentials
        self._parser = url_parser
        self._runner = runner or GitRunner()
        self._bare = bare
        self._depth = depth
        self._prune = prune
        self._clone_fallback = clone_fallback

        self._local_dir: Path | None = None
        self._remote_url = ""
        self._repo_info: RepositoryInfo | None = None
        self._env: dict[str, str] = build_git_env()
        self._write_lock = asyncio.Lock()

    # ── Layout ──────────────────────────────────────────────────────────

    @property
    def local_dir(self) -> Path | None:
        return self._local_dir

    @property
    def remote_url(self) -> str:
        return self._remote_url

    @property
    def _branch_prefix(self) -> str:
        return "refs/heads/" if self._bare else "refs/remotes/origin/"

    @property
    def _default_refspec(self) -> str:
        return f"+refs/heads/*:{self._branch_prefix}*"

    @staticmethod
    def has_repository(path: Path) -> bool:
        """Whether *path* already holds a working clone or a bare repository."""
        if (path / ".git").exists():
            return True
        return (path / "HEAD").is_file() and (path / "objects").is_dir()

    # ── Lifecycle ───────────────────────────────────────────────────────

    async def init(self, local_dir: str, remote_url: str) -> None:
        """Attach to an existing clone of *remote_url* or create one.

        Safe to call repeatedly: an existing repository only gets its
        ``origin`` URL brought in line with *remote_url*.
        """
        if not local_dir:
            raise InitializationError("The git backend needs a local directory")
        info = self._parser.parse(remote_url)
        credentials = self._credentials.for_host(info.host)
        clone_url = self._clone_url(info, credentials)
        path = Path(local_dir)

        async with self._write_lock:
            self._local_dir = path
            self._remote_url = remote_url
            self._repo_info = info
            self._env = build_git_env(credentials)

            path.mkdir(parents=True, exist_ok=True)
            if self.has_repository(path):
                await self._sync_remote(clone_url)
                return
            await self._clone(clone_url, path)

    async def update(self, refs: list[str] | None = None) -> None:
        """Fetch *refs* (default: every branch) from ``origin``."""
        self._require_dir()
        args = ["fetch"]
        if self._depth:
            args += ["--depth", str(self._depth), "--update-shallow"]
        if self._prune:
            args.append("--prune")
        args += ["origin", *(refs or [self._default_refspec])]
        async with self._write_lock:
            await self._git(args)

    async def refresh_default_branch(self) -> str | None:
        """Ask the remote for its default branch and point ``HEAD`` at it."""
        info = self._require_info()
        output = await self._git(["ls-remote", "--symref", "origin", "HEAD"])
        match = _SYMREF_RE.search(output)
        if match is None:
            return None
        branch = match["branch"]
        async with self._write_lock:
            if self._bare:
                await self._git(["symbolic-ref", "HEAD", f"refs/heads/{branch}"])
            else:
                await self._git(["remote", "set-head", "origin", branch])
        self._repo_info = replace(info, default_branch=branch)
        return branch

    # ── Reads ───────────────────────────────────────────────────────────

    async def resolve_ref(self, ref: str) -> str:
        """Resolve *ref* to a commit id, preferring the remote-tracking branch.

        A working clone keeps the local branch created at clone time, which
        ``fetch`` never moves, so ``origin/<ref>`` is tried first.
        """
        _check_revision(ref)
        candidates = [await self._default_revision()] if ref == "HEAD" else [ref]
        if not self._bare and ref != "HEAD":
            candidates.insert(0, f"origin/{ref}")

        for candidate in candidates:
            try:
                output = await self._git(
                    ["rev-parse", "--verify", "--quiet", f"{candidate}^{{commit}}"]
                )
            except SubprocessError:
                continue
            sha = output.strip().lower()
            if sha:
                return sha
        raise RefResolutionError(ref)

    async def list_commits(self, opts: ListCommitsOptions | None = None) -> list[Commit]:
        opts = opts or ListCommitsOptions()
        args = ["rev-list"]
        if opts.topo:
            args.append("--topo-order")
        if opts.max_count is not None:
            args.append(f"--max-count={max(opts.max_count, 0)}")
        if opts.skip:
            args.append(f"--skip={opts.skip}")
        args += [await self._range(opts), "--"]

        output = await self._git(args)
        oids = [line.strip() for line in output.splitlines() if line.strip()]
        if not oids:
            return []

        # one round trip for every commit body, in rev-list order
        raw = await self._run(["cat-file", "--batch"], stdin=("\n".join(oids) + "\n").encode())
        return [
            parse_commit(oid, body.decode("utf-8", errors="replace"))
            for oid, _kind, body in parse_batch(raw)
        ]

    async def get_commit(self, oid: str) -> Commit:
        full = oid.lower() if _FULL_OID_RE.match(oid.lower()) else await self.resolve_ref(oid)
        try:
            data = await self._git(["cat-file", "-p", full])
        except SubprocessError as exc:
            raise RefResolutionError(oid, exc.stderr.strip() or None) from exc
        return parse_commit(full, data)

    async def get_tree(self, oid: str, path: str | None = None) -> list[TreeEntry]:
        _check_revision(oid)
        args = ["ls-tree", "-r", "-t", "-z", oid]
        if path:
            args += ["--", path]
        return parse_tree(await self._git(args))

    async def get_blob(self, oid: str) -> GitBlob:
        _check_revision(oid)
        raw = await self._run(["cat-file", "-p", oid])
        size = int((await self._git(["cat-file", "-s", oid])).strip())
        try:
            content: str | bytes = raw.decode("utf-8")
        except UnicodeDecodeError:
            content = raw
        return GitBlob(oid=oid, size=size, content=content)

    async def diff(self, base: str, head: str, opts: DiffOptions | None = None) -> Diff:
        opts = opts or DiffOptions()
        _check_revision(base)
        _check_revision(head)
        args = ["diff-tree", "-r", "-p"]
        if opts.include_renames:
            args.append("-M")
        if opts.include_copies:
            args.append("-C")
        if opts.context_lines is not None:
            args.append(f"-U{opts.context_lines}")
        args += [base, head, "--"]
        return parse_diff(base, head, await self._git(args))

    async def get_repository_info(self) -> RepositoryInfo:
        """Descriptor with the default branch read from the local refs."""
        info = self._require_info()
        head_ref = "HEAD" if self._bare else "refs/remotes/origin/HEAD"
        branch: str | None = None
        try:
            target = await self._git(["symbolic-ref", "--quiet", head_ref])
            branch = target.strip().removeprefix(self._branch_prefix) or None
        except SubprocessError:
            for candidate in _FALLBACK_BRANCHES:
                try:
                    await self._git(
                        ["rev-parse", "--verify", "--quiet", f"{self._branch_prefix}{candidate}"]
                    )
                except SubprocessError:
                    continue
                branch = candidate
                break

        if branch:
            info = replace(info, default_branch=branch)
            self._repo_info = info
        return info

    # ── Internals ───────────────────────────────────────────────────────

    def _clone_url(self, info: RepositoryInfo, credentials: CredentialInfo) -> str:
        return self._parser.clone_url(info, ssh=credentials.type is CredentialType.SSH)

    async def _sync_remote(self, clone_url: str) -> None:
        try:
            current = (await self._git(["config", "--get", "remote.origin.url"])).strip()
        except SubprocessError:
            current = ""
        if not current:
            await self._git(["remote", "add", "origin", clone_url])
        elif current != clone_url:
            logger.info("Updating origin of %s to %s", self._local_dir, redact(clone_url))
            await self._git(["remote", "set-url", "origin", clone_url])

    async def _clone(self, clone_url: str, path: Path) -> None:
        staging = path.parent / f".{path.name}.{uuid.uuid4().hex[:8]}.partial"
        base = ["clone", "--bare" if self._bare else "--no-checkout"]
        if self._depth:
            base += ["--depth", str(self._depth)]

        logger.info("Cloning %s into %s", redact(clone_url), path)
        try:
            await self._run([*base, "--filter=blob:none", clone_url, str(staging)], cwd=path.parent)
        except SubprocessError as exc:
            await _remove_tree(staging)
            if not self._clone_fallback:
                raise InitializationError(f"Failed to clone {redact(clone_url)}: {exc}") from exc
            logger.warning("Partial clone failed, falling back to a full clone: %s", exc)
            try:
                await self._run([*base, clone_url, str(staging)], cwd=path.parent)
            except SubprocessError as fallback_exc:
                await _remove_tree(staging)
                raise InitializationError(
                    f"Failed to clone {redact(clone_url)}: {fallback_exc}"
                ) from fallback_exc

        if self._bare:
            await self._run(
                ["config", "remote.origin.fetch", self._default_refspec], cwd=staging
            )
        await self._install(staging, path)

    async def _install(self, staging: Path, path: Path) -> None:
        """Move a finished clone into place; a concurrent winner is kept."""
        try:
            path.rmdir()
        except FileNotFoundError:
            pass
        except OSError as exc:
            await self._discard(staging, path, exc)
            return
        try:
            staging.rename(path)
        except OSError as exc:
            await self._discard(staging, path, exc)

    async def _discard(self, staging: Path, path: Path, exc: OSError) -> None:
        await _remove_tree(staging)
        if not self.has_repository(path):
            raise InitializationError(f"Cannot install clone into {path}: {exc}") from exc
        logger.info("%s was initialised concurrently, reusing it", path)

    async def _default_revision(self) -> str:
        if not self._bare:
            try:
                await self._git(["rev-parse", "--verify", "--quiet", "refs/remotes/origin/HEAD"])
            except SubprocessError:
                return "HEAD"
            return "refs/remotes/origin/HEAD"
        return "HEAD"

    async def _range(self, opts: ListCommitsOptions) -> str:
        for rev in (opts.from_, opts.to):
            if rev:
                _check_revision(rev)
        if opts.from_ and opts.to:
            return f"{opts.from_}..{opts.to}"
        if opts.from_:
            return f"{opts.from_}..{await self._default_revision()}"
        if opts.to:
            return opts.to
        return await self._default_revision()

    def _require_dir(self) -> Path:
        if self._local_dir is None:
            raise InitializationError("Repository not initialized")
        return self._local_dir

    def _require_info(self) -> RepositoryInfo:
        if self._repo_info is None:
            raise InitializationError("Repository not initialized")
        return self._repo_info

    async def _run(
        self, args: list[str], *, cwd: Path | None = None, stdin: bytes | None = None
    ) -> bytes:
        return await self._runner.run(
            args, cwd=cwd or self._require_dir(), env=self._env, stdin=stdin
        )

    async def _git(self, args: list[str]) -> str:
        return await self._runner.run_text(args, cwd=self._require_dir(), env=self._env)


def _check_revision(rev: str) -> None:
    """Reject revisions that git would read as command-line options."""
    if not rev or rev.startswith("-"):
        raise RefResolutionError(rev, "invalid revision")


async def _remove_tree(path: Path) -> None:
    await asyncio.to_thread(shutil.rmtree, path, True)
