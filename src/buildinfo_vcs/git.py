"""Local git repository access: commit log and VCS provenance.

Two collaborators live here:
- The commit-log source, which streams the subject lines of a bounded
  window of commits (newest first) from `git log`
- The VCS reader, which reports the remote URL and HEAD revision

Design notes:
- The repository directory is passed to every git process as its working
  directory; the current process never changes directory
- Log lines are produced by a generator, so the git process is started on
  first iteration and terminated if the consumer stops early
- Uses Protocols so the collector can be tested with in-memory mocks
"""

from __future__ import annotations

import subprocess
from collections.abc import Callable, Iterator, Sequence
from pathlib import Path
from typing import Protocol
from urllib.parse import urlsplit, urlunsplit

from buildinfo_vcs.errors import LogCommandError, VcsError
from buildinfo_vcs.logging_config import get_logger
from buildinfo_vcs.schemas import LogQuerySpec, VcsInfo

logger = get_logger(__name__)

DOT_GIT = ".git"
CONFIG_KEY_UNSET = 1


def find_dot_git_dir(start: str | Path | None = None) -> Path:
    """Find the closest directory containing a .git entry.

    Args:
        start: Directory to start from. Defaults to the current directory.

    Returns:
        The repository root (the directory holding .git).

    Raises:
        VcsError: If neither start nor any of its parents holds .git.
    """
    origin = Path(start) if start else Path.cwd()
    origin = origin.resolve()
    for candidate in (origin, *origin.parents):
        if (candidate / DOT_GIT).exists():
            return candidate
    raise VcsError(
        f"Could not find a {DOT_GIT} directory in {origin} or its parents",
        context={"path": str(origin)},
    )


def strip_url_credentials(url: str) -> str:
    """Remove user:password@ from http(s) remote URLs."""
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or "@" not in parts.netloc:
        return url
    host = parts.netloc.rsplit("@", 1)[1]
    return urlunsplit(parts._replace(netloc=host))


# ---------------------------------------------------------------------------
# Commit log
# ---------------------------------------------------------------------------


class CommitLogSourceProtocol(Protocol):
    """Produces commit subject lines for a bounded log window."""

    def iter_lines(self, query: LogQuerySpec) -> Iterator[str]:
        """Yield one subject line per commit, newest first.

        Raises:
            LogCommandError: When the log cannot be produced. Raised after
                the lines that were produced, so callers must not keep
                partial results.
        """
        ...


class GitCommitLog:
    """Reads the commit log by running `git log` in the repository."""

    def iter_lines(self, query: LogQuerySpec) -> Iterator[str]:
        args = query.to_args()
        logger.debug("running_git_log", args=args, cwd=str(query.source_path))
        try:
            process = subprocess.Popen(
                args,
                cwd=query.source_path,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            raise LogCommandError(
                "Failed executing git log command.",
                context={"args": args, "error": str(exc)},
            ) from exc

        finished = False
        try:
            for line in process.stdout:
                yield line.rstrip("\r\n")
            stderr = process.stderr.read()
            returncode = process.wait()
            finished = True
        finally:
            if not finished:
                process.kill()
                process.wait()
            process.stdout.close()
            process.stderr.close()

        if returncode != 0:
            # Typically an unknown revision in the range.
            raise LogCommandError(
                "Failed executing git log command.",
                context={
                    "args": args,
                    "returncode": returncode,
                    "stderr": stderr.strip(),
                },
            )


class MockCommitLog:
    """Commit-log source returning predefined lines.

    Usage:
        source = MockCommitLog(["PROJ-1: fix", "chore: bump"])
        source = MockCommitLog([], fail=True)  # simulates a failing git log
    """

    def __init__(self, lines: Sequence[str] | None = None, fail: bool = False) -> None:
        self._lines = list(lines or [])
        self._fail = fail
        self.queries: list[LogQuerySpec] = []
        self.consumed = 0

    def iter_lines(self, query: LogQuerySpec) -> Iterator[str]:
        self.queries.append(query)
        for line in self._lines[: query.limit]:
            self.consumed += 1
            yield line
        if self._fail:
            raise LogCommandError("Failed executing git log command.")


# ---------------------------------------------------------------------------
# VCS info
# ---------------------------------------------------------------------------


class VcsInfoReaderProtocol(Protocol):
    """Reads the remote URL and current revision of a checkout."""

    def read(self, repo_path: Path) -> VcsInfo:
        ...


class GitVcsReader:
    """Reads VCS info with `git config` and `git rev-parse`.

    A checkout without an origin remote gives an empty URL.

    Args:
        runner: Function with the subprocess.run signature, replaceable in
                tests.
    """

    def __init__(
        self,
        runner: Callable[..., subprocess.CompletedProcess[str]] = subprocess.run,
    ) -> None:
        self._runner = runner

    def _git(self, repo_path: Path, *args: str, unset_ok: bool = False) -> str:
        cmd = ["git", *args]
        try:
            result = self._runner(
                cmd,
                cwd=repo_path,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise VcsError(
                f"Failed running {' '.join(cmd)}: {exc}",
                context={"cmd": cmd, "path": str(repo_path)},
            ) from exc
        # git config --get exits 1 when the key is not set.
        if unset_ok and result.returncode == CONFIG_KEY_UNSET:
            return ""
        if result.returncode != 0:
            raise VcsError(
                f"Failed running {' '.join(cmd)}: {result.stderr.strip()}",
                context={
                    "cmd": cmd,
                    "path": str(repo_path),
                    "returncode": result.returncode,
                },
            )
        return result.stdout.strip()

    def read(self, repo_path: Path) -> VcsInfo:
        url = self._git(repo_path, "config", "--get", "remote.origin.url", unset_ok=True)
        revision = self._git(repo_path, "rev-parse", "HEAD")
        if not url:
            logger.warning("origin_remote_not_set", path=str(repo_path))
        return VcsInfo(url=strip_url_credentials(url), revision=revision)


class MockVcsReader:
    def __init__(self, info: VcsInfo | None = None) -> None:
        self._info = info or VcsInfo(
            url="https://github.com/mock/repo.git",
            revision="0" * 40,
        )
        self.paths: list[Path] = []

    def read(self, repo_path: Path) -> VcsInfo:
        self.paths.append(repo_path)
        return self._info
