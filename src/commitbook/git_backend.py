"""Narrow git capability interface and its ``git`` subprocess implementation."""

from __future__ import annotations

import subprocess
from datetime import datetime
from pathlib import Path
from typing import Protocol

from commitbook.errors import RepositoryAccessError
from commitbook.logger import get_logger
from commitbook.models import Commit

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 60.0
FIELD_SEP = "\x1f"


class GitBackend(Protocol):
    """What the pipeline needs from version control, and nothing more."""

    repo_path: Path

    def list_commits(self) -> list[Commit]: ...

    def list_tree_paths(self, commit: str) -> list[str]: ...

    def read_blob(self, commit: str, path: str) -> bytes | None: ...

    def get_remote_url(self) -> str | None: ...

    def changed_paths(self, commit: str) -> list[str]: ...


class GitCliBackend:
    """Runs the ``git`` binary with argument lists and a bounded timeout."""

    def __init__(self, repo_path: Path, timeout: float = DEFAULT_TIMEOUT):
        self.repo_path = Path(repo_path)
        self.timeout = timeout

    def _run(self, args: list[str]) -> subprocess.CompletedProcess[bytes]:
        cmd = ["git", "-C", str(self.repo_path), *args]
        try:
            return subprocess.run(cmd, check=False, capture_output=True, timeout=self.timeout)
        except subprocess.TimeoutExpired as exc:
            raise RepositoryAccessError(
                str(self.repo_path), f"git {args[0]} timed out after {self.timeout:g}s"
            ) from exc
        except FileNotFoundError as exc:
            raise RepositoryAccessError(str(self.repo_path), "git executable not found") from exc

    def _run_text(self, args: list[str]) -> str:
        proc = self._run(args)
        if proc.returncode != 0:
            stderr = proc.stderr.decode("utf-8", errors="replace").strip()
            raise RepositoryAccessError(str(self.repo_path), f"git {args[0]} failed ({stderr})")
        return proc.stdout.decode("utf-8", errors="replace")

    def list_commits(self) -> list[Commit]:
        """Return every commit reachable from HEAD, oldest first.

        Raises:
            RepositoryAccessError: If the path is not a repository or has no commits.
        """
        proc = self._run(["log", "--reverse", f"--format=%H{FIELD_SEP}%aI{FIELD_SEP}%s", "HEAD"])
        if proc.returncode != 0:
            if self._is_repository() and not self._has_head():
                raise RepositoryAccessError(str(self.repo_path), "Repository has no commits")
            stderr = proc.stderr.decode("utf-8", errors="replace").strip()
            raise RepositoryAccessError(str(self.repo_path), f"Cannot read git history ({stderr})")

        commits: list[Commit] = []
        for line in proc.stdout.decode("utf-8", errors="replace").splitlines():
            if not line.strip():
                continue
            commit_hash, ts, message = line.split(FIELD_SEP, maxsplit=2)
            commits.append(
                Commit(
                    hash=commit_hash,
                    message=message,
                    order=len(commits),
                    timestamp=datetime.fromisoformat(ts.replace("Z", "+00:00")),
                )
            )
        if not commits:
            raise RepositoryAccessError(str(self.repo_path), "Repository has no commits")
        return commits

    def _is_repository(self) -> bool:
        return self._run(["rev-parse", "--git-dir"]).returncode == 0

    def _has_head(self) -> bool:
        return self._run(["rev-parse", "--verify", "--quiet", "HEAD"]).returncode == 0

    def list_tree_paths(self, commit: str) -> list[str]:
        output = self._run_text(["ls-tree", "-r", "-z", "--name-only", commit])
        return [path for path in output.split("\0") if path]

    def read_blob(self, commit: str, path: str) -> bytes | None:
        """Return raw blob bytes, or ``None`` when ``path`` is absent at ``commit``."""
        proc = self._run(["cat-file", "blob", f"{commit}:{path}"])
        if proc.returncode != 0:
            logger.debug("No blob for %s at %s", path, commit[:12])
            return None
        return proc.stdout

    def get_remote_url(self) -> str | None:
        proc = self._run(["remote", "get-url", "origin"])
        if proc.returncode != 0:
            return None
        url = proc.stdout.decode("utf-8", errors="replace").strip()
        return url or None

    def changed_paths(self, commit: str) -> list[str]:
        """Paths touched by ``commit`` itself, relative to its first parent."""
        output = self._run_text(
            ["diff-tree", "--no-commit-id", "--name-only", "-r", "-z", "--root", "--no-renames", commit]
        )
        return [path for path in output.split("\0") if path]
