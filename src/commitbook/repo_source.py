"""Repository source resolution for local paths and remote git URLs."""

from __future__ import annotations

import shutil
import subprocess
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from urllib.parse import urlparse

from commitbook.errors import CloneFailure, RepositoryAccessError
from commitbook.logger import get_logger

logger = get_logger(__name__)


def looks_like_git_url(source: str) -> bool:
    """Return ``True`` when ``source`` matches common git URL prefixes."""
    return (
        source.startswith("https://")
        or source.startswith("http://")
        or source.startswith("git@")
        or source.startswith("ssh://")
    )


def repo_slug(source: str) -> str:
    """Return the repository name embedded in a URL or path, without ``.git``."""
    parsed = urlparse(source if "://" in source else f"ssh://{source.replace(':', '/', 1)}")
    base = Path(parsed.path.rstrip("/")).name
    stem = base[:-4] if base.endswith(".git") else base
    return stem or "repo"


def resolve_local_repo(source: str) -> Path:
    """Validate that ``source`` is an existing git working tree.

    Raises:
        RepositoryAccessError: If the path is missing or not a git repository.
    """
    candidate = Path(source).expanduser()
    if not candidate.exists():
        raise RepositoryAccessError(str(candidate), "Local path does not exist")
    if not candidate.is_dir():
        raise RepositoryAccessError(str(candidate), "Source exists but is not a directory")
    if not (candidate / ".git").exists():
        raise RepositoryAccessError(str(candidate), "Not a git repository")
    return candidate.resolve()


@contextmanager
def open_repository(source: str, clone_depth: int = 1000, timeout: float | None = None) -> Iterator[tuple[Path, str]]:
    """Yield a local repository path for ``source`` and how it was obtained.

    Local paths are used in place (mode ``local``). Remote URLs are shallow
    cloned into a process-owned temp directory (mode ``cloned``) that is removed
    when the context exits, whether or not the build succeeded.
    """
    if not looks_like_git_url(source):
        yield resolve_local_repo(source), "local"
        return

    tmp_dir = Path(tempfile.mkdtemp(prefix="commitbook-"))
    target = tmp_dir / repo_slug(source)
    try:
        logger.info("Cloning %s into %s", source, target)
        run_cmd(
            ["git", "clone", "--quiet", f"--depth={clone_depth}", "--", source, str(target)],
            source=source,
            timeout=timeout,
        )
        yield target, "cloned"
    finally:
        shutil.rmtree(tmp_dir, ignore_errors=True)


def run_cmd(cmd: list[str], source: str, timeout: float | None = None) -> str:
    """Run a clone-related command and return stdout, raising ``CloneFailure``."""
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True, check=False, timeout=timeout)
    except subprocess.TimeoutExpired as exc:
        raise CloneFailure(source, f"Clone timed out after {timeout:g}s") from exc
    except FileNotFoundError as exc:
        raise CloneFailure(source, "git executable not found") from exc
    if proc.returncode != 0:
        raise CloneFailure(source, f"Failed to clone repository ({proc.stderr.strip()})")
    return proc.stdout
