"""Per-commit file listing and blob reading with content-based binary detection."""

from __future__ import annotations

import hashlib
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor

from commitbook.git_backend import GitBackend
from commitbook.logger import get_logger
from commitbook.models import BlobContent, FileNode

logger = get_logger(__name__)


def decode_blob(raw: bytes | None) -> BlobContent:
    """Classify raw blob bytes as text, binary, or missing.

    A null byte anywhere, or bytes that are not valid UTF-8, mean binary.
    """
    if raw is None:
        return BlobContent(status="not_found")
    digest = hashlib.sha1(raw).hexdigest()
    if b"\0" in raw:
        return BlobContent(status="binary", digest=digest)
    try:
        return BlobContent(status="text", text=raw.decode("utf-8"), digest=digest)
    except UnicodeDecodeError:
        return BlobContent(status="binary", digest=digest)


class ContentExtractor:
    """Reads snapshots out of history through a ``GitBackend``."""

    def __init__(self, backend: GitBackend, workers: int = 4):
        self.backend = backend
        self.workers = max(1, workers)

    def list_files(self, commit: str) -> list[str]:
        return self.backend.list_tree_paths(commit)

    def read_file(self, commit: str, path: str) -> BlobContent:
        return decode_blob(self.backend.read_blob(commit, path))

    def read_text(self, commit: str, path: str) -> str | None:
        """Return text with ``\\n`` line endings, or ``None`` when missing or binary.

        Used for narrative files; snapshots keep the raw text for diffing.
        """
        blob = self.read_file(commit, path)
        if blob.status == "binary":
            logger.warning("Skipping binary content of %s at %s", path, commit[:12])
        if not blob.is_text or blob.text is None:
            return None
        return blob.text.replace("\r\n", "\n")

    def snapshot(self, commit: str) -> list[FileNode]:
        """Return every tracked file at ``commit`` in tree order."""
        nodes: list[FileNode] = []
        for path in self.list_files(commit):
            blob = self.read_file(commit, path)
            if blob.is_text:
                nodes.append(FileNode(path=path, content=blob.text, digest=blob.digest))
            elif blob.status == "binary":
                nodes.append(FileNode(path=path, is_binary=True, digest=blob.digest))
            else:
                # Listed but unreadable, e.g. a submodule gitlink.
                logger.debug("Listed path %s has no blob at %s", path, commit[:12])
        return nodes

    def snapshots(self, commits: Sequence[str]) -> list[list[FileNode]]:
        """Snapshot several commits on a bounded pool, returned in input order."""
        if not commits:
            return []
        with ThreadPoolExecutor(max_workers=min(self.workers, len(commits))) as pool:
            return list(pool.map(self.snapshot, commits))
