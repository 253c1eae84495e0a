"""Exception types raised by the build pipeline.

Only the fatal kinds live here. Missing narrative/output files, binary blobs and
malformed frontmatter are recovered where they are found and logged instead.
"""

from __future__ import annotations


class CommitbookError(Exception):
    """Base class for errors that abort a build."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"{reason}: {source}")


class RepositoryAccessError(CommitbookError):
    """The source is missing, unreadable, not a git repo, or has no commits."""


class CloneFailure(CommitbookError):
    """A remote repository could not be cloned."""
