"""Changed-file detection, unified diffs, and file trees for snapshots."""

from __future__ import annotations

import difflib
from collections.abc import Iterable, Sequence

from commitbook.git_backend import GitBackend
from commitbook.models import ChangeSet, FileDiff, FileLeaf, FileNode, FolderNode

BINARY_DIFF_UNSUPPORTED = "Binary file diff not supported"
NO_NEWLINE_MARKER = "\\ No newline at end of file"
CONTEXT_LINES = 3

# Narrative convention files shown beside the code, never inside the file list.
HIDDEN_FILES = frozenset({"OUTPUT.txt", "OUTPUT.md", "STEP.md", "STEPS.md", "README.md"})


def index_nodes(nodes: Iterable[FileNode]) -> dict[str, FileNode]:
    return {node.path: node for node in nodes}


def _same(a: FileNode, b: FileNode) -> bool:
    if a.digest is not None and b.digest is not None:
        return a.digest == b.digest
    # Binary nodes without digests cannot be compared; count them as changed.
    if a.is_binary or b.is_binary:
        return False
    return a.content == b.content


def classify(current: Sequence[FileNode], previous: Sequence[FileNode] = ()) -> ChangeSet:
    """Group paths into added, modified, and deleted between two snapshots."""
    now = index_nodes(current)
    before = index_nodes(previous)
    return ChangeSet(
        added=sorted(path for path in now if path not in before),
        modified=sorted(path for path in now if path in before and not _same(now[path], before[path])),
        deleted=sorted(path for path in before if path not in now),
    )


def changed_files(current: Sequence[FileNode], previous: Sequence[FileNode] = ()) -> list[str]:
    """Paths of ``current`` that are new or differ from ``previous``.

    With an empty ``previous`` (the first step) every file counts as changed.
    """
    return classify(current, previous).changed


def visible_paths(paths: Iterable[str], hidden: frozenset[str] = HIDDEN_FILES) -> list[str]:
    return [path for path in paths if path not in hidden]


def unified_diff(path: str, old: str, new: str, context: int = CONTEXT_LINES) -> str:
    """Render a unified diff of ``old`` to ``new`` with ``Previous``/``Current`` headers."""
    lines = difflib.unified_diff(
        old.splitlines(keepends=True),
        new.splitlines(keepends=True),
        fromfile=path,
        tofile=path,
        fromfiledate="Previous",
        tofiledate="Current",
        n=context,
    )
    out: list[str] = []
    for line in lines:
        if line.endswith("\n"):
            out.append(line)
        else:
            out.append(f"{line}\n{NO_NEWLINE_MARKER}\n")
    return "".join(out)


def diff_file(path: str, current: Sequence[FileNode], previous: Sequence[FileNode] = ()) -> FileDiff:
    """Diff one path between two snapshots.

    Missing sides diff against empty text. Binary sides short-circuit to the
    ``BINARY_DIFF_UNSUPPORTED`` sentinel without touching content.

    Raises:
        ValueError: If ``path`` is in neither snapshot.
    """
    now = index_nodes(current).get(path)
    before = index_nodes(previous).get(path)
    if now is None and before is None:
        raise ValueError(f"File not found in either snapshot: {path}")

    if now is None:
        status = "deleted"
    elif before is None:
        status = "added"
    else:
        status = "unchanged" if _same(now, before) else "modified"

    if (now is not None and now.is_binary) or (before is not None and before.is_binary):
        return FileDiff(path=path, status=status, is_binary=True, patch=BINARY_DIFF_UNSUPPORTED)

    old_text = (before.content or "") if before else ""
    new_text = (now.content or "") if now else ""
    return FileDiff(path=path, status=status, patch=unified_diff(path, old_text, new_text))


def build_tree(nodes: Iterable[FileNode], hidden: frozenset[str] = frozenset()) -> FolderNode:
    """Insert each path segment by segment under an unnamed root folder.

    Children are ordered folders first, then files, each alphabetically.
    """
    root = FolderNode(name="", path="")
    for node in sorted(nodes, key=lambda item: item.path):
        if node.path in hidden:
            continue
        *folders, filename = node.path.split("/")
        parent = root
        for depth, name in enumerate(folders):
            child = parent.children.get(name)
            if not isinstance(child, FolderNode):
                child = FolderNode(name=name, path="/".join(folders[: depth + 1]))
                parent.children[name] = child
            parent = child
        parent.children[filename] = FileLeaf(name=filename, path=node.path, is_binary=node.is_binary)
    _order(root)
    return root


def _order(folder: FolderNode) -> None:
    ordered = sorted(folder.children.items(), key=lambda item: (item[1].kind != "folder", item[0]))
    folder.children = dict(ordered)
    for child in folder.children.values():
        if isinstance(child, FolderNode):
            _order(child)


def iter_tree(folder: FolderNode, depth: int = 0) -> Iterable[tuple[int, FolderNode | FileLeaf]]:
    """Yield ``(depth, node)`` pairs in display order, skipping the root."""
    for child in folder.children.values():
        yield depth, child
        if isinstance(child, FolderNode):
            yield from iter_tree(child, depth + 1)


def commit_touched_files(backend: GitBackend, commit: str) -> list[str]:
    """Paths the commit itself touched, as reported by ``git show``."""
    return backend.changed_paths(commit)
