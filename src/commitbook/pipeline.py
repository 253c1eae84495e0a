"""End-to-end build: history -> steps + metadata -> persisted output."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from pydantic import BaseModel

from commitbook.assembler import assemble_steps
from commitbook.config import Settings
from commitbook.extractor import ContentExtractor
from commitbook.git_backend import GitBackend, GitCliBackend
from commitbook.logger import get_logger
from commitbook.metadata import (
    README_FILE,
    parse_frontmatter,
    readme_body,
    repo_identity,
    resolve_project_metadata,
)
from commitbook.models import Commit, FileNode, Frontmatter, ProjectMetadata, Step
from commitbook.repo_source import open_repository
from commitbook.writer import write_build

logger = get_logger(__name__)

ProgressCallback = Callable[[str], None]


class BuildResult(BaseModel):
    project: ProjectMetadata
    steps: list[Step]
    readme: str | None = None
    output_dir: Path | None = None


def collect(
    backend: GitBackend,
    settings: Settings,
    repo_display: str,
    progress_callback: ProgressCallback | None = None,
) -> BuildResult:
    """Compute every step and the manifest in memory without writing anything.

    Raises:
        RepositoryAccessError: If history cannot be read or is empty.
    """
    if progress_callback:
        progress_callback("reading commit history")
    commits = backend.list_commits()

    extractor = ContentExtractor(backend, workers=settings.workers)
    if progress_callback:
        progress_callback(f"assembling {len(commits)} steps ({settings.strategy.value})")
    steps = assemble_steps(extractor, commits, strategy=settings.strategy)

    if progress_callback:
        progress_callback("resolving project metadata")
    tip = commits[-1].hash
    raw_readme = extractor.read_text(tip, README_FILE)
    if raw_readme is None:
        logger.warning("%s not found at %s", README_FILE, tip[:12])
        frontmatter = Frontmatter()
    else:
        frontmatter = parse_frontmatter(raw_readme)

    repo_name, repo_url = repo_identity(backend.get_remote_url(), backend.repo_path.name)
    project = resolve_project_metadata(
        frontmatter=frontmatter,
        repo_name=repo_name,
        repo_path=repo_display,
        repo_url=repo_url,
        commits=commits,
        steps=steps,
    )
    readme = readme_body(frontmatter) if raw_readme is not None else None
    return BuildResult(project=project, steps=steps, readme=readme)


def sync_repository(
    repo_path: Path,
    settings: Settings,
    repo_display: str | None = None,
    backend: GitBackend | None = None,
    progress_callback: ProgressCallback | None = None,
) -> BuildResult:
    """Build from a local repository and replace ``settings.output_dir``."""
    repo_path = Path(repo_path)
    backend = backend or GitCliBackend(repo_path, timeout=settings.git_timeout)
    result = collect(
        backend,
        settings,
        repo_display=repo_display or str(repo_path),
        progress_callback=progress_callback,
    )

    if progress_callback:
        progress_callback(f"writing output to {settings.output_dir}")
    result.output_dir = write_build(
        settings.output_dir,
        result.project,
        result.steps,
        result.readme,
        site_base=settings.site_base,
    )
    return result


def build_from_source(
    source: str,
    settings: Settings,
    progress_callback: ProgressCallback | None = None,
) -> BuildResult:
    """Resolve ``source`` (path or URL), then sync it.

    A remote source is recorded in the manifest by its URL, since its clone
    directory does not outlive the build.
    """
    with open_repository(source, clone_depth=settings.clone_depth, timeout=settings.git_timeout) as (
        repo_path,
        mode,
    ):
        if progress_callback:
            progress_callback(f"using repo {repo_path} ({mode})")
        return sync_repository(
            repo_path,
            settings,
            repo_display=source if mode == "cloned" else str(repo_path),
            progress_callback=progress_callback,
        )


def step_snapshots(
    backend: GitBackend,
    step_index: int,
    workers: int = 2,
) -> tuple[Commit, list[FileNode], list[FileNode]]:
    """Return a step's commit with its snapshot and the previous step's snapshot.

    The first step has an empty previous snapshot.

    Raises:
        IndexError: If ``step_index`` is outside the history.
    """
    commits = backend.list_commits()
    if not 0 <= step_index < len(commits):
        raise IndexError(f"Step {step_index} out of range (0-{len(commits) - 1})")
    extractor = ContentExtractor(backend, workers=workers)
    commit = commits[step_index]
    if step_index == 0:
        return commit, extractor.snapshot(commit.hash), []
    current, previous = extractor.snapshots([commit.hash, commits[step_index - 1].hash])
    return commit, current, previous
