"""Typer-based CLI for building tutorial data from git history."""

from __future__ import annotations

import shutil
from collections.abc import Callable
from pathlib import Path

import typer

from commitbook.config import NarrativeStrategy, load_settings
from commitbook.diff_engine import (
    HIDDEN_FILES,
    build_tree,
    changed_files,
    commit_touched_files,
    diff_file,
    iter_tree,
    visible_paths,
)
from commitbook.errors import CommitbookError
from commitbook.git_backend import GitCliBackend
from commitbook.models import FolderNode
from commitbook.pipeline import BuildResult, build_from_source, step_snapshots, sync_repository
from commitbook.reader import load_project
from commitbook.repo_source import resolve_local_repo

app = typer.Typer(add_completion=False, help="commitbook: turn git history into tutorial steps")

STRATEGY_HELP = "Narrative source: per-commit STEP.md, or the deprecated combined STEPS.md"


def _echo_step(step: int, total: int, message: str) -> None:
    """Print a normalized progress step line."""
    typer.echo(f"[{step}/{total}] {message}")


def _progress_printer(total: int) -> Callable[[str], None]:
    counter = iter(range(1, total + 1))

    def _report(message: str) -> None:
        _echo_step(next(counter, total), total, message)

    return _report


def _fail(exc: CommitbookError) -> typer.Exit:
    typer.echo(f"Error: {exc}", err=True)
    return typer.Exit(code=1)


def _summarize(result: BuildResult) -> None:
    project = result.project
    typer.echo(
        "Build complete. "
        f"title={project.title!r} steps={len(result.steps)} "
        f"dates={project.start_date}..{project.last_date} path={result.output_dir}"
    )


@app.command("build")
def build(
    source: str = typer.Argument(..., help="Local git repo path or git URL"),
    base: str | None = typer.Option(None, "--base", help="URL prefix the site is served under, e.g. /repo/"),
    output_dir: Path | None = typer.Option(None, "--output", "-o", help="Output directory"),
    workers: int | None = typer.Option(None, min=1, max=64, help="Parallel extraction workers"),
    strategy: NarrativeStrategy | None = typer.Option(None, help=STRATEGY_HELP),
) -> None:
    """Resolve a local path or remote URL and write the tutorial data."""
    settings = load_settings(output_dir=output_dir, workers=workers, strategy=strategy, site_base=base)
    try:
        result = build_from_source(source, settings, progress_callback=_progress_printer(5))
    except CommitbookError as exc:
        raise _fail(exc) from exc
    _summarize(result)
    typer.echo(f"Site base: {settings.site_base}")


@app.command("sync")
def sync(
    repo_path: Path = typer.Argument(..., help="Local git repository"),
    output_dir: Path | None = typer.Option(None, "--output", "-o", help="Output directory"),
    strategy: NarrativeStrategy | None = typer.Option(None, help=STRATEGY_HELP),
) -> None:
    """Write tutorial data from a local repository."""
    settings = load_settings(output_dir=output_dir, strategy=strategy)
    try:
        repo = resolve_local_repo(str(repo_path))
        result = sync_repository(repo, settings, progress_callback=_progress_printer(4))
    except CommitbookError as exc:
        raise _fail(exc) from exc
    _summarize(result)


@app.command("steps")
def steps(
    output_dir: Path = typer.Argument(..., help="Directory written by build or sync"),
) -> None:
    """List the steps recorded in a build's manifest."""
    try:
        project = load_project(output_dir)
    except FileNotFoundError as exc:
        typer.echo(f"Error: no manifest in {output_dir}", err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(f"{project.doc_number}  {project.title}")
    for entry in project.steps:
        marker = " [output]" if entry.has_output else ""
        if not entry.has_narrative:
            marker += " [no narrative]"
        typer.echo(f"  {entry.id:>3}  {entry.commit[:12]}  {entry.title}{marker}")


@app.command("diff")
def diff(
    repo_path: Path = typer.Argument(..., help="Local git repository"),
    step_id: int = typer.Argument(..., min=0, help="Zero-based step id"),
    file_path: str = typer.Argument(..., help="Repository-relative file path"),
) -> None:
    """Print the unified diff of one file introduced at one step."""
    settings = load_settings()
    try:
        backend = GitCliBackend(resolve_local_repo(str(repo_path)), timeout=settings.git_timeout)
        _, current, previous = step_snapshots(backend, step_id, workers=settings.workers)
        result = diff_file(file_path, current, previous)
    except CommitbookError as exc:
        raise _fail(exc) from exc
    except (IndexError, ValueError) as exc:
        raise typer.BadParameter(str(exc)) from exc

    typer.echo(f"{result.path} ({result.status})")
    typer.echo(result.patch, nl=False)


@app.command("files")
def files(
    repo_path: Path = typer.Argument(..., help="Local git repository"),
    step_id: int = typer.Argument(..., min=0, help="Zero-based step id"),
    show_all: bool = typer.Option(False, "--all", help="Show every file, not only changed ones"),
) -> None:
    """Print the file tree of one step, marking changed files."""
    settings = load_settings()
    try:
        backend = GitCliBackend(resolve_local_repo(str(repo_path)), timeout=settings.git_timeout)
        commit, current, previous = step_snapshots(backend, step_id, workers=settings.workers)
        touched = commit_touched_files(backend, commit.hash)
    except CommitbookError as exc:
        raise _fail(exc) from exc
    except IndexError as exc:
        raise typer.BadParameter(str(exc)) from exc

    changed = set(visible_paths(changed_files(current, previous)))
    shown = current if show_all else [node for node in current if node.path in changed]
    typer.echo(f"Step {step_id}: {commit.message} ({commit.hash[:12]})")
    typer.echo(f"    changed={len(changed)} touched-by-commit={len(visible_paths(touched))}")
    for depth, node in iter_tree(build_tree(shown, hidden=HIDDEN_FILES)):
        indent = "  " * depth
        if isinstance(node, FolderNode):
            typer.echo(f"{indent}{node.name}/")
            continue
        flags = "*" if node.path in changed else " "
        binary = " (binary)" if node.is_binary else ""
        typer.echo(f"{indent}{flags} {node.name}{binary}")


@app.command("doctor")
def doctor() -> None:
    """Print local environment diagnostics used by the CLI."""
    settings = load_settings()
    typer.echo(f"git found: {shutil.which('git') or 'no'}")
    typer.echo(f"output dir: {settings.output_dir}")
    typer.echo(f"site base: {settings.site_base}")
    typer.echo(f"workers: {settings.workers} timeout: {settings.git_timeout:g}s strategy: {settings.strategy.value}")


if __name__ == "__main__":
    app()
