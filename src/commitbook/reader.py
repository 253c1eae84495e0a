"""Read interface over a written build, for the site renderer."""

from __future__ import annotations

import json
from pathlib import Path

from commitbook.metadata import parse_frontmatter
from commitbook.models import ProjectMetadata, StepPage
from commitbook.writer import DOCS_DIR, MANIFEST_FILE, README_DOC, STEPS_DIR

STEP_NOT_FOUND_NOTE = "*Step content not found.*"


def load_project(output_dir: Path) -> ProjectMetadata:
    """Load ``project.json``; raises ``FileNotFoundError`` when not built yet."""
    payload = json.loads((Path(output_dir) / MANIFEST_FILE).read_text(encoding="utf-8"))
    return ProjectMetadata.model_validate(payload)


def load_steps(output_dir: Path) -> list[StepPage]:
    """Join manifest rows with their step files, in manifest order.

    A step whose file is missing gets placeholder content rather than an error.
    """
    output_dir = Path(output_dir)
    project = load_project(output_dir)
    pages: list[StepPage] = []
    for entry in project.steps:
        step_path = output_dir / STEPS_DIR / f"{entry.id}.md"
        if step_path.exists():
            content = parse_frontmatter(step_path.read_text(encoding="utf-8")).body
        else:
            content = f"# {entry.title}\n\n{STEP_NOT_FOUND_NOTE}"

        output = None
        output_path = output_dir / STEPS_DIR / f"{entry.id}.output.txt"
        if entry.has_output and output_path.exists():
            output = output_path.read_text(encoding="utf-8")

        pages.append(
            StepPage(
                id=entry.id,
                slug=entry.slug,
                title=entry.title,
                commit=entry.commit,
                commit_message=entry.commit_message,
                content=content,
                output=output,
                has_narrative=entry.has_narrative,
            )
        )
    return pages


def load_readme(output_dir: Path) -> str | None:
    path = Path(output_dir) / DOCS_DIR / README_DOC
    return path.read_text(encoding="utf-8") if path.exists() else None


def title_lines(title: str) -> list[str]:
    """Split a title into upper-cased words, one per hero line."""
    return title.upper().split()
