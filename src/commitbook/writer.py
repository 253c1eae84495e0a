"""Persist steps, outputs, README body, and manifest for the site renderer."""

from __future__ import annotations

import json
import shutil
import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import yaml

from commitbook.logger import get_logger
from commitbook.models import ProjectMetadata, Step

logger = get_logger(__name__)

MANIFEST_FILE = "project.json"
SITE_FILE = "site.json"
STEPS_DIR = "steps"
DOCS_DIR = "docs"
README_DOC = "readme.md"


def write_build(
    output_dir: Path,
    project: ProjectMetadata,
    steps: Sequence[Step],
    readme: str | None,
    site_base: str = "/",
) -> Path:
    """Replace ``output_dir`` with a freshly rendered build.

    Everything is written into a sibling temp directory first and swapped in at
    the end, so a failure leaves the previous output untouched.
    """
    output_dir = Path(output_dir)
    output_dir.parent.mkdir(parents=True, exist_ok=True)
    staging = Path(tempfile.mkdtemp(prefix=f".{output_dir.name}-", dir=output_dir.parent))
    try:
        _write_tree(staging, project, steps, readme, site_base)
        _swap_into_place(staging, output_dir)
    except BaseException:
        shutil.rmtree(staging, ignore_errors=True)
        raise

    logger.info("Wrote %d steps to %s", len(steps), output_dir)
    return output_dir


def _write_tree(
    root: Path,
    project: ProjectMetadata,
    steps: Sequence[Step],
    readme: str | None,
    site_base: str,
) -> None:
    steps_dir = root / STEPS_DIR
    steps_dir.mkdir()
    for step in steps:
        (steps_dir / f"{step.id}.md").write_text(render_step(step), encoding="utf-8")
        if step.has_output:
            (steps_dir / f"{step.id}.output.txt").write_text(step.output, encoding="utf-8")

    docs_dir = root / DOCS_DIR
    docs_dir.mkdir()
    if readme is not None:
        (docs_dir / README_DOC).write_text(readme, encoding="utf-8")

    manifest = project.model_dump(mode="json", by_alias=True)
    (root / MANIFEST_FILE).write_text(_dump_json(manifest), encoding="utf-8")
    (root / SITE_FILE).write_text(_dump_json({"base": site_base}), encoding="utf-8")


def _swap_into_place(staging: Path, output_dir: Path) -> None:
    if not output_dir.exists():
        staging.rename(output_dir)
        return
    retired = output_dir.with_name(f"{staging.name}.old")
    output_dir.rename(retired)
    try:
        staging.rename(output_dir)
    except OSError:
        retired.rename(output_dir)
        raise
    shutil.rmtree(retired, ignore_errors=True)


def render_step(step: Step) -> str:
    """Render a step as markdown with ``title``/``commit``/``slug`` frontmatter."""
    header = yaml.safe_dump(
        {"title": step.title, "commit": step.commit.hash, "slug": step.slug},
        sort_keys=False,
        allow_unicode=True,
        width=10_000,
    )
    return f"---\n{header}---\n\n{step.content}\n"


def _dump_json(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"
