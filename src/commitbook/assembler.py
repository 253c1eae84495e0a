"""Pair commits with their narrative files to produce ordered tutorial steps."""

from __future__ import annotations

import re
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor

from commitbook.config import NarrativeStrategy
from commitbook.extractor import ContentExtractor
from commitbook.logger import get_logger
from commitbook.models import Commit, Step

logger = get_logger(__name__)

STEP_FILE = "STEP.md"
OUTPUT_FILE = "OUTPUT.md"
COMBINED_FILE = "STEPS.md"

MISSING_NARRATIVE_NOTE = "*No STEP.md found for this commit.*"
EMPTY_NARRATIVE_NOTE = "*This step has no narrative text.*"

TITLE_RE = re.compile(r"^#[ \t]+(.+?)[ \t\r]*$", re.MULTILINE)
SECTION_RE = re.compile(r"^#[ \t]+.+$", re.MULTILINE)


def extract_title(narrative: str, fallback: str) -> str:
    """Return the first H1 heading text, or ``fallback`` when there is none."""
    match = TITLE_RE.search(narrative)
    return match.group(1) if match else fallback


def strip_title_line(narrative: str) -> str:
    """Remove the first H1 heading line and surrounding blank space."""
    match = TITLE_RE.search(narrative)
    if not match:
        return narrative.strip()
    return (narrative[: match.start()] + narrative[match.end() :]).strip()


def synthetic_narrative(commit: Commit) -> str:
    return f"# {commit.message}\n\n{MISSING_NARRATIVE_NOTE}"


def _make_step(commit: Commit, narrative: str | None, output: str | None) -> Step:
    narrative_found = narrative is not None
    if narrative is None:
        logger.warning("No %s at %s (%s); using placeholder", STEP_FILE, commit.hash[:12], commit.message)
        narrative = synthetic_narrative(commit)

    content = strip_title_line(narrative) or EMPTY_NARRATIVE_NOTE
    return Step(
        id=str(commit.order),
        slug=str(commit.order),
        title=extract_title(narrative, fallback=commit.message),
        commit=commit,
        content=content,
        has_output=bool(output),
        output=output or "",
        narrative_found=narrative_found,
    )


def build_step(extractor: ContentExtractor, commit: Commit) -> Step:
    """Build one step from the ``STEP.md``/``OUTPUT.md`` present at ``commit``."""
    narrative = extractor.read_text(commit.hash, STEP_FILE)
    output = extractor.read_text(commit.hash, OUTPUT_FILE)
    return _make_step(commit, narrative, output)


def split_sections(text: str) -> list[str]:
    """Split a combined narrative into sections, each starting at an H1 line.

    Text before the first heading is discarded.
    """
    starts = [match.start() for match in SECTION_RE.finditer(text)]
    bounds = zip(starts, [*starts[1:], len(text)])
    return [text[start:end].strip() for start, end in bounds]


def assemble_per_commit(
    extractor: ContentExtractor,
    commits: Sequence[Commit],
) -> list[Step]:
    """One step per commit; extraction runs on a bounded pool, order is kept."""
    if not commits:
        return []
    with ThreadPoolExecutor(max_workers=min(extractor.workers, len(commits))) as pool:
        steps = list(pool.map(lambda commit: build_step(extractor, commit), commits))
    return sorted(steps, key=lambda step: step.commit.order)


def assemble_combined(
    extractor: ContentExtractor,
    commits: Sequence[Commit],
) -> list[Step]:
    """Map sections of ``STEPS.md`` at the branch tip to commits by position.

    Deprecated: positional mapping drifts as soon as commits and sections stop
    lining up. Unmatched trailing commits or sections are dropped.
    """
    logger.warning(
        "The combined %s strategy is deprecated; prefer per-commit %s files",
        COMBINED_FILE,
        STEP_FILE,
    )
    if not commits:
        return []
    tip = commits[-1]
    combined = extractor.read_text(tip.hash, COMBINED_FILE)
    if combined is None:
        logger.warning("No %s at branch tip %s; no steps produced", COMBINED_FILE, tip.hash[:12])
        return []

    sections = split_sections(combined)
    count = min(len(commits), len(sections))
    if len(commits) != len(sections):
        logger.warning(
            "%d commits vs %d sections in %s; keeping the first %d",
            len(commits),
            len(sections),
            COMBINED_FILE,
            count,
        )
    return [
        _make_step(commit, section, extractor.read_text(commit.hash, OUTPUT_FILE))
        for commit, section in zip(commits[:count], sections[:count])
    ]


def assemble_steps(
    extractor: ContentExtractor,
    commits: Sequence[Commit],
    strategy: NarrativeStrategy = NarrativeStrategy.PER_COMMIT,
) -> list[Step]:
    if strategy == NarrativeStrategy.COMBINED:
        return assemble_combined(extractor, commits)
    return assemble_per_commit(extractor, commits)
