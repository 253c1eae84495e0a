"""Project-level metadata: README frontmatter, fallbacks, repo identity, dates."""

from __future__ import annotations

import re
from collections.abc import Sequence

import yaml

from commitbook.logger import get_logger
from commitbook.models import Commit, Frontmatter, ProjectMetadata, Step, StepIndexEntry

logger = get_logger(__name__)

README_FILE = "README.md"
FRONTMATTER_KEYS = ("title", "description", "docNumber")

FRONTMATTER_RE = re.compile(
    r"\A\s*---[ \t\r]*\n(?P<block>.*?)^[ \t]*---[ \t\r]*$\n?(?P<body>.*)\Z",
    re.MULTILINE | re.DOTALL,
)
LEADING_H1_RE = re.compile(r"\A#[ \t]+[^\r\n]+(?:[\r\n]+|\Z)")
FRONTMATTER_LINE_RE = re.compile(r"^(\w+):[ \t]*(.+?)\s*$", re.MULTILINE)
QUOTES_RE = re.compile(r"^[\"']|[\"']$")
REPO_NAME_RE = re.compile(r"[/:]([^/:]+?)(?:\.git)?/?$")


def parse_frontmatter(text: str) -> Frontmatter:
    """Split a ``---`` delimited YAML block off the head of ``text``.

    Leading blank space before the opening delimiter is allowed. Values are
    kept as written (``007`` stays ``"007"``). A block YAML rejects, such as an
    unquoted title containing ``: ``, is read line by line as ``key: value``.
    A block that never closes, yields no recognized keys that way, or is not a
    mapping counts as no frontmatter: ``body`` is then ``text`` unchanged.
    """
    match = FRONTMATTER_RE.match(text)
    if not match:
        return Frontmatter(body=text)

    block = match.group("block")
    try:
        data = yaml.load(block, Loader=yaml.BaseLoader)
    except yaml.YAMLError as exc:
        data = _parse_frontmatter_lines(block)
        if not data:
            logger.warning("Ignoring malformed frontmatter: %s", exc)
            return Frontmatter(body=text)

    if data is None:
        data = {}
    if not isinstance(data, dict):
        logger.warning("Ignoring frontmatter that is not a key/value mapping")
        return Frontmatter(body=text)

    fields = {
        key: data[key].strip()
        for key in FRONTMATTER_KEYS
        if isinstance(data.get(key), str) and data[key].strip()
    }
    return Frontmatter(**fields, body=match.group("body").strip(), found=True)


def _parse_frontmatter_lines(block: str) -> dict[str, str]:
    """Read recognized ``key: value`` lines, dropping one pair of wrapping quotes."""
    return {
        key: QUOTES_RE.sub("", value)
        for key, value in FRONTMATTER_LINE_RE.findall(block)
        if key in FRONTMATTER_KEYS
    }


def strip_leading_h1(body: str) -> str:
    """Drop an H1 heading on the first line; the page hero already shows it."""
    return LEADING_H1_RE.sub("", body, count=1)


def derive_title(repo_name: str) -> str:
    """``weekend-coding_agent`` -> ``Weekend Coding Agent``."""
    words = [word for word in re.split(r"[-_\s]+", repo_name) if word]
    return " ".join(word[:1].upper() + word[1:] for word in words)


def derive_doc_number(title: str, year: str) -> str:
    """Initials of ``title`` uppercased, then ``-`` and the four-digit year."""
    initials = "".join(word[0].upper() for word in title.split())
    return f"{initials}-{year}"


def repo_name_from_url(url: str) -> str | None:
    match = REPO_NAME_RE.search(url.strip())
    return match.group(1) if match else None


def repo_identity(remote_url: str | None, fallback_name: str) -> tuple[str, str]:
    """Return ``(repo_name, repo_url)`` from the origin URL when one is set."""
    if not remote_url:
        return fallback_name, ""
    return repo_name_from_url(remote_url) or fallback_name, remote_url


def commit_date_range(commits: Sequence[Commit]) -> tuple[str, str]:
    """ISO dates of the oldest and newest commits, in each author's timezone."""
    return commits[0].timestamp.date().isoformat(), commits[-1].timestamp.date().isoformat()


def readme_body(frontmatter: Frontmatter) -> str:
    return strip_leading_h1(frontmatter.body)


def resolve_project_metadata(
    *,
    frontmatter: Frontmatter,
    repo_name: str,
    repo_path: str,
    repo_url: str,
    commits: Sequence[Commit],
    steps: Sequence[Step],
) -> ProjectMetadata:
    """Combine frontmatter with derived fallbacks, field by field."""
    start_date, last_date = commit_date_range(commits)
    default_title = derive_title(repo_name)
    return ProjectMetadata(
        title=frontmatter.title or default_title,
        description=frontmatter.description or "",
        doc_number=frontmatter.doc_number or derive_doc_number(default_title, start_date[:4]),
        repo_name=repo_name,
        repo_path=repo_path,
        repo_url=repo_url,
        start_date=start_date,
        last_date=last_date,
        steps=[StepIndexEntry.from_step(step) for step in steps],
    )
