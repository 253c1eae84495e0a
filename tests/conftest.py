from __future__ import annotations

import os
import shutil
import subprocess
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from commitbook.models import Commit


class FakeBackend:
    """In-memory history: each entry is ``(message, {path: bytes})`` oldest first."""

    def __init__(
        self,
        history: list[tuple[str, dict[str, bytes]]],
        repo_path: Path = Path("/tmp/weekend-coding-agent"),
        remote_url: str | None = None,
        start: datetime = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc),
    ):
        self.repo_path = repo_path
        self.remote_url = remote_url
        self.commits = [
            Commit(
                hash=f"{index:040x}",
                message=message,
                order=index,
                timestamp=start + timedelta(days=index * 40),
            )
            for index, (message, _) in enumerate(history)
        ]
        self.trees = {commit.hash: files for commit, (_, files) in zip(self.commits, history)}
        self.blob_reads: list[tuple[str, str]] = []

    def list_commits(self) -> list[Commit]:
        return list(self.commits)

    def list_tree_paths(self, commit: str) -> list[str]:
        return sorted(self.trees[commit])

    def read_blob(self, commit: str, path: str) -> bytes | None:
        self.blob_reads.append((commit, path))
        return self.trees[commit].get(path)

    def get_remote_url(self) -> str | None:
        return self.remote_url

    def changed_paths(self, commit: str) -> list[str]:
        index = next(i for i, item in enumerate(self.commits) if item.hash == commit)
        before = self.trees[self.commits[index - 1].hash] if index else {}
        now = self.trees[commit]
        return sorted(path for path in {*before, *now} if before.get(path) != now.get(path))


@pytest.fixture
def tutorial_history() -> list[tuple[str, dict[str, bytes]]]:
    return [
        (
            "Initial scaffold",
            {
                "README.md": b'---\ntitle: "Weekend Agent"\ndocNumber: WA-7\n---\n# Weekend Agent\nBuild an agent.\n',
                "STEP.md": b"# Set up the project\n\nCreate the package.\n",
                "src/app.py": b"print('hello')\n",
            },
        ),
        (
            "Add loop",
            {
                "README.md": b'---\ntitle: "Weekend Agent"\ndocNumber: WA-7\n---\n# Weekend Agent\nBuild an agent.\n',
                "STEP.md": b"Intro without a heading.\n",
                "OUTPUT.md": b"$ python src/app.py\nhello\n",
                "src/app.py": b"while True:\n    print('hello')\n",
                "assets/logo.png": b"\x89PNG\r\n\x1a\n\x00\x00",
            },
        ),
        (
            "Remove narrative",
            {
                "README.md": b'---\ntitle: "Weekend Agent"\ndocNumber: WA-7\n---\n# Weekend Agent\nBuild an agent.\n',
                "src/app.py": b"while True:\n    print('hello')\n",
                "assets/logo.png": b"\x89PNG\r\n\x1a\n\x00\x01",
            },
        ),
    ]


@pytest.fixture
def fake_backend(tutorial_history) -> FakeBackend:
    return FakeBackend(tutorial_history)


def _git(repo: Path, *args: str) -> None:
    env = {
        **os.environ,
        "GIT_AUTHOR_NAME": "Test",
        "GIT_AUTHOR_EMAIL": "test@example.com",
        "GIT_COMMITTER_NAME": "Test",
        "GIT_COMMITTER_EMAIL": "test@example.com",
        "GIT_CONFIG_NOSYSTEM": "1",
        "HOME": str(repo.parent),
    }
    subprocess.run(["git", "-C", str(repo), *args], check=True, capture_output=True, env=env)


@pytest.fixture
def git_repo(tmp_path, tutorial_history) -> Path:
    """A real repository whose commits replay ``tutorial_history``."""
    if shutil.which("git") is None:
        pytest.skip("git executable not available")

    repo = tmp_path / "weekend-coding-agent"
    repo.mkdir()
    _git(repo, "init", "--quiet")
    for index, (message, files) in enumerate(tutorial_history):
        for existing in [p for p in repo.rglob("*") if p.is_file() and ".git" not in p.parts]:
            existing.unlink()
        for rel_path, data in files.items():
            target = repo / rel_path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        _git(repo, "add", "--all")
        date = f"2024-0{index + 1}-15T10:00:00+00:00"
        _git(repo, "commit", "--quiet", "-m", message, f"--date={date}")
    return repo
