"""Pydantic models shared across extraction, assembly, and persistence."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class Commit(BaseModel):
    """One commit read from history, oldest first by ``order``."""

    model_config = ConfigDict(frozen=True)

    hash: str
    message: str
    order: int = Field(ge=0)
    timestamp: datetime


class FileNode(BaseModel):
    """A file's state at one commit. Binary files never carry content."""

    model_config = ConfigDict(frozen=True)

    path: str
    content: str | None = None
    is_binary: bool = False
    digest: str | None = None


class BlobContent(BaseModel):
    """Result of reading one path at one commit."""

    status: Literal["text", "binary", "not_found"]
    text: str | None = None
    digest: str | None = None

    @property
    def is_text(self) -> bool:
        return self.status == "text"


class Step(BaseModel):
    """A tutorial step derived from exactly one commit."""

    id: str
    slug: str
    title: str
    commit: Commit
    content: str = Field(min_length=1)
    has_output: bool = False
    output: str = ""
    narrative_found: bool = True


class StepIndexEntry(BaseModel):
    """Step row stored in the project manifest."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    commit: str
    slug: str
    commit_message: str = Field(alias="commitMessage")
    has_output: bool = Field(alias="hasOutput")
    has_narrative: bool = Field(default=True, alias="hasNarrative")

    @classmethod
    def from_step(cls, step: Step) -> StepIndexEntry:
        return cls(
            id=step.id,
            title=step.title,
            commit=step.commit.hash,
            slug=step.slug,
            commit_message=step.commit.message,
            has_output=step.has_output,
            has_narrative=step.narrative_found,
        )


class Frontmatter(BaseModel):
    """Recognized README frontmatter keys plus the remaining body."""

    model_config = ConfigDict(populate_by_name=True)

    title: str | None = None
    description: str | None = None
    doc_number: str | None = Field(default=None, alias="docNumber")
    body: str = ""
    found: bool = False


class ProjectMetadata(BaseModel):
    """Project-level manifest; one per build."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str
    description: str = ""
    repo_name: str = Field(alias="repoName")
    repo_path: str = Field(alias="repoPath")
    repo_url: str = Field(default="", alias="repoUrl")
    start_date: str = Field(alias="startDate")
    last_date: str = Field(alias="lastDate")
    doc_number: str = Field(alias="docNumber")
    steps: list[StepIndexEntry] = Field(default_factory=list)


class FileDiff(BaseModel):
    """Unified diff of one path between two snapshots."""

    path: str
    status: Literal["added", "modified", "deleted", "unchanged"]
    is_binary: bool = False
    patch: str = ""


class ChangeSet(BaseModel):
    """Paths grouped by how they changed between two snapshots."""

    added: list[str] = Field(default_factory=list)
    modified: list[str] = Field(default_factory=list)
    deleted: list[str] = Field(default_factory=list)

    @property
    def changed(self) -> list[str]:
        return sorted([*self.added, *self.modified])


class FileLeaf(BaseModel):
    kind: Literal["file"] = "file"
    name: str
    path: str
    is_binary: bool = False


class FolderNode(BaseModel):
    kind: Literal["folder"] = "folder"
    name: str
    path: str
    children: dict[str, TreeNode] = Field(default_factory=dict)


TreeNode = Annotated[Union[FolderNode, FileLeaf], Field(discriminator="kind")]

FolderNode.model_rebuild()


class StepPage(BaseModel):
    """What the renderer needs to draw one step page."""

    id: str
    slug: str
    title: str
    commit: str
    commit_message: str
    content: str
    output: str | None = None
    has_narrative: bool = True
