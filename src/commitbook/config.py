"""Build settings loaded from environment variables."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class NarrativeStrategy(str, Enum):
    PER_COMMIT = "per-commit"
    COMBINED = "combined"


def normalize_base_path(base: str) -> str:
    """Return ``base`` with exactly one leading and one trailing slash."""
    stripped = base.strip().strip("/")
    return f"/{stripped}/" if stripped else "/"


class Settings(BaseSettings):
    """Settings with the ``COMMITBOOK_`` prefix.

    ``site_base`` also honours the bare ``SITE_BASE`` variable the renderer reads.
    """

    model_config = SettingsConfigDict(
        env_prefix="COMMITBOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    output_dir: Path = Path("site-data")
    workers: int = Field(default=4, ge=1, le=64)
    git_timeout: float = Field(default=60.0, gt=0)
    clone_depth: int = Field(default=1000, ge=1)
    strategy: NarrativeStrategy = NarrativeStrategy.PER_COMMIT
    site_base: str = Field(
        default="/",
        validation_alias=AliasChoices("COMMITBOOK_SITE_BASE", "SITE_BASE"),
    )

    @field_validator("site_base")
    @classmethod
    def _normalize_site_base(cls, value: str) -> str:
        return normalize_base_path(value)


def load_settings(**overrides: object) -> Settings:
    """Build settings from the environment, applying non-``None`` overrides."""
    return Settings(**{key: value for key, value in overrides.items() if value is not None})
