"""Settings model for the cat preprocessor.

Values come from three places, highest priority first:

1. Environment variables (``CAT_PREP_<FIELD>``)
2. The ``[preprocessor.cat]`` table of ``book.toml``
3. Defaults below
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SUBJECT_MARKER = "subject.md"
DEFAULT_INSERTION_MARKER = "<!-- cat-prep -->"


class CatPrepSettings(BaseSettings):
    """Root configuration for cat-prep."""

    teachers_dir: Path = Field(
        default=Path("teachers"),
        description="Teacher registry directory, relative to the book root unless absolute",
    )
    subject_marker: str = Field(
        default=DEFAULT_SUBJECT_MARKER,
        min_length=1,
        description="File name that turns a directory into a subject root",
    )
    page_extensions: list[str] = Field(
        default_factory=lambda: [".md"],
        min_length=1,
        description="Suffixes of files treated as pages",
    )
    excluded_prefixes: list[str] = Field(
        default_factory=lambda: ["_", "."],
        description="Files and directories starting with these prefixes are skipped",
    )
    insertion_marker: str = Field(
        default=DEFAULT_INSERTION_MARKER,
        min_length=1,
        description="Token marking where generated content goes inside a page",
    )
    teachers_page: str = Field(default="teachers.md", description="Page listing all teachers")
    teachers_title: str = Field(default="Vyučující", description="Title of a generated teachers page")
    tags_page: str = Field(default="tags.md", description="Page listing all tags")
    tags_title: str = Field(default="Tagy", description="Title of a generated tags page")
    material_cards: bool = Field(default=True, description="Append an info card to every material")
    last_change: bool = Field(default=True, description="Show who changed a material last and when, from git")
    history_workers: int = Field(default=8, ge=1, le=64, description="Parallel git history lookups")
    git_timeout: float = Field(default=10.0, gt=0, description="Seconds allowed for a single git call")
    unsupported_renderers: list[str] = Field(
        default_factory=lambda: ["not-supported"],
        description="Renderers this preprocessor refuses to run for",
    )

    model_config = SettingsConfigDict(
        extra="ignore",
        env_prefix="CAT_PREP_",
    )

    def resolve_teachers_dir(self, book_root: Path) -> Path:
        if self.teachers_dir.is_absolute():
            return self.teachers_dir
        return book_root / self.teachers_dir

    def is_page(self, name: str) -> bool:
        return any(name.endswith(suffix) for suffix in self.page_extensions)

    def is_excluded(self, name: str) -> bool:
        return any(prefix and name.startswith(prefix) for prefix in self.excluded_prefixes)
