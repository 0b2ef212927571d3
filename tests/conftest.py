from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from catprep.book import Book, PreprocessorContext, book_from_directory
from catprep.config.schema import CatPrepSettings
from catprep.exceptions import GitCommandError
from catprep.utils.git import CommitInfo


def toml_header(**fields: object) -> str:
    """Render simple key/value pairs as TOML lines (JSON strings are valid TOML strings)."""
    return "".join(f"{key} = {json.dumps(value, ensure_ascii=False)}\n" for key, value in fields.items())


@dataclass
class FakeHistory:
    """In-memory stand-in for the git collaborator, keyed by file name suffix."""

    commits: dict[str, CommitInfo] = field(default_factory=dict)
    failing: set[str] = field(default_factory=set)
    calls: list[Path] = field(default_factory=list)

    def ensure_repository(self, path: Path) -> None:
        return None

    def last_commit(self, path: Path) -> CommitInfo | None:
        self.calls.append(path)
        posix = path.as_posix()
        for suffix in self.failing:
            if posix.endswith(suffix):
                raise GitCommandError("git log", 128, "fatal: boom")
        for suffix, commit in self.commits.items():
            if posix.endswith(suffix):
                return commit
        return None


@dataclass
class BookTree:
    """Builds an mdbook source tree under a temporary directory."""

    root: Path

    @property
    def src(self) -> Path:
        return self.root / "src"

    def write(self, rel: str, text: str, base: Path | None = None) -> Path:
        path = (base or self.src) / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    def teacher(self, filename: str, **fields: object) -> Path:
        return self.write(filename, toml_header(**fields), base=self.root / "teachers")

    def subject(self, directory: str, body: str = "", **fields: object) -> Path:
        return self.write(f"{directory}/subject.md", toml_header(**fields) + "+++\n" + body)

    def material(self, rel: str, body: str = "", **fields: object) -> Path:
        return self.write(rel, toml_header(**fields) + "+++\n" + body)

    def context(self, config: dict | None = None) -> PreprocessorContext:
        return PreprocessorContext(root=self.root, config=config or {})

    def book(self) -> Book:
        return book_from_directory(self.src)


@pytest.fixture
def tree(tmp_path: Path) -> BookTree:
    book_tree = BookTree(tmp_path / "book")
    book_tree.src.mkdir(parents=True)
    (book_tree.root / "teachers").mkdir()
    return book_tree


@pytest.fixture
def history() -> FakeHistory:
    return FakeHistory()


@pytest.fixture
def settings() -> CatPrepSettings:
    return CatPrepSettings()


@pytest.fixture
def sample_tree(tree: BookTree) -> BookTree:
    """Two teachers, one subject with two tagged materials and a plain page."""
    tree.teacher("ana.toml", jmeno="Ana Li", email="ana@x.org", username="ali", bio="Teaches maths.")
    tree.teacher("bob.toml", jmeno="Bob Novak", email="bob@x.org", username="bnovak")
    tree.write("README.md", "# Welcome\n")
    tree.write("SUMMARY.md", "# Summary\n")
    tree.subject("math", "Intro to maths.\n", nazev="Matematika", zodpovedna_osoba="ana@x.org", bio="Numbers")
    tree.material("math/limits.md", "# Limits\n", nazev="Limity", tagy=["Analysis", "rust"], autor="ali")
    tree.material("math/series.md", "# Series\n", nazev="Řady", tagy=["analysis"], autor="Bob Novak")
    return tree
