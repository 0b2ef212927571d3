"""The mdbook side of the preprocessor protocol.

mdbook writes ``[context, book]`` as JSON to the preprocessor's stdin and
expects the (modified) book back on stdout. The book is kept as the raw JSON
structure so that fields this package does not know about survive the round
trip untouched; :class:`Chapter` is a thin mutable view over one chapter.
"""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any

from catprep.config.exceptions import HostProtocolError

logger = logging.getLogger(__name__)

# mdbook release the protocol handling was written against.
MDBOOK_VERSION = "0.4.40"


@dataclass(frozen=True, slots=True)
class PreprocessorContext:
    """The first element of the mdbook input."""

    root: Path
    config: dict[str, Any] = field(default_factory=dict)
    renderer: str = "html"
    mdbook_version: str = MDBOOK_VERSION

    @property
    def src_dir(self) -> Path:
        book_table = self.config.get("book") or {}
        return self.root / str(book_table.get("src", "src"))

    @classmethod
    def from_json(cls, data: Any) -> PreprocessorContext:
        if not isinstance(data, dict) or "root" not in data:
            raise HostProtocolError("the context object has no 'root'")
        return cls(
            root=Path(data["root"]),
            config=dict(data.get("config") or {}),
            renderer=str(data.get("renderer", "html")),
            mdbook_version=str(data.get("mdbook_version", MDBOOK_VERSION)),
        )


class Chapter:
    """Mutable view over a ``{"Chapter": {...}}`` item."""

    def __init__(self, data: dict[str, Any]) -> None:
        self._data = data

    @property
    def name(self) -> str:
        return self._data.get("name", "")

    @property
    def path(self) -> str | None:
        """Path relative to the source directory; None for draft chapters."""
        path = self._data.get("path")
        return Path(path).as_posix() if path else None

    @property
    def content(self) -> str:
        return self._data.get("content", "")

    @content.setter
    def content(self, value: str) -> None:
        self._data["content"] = value

    @property
    def sub_items(self) -> list[Any]:
        return self._data.setdefault("sub_items", [])

    def __repr__(self) -> str:
        return f"Chapter(name={self.name!r}, path={self.path!r})"


def _walk(items: list[Any]) -> Iterator[Chapter]:
    for item in items:
        if isinstance(item, dict) and "Chapter" in item:
            chapter = Chapter(item["Chapter"])
            yield chapter
            yield from _walk(chapter.sub_items)


class Book:
    """A book as exchanged with mdbook."""

    def __init__(self, data: dict[str, Any]) -> None:
        self._data = data
        self._key = "items" if "items" in data and "sections" not in data else "sections"
        self._data.setdefault(self._key, [])

    @classmethod
    def from_json(cls, data: Any) -> Book:
        if not isinstance(data, dict):
            raise HostProtocolError("the book is not a JSON object")
        return cls(data)

    @classmethod
    def empty(cls) -> Book:
        return cls({"sections": [], "__non_exhaustive": None})

    @property
    def items(self) -> list[Any]:
        return self._data[self._key]

    def chapters(self) -> Iterator[Chapter]:
        """Every chapter, depth-first in book order."""
        return _walk(self.items)

    def chapter_map(self) -> dict[str, Chapter]:
        return {c.path: c for c in self.chapters() if c.path is not None}

    def find(self, path: str) -> Chapter | None:
        return self.chapter_map().get(path)

    def push_chapter(self, name: str, content: str, path: str) -> Chapter:
        """Append a new top-level chapter."""
        data = {
            "name": name,
            "content": content,
            "number": None,
            "sub_items": [],
            "path": path,
            "source_path": path,
            "parent_names": [],
        }
        self.items.append({"Chapter": data})
        return Chapter(data)

    def copy(self) -> Book:
        return Book(copy.deepcopy(self._data))

    def to_json(self) -> dict[str, Any]:
        return self._data

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Book) and self._data == other._data


def read_input(stream: IO[str]) -> tuple[PreprocessorContext, Book]:
    """Parse the ``[context, book]`` pair mdbook writes to stdin."""
    try:
        payload = json.load(stream)
    except json.JSONDecodeError as e:
        raise HostProtocolError(f"stdin is not valid JSON: {e}") from e
    if not isinstance(payload, list) or len(payload) != 2:
        raise HostProtocolError("expected a JSON array of [context, book]")
    return PreprocessorContext.from_json(payload[0]), Book.from_json(payload[1])


def write_output(book: Book, stream: IO[str]) -> None:
    json.dump(book.to_json(), stream, ensure_ascii=False)
    stream.flush()


def book_from_directory(src_dir: Path, page_suffixes: tuple[str, ...] = (".md",)) -> Book:
    """Build a flat book from every page under ``src_dir``.

    Used when running outside mdbook; ``SUMMARY.md`` itself is not a chapter.
    Pages that cannot be read as UTF-8 are left out with a warning.
    """
    book = Book.empty()
    pages = sorted(
        p for p in src_dir.rglob("*") if p.is_file() and p.suffix in page_suffixes and p.name != "SUMMARY.md"
    )
    for page in pages:
        rel = page.relative_to(src_dir).as_posix()
        try:
            content = page.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Leaving %s out of the book: %s", rel, e)
            continue
        book.push_chapter(page.stem, content, rel)
    return book


__all__ = [
    "MDBOOK_VERSION",
    "Book",
    "Chapter",
    "PreprocessorContext",
    "book_from_directory",
    "read_input",
    "write_output",
]
