"""Front-matter parsing for teacher, subject and material pages.

Three header layouts are understood:

* the native cat-prep layout - TOML lines, a ``+++`` line, then the body;
* fenced TOML - ``+++`` / header / ``+++`` / body;
* fenced YAML - ``---`` / header / ``---`` / body.

The body is returned byte for byte as it follows the closing delimiter line.
"""

from __future__ import annotations

import logging
import re
import tomllib
from pathlib import Path
from typing import Any, TypeVar

import yaml
from frontmatter.default_handlers import BaseHandler, YAMLHandler
from pydantic import BaseModel, ValidationError

from catprep.core.models import MaterialCard, PageKind, ParsedPage, SubjectCard, TeacherCard
from catprep.exceptions import (
    InvalidFieldError,
    MalformedHeaderError,
    MissingFieldError,
    MissingHeaderError,
    UnreadableFileError,
)

logger = logging.getLogger(__name__)

CardT = TypeVar("CardT", bound=BaseModel)

# a required string that strips down to nothing fails its min_length check
_MISSING_TYPES = frozenset({"missing", "string_too_short"})

_CARD_TYPES: dict[PageKind, type[BaseModel]] = {
    PageKind.TEACHER: TeacherCard,
    PageKind.SUBJECT: SubjectCard,
    PageKind.MATERIAL: MaterialCard,
}


class TomlHandler(BaseHandler):
    """``+++`` delimited TOML front matter, decoded with :mod:`tomllib`."""

    FM_BOUNDARY = re.compile(r"^\+{3}[ \t]*\r?$", re.MULTILINE)
    START_DELIMITER = END_DELIMITER = "+++"

    def load(self, fm: str, **kwargs: object) -> Any:
        return tomllib.loads(fm)

    def export(self, metadata: dict[str, object], **kwargs: object) -> str:
        msg = "cat-prep never writes TOML headers"
        raise NotImplementedError(msg)


class StrictYAMLHandler(YAMLHandler):
    """YAML front matter whose closing delimiter does not swallow blank lines."""

    FM_BOUNDARY = re.compile(r"^-{3}[ \t]*\r?$", re.MULTILINE)


_TOML = TomlHandler()
_YAML = StrictYAMLHandler()


def _drop_delimiter_newline(content: str) -> str:
    if content.startswith("\r\n"):
        return content[2:]
    if content.startswith("\n"):
        return content[1:]
    return content


def _split(text: str, path: str) -> tuple[BaseHandler, str, str]:
    if _YAML.detect(text):
        try:
            fm, content = _YAML.split(text)
        except ValueError as e:
            raise MissingHeaderError(path) from e
        return _YAML, fm, content

    if _TOML.detect(text):
        try:
            fm, content = _TOML.split(text)
        except ValueError:
            # A single leading '+++' is the native layout with an empty header
            fm, content = "", text.split("\n", 1)[1] if "\n" in text else ""
            return _TOML, fm, "\n" + content
        return _TOML, fm, content

    if not _TOML.FM_BOUNDARY.search(text):
        raise MissingHeaderError(path)
    fm, content = _TOML.split(f"{_TOML.START_DELIMITER}\n{text}")
    return _TOML, fm, content


def split_front_matter(text: str, path: str) -> tuple[dict[str, Any], str]:
    """Split a page into its decoded header table and its body.

    Raises:
        MissingHeaderError: If no header delimiter exists.
        MalformedHeaderError: If the header cannot be decoded into a table.

    """
    handler, fm, content = _split(text, path)
    try:
        metadata = handler.load(fm)
    except (tomllib.TOMLDecodeError, yaml.YAMLError) as e:
        raise MalformedHeaderError(path, str(e)) from e

    if metadata is None:
        metadata = {}
    if not isinstance(metadata, dict):
        raise MalformedHeaderError(path, f"expected a table, got {type(metadata).__name__}")

    return metadata, _drop_delimiter_newline(content)


def decode_card(card_type: type[CardT], metadata: dict[str, Any], path: str) -> CardT:
    """Validate a header table into a card; unknown keys are ignored.

    Raises:
        MissingFieldError: For the first required field that is absent or blank.
        InvalidFieldError: For the first field with an unusable value.

    """
    try:
        return card_type.model_validate(metadata)
    except ValidationError as e:
        errors = e.errors()
        for err in errors:
            if err["type"] in _MISSING_TYPES:
                raise MissingFieldError(path, _field_name(err["loc"])) from e
        first = errors[0]
        raise InvalidFieldError(path, _field_name(first["loc"]), first["msg"]) from e


def _field_name(loc: tuple[int | str, ...]) -> str:
    return ".".join(str(part) for part in loc) or "<header>"


def parse_page(text: str, path: str, kind: PageKind) -> ParsedPage:
    """Parse page content into a :class:`ParsedPage` of the given kind.

    Plain pages are returned untouched; they are never required to carry a
    header.
    """
    if kind is PageKind.PLAIN:
        return ParsedPage(kind, path, None, text)

    metadata, body = split_front_matter(text, path)
    card = decode_card(_CARD_TYPES[kind], metadata, path)
    if kind is PageKind.TEACHER and not card.bio and body.strip():
        card = card.model_copy(update={"bio": body.strip()})
    return ParsedPage(kind, path, card, body)


def read_source(file_path: Path, rel_path: str) -> str:
    """Read a source file as UTF-8 text.

    Raises:
        UnreadableFileError: If the file cannot be read or decoded.

    """
    try:
        return file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise UnreadableFileError(rel_path, str(e)) from e


def parse_teacher_file(file_path: Path, rel_path: str) -> ParsedPage:
    """Parse a registry file.

    ``.toml`` files are a bare table; anything else is a page with a header
    whose body doubles as the biography.
    """
    text = read_source(file_path, rel_path)
    if file_path.suffix != ".toml":
        return parse_page(text, rel_path, PageKind.TEACHER)

    try:
        metadata = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise MalformedHeaderError(rel_path, str(e)) from e
    card = decode_card(TeacherCard, metadata, rel_path)
    return ParsedPage(PageKind.TEACHER, rel_path, card, card.bio)


__all__ = [
    "StrictYAMLHandler",
    "TomlHandler",
    "decode_card",
    "parse_page",
    "parse_teacher_file",
    "read_source",
    "split_front_matter",
]
