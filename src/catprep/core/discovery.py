"""Tree discovery: classify every page under the book source directory."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from catprep.config.schema import CatPrepSettings
from catprep.exceptions import NestedSubjectError

logger = logging.getLogger(__name__)

SUMMARY_FILE = "SUMMARY.md"


@dataclass(frozen=True, slots=True)
class SubjectRoot:
    """A directory holding the subject marker."""

    marker: str  # marker file path, relative to the source directory
    root: str  # directory path, "" for the source directory itself


@dataclass(frozen=True, slots=True)
class MaterialEntry:
    path: str
    subject: str  # marker path of the enclosing subject


@dataclass(slots=True)
class Discovery:
    """Result of one walk; every list is sorted by POSIX path."""

    subjects: list[SubjectRoot] = field(default_factory=list)
    materials: list[MaterialEntry] = field(default_factory=list)
    plain_pages: list[str] = field(default_factory=list)

    def materials_of(self, subject: SubjectRoot) -> list[MaterialEntry]:
        return [m for m in self.materials if m.subject == subject.marker]


def _rel(path: Path, src_dir: Path) -> str:
    rel = path.relative_to(src_dir).as_posix()
    return "" if rel == "." else rel


def discover_tree(src_dir: Path, settings: CatPrepSettings, skip: Path | None = None) -> Discovery:
    """Walk ``src_dir`` depth-first and classify its pages.

    The first marker met on a path fixes the subject root; a deeper marker is
    fatal. ``skip`` names a directory left out entirely (the registry when it
    lives inside the source tree).

    Raises:
        NestedSubjectError: If a subject is found inside another subject.

    """
    discovery = Discovery()
    skip_resolved = skip.resolve() if skip is not None else None

    def walk(directory: Path, enclosing: SubjectRoot | None) -> None:
        entries = sorted(directory.iterdir(), key=lambda p: p.name)
        marker_path = directory / settings.subject_marker
        if marker_path.is_file():
            marker = _rel(marker_path, src_dir)
            if enclosing is not None:
                raise NestedSubjectError(enclosing.marker, marker)
            enclosing = SubjectRoot(marker=marker, root=_rel(directory, src_dir))
            discovery.subjects.append(enclosing)
            logger.debug("Subject root at %s", enclosing.root or ".")

        for entry in entries:
            if settings.is_excluded(entry.name):
                continue
            if entry.is_dir():
                if skip_resolved is not None and entry.resolve() == skip_resolved:
                    continue
                walk(entry, enclosing)
                continue
            if not entry.is_file() or not settings.is_page(entry.name):
                continue

            rel = _rel(entry, src_dir)
            if enclosing is not None and rel == enclosing.marker:
                continue
            if enclosing is None or rel == SUMMARY_FILE:
                discovery.plain_pages.append(rel)
            else:
                discovery.materials.append(MaterialEntry(path=rel, subject=enclosing.marker))

    walk(src_dir, None)

    discovery.subjects.sort(key=lambda s: s.marker)
    discovery.materials.sort(key=lambda m: m.path)
    discovery.plain_pages.sort()
    logger.info(
        "Discovered %d subject(s), %d material(s) and %d plain page(s)",
        len(discovery.subjects),
        len(discovery.materials),
        len(discovery.plain_pages),
    )
    return discovery


__all__ = ["Discovery", "MaterialEntry", "SubjectRoot", "discover_tree"]
