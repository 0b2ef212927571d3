"""Entity graph builder.

This is the one place where cross-entity invariants are checked. Problems are
collected into a :class:`BuildReport` instead of being raised, so a single
run reports every broken file at once. Entities with errors are left out of
the graph and therefore out of every generated listing.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import TypeVar

from catprep.core.authorship import LastChange, Resolution, ResolutionKind
from catprep.core.discovery import MaterialEntry, SubjectRoot
from catprep.core.models import (
    BuildReport,
    Material,
    MaterialCard,
    ParsedPage,
    Subject,
    SubjectCard,
    Tag,
    Teacher,
)
from catprep.core.registry import TeacherRegistry
from catprep.exceptions import EntityValidationError
from catprep.utils.paths import unique_slugs

logger = logging.getLogger(__name__)

NOT_IN_BOOK = "page is not part of the book (is it listed in SUMMARY.md?), left out of listings"

CardT = TypeVar("CardT", SubjectCard, MaterialCard)


def normalize_tag(tag: str) -> str:
    """Tag identity: trimmed and case-folded."""
    return tag.strip().casefold()


def normalize_tags(tags: Iterable[str], path: str, report: BuildReport) -> tuple[str, ...]:
    """Normalize and de-duplicate tags, keeping the first occurrence's position."""
    seen: dict[str, None] = {}
    for raw in tags:
        tag = normalize_tag(raw)
        if not tag:
            report.warn(path, f"empty tag {raw!r} dropped", "EmptyTag")
            continue
        seen.setdefault(tag, None)
    return tuple(seen)


@dataclass(slots=True)
class SubjectInput:
    root: SubjectRoot
    page: ParsedPage | None = None
    error: EntityValidationError | None = None
    responsible: Resolution | None = None
    in_book: bool = True


@dataclass(slots=True)
class MaterialInput:
    entry: MaterialEntry
    page: ParsedPage | None = None
    error: EntityValidationError | None = None
    author: Resolution | None = None
    last_change: LastChange | None = None
    in_book: bool = True


@dataclass(slots=True)
class EntityGraph:
    """Read-only result of a build; lists are in deterministic path order."""

    teachers: list[Teacher] = field(default_factory=list)
    subjects: list[Subject] = field(default_factory=list)
    materials: list[Material] = field(default_factory=list)
    tags: dict[str, Tag] = field(default_factory=dict)
    report: BuildReport = field(default_factory=BuildReport)

    def subject(self, path: str) -> Subject | None:
        return next((s for s in self.subjects if s.path == path), None)

    def material(self, path: str) -> Material | None:
        return next((m for m in self.materials if m.path == path), None)

    def subjects_of(self, teacher: Teacher) -> list[Subject]:
        return [s for s in self.subjects if s.responsible == teacher]

    def materials_by(self, teacher: Teacher) -> list[Material]:
        return [m for m in self.materials if m.author.teacher == teacher]

    def tag_slug(self, name: str) -> str:
        return self.tags[name].slug


def _parsed(page: ParsedPage | None, card_type: type[CardT], path: str) -> tuple[CardT, str]:
    """Card and body of an input that passed parsing."""
    if page is None or not isinstance(page.card, card_type):
        raise TypeError(f"{path}: expected a parsed {card_type.__name__}")
    return page.card, page.body


def _build_subject(item: SubjectInput, report: BuildReport) -> Subject | None:
    path = item.root.marker
    if item.error is not None:
        report.add_error(item.error)
        return None

    resolution = item.responsible
    if resolution is None or not resolution.resolved:
        if resolution is not None:
            report.add_error(resolution.to_error(path))
        return None

    if not item.in_book:
        report.warn(path, NOT_IN_BOOK, "NotInBook")
        return None

    card, body = _parsed(item.page, SubjectCard, path)
    return Subject(
        card=card,
        path=path,
        root=item.root.root,
        responsible=resolution.teacher,
        body=body,
    )


def _build_material(item: MaterialInput, subject: Subject | None, report: BuildReport) -> Material | None:
    path = item.entry.path
    if item.error is not None:
        report.add_error(item.error)
        return None

    author = item.author
    if author is None or author.is_error:
        if author is not None:
            report.add_error(author.to_error(path))
        return None
    if author.kind is ResolutionKind.UNKNOWN:
        report.warn(path, f"author attributed to 'unknown': {author.reason}", "UnknownAuthor")

    card, body = _parsed(item.page, MaterialCard, path)
    tags = normalize_tags(card.tags, path, report)

    if subject is None:
        logger.debug("Skipping %s, its subject %s is not valid", path, item.entry.subject)
        return None
    if not item.in_book:
        report.warn(path, NOT_IN_BOOK, "NotInBook")
        return None

    return Material(
        card=card,
        path=path,
        subject=subject,
        tags=tags,
        author=author,
        body=body,
        last_change=item.last_change,
    )


def build_tag_index(materials: Sequence[Material]) -> dict[str, Tag]:
    """Index materials by tag; each tag lists materials by (subject path, path)."""
    names = sorted({tag for material in materials for tag in material.tags})
    index = {name: Tag(name=name, slug=slug) for name, slug in zip(names, unique_slugs(names), strict=True)}
    for material in sorted(materials, key=lambda m: (m.subject.path, m.path)):
        for tag in material.tags:
            index[tag].materials.append(material)
    return index


def build_graph(
    registry: TeacherRegistry,
    subjects: Sequence[SubjectInput],
    materials: Sequence[MaterialInput],
    report: BuildReport | None = None,
) -> EntityGraph:
    """Assemble the graph from parsed and resolved records."""
    report = report if report is not None else BuildReport()
    graph = EntityGraph(teachers=list(registry.teachers), report=report)

    by_marker: dict[str, Subject] = {}
    for item in sorted(subjects, key=lambda s: s.root.marker):
        subject = _build_subject(item, report)
        if subject is not None:
            by_marker[subject.path] = subject
            graph.subjects.append(subject)

    for item in sorted(materials, key=lambda m: m.entry.path):
        material = _build_material(item, by_marker.get(item.entry.subject), report)
        if material is not None:
            material.subject.materials.append(material)
            graph.materials.append(material)

    graph.tags = build_tag_index(graph.materials)
    logger.info(
        "Built graph with %d subject(s), %d material(s) and %d tag(s): %d error(s), %d warning(s)",
        len(graph.subjects),
        len(graph.materials),
        len(graph.tags),
        len(report.errors),
        len(report.warnings),
    )
    return graph


__all__ = [
    "EntityGraph",
    "MaterialInput",
    "SubjectInput",
    "build_graph",
    "build_tag_index",
    "normalize_tag",
    "normalize_tags",
]
