"""The cat preprocessor: one pass from source tree to spliced book.

Discovery -> front matter -> authorship -> graph -> fragments -> splicing.
Configuration and structural problems abort the run by raising; everything
else ends up in the :class:`BuildReport` of the returned :class:`BuildResult`.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path

from catprep.book import Book, Chapter, PreprocessorContext, book_from_directory
from catprep.config.exceptions import HostProtocolError
from catprep.config.loader import load_settings
from catprep.config.schema import CatPrepSettings
from catprep.core.authorship import AuthorshipResolver
from catprep.core.discovery import Discovery, discover_tree
from catprep.core.graph import EntityGraph, MaterialInput, SubjectInput, build_graph
from catprep.core.models import BuildReport, PageKind, Severity
from catprep.core.registry import load_registry
from catprep.exceptions import EntityValidationError, MissingHeaderError, SubjectHeaderError
from catprep.markdown.frontmatter import parse_page, read_source
from catprep.markdown.splice import splice
from catprep.rendering.generator import ContentGenerator, Fragment
from catprep.utils.git import GitHistory, HistoryProvider

logger = logging.getLogger(__name__)

BOOK_CONFIG_FILE = "book.toml"


@dataclass(slots=True)
class BuildResult:
    book: Book
    report: BuildReport
    graph: EntityGraph

    @property
    def ok(self) -> bool:
        return self.report.ok


def _is_within(path: Path, parent: Path) -> bool:
    return path.resolve().is_relative_to(parent.resolve())


class CatPreprocessor:
    """mdbook preprocessor resolving teachers, subjects, materials and tags."""

    name = "cat-prep"

    def __init__(self, settings: CatPrepSettings | None = None, history: HistoryProvider | None = None) -> None:
        self.settings = settings or CatPrepSettings()
        self.history = history or GitHistory(timeout=self.settings.git_timeout)

    def supports_renderer(self, renderer: str) -> bool:
        return renderer not in self.settings.unsupported_renderers

    def _page_text(self, rel: str, src_dir: Path, chapters: dict[str, Chapter]) -> str:
        chapter = chapters.get(rel)
        if chapter is not None:
            return chapter.content
        return read_source(src_dir / rel, rel)

    def _parse_subjects(
        self,
        discovery: Discovery,
        src_dir: Path,
        chapters: dict[str, Chapter],
        resolver: AuthorshipResolver,
    ) -> list[SubjectInput]:
        inputs: list[SubjectInput] = []
        headerless: list[str] = []
        for root in discovery.subjects:
            item = SubjectInput(root=root, in_book=root.marker in chapters)
            try:
                item.page = parse_page(self._page_text(root.marker, src_dir, chapters), root.marker, PageKind.SUBJECT)
            except MissingHeaderError:
                headerless.append(root.marker)
                continue
            except EntityValidationError as e:
                item.error = e
            else:
                item.responsible = resolver.resolve_reference(item.page.card.responsible)
            inputs.append(item)

        if headerless:
            raise SubjectHeaderError(headerless)
        return inputs

    def _parse_materials(
        self,
        discovery: Discovery,
        src_dir: Path,
        chapters: dict[str, Chapter],
        resolver: AuthorshipResolver,
    ) -> list[MaterialInput]:
        inputs: dict[str, MaterialInput] = {}
        requests: list[tuple[str, str | None, Path]] = []
        for entry in discovery.materials:
            item = MaterialInput(entry=entry, in_book=entry.path in chapters)
            inputs[entry.path] = item
            try:
                item.page = parse_page(self._page_text(entry.path, src_dir, chapters), entry.path, PageKind.MATERIAL)
            except EntityValidationError as e:
                item.error = e
                continue
            requests.append((entry.path, item.page.card.author, src_dir / entry.path))

        for path, resolution in resolver.resolve_many(requests).items():
            inputs[path].author = resolution
        if self.settings.last_change:
            changes = resolver.last_changes((path, file_path) for path, _, file_path in requests)
            for path, change in changes.items():
                inputs[path].last_change = change
        return list(inputs.values())

    def build_graph(self, context: PreprocessorContext, book: Book) -> EntityGraph:
        """Validate the source tree of ``context`` and assemble the entity graph.

        Raises:
            HostProtocolError: If the source directory does not exist.
            NotARepositoryError: If the book is not inside a git working tree.
            GitUnavailableError: If git cannot be run.
            TeachersDirectoryError: If the teacher registry is missing.
            NestedSubjectError: If subjects are nested.
            SubjectHeaderError: If a subject marker has no header.

        """
        src_dir = context.src_dir
        if not src_dir.is_dir():
            raise HostProtocolError(f"source directory '{src_dir}' does not exist")
        self.history.ensure_repository(context.root)

        teachers_dir = self.settings.resolve_teachers_dir(context.root)
        registry, registry_issues = load_registry(teachers_dir, context.root)
        report = BuildReport()
        report.extend(registry_issues)

        skip = teachers_dir if _is_within(teachers_dir, src_dir) else None
        discovery = discover_tree(src_dir, self.settings, skip=skip)
        chapters = book.chapter_map()
        resolver = AuthorshipResolver(registry, self.history, max_workers=self.settings.history_workers)

        subjects = self._parse_subjects(discovery, src_dir, chapters, resolver)
        materials = self._parse_materials(discovery, src_dir, chapters, resolver)
        return build_graph(registry, subjects, materials, report)

    def splice_book(self, book: Book, graph: EntityGraph, fragments: list[Fragment]) -> Book:
        """Return a copy of ``book`` with headers stripped and fragments spliced in."""
        output = book.copy()
        chapters = output.chapter_map()

        for entity in (*graph.subjects, *graph.materials):
            chapters[entity.path].content = entity.body

        for fragment in fragments:
            chapter = chapters.get(fragment.page)
            if chapter is None:
                if not fragment.title:
                    logger.warning("No chapter for generated %s content of %s", fragment.key, fragment.page)
                    continue
                chapter = output.push_chapter(fragment.title, f"# {fragment.title}\n", fragment.page)
                chapters[fragment.page] = chapter
            chapter.content = splice(chapter.content, fragment.content, fragment.key, self.settings.insertion_marker)
        return output

    def run(self, context: PreprocessorContext, book: Book) -> BuildResult:
        """Process ``book``; the input is left untouched."""
        graph = self.build_graph(context, book)
        fragments = ContentGenerator(graph, self.settings).generate()
        output = self.splice_book(book, graph, fragments)

        for issue in graph.report.sorted():
            if issue.severity is Severity.ERROR:
                logger.error("%s", issue)
            else:
                logger.warning("%s", issue)
        return BuildResult(book=output, report=graph.report, graph=graph)


def read_book_config(book_root: Path) -> dict:
    """Parse ``book.toml`` of a book directory; a missing file means defaults."""
    config_path = book_root / BOOK_CONFIG_FILE
    if not config_path.is_file():
        return {}
    try:
        return tomllib.loads(config_path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise HostProtocolError(f"cannot parse {config_path}: {e}") from e


def check_book(book_root: Path, history: HistoryProvider | None = None) -> BuildResult:
    """Run the preprocessor against a book directory without mdbook."""
    config = read_book_config(book_root)
    settings = load_settings(config)
    context = PreprocessorContext(root=book_root, config=config)
    book = book_from_directory(context.src_dir, tuple(settings.page_extensions))
    return CatPreprocessor(settings, history).run(context, book)


__all__ = ["BOOK_CONFIG_FILE", "BuildResult", "CatPreprocessor", "check_book", "read_book_config"]
