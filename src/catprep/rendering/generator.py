"""Markdown fragments generated from the entity graph.

Templates live in ``catprep/rendering/templates`` and are loaded as package
resources. Rendering is a pure function of the graph and the settings: the
same graph always yields the same fragments, in the same order.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from jinja2 import Environment, PackageLoader, StrictUndefined

from catprep.config.schema import CatPrepSettings
from catprep.core.graph import EntityGraph
from catprep.core.models import Material, Subject
from catprep.utils.paths import relative_link

logger = logging.getLogger(__name__)

SUBJECT_KEY = "subject"
MATERIAL_KEY = "material"
TEACHERS_KEY = "teachers"
TAGS_KEY = "tags"


@dataclass(frozen=True, slots=True)
class Fragment:
    """Generated markdown destined for one page.

    ``title`` is the chapter name used when the page has to be created.
    """

    page: str
    key: str
    content: str
    title: str = ""


def table_cell(value: object) -> str:
    """Make a value safe to place inside a markdown table cell."""
    text = "" if value is None else str(value)
    return " ".join(text.split()).replace("|", "\\|")


def html_text(value: object) -> str:
    text = "" if value is None else str(value)
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace('"', "&quot;")


class ContentGenerator:
    """Renders subject listings, material cards, the teachers page and the tag index."""

    def __init__(self, graph: EntityGraph, settings: CatPrepSettings) -> None:
        self.graph = graph
        self.settings = settings
        # Markdown output, not HTML: values that end up inside raw HTML go
        # through the ``html`` filter explicitly.
        self.env = Environment(
            loader=PackageLoader("catprep.rendering", "templates"),
            autoescape=False,  # noqa: S701
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )
        self.env.filters["cell"] = table_cell
        self.env.filters["html"] = html_text
        self.env.globals["link"] = relative_link
        self.env.globals["badges"] = self.tag_badges

    def tag_badges(self, page: str, tags: Iterable[str]) -> str:
        """Inline links from ``page`` to each tag's section of the tags page."""
        return " ".join(
            f"[`{tag}`]({relative_link(page, self.settings.tags_page, self.graph.tag_slug(tag))})" for tag in tags
        )

    def _render(self, template_name: str, page: str, **context: object) -> str:
        template = self.env.get_template(template_name)
        return template.render(
            page=page,
            teachers_page=self.settings.teachers_page,
            tags_page=self.settings.tags_page,
            **context,
        )

    def render_subject(self, subject: Subject) -> Fragment:
        content = self._render("subject.md.jinja", subject.path, subject=subject)
        return Fragment(subject.path, SUBJECT_KEY, content)

    def render_material(self, material: Material) -> Fragment:
        content = self._render("material.md.jinja", material.path, material=material)
        return Fragment(material.path, MATERIAL_KEY, content)

    def render_teachers(self) -> Fragment | None:
        if not self.graph.teachers:
            return None
        page = self.settings.teachers_page
        content = self._render(
            "teachers.md.jinja",
            page,
            teachers=self.graph.teachers,
            subjects_of={t.path: self.graph.subjects_of(t) for t in self.graph.teachers},
            materials_by={t.path: self.graph.materials_by(t) for t in self.graph.teachers},
        )
        return Fragment(page, TEACHERS_KEY, content, self.settings.teachers_title)

    def render_tags(self) -> Fragment | None:
        if not self.graph.tags:
            return None
        page = self.settings.tags_page
        content = self._render("tags.md.jinja", page, tags=list(self.graph.tags.values()))
        return Fragment(page, TAGS_KEY, content, self.settings.tags_title)

    def generate(self) -> list[Fragment]:
        """Every fragment for the graph: subjects, materials, teachers, tags."""
        fragments = [self.render_subject(s) for s in self.graph.subjects]
        if self.settings.material_cards:
            fragments.extend(self.render_material(m) for m in self.graph.materials)
        for fragment in (self.render_teachers(), self.render_tags()):
            if fragment is not None:
                fragments.append(fragment)
        logger.debug("Generated %d fragment(s)", len(fragments))
        return fragments


__all__ = ["ContentGenerator", "Fragment", "html_text", "table_cell"]
