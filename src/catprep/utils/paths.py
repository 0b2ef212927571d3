"""Slug and link helpers shared by the graph and the templates."""

from __future__ import annotations

import posixpath
from collections.abc import Iterable
from urllib.parse import quote

from pymdownx.slugs import slugify as _md_slugify

# NFKD so that Czech diacritics transliterate to ASCII anchors.
slugify_lower = _md_slugify(case="lower", separator="-", normalize="NFKD")


def slugify(text: str, max_len: int = 60) -> str:
    """Convert text to an ASCII anchor slug using Python Markdown semantics.

    Examples:
        >>> slugify("Hello World!")
        'hello-world'
        >>> slugify("Matematická analýza")
        'matematicka-analyza'

    """
    if text is None:
        return ""

    slug = slugify_lower(text, sep="-")
    slug = slug.encode("ascii", "ignore").decode("ascii")
    slug = slug or "x"
    if len(slug) > max_len:
        slug = slug[:max_len]
    return slug.rstrip("-")


def unique_slugs(texts: Iterable[str]) -> list[str]:
    """Slugify each text, suffixing ``-2``, ``-3`` ... on collisions (in input order)."""
    seen: set[str] = set()
    slugs: list[str] = []
    for text in texts:
        base = slugify(text)
        slug = base
        counter = 2
        while slug in seen:
            slug = f"{base}-{counter}"
            counter += 1
        seen.add(slug)
        slugs.append(slug)
    return slugs


def relative_link(from_page: str, to_page: str, anchor: str | None = None) -> str:
    """Return a link to ``to_page`` usable from inside ``from_page``.

    Both paths are POSIX paths relative to the book source directory. The
    ``.md`` suffix is kept so that mdbook rewrites the link for each renderer.

    Examples:
        >>> relative_link("math/subject.md", "math/limits/intro.md")
        'limits/intro.md'
        >>> relative_link("math/limits/intro.md", "tags.md", "rust")
        '../../tags.md#rust'

    """
    start = posixpath.dirname(from_page) or "."
    target = posixpath.relpath(to_page, start)
    link = quote(target, safe="/")
    if anchor:
        link = f"{link}#{anchor}"
    return link


__all__ = ["relative_link", "slugify", "unique_slugs"]
