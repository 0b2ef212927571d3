"""Jinja2 rendering of generated markdown fragments."""

from catprep.rendering.generator import ContentGenerator, Fragment

__all__ = ["ContentGenerator", "Fragment"]
