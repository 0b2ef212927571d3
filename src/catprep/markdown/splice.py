"""Splicing generated fragments into page bodies.

Every fragment is wrapped in a pair of HTML comments carrying its key. The
wrapped block is invisible in rendered output and lets a later run find and
remove what an earlier run inserted, so splicing is idempotent.
"""

from __future__ import annotations

import re

BEGIN_TEMPLATE = "<!-- cat-prep:begin {key} -->"
END_TEMPLATE = "<!-- cat-prep:end {key} -->"

_BLOCK_RE = re.compile(
    r"\n?<!-- cat-prep:begin (?P<key>[^\s>]+) -->\n.*?<!-- cat-prep:end (?P=key) -->\n?",
    re.DOTALL,
)


def wrap(fragment: str, key: str) -> str:
    """Wrap ``fragment`` in begin/end comments for ``key``."""
    if fragment and not fragment.endswith("\n"):
        fragment += "\n"
    return f"\n{BEGIN_TEMPLATE.format(key=key)}\n{fragment}{END_TEMPLATE.format(key=key)}\n"


def strip_generated(body: str) -> str:
    """Remove every block an earlier run inserted."""
    return _BLOCK_RE.sub("", body)


def splice(body: str, fragment: str, key: str, marker: str) -> str:
    """Insert ``fragment`` into ``body``.

    The block goes right after the first ``marker`` occurrence, or at the end
    of the body when there is no marker. Blocks from earlier runs are removed
    first.

    Examples:
        >>> splice("# Intro\\n", "- a\\n", "list", "<!-- cat-prep -->")
        '# Intro\\n\\n<!-- cat-prep:begin list -->\\n- a\\n<!-- cat-prep:end list -->\\n'

    """
    body = strip_generated(body)
    block = wrap(fragment, key)

    index = body.find(marker)
    if index >= 0:
        cut = index + len(marker)
        return body[:cut] + block + body[cut:]

    if body and not body.endswith("\n"):
        body += "\n"
    return body + block


__all__ = ["BEGIN_TEMPLATE", "END_TEMPLATE", "splice", "strip_generated", "wrap"]
