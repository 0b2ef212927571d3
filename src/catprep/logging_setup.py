"""Logging for cat-prep.

stdout carries the book JSON back to mdbook, so every record goes to a stderr
console. The level comes from ``CAT_PREP_LOG_LEVEL`` unless ``--debug`` is given.
"""

from __future__ import annotations

import logging
import os
from typing import Final

from rich.console import Console
from rich.logging import RichHandler

__all__ = ["console", "configure_logging"]

LOG_LEVEL_ENV: Final[str] = "CAT_PREP_LOG_LEVEL"

console = Console(stderr=True)


class _StderrHandler(RichHandler):
    """The one handler cat-prep installs on the root logger."""

    def __init__(self) -> None:
        super().__init__(console=console, rich_tracebacks=True, show_path=False, markup=False)
        self.setFormatter(logging.Formatter("[cat-prep] %(message)s"))


def _env_level() -> int:
    level = logging.getLevelName(os.getenv(LOG_LEVEL_ENV, "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(*, debug: bool = False) -> None:
    """Install the stderr handler once; calling again only updates the level."""
    root_logger = logging.getLogger()
    if not any(isinstance(h, _StderrHandler) for h in root_logger.handlers):
        root_logger.handlers.clear()
        root_logger.addHandler(_StderrHandler())

    root_logger.setLevel(logging.DEBUG if debug else _env_level())
    logging.captureWarnings(True)
