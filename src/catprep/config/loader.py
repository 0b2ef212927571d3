"""Configuration loader for the ``[preprocessor.cat]`` table.

mdbook hands the whole parsed ``book.toml`` to the preprocessor, so there is
no file to look up here: the table arrives as a mapping inside the context.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from catprep.config.exceptions import InvalidConfigurationValueError
from catprep.config.schema import CatPrepSettings

logger = logging.getLogger(__name__)

# Table names under [preprocessor] that configure this preprocessor.
PREPROCESSOR_NAMES = ("cat", "cat-prep")

# Keys mdbook itself reads from a preprocessor table.
_MDBOOK_KEYS = frozenset({"command", "renderers", "before", "after", "optional"})


def _deep_merge(destination: dict[str, Any], source: dict[str, Any]) -> dict[str, Any]:
    """Merge source into destination, with source values overwriting."""
    for key, value in source.items():
        if isinstance(value, Mapping) and key in destination and isinstance(destination[key], Mapping):
            destination[key] = _deep_merge(dict(destination[key]), dict(value))
        else:
            destination[key] = value
    return destination


def preprocessor_table(book_config: Mapping[str, Any]) -> dict[str, Any]:
    """Return our table from a parsed ``book.toml`` with keys normalized to snake_case."""
    preprocessors = book_config.get("preprocessor") or {}
    for name in PREPROCESSOR_NAMES:
        table = preprocessors.get(name)
        if isinstance(table, Mapping):
            return {
                str(key).replace("-", "_"): value for key, value in table.items() if key not in _MDBOOK_KEYS
            }
    return {}


def load_settings(book_config: Mapping[str, Any] | None = None) -> CatPrepSettings:
    """Build settings from the book configuration and the environment.

    Priority (highest to lowest):
    1. Environment variables (CAT_PREP_FIELD)
    2. ``[preprocessor.cat]`` in book.toml
    3. Defaults

    Raises:
        InvalidConfigurationValueError: If a value fails validation.

    """
    file_settings = preprocessor_table(book_config or {})
    try:
        env_settings = CatPrepSettings().model_dump(exclude_unset=True)
        merged = _deep_merge(file_settings, env_settings)
        settings = CatPrepSettings.model_validate(merged)
    except ValidationError as e:
        raise InvalidConfigurationValueError(e.errors()) from e

    logger.debug("Loaded settings: %s", settings.model_dump(mode="json"))
    return settings


__all__ = [
    "PREPROCESSOR_NAMES",
    "load_settings",
    "preprocessor_table",
]
