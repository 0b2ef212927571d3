"""Configuration for cat-prep."""

from catprep.config.loader import PREPROCESSOR_NAMES, load_settings, preprocessor_table
from catprep.config.schema import DEFAULT_INSERTION_MARKER, DEFAULT_SUBJECT_MARKER, CatPrepSettings

__all__ = [
    "DEFAULT_INSERTION_MARKER",
    "DEFAULT_SUBJECT_MARKER",
    "PREPROCESSOR_NAMES",
    "CatPrepSettings",
    "load_settings",
    "preprocessor_table",
]
