"""Custom exceptions for configuration and environment handling."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any

from catprep.exceptions import CatPrepError


class ConfigError(CatPrepError):
    """Base exception for all configuration-related errors."""


class InvalidConfigurationValueError(ConfigError):
    """Raised when the preprocessor table fails validation."""

    def __init__(self, errors: Sequence[dict[str, Any]] | None = None) -> None:
        self.errors = list(errors or [])
        details = "; ".join(
            f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', '')}" for err in self.errors
        )
        super().__init__(f"Configuration validation failed with {len(self.errors)} error(s). {details}".strip())


class NotARepositoryError(ConfigError):
    """Raised when the book is not inside a git working tree."""

    def __init__(self, path: Path, error: str) -> None:
        self.path = path
        self.error = error
        super().__init__(
            f"mdbook isn't running in a git repository or the repository is bare ({path}): {error}"
        )


class GitUnavailableError(ConfigError):
    """Raised when the git executable cannot be started."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"git is not available: {reason}")


class TeachersDirectoryError(ConfigError):
    """Raised when the teacher registry directory is missing or not a directory."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid teacher registry at '{path}': {reason}")


class HostProtocolError(ConfigError):
    """Raised when the input received from mdbook cannot be understood."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid preprocessor input: {reason}")
