"""Centralized exceptions for cat-prep.

Three families matter to callers:

- :class:`catprep.config.exceptions.ConfigError` - the environment is unusable,
  nothing gets processed.
- :class:`StructuralError` - the source tree itself is inconsistent, the walk
  cannot produce a meaningful graph.
- :class:`EntityValidationError` - one teacher, subject or material is broken.
  These are collected into the build report instead of being raised through
  the pipeline.
"""

from __future__ import annotations

from collections.abc import Sequence


class CatPrepError(Exception):
    """Base exception for all cat-prep errors."""


class StructuralError(CatPrepError):
    """Raised when the source tree cannot be turned into a graph at all."""


class NestedSubjectError(StructuralError):
    """Raised when a subject directory is found inside another subject."""

    def __init__(self, outer: str, inner: str) -> None:
        self.outer = outer
        self.inner = inner
        super().__init__(f"Subject '{inner}' is nested inside subject '{outer}'")


class SubjectHeaderError(StructuralError):
    """Raised when subject marker files carry no header.

    Without the header the subject cannot be attributed to anyone, so its
    whole subtree is meaningless. All offending markers are reported at once.
    """

    def __init__(self, paths: Sequence[str]) -> None:
        self.paths = tuple(paths)
        listing = "\n".join(f"  - {p}" for p in self.paths)
        super().__init__(f"Subject marker(s) without a header:\n{listing}")


class EntityValidationError(CatPrepError):
    """Base class for problems local to a single source file."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"{path}: {message}")


class MissingHeaderError(EntityValidationError):
    """Raised when a page that needs a header has no header delimiter."""

    def __init__(self, path: str) -> None:
        super().__init__(path, "the header is either missing or not terminated by '+++'")


class MalformedHeaderError(EntityValidationError):
    """Raised when the header block cannot be decoded into a table."""

    def __init__(self, path: str, reason: str) -> None:
        self.reason = reason
        super().__init__(path, f"the header has an invalid format: {reason}")


class UnreadableFileError(EntityValidationError):
    """Raised when a source file cannot be read as UTF-8 text."""

    def __init__(self, path: str, reason: str) -> None:
        self.reason = reason
        super().__init__(path, f"cannot read the file: {reason}")


class MissingFieldError(EntityValidationError):
    """Raised when a required header field is absent."""

    def __init__(self, path: str, field: str) -> None:
        self.field = field
        super().__init__(path, f"missing required field '{field}'")


class InvalidFieldError(EntityValidationError):
    """Raised when a header field has an unusable value."""

    def __init__(self, path: str, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(path, f"invalid value for field '{field}': {reason}")


class UnresolvedReferenceError(EntityValidationError):
    """Raised when a person reference matches no registered teacher."""

    def __init__(self, path: str, reference: str) -> None:
        self.reference = reference
        super().__init__(path, f"'{reference}' does not match any registered teacher")


class AmbiguousReferenceError(EntityValidationError):
    """Raised when a person reference matches more than one teacher."""

    def __init__(self, path: str, reference: str, candidates: Sequence[str]) -> None:
        self.reference = reference
        self.candidates = tuple(candidates)
        super().__init__(
            path,
            f"'{reference}' is ambiguous, it matches teachers {', '.join(self.candidates)}",
        )


class DuplicateTeacherError(EntityValidationError):
    """Raised when two registry files claim the same email or handle."""

    def __init__(self, path: str, field: str, value: str, first_path: str) -> None:
        self.field = field
        self.value = value
        self.first_path = first_path
        super().__init__(path, f"{field} '{value}' is already used by {first_path}")


class GitCommandError(CatPrepError):
    """Raised when a git query fails or times out."""

    def __init__(self, command: str, status: int | None, error: str) -> None:
        self.command = command
        self.status = status
        self.error = error
        super().__init__(f"Failed to run command: {command} exited with code {status} and output '{error}'")


class BuildFailedError(CatPrepError):
    """Raised when the build report contains at least one error."""

    def __init__(self, report: object, count: int) -> None:
        self.report = report
        self.count = count
        super().__init__(f"Preprocessing failed with {count} error(s).")
