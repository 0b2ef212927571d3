"""Authorship resolution.

A reference is resolved in a fixed order:

1. a declared reference (name, email or handle) is matched against the
   registry - it is authoritative, so a miss is an error;
2. without a declaration, the last commit of the file is matched by email,
   then by name - a best-effort convenience, so a miss yields the UNKNOWN
   sentinel and a warning.

The same last commit also feeds the informational :class:`LastChange` of every
material. Each file's history is asked for at most once per resolver.

Results are plain values (:class:`Resolution`); nothing here raises for an
unresolved reference.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TypeVar

from catprep.core.models import Teacher
from catprep.core.registry import TeacherRegistry
from catprep.exceptions import (
    AmbiguousReferenceError,
    EntityValidationError,
    GitCommandError,
    UnresolvedReferenceError,
)
from catprep.utils.git import CommitInfo, HistoryProvider

logger = logging.getLogger(__name__)

UNKNOWN_AUTHOR = "unknown"

T = TypeVar("T")


class ResolutionKind(str, Enum):
    RESOLVED = "resolved"
    UNKNOWN = "unknown"
    UNRESOLVED = "unresolved"
    AMBIGUOUS = "ambiguous"


class ResolutionSource(str, Enum):
    DECLARED = "declared"
    HISTORY = "history"


@dataclass(frozen=True, slots=True)
class Resolution:
    """Outcome of resolving one reference."""

    kind: ResolutionKind
    source: ResolutionSource
    teacher: Teacher | None = None
    reference: str | None = None
    commit: CommitInfo | None = None
    candidates: tuple[Teacher, ...] = field(default=())
    reason: str = ""

    @property
    def resolved(self) -> bool:
        return self.kind is ResolutionKind.RESOLVED

    @property
    def is_error(self) -> bool:
        return self.kind in (ResolutionKind.UNRESOLVED, ResolutionKind.AMBIGUOUS)

    @property
    def display_name(self) -> str:
        if self.teacher is not None:
            return self.teacher.name
        if self.commit is not None and self.commit.name:
            return self.commit.name
        return self.reference or UNKNOWN_AUTHOR

    def to_error(self, path: str) -> EntityValidationError:
        """Turn an unresolved or ambiguous result into the error it stands for."""
        reference = self.reference or ""
        if self.kind is ResolutionKind.AMBIGUOUS:
            return AmbiguousReferenceError(path, reference, [t.path for t in self.candidates])
        return UnresolvedReferenceError(path, reference)


@dataclass(frozen=True, slots=True)
class LastChange:
    """Who committed a file last and when; ``teacher`` is set when registered."""

    commit: CommitInfo
    teacher: Teacher | None = None

    @property
    def display_name(self) -> str:
        return self.teacher.name if self.teacher is not None else self.commit.name

    @property
    def timestamp(self) -> str:
        return self.commit.timestamp


class AuthorshipResolver:
    """Resolves person references against a :class:`TeacherRegistry`."""

    def __init__(self, registry: TeacherRegistry, history: HistoryProvider, max_workers: int = 8) -> None:
        self.registry = registry
        self.history = history
        self.max_workers = max_workers
        self._commits: dict[Path, CommitInfo | None] = {}

    def resolve_reference(self, reference: str) -> Resolution:
        """Match a declared reference by email, handle and display name."""
        reference = reference.strip()
        matched = self.registry.match(reference)
        if not matched:
            return Resolution(ResolutionKind.UNRESOLVED, ResolutionSource.DECLARED, reference=reference)
        if len(matched) > 1:
            return Resolution(
                ResolutionKind.AMBIGUOUS,
                ResolutionSource.DECLARED,
                reference=reference,
                candidates=tuple(matched),
            )
        return Resolution(
            ResolutionKind.RESOLVED,
            ResolutionSource.DECLARED,
            teacher=matched[0],
            reference=reference,
        )

    def _last_commit(self, file_path: Path) -> CommitInfo | None:
        if file_path not in self._commits:
            self._commits[file_path] = self.history.last_commit(file_path)
        return self._commits[file_path]

    def _match_commit(self, commit: CommitInfo) -> Teacher | None:
        teacher = self.registry.by_email.get(commit.email) if commit.email else None
        if teacher is None:
            by_name = self.registry.by_name.get(commit.name, [])
            teacher = by_name[0] if len(by_name) == 1 else None
        return teacher

    def resolve_from_history(self, file_path: Path) -> Resolution:
        """Attribute a file to the author of its last commit, or to UNKNOWN."""
        try:
            commit = self._last_commit(file_path)
        except GitCommandError as e:
            logger.debug("History lookup failed for %s: %s", file_path, e)
            return Resolution(ResolutionKind.UNKNOWN, ResolutionSource.HISTORY, reason=str(e))

        if commit is None:
            return Resolution(ResolutionKind.UNKNOWN, ResolutionSource.HISTORY, reason="the file has no history")

        teacher = self._match_commit(commit)
        if teacher is None:
            return Resolution(
                ResolutionKind.UNKNOWN,
                ResolutionSource.HISTORY,
                commit=commit,
                reason=f"last committer {commit.name} <{commit.email}> is not a registered teacher",
            )
        return Resolution(ResolutionKind.RESOLVED, ResolutionSource.HISTORY, teacher=teacher, commit=commit)

    def resolve(self, reference: str | None, file_path: Path) -> Resolution:
        if reference is not None and reference.strip():
            return self.resolve_reference(reference)
        return self.resolve_from_history(file_path)

    def resolve_many(self, requests: Iterable[tuple[str, str | None, Path]]) -> dict[str, Resolution]:
        """Resolve ``(key, reference, file_path)`` requests.

        Declared references are matched inline; history lookups run in a
        thread pool. The result is keyed and ordered by ``key``.
        """
        results: dict[str, Resolution] = {}
        pending: list[tuple[str, Path]] = []
        for key, reference, file_path in requests:
            if reference is not None and reference.strip():
                results[key] = self.resolve_reference(reference)
            else:
                pending.append((key, file_path))

        results.update(self._in_pool(self.resolve_from_history, pending))
        return dict(sorted(results.items()))

    def last_change(self, file_path: Path) -> LastChange | None:
        """The last commit of a file, or None when history has nothing to say."""
        try:
            commit = self._last_commit(file_path)
        except GitCommandError as e:
            logger.debug("No last change for %s: %s", file_path, e)
            return None
        if commit is None:
            return None
        return LastChange(commit=commit, teacher=self._match_commit(commit))

    def last_changes(self, requests: Iterable[tuple[str, Path]]) -> dict[str, LastChange | None]:
        """Look up :meth:`last_change` for ``(key, file_path)`` pairs, keyed and ordered by ``key``."""
        return dict(sorted(self._in_pool(self.last_change, list(requests)).items()))

    def _in_pool(self, lookup: Callable[[Path], T], pending: list[tuple[str, Path]]) -> dict[str, T]:
        if not pending:
            return {}
        logger.debug("Looking up history of %d file(s)", len(pending))
        workers = max(1, min(self.max_workers, len(pending)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            found = executor.map(lambda item: lookup(item[1]), pending)
            return {key: value for (key, _), value in zip(pending, found, strict=True)}


__all__ = [
    "UNKNOWN_AUTHOR",
    "AuthorshipResolver",
    "LastChange",
    "Resolution",
    "ResolutionKind",
    "ResolutionSource",
]
