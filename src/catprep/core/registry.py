"""Teacher registry: one file per teacher in the registry directory."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace
from pathlib import Path

from catprep.config.exceptions import TeachersDirectoryError
from catprep.core.models import Issue, Teacher
from catprep.exceptions import DuplicateTeacherError, EntityValidationError
from catprep.markdown.frontmatter import parse_teacher_file
from catprep.utils.paths import unique_slugs

logger = logging.getLogger(__name__)

REGISTRY_SUFFIXES = (".toml", ".md")


class TeacherRegistry:
    """Lookup tables over the registered teachers.

    Emails and handles are unique; display names may repeat, in which case a
    lookup by that name is ambiguous.
    """

    def __init__(self, teachers: list[Teacher]) -> None:
        self.teachers = list(teachers)
        self.by_email: dict[str, Teacher] = {}
        self.by_handle: dict[str, Teacher] = {}
        self.by_name: dict[str, list[Teacher]] = defaultdict(list)
        for teacher in self.teachers:
            if teacher.email:
                self.by_email[teacher.email] = teacher
            if teacher.username:
                self.by_handle[teacher.username] = teacher
            self.by_name[teacher.name].append(teacher)

    def __len__(self) -> int:
        return len(self.teachers)

    def __iter__(self):
        return iter(self.teachers)

    def match(self, reference: str) -> list[Teacher]:
        """Distinct teachers matching ``reference`` by email, then handle, then name."""
        matched: list[Teacher] = []
        candidates = [
            self.by_email.get(reference),
            self.by_handle.get(reference),
            *self.by_name.get(reference, ()),
        ]
        for teacher in candidates:
            if teacher is not None and teacher not in matched:
                matched.append(teacher)
        return matched


def _registry_files(directory: Path) -> list[Path]:
    files = [p for p in directory.rglob("*") if p.is_file() and p.suffix in REGISTRY_SUFFIXES]
    return sorted(files, key=lambda p: p.relative_to(directory).as_posix())


def load_registry(directory: Path, book_root: Path) -> tuple[TeacherRegistry, list[Issue]]:
    """Read every teacher file below ``directory``.

    Broken files and duplicate identities are reported as issues; the first
    file (in path order) claiming an email or handle keeps it.

    Raises:
        TeachersDirectoryError: If the directory is missing or is a file.

    """
    if not directory.exists():
        raise TeachersDirectoryError(directory, "directory doesn't exist")
    if not directory.is_dir():
        raise TeachersDirectoryError(directory, "not a directory")

    issues: list[Issue] = []
    accepted: list[Teacher] = []
    email_owner: dict[str, str] = {}
    handle_owner: dict[str, str] = {}

    for file_path in _registry_files(directory):
        try:
            rel = file_path.relative_to(book_root).as_posix()
        except ValueError:
            rel = file_path.as_posix()
        try:
            page = parse_teacher_file(file_path, rel)
        except EntityValidationError as e:
            issues.append(Issue.from_error(e))
            continue

        card = page.card
        duplicate: DuplicateTeacherError | None = None
        if card.email and card.email in email_owner:
            duplicate = DuplicateTeacherError(rel, "email", card.email, email_owner[card.email])
        elif card.username and card.username in handle_owner:
            duplicate = DuplicateTeacherError(rel, "username", card.username, handle_owner[card.username])
        if duplicate is not None:
            issues.append(Issue.from_error(duplicate))
            continue

        if card.email:
            email_owner[card.email] = rel
        if card.username:
            handle_owner[card.username] = rel
        accepted.append(Teacher(card=card, path=rel))

    anchors = unique_slugs(t.username or t.name for t in accepted)
    teachers = [replace(t, anchor=anchor) for t, anchor in zip(accepted, anchors, strict=True)]
    logger.info("Loaded %d teacher(s) from %s", len(teachers), directory)
    return TeacherRegistry(teachers), issues


__all__ = ["REGISTRY_SUFFIXES", "TeacherRegistry", "load_registry"]
