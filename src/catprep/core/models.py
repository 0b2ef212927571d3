"""Entities of the content graph.

Every entity is a card/entity pair: the *card* is what a header declares
(validated by pydantic, unknown keys ignored) and the *entity* is the card
placed in the graph together with its path and its resolved relations.

Field names follow the original Czech book conventions (``nazev``, ``tagy``,
``zodpovedna_osoba`` ...); English names are accepted as aliases.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Annotated, Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StringConstraints, field_validator

from catprep.exceptions import EntityValidationError

if TYPE_CHECKING:
    from catprep.core.authorship import LastChange, Resolution

Text = Annotated[str, StringConstraints(strip_whitespace=True)]
RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class _Card(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)


class TeacherCard(_Card):
    """Registry entry describing one teacher."""

    name: RequiredText = Field(validation_alias=AliasChoices("jmeno", "name"))
    email: Text = Field(default="", validation_alias=AliasChoices("email", "mail"))
    username: Text = Field(default="", validation_alias=AliasChoices("username", "handle"))
    bio: str = Field(default="", validation_alias=AliasChoices("bio", "popis"))


class SubjectCard(_Card):
    """Header of a subject marker file."""

    title: RequiredText = Field(validation_alias=AliasChoices("nazev", "title"))
    responsible: RequiredText = Field(validation_alias=AliasChoices("zodpovedna_osoba", "responsible"))
    description: str = Field(default="", validation_alias=AliasChoices("bio", "popis", "description"))


class MaterialCard(_Card):
    """Header of a material page."""

    title: RequiredText = Field(validation_alias=AliasChoices("nazev", "title"))
    tags: tuple[str, ...] = Field(default=(), validation_alias=AliasChoices("tagy", "tags"))
    date: str | None = Field(default=None, validation_alias=AliasChoices("datum", "date"))
    author: str | None = Field(default=None, validation_alias=AliasChoices("autor", "author"))

    @field_validator("tags", mode="before")
    @classmethod
    def _single_tag(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, str):
            return (value,)
        return value

    @field_validator("date", mode="before")
    @classmethod
    def _opaque_date(cls, value: Any) -> Any:
        # TOML and YAML both decode bare dates into date objects
        if isinstance(value, (dt.date, dt.datetime, dt.time)):
            return value.isoformat()
        return value

    @field_validator("author", mode="after")
    @classmethod
    def _blank_author(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()


class PageKind(str, Enum):
    """Closed set of page variants the parser produces."""

    TEACHER = "teacher"
    SUBJECT = "subject"
    MATERIAL = "material"
    PLAIN = "plain"


@dataclass(frozen=True, slots=True)
class ParsedPage:
    """A source file split into its decoded card and its body text."""

    kind: PageKind
    path: str
    card: TeacherCard | SubjectCard | MaterialCard | None
    body: str


@dataclass(frozen=True, slots=True)
class Teacher:
    """A registered teacher; identity is the registry file path."""

    card: TeacherCard
    path: str
    anchor: str = ""

    @property
    def name(self) -> str:
        return self.card.name

    @property
    def email(self) -> str:
        return self.card.email

    @property
    def username(self) -> str:
        return self.card.username


@dataclass(eq=False, slots=True)
class Subject:
    card: SubjectCard
    path: str
    root: str
    responsible: Teacher
    body: str = ""
    materials: list[Material] = field(default_factory=list)

    @property
    def title(self) -> str:
        return self.card.title


@dataclass(eq=False, slots=True)
class Material:
    card: MaterialCard
    path: str
    subject: Subject
    tags: tuple[str, ...]
    author: Resolution
    body: str = ""
    last_change: LastChange | None = None

    @property
    def title(self) -> str:
        return self.card.title


@dataclass(eq=False, slots=True)
class Tag:
    """A normalized label and the materials carrying it."""

    name: str
    slug: str
    materials: list[Material] = field(default_factory=list)

    def by_subject(self) -> list[tuple[Subject, list[Material]]]:
        """Group the (already ordered) materials by their subject."""
        groups: list[tuple[Subject, list[Material]]] = []
        for material in self.materials:
            if groups and groups[-1][0] is material.subject:
                groups[-1][1].append(material)
            else:
                groups.append((material.subject, [material]))
        return groups


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True, slots=True)
class Issue:
    """One problem found while building the graph."""

    severity: Severity
    path: str
    message: str
    code: str = ""

    @classmethod
    def from_error(cls, error: EntityValidationError) -> Issue:
        message = str(error)
        prefix = f"{error.path}: "
        if message.startswith(prefix):
            message = message[len(prefix) :]
        return cls(Severity.ERROR, error.path, message, type(error).__name__)

    @classmethod
    def warning(cls, path: str, message: str, code: str = "") -> Issue:
        return cls(Severity.WARNING, path, message, code)

    def __str__(self) -> str:
        return f"{self.severity.value}: {self.path}: {self.message}"


@dataclass(slots=True)
class BuildReport:
    """Every issue collected during one run."""

    issues: list[Issue] = field(default_factory=list)

    def add(self, issue: Issue) -> None:
        self.issues.append(issue)

    def add_error(self, error: EntityValidationError) -> None:
        self.issues.append(Issue.from_error(error))

    def warn(self, path: str, message: str, code: str = "") -> None:
        self.issues.append(Issue.warning(path, message, code))

    def extend(self, issues: list[Issue]) -> None:
        self.issues.extend(issues)

    @property
    def errors(self) -> list[Issue]:
        return [issue for issue in self.issues if issue.severity is Severity.ERROR]

    @property
    def warnings(self) -> list[Issue]:
        return [issue for issue in self.issues if issue.severity is Severity.WARNING]

    @property
    def ok(self) -> bool:
        return not self.errors

    def sorted(self) -> list[Issue]:
        return sorted(self.issues, key=lambda i: (i.severity is not Severity.ERROR, i.path, i.message))
