"""Tests for loading the teacher registry."""

from __future__ import annotations

from pathlib import Path

import pytest

from catprep.config.exceptions import TeachersDirectoryError
from catprep.core.registry import load_registry


def test_loads_toml_and_markdown_teachers(tree):
    tree.teacher("ana.toml", jmeno="Ana Li", email="ana@x.org", username="ali")
    tree.write("bob.md", 'jmeno = "Bob"\n+++\nBio of Bob.\n', base=tree.root / "teachers")

    registry, issues = load_registry(tree.root / "teachers", tree.root)

    assert issues == []
    assert [t.path for t in registry] == ["teachers/ana.toml", "teachers/bob.md"]
    assert registry.by_email["ana@x.org"].name == "Ana Li"
    assert registry.by_handle["ali"].path == "teachers/ana.toml"
    assert registry.by_name["Bob"][0].card.bio == "Bio of Bob."


def test_anchors_are_unique(tree):
    tree.teacher("a.toml", jmeno="Jan Novák")
    tree.teacher("b.toml", jmeno="Jan Novák")
    tree.teacher("c.toml", jmeno="Eva", username="eva")

    registry, _ = load_registry(tree.root / "teachers", tree.root)

    assert [t.anchor for t in registry] == ["jan-novak", "jan-novak-2", "eva"]


def test_duplicate_email_keeps_first_file(tree):
    tree.teacher("a.toml", jmeno="Ana", email="same@x.org")
    tree.teacher("b.toml", jmeno="Bea", email="same@x.org")

    registry, issues = load_registry(tree.root / "teachers", tree.root)

    assert [t.name for t in registry] == ["Ana"]
    assert len(issues) == 1
    assert issues[0].path == "teachers/b.toml"
    assert issues[0].code == "DuplicateTeacherError"
    assert "teachers/a.toml" in issues[0].message


def test_duplicate_handle_is_reported(tree):
    tree.teacher("a.toml", jmeno="Ana", username="x")
    tree.teacher("b.toml", jmeno="Bea", username="x")

    _, issues = load_registry(tree.root / "teachers", tree.root)

    assert [i.code for i in issues] == ["DuplicateTeacherError"]


def test_broken_file_is_an_issue_not_a_crash(tree):
    tree.teacher("a.toml", jmeno="Ana")
    tree.write("b.toml", "email = 'no name'\n", base=tree.root / "teachers")

    registry, issues = load_registry(tree.root / "teachers", tree.root)

    assert len(registry) == 1
    assert issues[0].code == "MissingFieldError"


def test_missing_directory_is_fatal(tmp_path: Path):
    with pytest.raises(TeachersDirectoryError, match="doesn't exist"):
        load_registry(tmp_path / "nope", tmp_path)


def test_file_instead_of_directory_is_fatal(tmp_path: Path):
    (tmp_path / "teachers").write_text("", encoding="utf-8")
    with pytest.raises(TeachersDirectoryError, match="not a directory"):
        load_registry(tmp_path / "teachers", tmp_path)


def test_undecodable_file_is_an_issue_not_a_crash(tree):
    tree.teacher("ana.toml", jmeno="Ana")
    (tree.root / "teachers" / "bad.toml").write_bytes(b'jmeno = "\xff\xfe"\n')

    registry, issues = load_registry(tree.root / "teachers", tree.root)

    assert [t.name for t in registry] == ["Ana"]
    assert [(i.path, i.code) for i in issues] == [("teachers/bad.toml", "UnreadableFileError")]


def test_blank_name_is_a_missing_field(tree):
    tree.teacher("ana.toml", jmeno="Ana")
    tree.teacher("blank.toml", jmeno="   ", email="blank@x.org")

    registry, issues = load_registry(tree.root / "teachers", tree.root)

    assert [t.name for t in registry] == ["Ana"]
    assert [(i.path, i.code) for i in issues] == [("teachers/blank.toml", "MissingFieldError")]
