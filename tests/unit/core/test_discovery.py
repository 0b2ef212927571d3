"""Tests for classifying the source tree."""

from __future__ import annotations

import pytest

from catprep.core.discovery import discover_tree
from catprep.exceptions import NestedSubjectError


def test_classifies_subjects_materials_and_plain_pages(sample_tree, settings):
    discovery = discover_tree(sample_tree.src, settings)

    assert [s.marker for s in discovery.subjects] == ["math/subject.md"]
    assert discovery.subjects[0].root == "math"
    assert [m.path for m in discovery.materials] == ["math/limits.md", "math/series.md"]
    assert {m.subject for m in discovery.materials} == {"math/subject.md"}
    assert discovery.plain_pages == ["README.md", "SUMMARY.md"]


def test_materials_belong_to_nearest_subject_through_subdirectories(tree, settings):
    tree.subject("math", nazev="M", zodpovedna_osoba="x")
    tree.material("math/deep/er/page.md", nazev="P")
    tree.subject("physics", nazev="F", zodpovedna_osoba="x")
    tree.material("physics/a.md", nazev="A")

    discovery = discover_tree(tree.src, settings)

    owners = {m.path: m.subject for m in discovery.materials}
    assert owners == {"math/deep/er/page.md": "math/subject.md", "physics/a.md": "physics/subject.md"}


def test_nested_subject_is_fatal_and_names_both(tree, settings):
    tree.subject("math", nazev="M", zodpovedna_osoba="x")
    tree.subject("math/algebra", nazev="A", zodpovedna_osoba="x")

    with pytest.raises(NestedSubjectError) as exc_info:
        discover_tree(tree.src, settings)

    assert exc_info.value.outer == "math/subject.md"
    assert exc_info.value.inner == "math/algebra/subject.md"
    assert "math/subject.md" in str(exc_info.value)
    assert "math/algebra/subject.md" in str(exc_info.value)


def test_excluded_prefixes_skip_files_and_subtrees(tree, settings):
    tree.subject("math", nazev="M", zodpovedna_osoba="x")
    tree.material("math/_draft.md", nazev="D")
    tree.material("math/_private/secret.md", nazev="S")
    tree.material("math/.hidden.md", nazev="H")
    tree.material("math/ok.md", nazev="OK")

    discovery = discover_tree(tree.src, settings)

    assert [m.path for m in discovery.materials] == ["math/ok.md"]


def test_non_page_files_are_ignored(tree, settings):
    tree.subject("math", nazev="M", zodpovedna_osoba="x")
    tree.write("math/figure.png", "not really a png")

    assert discover_tree(tree.src, settings).materials == []


def test_skip_directory_is_left_out(tree, settings):
    tree.write("people/ana.md", "jmeno = 'Ana'\n+++\n")
    tree.write("index.md", "# Index\n")

    discovery = discover_tree(tree.src, settings, skip=tree.src / "people")

    assert discovery.plain_pages == ["index.md"]


def test_source_directory_can_itself_be_a_subject(tree, settings):
    tree.write("subject.md", 'nazev = "All"\nzodpovedna_osoba = "x"\n+++\n')
    tree.write("a.md", 'nazev = "A"\n+++\n')
    tree.write("SUMMARY.md", "# Summary\n")

    discovery = discover_tree(tree.src, settings)

    assert discovery.subjects[0].root == ""
    assert [m.path for m in discovery.materials] == ["a.md"]
    assert discovery.plain_pages == ["SUMMARY.md"]
