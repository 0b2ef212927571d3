"""End-to-end tests of the preprocessor on temporary book trees."""

from __future__ import annotations

import copy

import pytest

from catprep.book import Book
from catprep.config.exceptions import HostProtocolError, TeachersDirectoryError
from catprep.config.schema import CatPrepSettings
from catprep.exceptions import NestedSubjectError, SubjectHeaderError
from catprep.pipeline import CatPreprocessor, check_book
from catprep.utils.git import CommitInfo


@pytest.fixture
def preprocessor(history, settings) -> CatPreprocessor:
    return CatPreprocessor(settings, history)


def test_subject_and_material_chapters_lose_headers_and_gain_blocks(sample_tree, preprocessor):
    result = preprocessor.run(sample_tree.context(), sample_tree.book())
    chapters = result.book.chapter_map()

    subject = chapters["math/subject.md"].content
    assert subject.startswith("Intro to maths.\n\n<!-- cat-prep:begin subject -->\n")
    assert "zodpovedna_osoba" not in subject

    material = chapters["math/limits.md"].content
    assert material.startswith("# Limits\n\n<!-- cat-prep:begin material -->\n")
    assert result.ok


def test_plain_pages_pass_through(sample_tree, preprocessor):
    result = preprocessor.run(sample_tree.context(), sample_tree.book())
    assert result.book.find("README.md").content == "# Welcome\n"


def test_generated_pages_are_appended(sample_tree, preprocessor):
    result = preprocessor.run(sample_tree.context(), sample_tree.book())
    names = [c.name for c in result.book.chapters()]
    assert names[-2:] == ["Vyučující", "Tagy"]
    teachers = result.book.find("teachers.md").content
    assert teachers.startswith("# Vyučující\n\n<!-- cat-prep:begin teachers -->")


def test_existing_generated_page_is_spliced_not_duplicated(sample_tree, preprocessor):
    sample_tree.write("tags.md", "# Labels\n\n<!-- cat-prep -->\n\nFooter\n")
    result = preprocessor.run(sample_tree.context(), sample_tree.book())

    tags = [c for c in result.book.chapters() if c.path == "tags.md"]
    assert len(tags) == 1
    content = tags[0].content
    assert content.startswith("# Labels\n\n<!-- cat-prep -->\n<!-- cat-prep:begin tags -->")
    assert content.endswith("<!-- cat-prep:end tags -->\n\n\nFooter\n")


def test_run_is_idempotent_and_leaves_input_untouched(sample_tree, preprocessor):
    book = sample_tree.book()
    snapshot = copy.deepcopy(book.to_json())

    first = preprocessor.run(sample_tree.context(), book)
    second = preprocessor.run(sample_tree.context(), book)

    assert book.to_json() == snapshot
    assert first.book == second.book


def test_unresolved_responsible_person_fails_the_build(tree, preprocessor):
    tree.teacher("ana.toml", jmeno="Ana Li", email="ana@x.org", username="ali")
    tree.subject("math", nazev="Matematika", zodpovedna_osoba="nobody@x.org")
    tree.material("math/a.md", nazev="A", autor="ali")

    result = preprocessor.run(tree.context(), tree.book())

    assert not result.ok
    [error] = result.report.errors
    assert error.path == "math/subject.md"
    assert "nobody@x.org" in error.message
    assert result.graph.materials == []


def test_every_broken_file_is_reported_at_once(tree, preprocessor):
    tree.teacher("ana.toml", jmeno="Ana Li", username="ali")
    tree.subject("math", nazev="Matematika", zodpovedna_osoba="ali")
    tree.write("math/no-header.md", "# Just text\n")
    tree.material("math/no-title.md", tagy=["x"])
    tree.material("math/bad-author.md", nazev="B", autor="ghost")

    result = preprocessor.run(tree.context(), tree.book())

    codes = {e.path: e.code for e in result.report.errors}
    assert codes == {
        "math/no-header.md": "MissingHeaderError",
        "math/no-title.md": "MissingFieldError",
        "math/bad-author.md": "UnresolvedReferenceError",
    }


def test_history_fallback_for_undeclared_author(tree, history, preprocessor):
    tree.teacher("ana.toml", jmeno="Ana Li", email="ana@x.org", username="ali")
    tree.subject("math", nazev="Matematika", zodpovedna_osoba="ali")
    tree.material("math/known.md", nazev="Known")
    tree.material("math/stranger.md", nazev="Stranger")
    history.commits["math/known.md"] = CommitInfo("A. Li", "ana@x.org", "2024-01-01T00:00:00+00:00")

    result = preprocessor.run(tree.context(), tree.book())

    assert result.ok
    assert result.graph.material("math/known.md").author.teacher.name == "Ana Li"
    assert result.graph.material("math/stranger.md").author.display_name == "unknown"
    assert [(w.path, w.code) for w in result.report.warnings] == [("math/stranger.md", "UnknownAuthor")]
    assert "| Autor | unknown |" in result.book.find("math/stranger.md").content


def test_pages_missing_from_book_are_warned(sample_tree, preprocessor):
    book = sample_tree.book()
    book.items[:] = [item for item in book.items if item["Chapter"]["path"] != "math/series.md"]

    result = preprocessor.run(sample_tree.context(), book)

    assert result.ok
    assert [(w.path, w.code) for w in result.report.warnings] == [("math/series.md", "NotInBook")]
    assert "Řady" not in result.book.find("math/subject.md").content


def test_nested_subjects_abort(tree, preprocessor):
    tree.subject("math", nazev="M", zodpovedna_osoba="x")
    tree.subject("math/inner", nazev="I", zodpovedna_osoba="x")
    with pytest.raises(NestedSubjectError):
        preprocessor.run(tree.context(), tree.book())


def test_subject_without_header_aborts_listing_all_markers(tree, preprocessor):
    tree.write("math/subject.md", "# Math\n")
    tree.write("physics/subject.md", "# Physics\n")
    with pytest.raises(SubjectHeaderError) as exc_info:
        preprocessor.run(tree.context(), tree.book())
    assert exc_info.value.paths == ("math/subject.md", "physics/subject.md")


def test_missing_registry_aborts(tree, history):
    preprocessor = CatPreprocessor(CatPrepSettings(teachers_dir="nope"), history)
    with pytest.raises(TeachersDirectoryError):
        preprocessor.run(tree.context(), tree.book())


def test_missing_source_directory_aborts(tree, preprocessor):
    context = tree.context({"book": {"src": "missing"}})
    with pytest.raises(HostProtocolError, match="does not exist"):
        preprocessor.run(context, Book.empty())


def test_registry_inside_source_is_not_discovered(tree, history):
    tree.subject("math", nazev="Matematika", zodpovedna_osoba="ali")
    tree.write("math/people/ana.toml", 'jmeno = "Ana Li"\nusername = "ali"\n')
    tree.write("math/people/bob.md", 'jmeno = "Bob"\n+++\nBio of Bob.\n')
    preprocessor = CatPreprocessor(CatPrepSettings(teachers_dir="src/math/people"), history)

    result = preprocessor.run(tree.context(), tree.book())

    assert result.ok
    assert len(result.graph.teachers) == 2
    assert result.graph.materials == []


def test_supports_renderer(settings):
    preprocessor = CatPreprocessor(settings)
    assert preprocessor.supports_renderer("html")
    assert not preprocessor.supports_renderer("not-supported")


def test_check_book_reads_book_toml(sample_tree, history):
    sample_tree.write("book.toml", '[preprocessor.cat]\nmaterial-cards = false\n', base=sample_tree.root)

    result = check_book(sample_tree.root, history)

    assert result.ok
    assert "cat-prep:begin material" not in result.book.find("math/limits.md").content
    assert "cat-prep:begin subject" in result.book.find("math/subject.md").content


def test_unreadable_material_is_reported_not_fatal(sample_tree, preprocessor):
    (sample_tree.src / "math" / "broken.md").write_bytes(b'nazev = "\xff"\n+++\n')

    result = preprocessor.run(sample_tree.context(), sample_tree.book())

    assert not result.ok
    assert [(e.path, e.code) for e in result.report.errors] == [("math/broken.md", "UnreadableFileError")]
    assert [m.path for m in result.graph.materials] == ["math/limits.md", "math/series.md"]


def test_last_change_failures_are_silent(sample_tree, history, preprocessor):
    history.failing.add("math/series.md")
    history.commits["math/limits.md"] = CommitInfo("Ana Li", "ana@x.org", "2024-05-01T10:00:00+02:00")

    result = preprocessor.run(sample_tree.context(), sample_tree.book())

    assert result.ok
    assert result.report.issues == []
    assert result.graph.material("math/limits.md").last_change.teacher.name == "Ana Li"
    assert result.graph.material("math/series.md").last_change is None


def test_last_change_can_be_disabled(sample_tree, history):
    settings = CatPrepSettings(last_change=False)
    history.commits["math/limits.md"] = CommitInfo("Ana Li", "ana@x.org", "2024-05-01T10:00:00+02:00")

    result = CatPreprocessor(settings, history).run(sample_tree.context(), sample_tree.book())

    assert history.calls == []
    assert "Naposledy upravil" not in result.book.find("math/limits.md").content
