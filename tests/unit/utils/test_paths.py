"""Behavioral tests for slug and link helpers."""

from catprep.utils.paths import relative_link, slugify, unique_slugs


def test_slugify_transliterates_czech():
    assert slugify("Matematická analýza") == "matematicka-analyza"


def test_slugify_never_returns_empty_for_symbols():
    assert slugify("!!!") == "x"


def test_slugify_truncates():
    assert len(slugify("a" * 100, max_len=10)) == 10


def test_unique_slugs_suffixes_collisions_in_order():
    assert unique_slugs(["Rust", "rust!", "Python", "RUST"]) == ["rust", "rust-2", "python", "rust-3"]


def test_relative_link_same_directory():
    assert relative_link("math/subject.md", "math/limits.md") == "limits.md"


def test_relative_link_up_and_anchor():
    assert relative_link("math/limits/intro.md", "tags.md", "rust") == "../../tags.md#rust"


def test_relative_link_from_root_page():
    assert relative_link("teachers.md", "math/subject.md") == "math/subject.md"


def test_relative_link_quotes_spaces():
    assert relative_link("tags.md", "my notes/a b.md") == "my%20notes/a%20b.md"
