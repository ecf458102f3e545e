from pathlib import Path

import pytest

from tessera import utils
from tessera.extractors import extract_frontmatter, scalar_metadata
from tessera.paths import is_external, reference_base, resolve_path, split_suffix
from tessera.scripts import ComponentScriptRegistry


def test_ensure_clean_dir(tmp_path):
    target = tmp_path / "build"
    (target / "nested").mkdir(parents=True)
    (target / "old.txt").write_text("old", encoding="utf-8")
    (target / "nested" / "deep.txt").write_text("deep", encoding="utf-8")
    utils.ensure_clean_dir(target)
    assert target.is_dir()
    assert list(target.iterdir()) == []

    fresh = tmp_path / "a" / "b"
    utils.ensure_clean_dir(fresh)
    assert fresh.is_dir()


def test_ensure_clean_dir_rejects_file(tmp_path):
    target = tmp_path / "file.txt"
    target.write_text("x", encoding="utf-8")
    with pytest.raises(OSError):
        utils.ensure_clean_dir(target)


def test_is_external():
    assert is_external("https://example.com/x")
    assert is_external("mailto:me@example.com")
    assert is_external("//cdn.example.com/lib.js")
    assert not is_external("pages/about.html")
    assert not is_external("/about.html")
    assert not is_external("./card.html")


def test_split_suffix():
    assert split_suffix("about.html#team") == ("about.html", "#team")
    assert split_suffix("search.html?q=1#r") == ("search.html", "?q=1#r")
    assert split_suffix("plain.html") == ("plain.html", "")


def test_resolve_path(tmp_path):
    base = tmp_path / "site"
    assert resolve_path(base, "components/card.html") == base / "components" / "card.html"
    assert resolve_path(base, "/components/card.html") == base / "components" / "card.html"
    assert resolve_path(base / "pages", "../card.html") == base / "card.html"
    assert resolve_path(base, "./a/./b/../c.html#top") == base / "a" / "c.html"
    assert resolve_path(base, "https://example.com") == "https://example.com"


def test_reference_base(tmp_path):
    doc_dir = tmp_path / "components"
    assert reference_base("./icon.html", doc_dir, tmp_path) == doc_dir
    assert reference_base("../icon.html", doc_dir, tmp_path) == doc_dir
    assert reference_base("icons/icon.html", doc_dir, tmp_path) == tmp_path
    assert reference_base("/icon.html", doc_dir, tmp_path) == tmp_path


def test_extract_frontmatter():
    meta, body = extract_frontmatter("---\ntitle: Hello\ntags: [a, b]\n---\n# Body\n")
    assert meta == {"title": "Hello", "tags": ["a", "b"]}
    assert body == "# Body\n"

    meta, body = extract_frontmatter("# No front-matter")
    assert meta == {}
    assert body == "# No front-matter"

    broken = "---\ntitle: [unclosed\n---\nbody"
    assert extract_frontmatter(broken) == ({}, broken)

    listing = "---\n- a\n- b\n---\nbody"
    assert extract_frontmatter(listing) == ({}, listing)


def test_scalar_metadata():
    from datetime import date

    flat = scalar_metadata(
        {
            "title": "Post",
            "draft": False,
            "count": 3,
            "date": date(2024, 1, 15),
            "tags": ["a"],
            "extra": None,
        }
    )
    assert flat == {"title": "Post", "draft": "false", "count": "3", "date": "2024-01-15"}


def test_script_registry():
    registry = ComponentScriptRegistry()
    card = Path("/site/card.html")
    assert not registry.has_emitted(card)
    registry.mark_emitted(card)
    registry.mark_emitted(card)
    assert registry.has_emitted(card)
    assert len(registry) == 1
    registry.mark_emitted(Path("/site/nav.html"))
    assert registry.emitted == (card, Path("/site/nav.html"))
    registry.reset()
    assert not registry.has_emitted(card)
    assert len(registry) == 0
