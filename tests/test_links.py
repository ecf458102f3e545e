import pytest

from tessera.html_utils import ResolvedTree
from tessera.links import LinkRewriter, normalize_class


@pytest.mark.parametrize(
    "href, expected",
    [
        ("pages/about.md", "/about.html"),
        ("pages/about.html", "/about.html"),
        ("/pages/blog/post.html#top", "/blog/post.html#top"),
        ("about.html?x=1", "/about.html?x=1"),
        ("/about.html", "/about.html"),
        ("blog/", "/blog/"),
        ("/", "/"),
        ("pages", "/"),
        ("https://example.com/pages/x.html", "https://example.com/pages/x.html"),
        ("mailto:me@example.com", "mailto:me@example.com"),
        ("#", "#"),
        ("#section", "#section"),
        ("", ""),
    ],
)
def test_rewrite_href(make_build_info, href, expected):
    rewriter = LinkRewriter(make_build_info())
    assert rewriter.rewrite_href(href) == expected


def test_rewrite_is_idempotent(make_build_info):
    rewriter = LinkRewriter(make_build_info())
    for href in ["pages/about.md", "./x.html", "pages/a/b.html#c", "/", "https://e.com", "#"]:
        once = rewriter.rewrite_href(href)
        assert rewriter.rewrite_href(once) == once


def test_dot_relative_links_follow_the_page(tmp_path, make_build_info):
    rewriter = LinkRewriter(make_build_info())
    page_dir = tmp_path / "pages" / "blog"
    assert rewriter.rewrite_href("./post.html", page_dir) == "/blog/post.html"
    assert rewriter.rewrite_href("../about.md", page_dir) == "/about.html"


def test_links_outside_the_source_tree_are_kept(make_build_info):
    rewriter = LinkRewriter(make_build_info())
    assert rewriter.rewrite_href("../../elsewhere.html") == "../../elsewhere.html"


def test_rewrite_tree(tmp_path, make_build_info):
    tree = ResolvedTree.parse(
        '<nav><a href="pages/about.md" class="a\n  b\n c">About</a>'
        '<a href="#">Top</a><a href="https://example.com">Ext</a>'
        '<a href="{{ url }}">Dyn</a></nav>'
    )
    rewriter = LinkRewriter(make_build_info())
    rewriter.rewrite(tree)
    html = tree.serialize()
    assert '<a href="/about.html" class="a b c">About</a>' in html
    assert '<a href="#">Top</a>' in html
    assert '<a href="https://example.com">Ext</a>' in html
    assert '<a href="{{ url }}">Dyn</a>' in html
    assert rewriter.inventory == {tmp_path / "pages" / "about.md"}


def test_normalize_class():
    assert normalize_class("a\n  b\n c") == "a b c"
    assert normalize_class("  solo  ") == "solo"


def test_pages_prefix_stripping_with_class_cleanup(make_build_info):
    tree = ResolvedTree.parse('<p><a href="pages/about.html" class="a\n  b\n c">About</a></p>')
    LinkRewriter(make_build_info(pages_folder="pages")).rewrite(tree)
    html = tree.serialize()
    assert 'href="/about.html"' in html
    assert 'class="a b c"' in html


def test_external_and_fragment_anchors_keep_their_class(make_build_info):
    tree = ResolvedTree.parse(
        '<p><a href="https://x.com" class="a\n  b">x</a><a href="#top" class=" c\n d">y</a></p>'
    )
    LinkRewriter(make_build_info()).rewrite(tree)
    external, fragment = tree.root.iter("a")
    assert external.get("href") == "https://x.com"
    assert external.get("class") == "a\n  b"
    assert fragment.get("href") == "#top"
    assert fragment.get("class") == " c\n d"
