from concurrent.futures import ThreadPoolExecutor

import pytest

from tessera.cache import CompilationCache
from tessera.compiler import CompileScope, TemplateCompiler
from tessera.errors import DocumentNotFoundError, DocumentParseError

CARD = "<div class=\"card\">Card</div><script>console.log('card')</script>"
BADGE = "<span class=\"badge\">B</span><script>console.log('badge')</script>"


def make_compiler(make_build_info, memory_reader, files):
    reader = memory_reader(files)
    return TemplateCompiler(make_build_info(), reader=reader, cache=CompilationCache()), reader


def test_include_is_replaced_by_component(tmp_path, make_build_info, memory_reader):
    compiler, _ = make_compiler(
        make_build_info,
        memory_reader,
        {
            "index.html": '<main><include src="components/card.html"></include></main>',
            "components/card.html": '<div class="card">Card</div>',
        },
    )
    assert compiler.compile(tmp_path / "index.html") == '<main><div class="card">Card</div></main>'


def test_nested_includes_resolve_depth_first(tmp_path, make_build_info, memory_reader):
    compiler, _ = make_compiler(
        make_build_info,
        memory_reader,
        {
            "index.html": '<section><include src="components/outer.html"></include></section>',
            "components/outer.html": '<div class="outer"><include src="./inner.html"></include></div>',
            "components/inner.html": '<span class="inner">deep</span>',
        },
    )
    html = compiler.compile(tmp_path / "index.html")
    assert '<div class="outer"><span class="inner">deep</span></div>' in html
    assert "<include" not in html


def test_cycle_resolves_to_nothing(tmp_path, make_build_info, memory_reader):
    compiler, _ = make_compiler(
        make_build_info,
        memory_reader,
        {
            "a.html": '<p>A<include src="b.html"></include></p>',
            "b.html": '<span>B<include src="a.html"></include></span>',
        },
    )
    assert compiler.compile(tmp_path / "a.html") == "<p>A<span>B</span></p>"


def test_self_include_terminates(tmp_path, make_build_info, memory_reader):
    compiler, _ = make_compiler(
        make_build_info,
        memory_reader,
        {"loop.html": '<p>before<include src="loop.html"></include>after</p>'},
    )
    assert compiler.compile(tmp_path / "loop.html") == "<p>beforeafter</p>"


def test_component_scripts_emitted_once_per_page(tmp_path, make_build_info, memory_reader):
    compiler, _ = make_compiler(
        make_build_info,
        memory_reader,
        {
            "index.html": (
                "<!DOCTYPE html><html><head><title>T</title></head><body>"
                '<include src="card.html"></include>'
                '<include src="card.html"></include>'
                '<include src="card.html"></include>'
                "</body></html>"
            ),
            "card.html": CARD,
        },
    )
    html = compiler.compile(tmp_path / "index.html")
    assert html.count('class="card"') == 3
    assert html.count("console.log('card')") == 1
    assert html.rindex('class="card"') < html.index("<script>")
    assert html.index("<script>") < html.index("</body>")
    assert html.startswith("<!DOCTYPE html>")


def test_distinct_components_each_emit_scripts(tmp_path, make_build_info, memory_reader):
    compiler, _ = make_compiler(
        make_build_info,
        memory_reader,
        {
            "index.html": (
                '<div><include src="card.html"></include><include src="badge.html"></include>'
                '<include src="card.html"></include></div>'
            ),
            "card.html": CARD,
            "badge.html": BADGE,
        },
    )
    html = compiler.compile(tmp_path / "index.html")
    assert html.count("console.log('card')") == 1
    assert html.count("console.log('badge')") == 1
    assert html.index("console.log('card')") < html.index("console.log('badge')")


def test_nested_component_scripts_reach_the_page(tmp_path, make_build_info, memory_reader):
    compiler, _ = make_compiler(
        make_build_info,
        memory_reader,
        {
            "index.html": '<div><include src="list.html"></include></div>',
            "list.html": '<ul><li><include src="card.html"></include></li></ul>',
            "card.html": CARD,
        },
    )
    html = compiler.compile(tmp_path / "index.html")
    assert html.count("console.log('card')") == 1


def test_scripts_reappear_on_every_page(tmp_path, make_build_info, memory_reader):
    compiler, reader = make_compiler(
        make_build_info,
        memory_reader,
        {
            "pages/one.html": '<div><include src="card.html"></include></div>',
            "pages/two.html": '<div><include src="card.html"></include></div>',
            "card.html": CARD,
        },
    )
    scope = CompileScope()
    first = compiler.compile(tmp_path / "pages" / "one.html", scope)
    assert len(scope.registry) == 0
    second = compiler.compile(tmp_path / "pages" / "two.html", scope)
    assert first.count("console.log('card')") == 1
    assert second.count("console.log('card')") == 1
    # compiled once for the whole run
    assert reader.count(tmp_path, "card.html") == 1


def test_page_scripts_stay_in_place(tmp_path, make_build_info, memory_reader):
    compiler, _ = make_compiler(
        make_build_info,
        memory_reader,
        {"index.html": "<div><script>pageInit()</script><p>x</p></div>"},
    )
    assert compiler.compile(tmp_path / "index.html") == "<div><script>pageInit()</script><p>x</p></div>"


def test_missing_reference_is_left_in_place(tmp_path, make_build_info, memory_reader):
    compiler, _ = make_compiler(
        make_build_info,
        memory_reader,
        {"index.html": '<p>before<include src="missing.html"></include>after</p>'},
    )
    scope = CompileScope()
    html = compiler.compile(tmp_path / "index.html", scope)
    assert '<include src="missing.html"></include>' in html
    assert "before" in html and "after" in html
    assert len(scope.warnings) == 1
    assert "missing.html" in scope.warnings[0]


def test_unparseable_reference_is_left_in_place(tmp_path, make_build_info, memory_reader, monkeypatch):
    compiler, _ = make_compiler(
        make_build_info,
        memory_reader,
        {
            "index.html": '<div><include src="bad.html"></include></div>',
            "bad.html": "<p>bad</p>",
        },
    )
    from tessera import html_utils

    original = html_utils.ResolvedTree.parse.__func__

    def failing_parse(cls, text, path=None):
        if path is not None and path.name == "bad.html":
            raise DocumentParseError(path, "unreadable markup")
        return original(cls, text, path)

    monkeypatch.setattr(html_utils.ResolvedTree, "parse", classmethod(failing_parse))
    scope = CompileScope()
    html = compiler.compile(tmp_path / "index.html", scope)
    assert '<include src="bad.html"></include>' in html
    assert "unreadable markup" in scope.warnings[0]


def test_missing_top_level_document_raises(tmp_path, make_build_info, memory_reader):
    compiler, _ = make_compiler(make_build_info, memory_reader, {})
    with pytest.raises(DocumentNotFoundError):
        compiler.compile(tmp_path / "nope.html")


def test_slot_and_props(tmp_path, make_build_info, memory_reader):
    compiler, _ = make_compiler(
        make_build_info,
        memory_reader,
        {
            "index.html": (
                '<section><include src="card.html" title="Hello"><em>Body</em></include>'
                '<include src="card.html"></include></section>'
            ),
            "card.html": '<article class="card"><h2>Title</h2><slot>Fallback</slot></article>',
        },
    )
    html = compiler.compile(tmp_path / "index.html")
    assert (
        '<article class="card" data-prop-title="Hello"><h2>Title</h2><em>Body</em></article>'
        in html
    )
    assert '<article class="card"><h2>Title</h2>Fallback</article>' in html
    assert "<slot" not in html


def test_self_closing_include(tmp_path, make_build_info, memory_reader):
    compiler, _ = make_compiler(
        make_build_info,
        memory_reader,
        {
            "index.html": '<div><include src="card.html" /><p>after</p></div>',
            "card.html": '<article><slot>empty</slot></article>',
        },
    )
    html = compiler.compile(tmp_path / "index.html")
    assert html == "<div><article>empty</article><p>after</p></div>"


def test_data_include_fills_element(tmp_path, make_build_info, memory_reader):
    compiler, _ = make_compiler(
        make_build_info,
        memory_reader,
        {
            "index.html": '<nav data-include="partials/nav.html"><p>old</p></nav>',
            "partials/nav.html": '<a href="/">Home</a>',
        },
    )
    html = compiler.compile(tmp_path / "index.html")
    assert html == '<nav data-include="partials/nav.html"><a href="/">Home</a></nav>'


def test_full_document_component_contributes_body(tmp_path, make_build_info, memory_reader):
    compiler, _ = make_compiler(
        make_build_info,
        memory_reader,
        {
            "index.html": '<div><include src="doc.html"></include></div>',
            "doc.html": "<!DOCTYPE html><html><head><title>X</title></head><body><p>inner</p></body></html>",
        },
    )
    html = compiler.compile(tmp_path / "index.html")
    assert html == "<div><p>inner</p></div>"


def test_templating_expressions_survive(tmp_path, make_build_info, memory_reader):
    compiler, _ = make_compiler(
        make_build_info,
        memory_reader,
        {
            "index.html": (
                '<div><p title="{{ page.title }}">{{ a > b && c }}</p>'
                '<a href="{{ url_for(\'home\') }}">home</a>'
                '<include src="card.html"></include></div>'
            ),
            "card.html": "<span>{% if x %}{{ x }}{% endif %}</span>",
        },
    )
    html = compiler.compile(tmp_path / "index.html")
    assert 'title="{{ page.title }}"' in html
    assert "{{ a > b && c }}" in html
    assert "href=\"{{ url_for('home') }}\"" in html
    assert "<span>{% if x %}{{ x }}{% endif %}</span>" in html


def test_placeholder_lookalike_text_is_kept(tmp_path, make_build_info, memory_reader):
    compiler, _ = make_compiler(
        make_build_info,
        memory_reader,
        {"index.html": "<p>{{ real }} __tessera_expr_0__ <code>__tessera_expr_1__</code></p>"},
    )
    html = compiler.compile(tmp_path / "index.html")
    assert html == "<p>{{ real }} __tessera_expr_0__ <code>__tessera_expr_1__</code></p>"


def test_layout_prop_with_control_character_is_skipped(tmp_path, make_build_info, memory_reader):
    compiler, _ = make_compiler(
        make_build_info,
        memory_reader,
        {
            "post.md": '---\nlayout: base.html\ntitle: "x\\x01y"\ntag: ok\n---\nBody\n',
            "base.html": "<html><head></head><body><slot></slot></body></html>",
        },
    )
    scope = CompileScope()
    html = compiler.compile(tmp_path / "post.md", scope)
    assert 'data-prop-tag="ok"' in html
    assert "data-prop-title" not in html
    assert "<p>Body</p>" in html
    assert any("title" in warning for warning in scope.warnings)


def test_markdown_page_with_layout(tmp_path, make_build_info, memory_reader):
    compiler, _ = make_compiler(
        make_build_info,
        memory_reader,
        {
            "pages/post.md": "---\nlayout: layouts/base.html\ntitle: Post\ntags: [a]\n---\n# Hello {{ name }}\n",
            "layouts/base.html": (
                "<!DOCTYPE html><html><head><title>Site</title></head>"
                "<body><header>H</header><main><slot></slot></main></body></html>"
            ),
        },
    )
    scope = CompileScope()
    html = compiler.compile(tmp_path / "pages" / "post.md", scope)
    assert html.startswith("<!DOCTYPE html>")
    assert '<head data-prop-title="Post">' in html
    assert "data-prop-tags" not in html
    assert "<h1>Hello {{ name }}</h1>" in html
    assert html.index("<header>") < html.index("<h1>")
    assert scope.warnings == []


def test_markdown_page_with_missing_layout(tmp_path, make_build_info, memory_reader):
    compiler, _ = make_compiler(
        make_build_info,
        memory_reader,
        {"pages/post.md": "---\nlayout: layouts/none.html\n---\nText\n"},
    )
    scope = CompileScope()
    html = compiler.compile(tmp_path / "pages" / "post.md", scope)
    assert "<p>Text</p>" in html
    assert "none.html" in scope.warnings[0]


def test_markdown_page_can_include(tmp_path, make_build_info, memory_reader):
    compiler, _ = make_compiler(
        make_build_info,
        memory_reader,
        {
            "pages/post.md": '# Post\n\n<include src="card.html"></include>\n',
            "card.html": CARD,
        },
    )
    html = compiler.compile(tmp_path / "pages" / "post.md")
    assert "<h1>Post</h1>" in html
    assert 'class="card"' in html
    assert html.count("console.log('card')") == 1


def test_compile_content(tmp_path, make_build_info, memory_reader):
    compiler, _ = make_compiler(
        make_build_info,
        memory_reader,
        {"components/card.html": '<div class="card">Card</div>'},
    )
    tree = compiler.compile_content(
        '<div><include src="./card.html"></include></div>', tmp_path / "components"
    )
    assert tree.serialize() == '<div><div class="card">Card</div></div>'


def test_concurrent_pages_share_the_cache(tmp_path, make_build_info, memory_reader):
    files = {f"pages/p{i}.html": '<div><include src="card.html"></include></div>' for i in range(8)}
    files["card.html"] = CARD
    compiler, reader = make_compiler(make_build_info, memory_reader, files)

    def compile_page(i):
        return compiler.compile(tmp_path / "pages" / f"p{i}.html", CompileScope())

    with ThreadPoolExecutor(max_workers=4) as pool:
        pages = list(pool.map(compile_page, range(8)))

    assert all(page.count("console.log('card')") == 1 for page in pages)
    assert reader.count(tmp_path, "card.html") == 1
