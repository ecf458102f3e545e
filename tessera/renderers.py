"""Markdown ingestion for Tessera.

Markdown is converted with mistune. Documents may embed templating expressions such
as `{{ user.name }}` that must reach the output byte-for-byte, so conversion runs a
shielding pass over the token stream before rendering: while an expression is open,
tokens are emitted as their raw source instead of being converted.

Key pieces:
- ingest_markdown: Front-matter plus shielded HTML for a Markdown source.
- render_markdown: Shielded Markdown-to-HTML conversion of a body.
- render_document: Pure dispatch from a Document variant to HTML.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from textwrap import indent
from typing import TYPE_CHECKING, Any

import mistune

from .extractors import extract_frontmatter

if TYPE_CHECKING:
    from .documents import Document

EXPRESSION_OPEN = "{{"
EXPRESSION_CLOSE = "}}"

_PLUGINS = ["strikethrough", "table", "url"]

_INLINE_TYPES = frozenset(
    {
        "text",
        "emphasis",
        "strong",
        "strikethrough",
        "codespan",
        "link",
        "image",
        "linebreak",
        "softbreak",
        "inline_html",
    }
)

_WRAPPERS = {"emphasis": "*", "strong": "**", "strikethrough": "~~"}


@dataclass
class RenderedDocument:
    """HTML source of a document plus its metadata.

    Attributes:
        metadata: Front-matter mapping (empty when there is none).
        html: Converted body.
    """

    metadata: dict[str, Any] = field(default_factory=dict)
    html: str = ""


def token_source(token: dict[str, Any]) -> str:
    """Rebuild the Markdown source text of a parsed token.

    mistune keeps raw text for leaf tokens only, so container tokens are
    reassembled from their children and the syntax that produced them.
    """
    kind = token["type"]
    attrs = token.get("attrs") or {}
    if kind == "codespan":
        return f"`{token.get('raw', '')}`"
    if kind == "block_code":
        raw = token.get("raw", "")
        if token.get("style") == "indent":
            return indent(raw, "    ")
        marker = token.get("marker") or "```"
        return f"{marker}{attrs.get('info') or ''}\n{raw}{marker}"
    if "raw" in token:
        return token["raw"]

    inner = "".join(token_source(child) for child in token.get("children") or ())
    if kind in _WRAPPERS:
        return f"{_WRAPPERS[kind]}{inner}{_WRAPPERS[kind]}"
    if kind in ("link", "image"):
        url = attrs.get("url", "")
        if kind == "link" and inner == url:
            # autolink
            return url
        title = attrs.get("title")
        title_part = f' "{title}"' if title else ""
        prefix = "!" if kind == "image" else ""
        return f"{prefix}[{inner}]({url}{title_part})"
    if kind == "linebreak":
        return "  \n"
    if kind == "softbreak":
        return "\n"
    if kind == "heading":
        return f"{'#' * int(attrs.get('level', 1))} {inner}"
    if kind == "thematic_break":
        return "---"
    if kind == "block_quote":
        return indent(inner, "> ", lambda line: True)
    if kind == "list":
        return "\n".join(token_source(item) for item in token.get("children") or ())
    if kind == "list_item":
        return f"- {inner}"
    return inner


def _has_marker(source: str) -> bool:
    return EXPRESSION_OPEN in source or EXPRESSION_CLOSE in source


class _ExpressionShield:
    """Turns tokens inside an open templating expression into literal source.

    The counter goes up on every token whose source contains an opening marker and
    down on every token containing a closing marker. Parents are visited before
    their children; a token made literal is not descended into.
    """

    def __init__(self) -> None:
        self.depth = 0

    def walk(self, tokens: list[dict[str, Any]]) -> None:
        for index, token in enumerate(tokens):
            source = token_source(token)
            if EXPRESSION_OPEN in source:
                self.depth += 1
            if EXPRESSION_CLOSE in source:
                self.depth = max(0, self.depth - 1)
            # plain text holding a marker is already its own source; keep it unescaped
            if self.depth > 0 or (token["type"] == "text" and _has_marker(source)):
                tokens[index] = self._literal(token, source)
                continue
            children = token.get("children")
            if children:
                self.walk(children)

    @staticmethod
    def _literal(token: dict[str, Any], source: str) -> dict[str, Any]:
        if token["type"] in _INLINE_TYPES:
            return {"type": "inline_html", "raw": source}
        return {"type": "block_html", "raw": source}


class _TemplateSafeRenderer(mistune.HTMLRenderer):
    """HTML renderer that shields templating expressions and highlights code."""

    def __init__(self) -> None:
        super().__init__(escape=False)

    def __call__(self, tokens, state) -> str:
        tokens = list(tokens)
        _ExpressionShield().walk(tokens)
        return super().__call__(tokens, state)

    def block_code(self, code: str, info: str | None = None) -> str:
        """Render a code block with Pygments syntax highlighting.

        Args:
            code: The code content.
            info: Language identifier (e.g., 'python', 'javascript').

        Returns:
            HTML string with highlighted code.
        """
        words = (info or "").split()
        language = words[0] if words else ""
        if language:
            from pygments import highlight
            from pygments.formatters import HtmlFormatter
            from pygments.lexers import get_lexer_by_name
            from pygments.util import ClassNotFound

            try:
                lexer = get_lexer_by_name(language, stripall=True)
            except ClassNotFound:
                lexer = None
            if lexer is not None:
                formatter = HtmlFormatter(nowrap=False, cssclass="highlight")
                return highlight(code, lexer, formatter)
        escaped = code.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
        lang_class = f' class="language-{language}"' if language else ""
        return f"<pre><code{lang_class}>{escaped}</code></pre>\n"


def render_markdown(body: str) -> str:
    """Convert a Markdown body to HTML, leaving templating expressions intact.

    Args:
        body: Markdown source without front-matter.

    Returns:
        Rendered HTML.
    """
    markdown = mistune.create_markdown(renderer=_TemplateSafeRenderer(), plugins=_PLUGINS)
    return markdown(body)


def ingest_markdown(raw: str) -> RenderedDocument:
    """Split front-matter from a Markdown source and convert the body.

    Args:
        raw: Full Markdown file content.

    Returns:
        RenderedDocument with metadata and HTML.
    """
    metadata, body = extract_frontmatter(raw)
    return RenderedDocument(metadata=metadata, html=render_markdown(body))


def _render_html(document: Document) -> RenderedDocument:
    return RenderedDocument(metadata={}, html=document.text)


def _render_markdown(document: Document) -> RenderedDocument:
    return RenderedDocument(metadata=dict(document.metadata), html=render_markdown(document.body))


_DOCUMENT_RENDERERS: dict[str, Callable[[Any], RenderedDocument]] = {
    "html": _render_html,
    "markdown": _render_markdown,
}


def render_document(document: Document) -> RenderedDocument:
    """Produce the HTML source of a document, dispatching on its kind.

    HTML documents pass through unchanged; Markdown documents are converted.
    """
    return _DOCUMENT_RENDERERS[document.kind](document)
