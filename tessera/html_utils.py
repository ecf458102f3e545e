"""HTML tree utilities for Tessera.

Documents are parsed with lxml. Templating expressions (`{{ ... }}`, `{% ... %}`) are
swapped for inert placeholders before parsing and restored after serialization, so
the HTML serializer can neither entity-escape nor URL-escape them.

Key pieces:
- ExpressionMask: Placeholder table for templating expressions.
- ResolvedTree: A parsed document or fragment plus its mask.
- splice / set_content / append_content: Text-preserving tree edits.
"""

from __future__ import annotations

import re
import secrets
from pathlib import Path

import lxml.html
from lxml import etree

from .errors import DocumentParseError

_EXPRESSION_RE = re.compile(r"\{\{.*?\}\}|\{%.*?%\}", re.DOTALL)
# ASCII only: libxml2 percent-escapes anything else inside href/src values
_PLACEHOLDER = "__tessera_expr_{}_{}__"

_FULL_DOCUMENT_RE = re.compile(
    r"\A\s*(?:<!--.*?-->\s*)*<(?:!doctype|html|head|body)\b", re.IGNORECASE | re.DOTALL
)
_DOCTYPE_RE = re.compile(r"\A\s*(?:<!--.*?-->\s*)*(<!doctype[^>]*>)", re.IGNORECASE | re.DOTALL)
_LEADING_DOCTYPE_RE = re.compile(r"\A\s*<!doctype[^>]*>\s*", re.IGNORECASE)


class ExpressionMask:
    """Replaces templating expressions with numbered placeholders and back.

    Placeholders carry a random token of their own mask, so source text that happens
    to look like a placeholder is never mistaken for one.
    """

    def __init__(self) -> None:
        self._expressions: list[str] = []
        self._token = secrets.token_hex(6)
        self._placeholder_re = re.compile(rf"__tessera_expr_{self._token}_(\d+)__")

    def mask(self, text: str) -> str:
        return _EXPRESSION_RE.sub(self._store, text)

    def unmask(self, text: str) -> str:
        return self._placeholder_re.sub(self._restore, text)

    def contains(self, text: str) -> bool:
        """Check if masked text holds a templating expression."""
        return bool(self._placeholder_re.search(text)) or "{{" in text or "{%" in text

    def _store(self, match: re.Match) -> str:
        self._expressions.append(match.group(0))
        return _PLACEHOLDER.format(self._token, len(self._expressions) - 1)

    def _restore(self, match: re.Match) -> str:
        index = int(match.group(1))
        if index < len(self._expressions):
            return self._expressions[index]
        return match.group(0)


def is_full_document(text: str) -> bool:
    """Check if HTML text is a whole document rather than a fragment."""
    return bool(_FULL_DOCUMENT_RE.match(text))


def _is_element(node) -> bool:
    # comments and processing instructions have a non-string tag
    return isinstance(node.tag, str)


class ResolvedTree:
    """An lxml tree exclusively owned by one compile call.

    Fragments are held inside a `<div>` container that is never serialized.

    Attributes:
        root: `<html>` element for documents, container element for fragments.
        is_document: Whether the source was a whole document.
        doctype: Doctype declaration of the source, if any.
        path: Source document path, if known.
    """

    def __init__(
        self,
        root: lxml.html.HtmlElement,
        is_document: bool,
        doctype: str | None = None,
        mask: ExpressionMask | None = None,
        path: Path | None = None,
    ):
        self.root = root
        self.is_document = is_document
        self.doctype = doctype
        self.mask = mask or ExpressionMask()
        self.path = path

    @classmethod
    def parse(cls, text: str, path: Path | None = None) -> ResolvedTree:
        """Parse HTML text into a tree.

        Raises:
            DocumentParseError: If lxml cannot build a tree from the text.
        """
        mask = ExpressionMask()
        if is_full_document(text):
            doctype_match = _DOCTYPE_RE.match(text)
            root = _parse(lambda: lxml.html.document_fromstring(mask.mask(text)), path)
            doctype = doctype_match.group(1) if doctype_match else None
            return cls(root, True, doctype=doctype, mask=mask, path=path)
        container = _parse_fragment(mask.mask(text), path)
        return cls(container, False, mask=mask, path=path)

    def parse_content(self, html: str) -> lxml.html.HtmlElement:
        """Parse markup for insertion into this tree.

        Whole documents contribute the content of their `<body>`.

        Returns:
            A detached container element holding the parsed content.
        """
        masked = self.mask.mask(html)
        if not is_full_document(html):
            return _parse_fragment(masked, self.path)
        root = _parse(lambda: lxml.html.document_fromstring(masked), self.path)
        source = root.find("body")
        if source is None:
            source = root
        container = lxml.html.Element("div")
        container.text = source.text
        container.extend(list(source))
        return container

    def insertion_point(self) -> lxml.html.HtmlElement:
        """Element that page-level additions are appended to."""
        body = self.root.find("body")
        return body if body is not None else self.root

    def head(self) -> lxml.html.HtmlElement | None:
        return self.root.find("head") if self.is_document else None

    def has_expression(self, value: str) -> bool:
        return self.mask.contains(value)

    def serialize(self) -> str:
        """Serialize the tree back to HTML with expressions restored."""
        if self.is_document:
            html = lxml.html.tostring(self.root, encoding="unicode", method="html")
            html = _LEADING_DOCTYPE_RE.sub("", html, count=1)
            if self.doctype:
                html = f"{self.doctype}\n{html}"
        else:
            html = serialize_children(self.root)
        return self.mask.unmask(html)

    def serialize_element(self, element: lxml.html.HtmlElement) -> str:
        """Serialize one element, without its tail, with expressions restored."""
        html = lxml.html.tostring(element, encoding="unicode", method="html", with_tail=False)
        return self.mask.unmask(html)


def _parse(build, path: Path | None):
    try:
        return build()
    except (etree.ParserError, etree.XMLSyntaxError, ValueError) as exc:
        raise DocumentParseError(path, str(exc) or type(exc).__name__) from exc


def _parse_fragment(masked: str, path: Path | None) -> lxml.html.HtmlElement:
    return _parse(lambda: lxml.html.fragment_fromstring(masked, create_parent="div"), path)


def serialize_children(element: lxml.html.HtmlElement) -> str:
    """Serialize the content of an element without the element itself."""
    parts = [element.text or ""]
    for child in element:
        parts.append(lxml.html.tostring(child, encoding="unicode", method="html"))
    return "".join(parts)


def _add_text(parent: lxml.html.HtmlElement, index: int, text: str | None) -> None:
    """Add text right before the child at `index` (or at the end)."""
    if not text:
        return
    if index == 0:
        parent.text = (parent.text or "") + text
    else:
        previous = parent[index - 1]
        previous.tail = (previous.tail or "") + text


def splice(element: lxml.html.HtmlElement, text: str | None, nodes: list) -> None:
    """Replace an element with text followed by nodes, keeping its tail."""
    parent = element.getparent()
    if parent is None:
        return
    index = parent.index(element)
    tail = element.tail
    element.tail = None
    parent.remove(element)
    _add_text(parent, index, text)
    for offset, node in enumerate(nodes):
        parent.insert(index + offset, node)
    _add_text(parent, index + len(nodes), tail)


def set_content(element: lxml.html.HtmlElement, text: str | None, nodes: list) -> None:
    """Replace the content of an element."""
    for child in list(element):
        element.remove(child)
    element.text = text
    element.extend(nodes)


def append_content(element: lxml.html.HtmlElement, container: lxml.html.HtmlElement) -> None:
    """Move the content of a container to the end of an element."""
    _add_text(element, len(element), container.text)
    element.extend(list(container))


def is_attached(element: lxml.html.HtmlElement, root: lxml.html.HtmlElement) -> bool:
    """Check if an element is still inside the tree under root."""
    node = element
    while node is not None:
        if node is root:
            return True
        node = node.getparent()
    return False


def top_level_elements(container: lxml.html.HtmlElement) -> list:
    return [child for child in container if _is_element(child)]


def extract_elements(container: lxml.html.HtmlElement, tag: str) -> list:
    """Detach every `tag` element below container, keeping surrounding text.

    Returns:
        The detached elements in document order.
    """
    found = [el for el in container.iter(tag) if el is not container]
    for el in found:
        splice(el, None, [])
    return found
