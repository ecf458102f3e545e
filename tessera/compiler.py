"""Template compiler for Tessera.

Resolves include references in a document against the source tree, recursively, and
produces a single self-contained HTML tree per top-level page.

Two reference forms are understood:

    <include src="components/card.html" title="Hi">call-site content</include>
        The element is replaced by the component. Other attributes become
        `data-prop-*` attributes on the component's top-level elements, and the
        call-site content replaces the first `<slot>` in the component.

    <div data-include="partials/nav.html"></div>
        The element is kept and its content is replaced by the component.

Component `<script>` elements are lifted out of every instance and appended to the
end of the page, once per component per page.

Key classes:
- CompileScope: Per-page state (script registry, warnings).
- TemplateCompiler: Compiles documents, sharing one CompilationCache per run.
"""

from __future__ import annotations

import os
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import lxml.html

from . import log
from .cache import CompilationCache, CompiledDocument, ComponentScript
from .documents import FileStorage, read_document
from .errors import DocumentParseError, ReferenceResolutionError, StorageError
from .extractors import scalar_metadata
from .html_utils import (
    ResolvedTree,
    append_content,
    extract_elements,
    is_attached,
    set_content,
    splice,
    top_level_elements,
)
from .paths import is_external, reference_base, resolve_path
from .renderers import render_document
from .scripts import ComponentScriptRegistry

if TYPE_CHECKING:
    from .config import BuildInfo
    from .protocols import DocumentReader

INCLUDE_TAG = "include"
INCLUDE_ATTR = "data-include"
SLOT_TAG = "slot"
PROP_PREFIX = "data-prop-"

# the HTML parser ignores "/>", which would make the include swallow its siblings
_SELF_CLOSING_INCLUDE_RE = re.compile(r"<include\b([^>]*?)\s*/>", re.IGNORECASE)


@dataclass
class CompileScope:
    """State of one top-level compile.

    Attributes:
        registry: Components whose scripts were already emitted on this page.
        warnings: Recovered problems, in the order they were found.
    """

    registry: ComponentScriptRegistry = field(default_factory=ComponentScriptRegistry)
    warnings: list[str] = field(default_factory=list)


class _Resolution:
    """Accumulates what a document pulled in while its references were resolved."""

    def __init__(self) -> None:
        self.scripts: dict[Path, ComponentScript] = {}
        self.warnings: list[str] = []

    def add_scripts(self, scripts: Iterable[ComponentScript]) -> None:
        for script in scripts:
            self.scripts.setdefault(script.component_id, script)

    def add_warnings(self, warnings: Iterable[str]) -> None:
        for warning in warnings:
            if warning not in self.warnings:
                self.warnings.append(warning)

    def warn(self, message: str) -> None:
        log.warning(message)
        self.add_warnings([message])


class TemplateCompiler:
    """Compiles documents into resolved HTML trees.

    Every document is compiled at most once per cache; a cache is meant to live for a
    single build run. The compiler itself holds no per-page state and may be used from
    several threads at once.

    Attributes:
        build_info: Build layout configuration.
        reader: Storage the source documents are read from.
        cache: Compiled documents of the current run.
    """

    def __init__(
        self,
        build_info: BuildInfo,
        reader: DocumentReader | None = None,
        cache: CompilationCache | None = None,
    ):
        self.build_info = build_info
        self.reader = reader or FileStorage()
        self.cache = cache if cache is not None else CompilationCache()

    def compile(self, path: Path, scope: CompileScope | None = None) -> str:
        """Compile a top-level document to HTML.

        Args:
            path: Path of the document.
            scope: Page state to use; a fresh one when omitted.

        Returns:
            Resolved HTML with component scripts appended.

        Raises:
            StorageError: If the document cannot be read.
            DocumentParseError: If the document cannot be parsed.
        """
        scope = scope or CompileScope()
        html = self.compile_tree(path, scope).serialize()
        scope.registry.reset()
        return html

    def compile_tree(self, path: Path, scope: CompileScope) -> ResolvedTree:
        """Compile a top-level document to a tree ready for post-processing."""
        path = Path(os.path.normpath(self.build_info.base_folder / path))
        document = self._compile_document(path)
        if document is None:
            # only reachable when called re-entrantly for a document in progress
            return ResolvedTree.parse("", path=path)
        return self._assemble(document, scope)

    def compile_content(
        self,
        content: str,
        base_dir: Path,
        scope: CompileScope | None = None,
        path: Path | None = None,
    ) -> ResolvedTree:
        """Compile in-memory HTML content.

        The content itself is not cached; documents it references are.

        Args:
            content: HTML source.
            base_dir: Directory dot-relative references are resolved against.
            scope: Page state to use; a fresh one when omitted.
            path: Path reported in warnings and errors.
        """
        document = self._resolve_source(content, Path(base_dir), path)
        return self._assemble(document, scope or CompileScope())

    def _assemble(self, document: CompiledDocument, scope: CompileScope) -> ResolvedTree:
        tree = ResolvedTree.parse(document.html, path=document.path)
        scope.warnings.extend(document.warnings)
        target = tree.insertion_point()
        for script in document.scripts:
            if scope.registry.has_emitted(script.component_id):
                continue
            container = tree.parse_content(script.markup)
            container.text = "\n" + (container.text or "")
            append_content(target, container)
            scope.registry.mark_emitted(script.component_id)
        return tree

    def _compile_document(self, path: Path) -> CompiledDocument | None:
        return self.cache.compile_once(path, lambda: self._build(path))

    def _build(self, path: Path) -> CompiledDocument:
        document = read_document(self.reader, path)
        rendered = render_document(document)
        layout = rendered.metadata.get("layout")
        if isinstance(layout, str) and layout.strip():
            return self._apply_layout(path, layout.strip(), rendered.html, rendered.metadata)
        return self._resolve_source(rendered.html, path.parent, path)

    def _apply_layout(self, path: Path, layout: str, html: str, metadata: dict) -> CompiledDocument:
        """Wrap a rendered Markdown page in its layout document."""
        page = self._resolve_source(html, path.parent, path)
        target = resolve_path(reference_base(layout, path.parent, self.build_info.base_folder), layout)
        try:
            layout_document = read_document(self.reader, Path(target))
        except StorageError as exc:
            message = str(ReferenceResolutionError(layout, Path(target), path, exc.message))
            log.warning(message)
            return CompiledDocument(
                path=path,
                html=page.html,
                is_document=page.is_document,
                scripts=page.scripts,
                warnings=(*page.warnings, message),
            )
        layout_html = render_document(layout_document).html
        props = scalar_metadata(metadata)
        props.pop("layout", None)
        return self._resolve_source(layout_html, Path(target).parent, path, slot=page, props=props)

    def _resolve_source(
        self,
        text: str,
        document_dir: Path,
        source: Path | None,
        slot: CompiledDocument | None = None,
        props: dict[str, str] | None = None,
    ) -> CompiledDocument:
        """Resolve every reference in HTML text.

        Args:
            text: HTML source.
            document_dir: Directory dot-relative references are resolved against.
            source: Path of the document the text belongs to.
            slot: Already compiled content for the first `<slot>` element.
            props: Values set as `data-prop-*` on `<head>` (or the top-level elements).
        """
        text = _SELF_CLOSING_INCLUDE_RE.sub(r"<include\1></include>", text)
        tree = ResolvedTree.parse(text, path=source)
        resolution = _Resolution()

        references = [
            el
            for el in tree.root.iter()
            if el.tag == INCLUDE_TAG or (isinstance(el.tag, str) and el.get(INCLUDE_ATTR) is not None)
        ]
        for element in references:
            if is_attached(element, tree.root):
                self._resolve_reference(tree, element, document_dir, source, resolution)

        if slot is not None:
            resolution.add_scripts(slot.scripts)
            resolution.add_warnings(slot.warnings)
            content = tree.parse_content(slot.html)
            slot_element = next(iter(tree.root.iter(SLOT_TAG)), None)
            if slot_element is not None:
                splice(slot_element, content.text, list(content))
            else:
                append_content(tree.insertion_point(), content)
        if props:
            head = tree.head()
            targets = [head] if head is not None else top_level_elements(tree.root)
            _apply_props(targets, props, resolution)

        return CompiledDocument(
            path=source,
            html=tree.serialize(),
            is_document=tree.is_document,
            scripts=tuple(resolution.scripts.values()),
            warnings=tuple(resolution.warnings),
        )

    def _resolve_reference(
        self,
        tree: ResolvedTree,
        element: lxml.html.HtmlElement,
        document_dir: Path,
        source: Path | None,
        resolution: _Resolution,
    ) -> None:
        is_include = element.tag == INCLUDE_TAG
        raw = element.get("src" if is_include else INCLUDE_ATTR)
        reference = tree.mask.unmask(raw or "").strip()
        if not reference:
            resolution.warn(f"Reference without a target in {source or '<content>'}")
            return
        if tree.has_expression(raw) or is_external(reference):
            resolution.warn(
                f"Skipping reference '{reference}' in {source or '<content>'}: "
                "only local files can be included"
            )
            return

        target = Path(
            resolve_path(reference_base(reference, document_dir, self.build_info.base_folder), reference)
        )
        try:
            child = self._compile_document(target)
        except (StorageError, DocumentParseError) as exc:
            resolution.warn(str(ReferenceResolutionError(reference, target, source, exc.message)))
            return

        if child is None:
            # cycle: the reference resolves to nothing
            if is_include:
                splice(element, None, [])
            else:
                set_content(element, None, [])
            return

        resolution.add_warnings(child.warnings)
        fragment = tree.parse_content(child.html)
        own_scripts = [tree.serialize_element(el) for el in extract_elements(fragment, "script")]
        resolution.add_scripts(child.scripts)
        if own_scripts:
            resolution.add_scripts([ComponentScript(target, "\n".join(own_scripts))])

        if not is_include:
            set_content(element, fragment.text, list(fragment))
            return

        _fill_slot(fragment, element)
        props = {name: value for name, value in element.attrib.items() if name != "src"}
        _apply_props(top_level_elements(fragment), props, resolution)
        splice(element, fragment.text, list(fragment))


def _has_content(element: lxml.html.HtmlElement) -> bool:
    return bool((element.text or "").strip()) or len(element) > 0


def _fill_slot(fragment: lxml.html.HtmlElement, call_site: lxml.html.HtmlElement) -> None:
    """Put the call-site content in place of the first `<slot>` of a component.

    Without call-site content the slot's own content is kept as a fallback.
    """
    slot = next((el for el in fragment.iter(SLOT_TAG) if el is not fragment), None)
    if slot is None:
        return
    if _has_content(call_site):
        splice(slot, call_site.text, list(call_site))
    else:
        splice(slot, slot.text, list(slot))


def _apply_props(elements: list, props: dict[str, str], resolution: _Resolution) -> None:
    for name, value in props.items():
        attribute = f"{PROP_PREFIX}{name}"
        try:
            for element in elements:
                element.set(attribute, value)
        except ValueError as exc:
            # control characters and invalid names cannot be stored in the tree
            for element in elements:
                element.attrib.pop(attribute, None)
            resolution.warn(f"Skipping property '{name}': {exc}")
