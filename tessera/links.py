"""Hyperlink rewriting for Tessera.

Source pages link to each other by their source-tree paths (`pages/about.md`,
`./post.html`). After compilation those links are rewritten to root-relative URLs of
the built site (`/about.html`), and anchor class lists are tidied.
"""

from __future__ import annotations

import re
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from .documents import MARKDOWN_SUFFIXES
from .paths import is_external, reference_base, resolve_path, split_suffix

if TYPE_CHECKING:
    from .config import BuildInfo
    from .html_utils import ResolvedTree

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_class(value: str) -> str:
    """Collapse whitespace runs in a class attribute to single spaces.

    Examples:
        >>> normalize_class("a\\n  b\\n c")
        'a b c'
    """
    return _WHITESPACE_RE.sub(" ", value).strip()


def _is_internal(href: str) -> bool:
    """Check if a link points into the site rather than elsewhere or on the same page."""
    reference = href.strip()
    return bool(reference) and not reference.startswith("#") and not is_external(reference)


class LinkRewriter:
    """Rewrites internal hyperlinks of compiled pages to site URLs.

    Links starting with `#`, empty links, external URLs and links holding templating
    expressions are left alone. Rewriting is idempotent.

    Attributes:
        build_info: Build layout configuration.
        inventory: Source paths of every internal link target seen so far.
    """

    def __init__(self, build_info: BuildInfo):
        self.build_info = build_info
        self.inventory: set[Path] = set()

    def rewrite(self, tree: ResolvedTree, document_dir: Path | None = None) -> ResolvedTree:
        """Rewrite the anchors of a tree in place.

        Args:
            tree: Compiled page.
            document_dir: Directory of the page source, for dot-relative links.

        Returns:
            The same tree.
        """
        document_dir = document_dir or self.build_info.base_folder
        for anchor in tree.root.iter("a"):
            href = anchor.get("href")
            if href is None or tree.has_expression(href) or not _is_internal(href):
                continue
            rewritten = self.rewrite_href(href, document_dir)
            if rewritten != href:
                anchor.set("href", rewritten)
            css_class = anchor.get("class")
            if css_class is not None:
                anchor.set("class", normalize_class(css_class))
        return tree

    def rewrite_href(self, href: str, document_dir: Path | None = None) -> str:
        """Return the site URL for a link, or the link unchanged if it is not internal.

        Examples:
            `pages/about.md` -> `/about.html`, `./team.html#lead` -> `/team.html#lead`
        """
        if not _is_internal(href):
            return href
        reference = href.strip()
        path, suffix = split_suffix(reference)
        if not path:
            return href

        base_folder = self.build_info.base_folder
        target = Path(resolve_path(reference_base(path, document_dir or base_folder, base_folder), path))
        try:
            relative = PurePosixPath(target.relative_to(base_folder).as_posix())
        except ValueError:
            # points outside the source tree
            return href
        self.inventory.add(target)

        parts = relative.parts
        if parts and parts[0] == ".":
            parts = ()
        pages_parts = PurePosixPath(self.build_info.pages_folder).parts
        if pages_parts and parts[: len(pages_parts)] == pages_parts:
            parts = parts[len(pages_parts) :]
        url = "/" + "/".join(parts)
        if parts and PurePosixPath(url).suffix.lower() in MARKDOWN_SUFFIXES:
            url = str(PurePosixPath(url).with_suffix(".html"))
        if path.endswith("/") and not url.endswith("/"):
            url += "/"
        return url + suffix
