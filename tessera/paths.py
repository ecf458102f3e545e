"""Reference path resolution for Tessera.

References found in documents (include sources, hyperlinks, layouts) are turned into
absolute source-tree paths here. Resolution is purely lexical: nothing is checked
against the filesystem, a missing target surfaces later when it is read.

Functions:
    is_external: Check if a reference points outside the site.
    resolve_path: Resolve a reference against a base directory.
    reference_base: Pick the directory a reference is relative to.
    split_suffix: Separate the query/fragment part of a reference.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

# scheme-prefixed (http:, mailto:, data:, ...) or protocol-relative
_EXTERNAL_RE = re.compile(r"^(?:[a-zA-Z][a-zA-Z0-9+.\-]*:|//)")
_SUFFIX_RE = re.compile(r"[?#]")


def is_external(reference: str) -> bool:
    """Check if a reference is an absolute external URL.

    Args:
        reference: Reference text from a document.

    Returns:
        True for scheme-prefixed and protocol-relative URLs.

    Examples:
        >>> is_external("https://example.com")
        True

        >>> is_external("pages/about.html")
        False
    """
    return bool(_EXTERNAL_RE.match(reference.strip()))


def split_suffix(reference: str) -> tuple[str, str]:
    """Split a reference into its path and its query/fragment suffix.

    Examples:
        >>> split_suffix("about.html#team")
        ('about.html', '#team')
    """
    match = _SUFFIX_RE.search(reference)
    if not match:
        return reference, ""
    return reference[: match.start()], reference[match.start() :]


def resolve_path(base_dir: Path, reference: str) -> Path | str:
    """Resolve a reference to an absolute source-tree path.

    Relative (./x, ../x), bare (x/y) and root-relative (/x) references are joined
    onto base_dir and normalized. External URLs are returned unchanged, which
    callers treat as a signal to skip resolution.

    Args:
        base_dir: Directory the reference is relative to.
        reference: Reference text from a document.

    Returns:
        Absolute normalized Path, or the untouched reference string if external.
    """
    if is_external(reference):
        return reference
    target, _ = split_suffix(reference.strip())
    target = target.lstrip("/")
    joined = Path(base_dir) / target if target else Path(base_dir)
    return Path(os.path.normpath(joined.absolute()))


def reference_base(reference: str, document_dir: Path, base_folder: Path) -> Path:
    """Pick the directory a reference should be resolved against.

    Dot-relative references follow the referencing document; bare and
    root-relative references are anchored at the source base folder.
    """
    ref = reference.strip()
    if ref in (".", "..") or ref.startswith(("./", "../")):
        return document_dir
    return base_folder
