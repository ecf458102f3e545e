"""Source documents for Tessera.

A document is an HTML or Markdown source file. Its kind is decided once, from the
file suffix, when it is read; Markdown front-matter is split off at the same time.

Key classes:
- HtmlDocument / MarkdownDocument: The two document variants.
- FileStorage: Reads source documents from disk.
- EntryLoader: Discovers the top-level documents of a build.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar

from .errors import DocumentNotFoundError, StorageError
from .extractors import extract_frontmatter

if TYPE_CHECKING:
    from .config import BuildInfo
    from .protocols import DocumentReader

MARKDOWN_SUFFIXES = (".md", ".markdown")
ENTRY_SUFFIXES = (".html", *MARKDOWN_SUFFIXES)


@dataclass(frozen=True)
class HtmlDocument:
    """An HTML source document.

    Attributes:
        path: Absolute path of the source file.
        text: Raw file content.
    """

    kind: ClassVar[str] = "html"

    path: Path
    text: str


@dataclass(frozen=True)
class MarkdownDocument:
    """A Markdown source document.

    Attributes:
        path: Absolute path of the source file.
        text: Raw file content, front-matter included.
        metadata: Front-matter mapping.
        body: Markdown content after the front-matter.
    """

    kind: ClassVar[str] = "markdown"

    path: Path
    text: str
    metadata: dict[str, Any] = field(default_factory=dict)
    body: str = ""


Document = HtmlDocument | MarkdownDocument


def is_markdown(path: Path) -> bool:
    """Check if a path is a Markdown file.

    Args:
        path: Path to check.

    Returns:
        True if the file has a Markdown extension (case-insensitive).
    """
    return path.suffix.lower() in MARKDOWN_SUFFIXES


def make_document(path: Path, text: str) -> Document:
    """Build the document variant matching the path's suffix."""
    if is_markdown(path):
        metadata, body = extract_frontmatter(text)
        return MarkdownDocument(path=path, text=text, metadata=metadata, body=body)
    return HtmlDocument(path=path, text=text)


def read_document(reader: DocumentReader, path: Path) -> Document:
    """Read a document through a storage reader.

    Raises:
        DocumentNotFoundError: If the document does not exist.
        StorageError: If it exists but cannot be read.
    """
    return make_document(path, reader.read(path))


class FileStorage:
    """Reads source documents from the local filesystem as UTF-8 text."""

    def read(self, path: Path) -> str:
        """Read a document.

        Args:
            path: Absolute path of the document.

        Returns:
            File content.

        Raises:
            DocumentNotFoundError: If the file does not exist.
            StorageError: If the file cannot be read or decoded.
        """
        try:
            return Path(path).read_text(encoding="utf-8")
        except FileNotFoundError:
            raise DocumentNotFoundError(Path(path)) from None
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageError(Path(path), str(exc)) from exc


class EntryLoader:
    """Discovers the top-level documents of a build.

    The root input file comes first, followed by every HTML and Markdown file under
    the pages folder in sorted order. A file is listed once.

    Attributes:
        build_info: Build layout configuration.
    """

    def __init__(self, build_info: BuildInfo):
        self.build_info = build_info

    def iter_entries(self) -> list[Path]:
        """Return the entry documents of the build.

        Returns:
            Absolute paths, root input first.
        """
        entries = [self.build_info.input_file]
        pages_dir = self.build_info.pages_dir
        if pages_dir.is_dir():
            found = (
                path
                for path in pages_dir.rglob("*")
                if path.is_file() and path.suffix.lower() in ENTRY_SUFFIXES
            )
            for path in sorted(found):
                if path not in entries:
                    entries.append(path)
        return entries
