"""Protocol definitions for Tessera.

The build orchestrator talks to storage, asset copying, live-reload injection and
output writing through these interfaces, so tests can swap in in-memory versions.
"""

from __future__ import annotations

from abc import abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .html_utils import ResolvedTree


@runtime_checkable
class DocumentReader(Protocol):
    """Protocol for reading source documents."""

    @abstractmethod
    def read(self, path: Path) -> str:
        """Read a source document.

        Args:
            path: Absolute path of the document.

        Returns:
            Document text.

        Raises:
            DocumentNotFoundError: If the document does not exist.
            StorageError: If it cannot be read.
        """
        ...


@runtime_checkable
class AssetCopier(Protocol):
    """Protocol for copying static assets into the output directory."""

    @abstractmethod
    def copy_assets(self) -> bool:
        """Copy assets unless already done; return True if this call copied."""
        ...


@runtime_checkable
class LiveReloadInjector(Protocol):
    """Protocol for adding development-time markup to compiled pages."""

    @abstractmethod
    def inject(self, tree: ResolvedTree) -> ResolvedTree:
        ...


@runtime_checkable
class OutputWriter(Protocol):
    """Protocol for persisting compiled pages."""

    @abstractmethod
    def write(self, tree: ResolvedTree, relative_path: Path) -> Path:
        """Write a page.

        Args:
            tree: Compiled page.
            relative_path: Source path relative to the base folder.

        Returns:
            Path of the written output.
        """
        ...
