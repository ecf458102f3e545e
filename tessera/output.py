"""Output writing for Tessera.

Every entry document becomes one `.html` file in the output directory. Its location
mirrors the source location relative to the base folder, with the leading pages
folder dropped: `pages/blog/post.md` is written to `<out>/blog/post.html`.
"""

from __future__ import annotations

from pathlib import Path, PurePath
from typing import TYPE_CHECKING

from .errors import StorageError

if TYPE_CHECKING:
    from .config import BuildInfo
    from .html_utils import ResolvedTree


class FileOutputWriter:
    """Writes compiled pages below the output folder.

    Attributes:
        build_info: Build layout configuration.
    """

    def __init__(self, build_info: BuildInfo):
        self.build_info = build_info

    def output_path(self, relative_path: Path) -> Path:
        """Return where the page for a source path is written.

        Args:
            relative_path: Source path relative to the base folder.

        Returns:
            Absolute output path with an `.html` suffix.
        """
        parts = PurePath(relative_path).parts
        pages_parts = PurePath(self.build_info.pages_folder).parts
        if pages_parts and len(parts) > len(pages_parts) and parts[: len(pages_parts)] == pages_parts:
            parts = parts[len(pages_parts) :]
        return self.build_info.output_folder.joinpath(*parts).with_suffix(".html")

    def write(self, tree: ResolvedTree, relative_path: Path) -> Path:
        """Serialize a page and write it.

        Returns:
            Path of the written file.

        Raises:
            StorageError: If the file cannot be written.
        """
        target = self.output_path(relative_path)
        html = tree.serialize()
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(html, encoding="utf-8")
        except OSError as exc:
            raise StorageError(target, f"cannot write output: {exc}") from exc
        return target
