"""Static asset copying for Tessera.

Files under the static folder are copied byte-for-byte into the output directory,
keeping their relative layout. Copying happens once per build run, triggered by the
first page that finishes compiling.

Key components:
- StaticAssetCopier: Copies the static folder, at most once per instance.
"""

from __future__ import annotations

import shutil
import threading
from pathlib import Path
from typing import TYPE_CHECKING

from . import log

if TYPE_CHECKING:
    from .config import BuildInfo


class StaticAssetCopier:
    """Copies the static folder of a project into the output directory.

    Attributes:
        build_info: Build layout configuration.
        source_dir: Static folder in the source tree.
        output_dir: Where the static files are written.
        copied: Files written by the copy, relative to output_dir.
    """

    def __init__(self, build_info: BuildInfo):
        self.build_info = build_info
        self.source_dir = build_info.static_dir
        self.output_dir = build_info.output_folder / build_info.static_folder
        self.copied: list[Path] = []
        self._lock = threading.Lock()
        self._done = False

    @property
    def done(self) -> bool:
        return self._done

    def copy_assets(self) -> bool:
        """Copy the static folder unless it was already copied.

        Files that cannot be copied are reported and skipped.

        Returns:
            True if this call performed the copy.
        """
        with self._lock:
            if self._done:
                return False
            self._done = True
            self._copy_tree()
            return True

    def _copy_tree(self) -> None:
        if not self.source_dir.is_dir():
            return
        for source in sorted(self.source_dir.rglob("*")):
            if not source.is_file():
                continue
            relative = source.relative_to(self.source_dir)
            target = self.output_dir / relative
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source, target)
            except OSError as exc:
                log.warning(f"Could not copy asset {relative}: {exc}")
                continue
            self.copied.append(relative)
