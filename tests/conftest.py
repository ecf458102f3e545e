from pathlib import Path

import pytest

from tessera.config import BuildInfo
from tessera.errors import DocumentNotFoundError


class MemoryReader:
    """Serves documents from a dict and records every read."""

    def __init__(self, root: Path, files: dict[str, str]):
        self.files = {root / name: text for name, text in files.items()}
        self.reads: list[Path] = []

    def read(self, path: Path) -> str:
        self.reads.append(Path(path))
        try:
            return self.files[Path(path)]
        except KeyError:
            raise DocumentNotFoundError(Path(path)) from None

    def count(self, root: Path, name: str) -> int:
        return self.reads.count(root / name)


@pytest.fixture
def make_build_info(tmp_path):
    def factory(**kwargs) -> BuildInfo:
        options = {
            "input_file": tmp_path / "index.html",
            "base_folder": tmp_path,
            "pages_folder": "pages",
            "output_folder": tmp_path / "dist",
            "static_folder": "static",
        }
        options.update(kwargs)
        return BuildInfo(**options)

    return factory


@pytest.fixture
def memory_reader(tmp_path):
    def factory(files: dict[str, str]) -> MemoryReader:
        return MemoryReader(tmp_path, files)

    return factory
