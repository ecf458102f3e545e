"""Build configuration for Tessera.

Configuration is read from `tessera.yaml` in the project root, with defaults for every
key, and turned into an immutable BuildInfo that is passed to every component.

Key pieces:
- BuildInfo: Resolved layout of one build run.
- load_config: Raw configuration mapping with defaults applied.
- load_build_info: Validated BuildInfo for a project, with overrides.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

CONFIG_FILENAME = "tessera.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "input": "index.html",
    "pages_folder": "pages",
    "output_dir": "dist",
    "static_folder": "static",
    "live_reload": False,
    "ws_port": 4001,
    "jobs": 1,
}


@dataclass(frozen=True)
class BuildInfo:
    """Layout and options of one build run.

    Attributes:
        input_file: Absolute path of the root input document.
        base_folder: Source directory; the input file's parent.
        pages_folder: Name of the pages directory under base_folder.
        output_folder: Absolute output directory.
        static_folder: Name of the static assets directory under base_folder.
        live_reload: Whether pages get the live-reload snippet.
        ws_port: Port the live-reload snippet connects to.
        jobs: Number of pages compiled concurrently.
    """

    input_file: Path
    base_folder: Path
    pages_folder: str
    output_folder: Path
    static_folder: str
    live_reload: bool = False
    ws_port: int = 4001
    jobs: int = 1

    @property
    def pages_dir(self) -> Path:
        return self.base_folder / self.pages_folder

    @property
    def static_dir(self) -> Path:
        return self.base_folder / self.static_folder

    def relative_path(self, path: Path) -> Path:
        """Return a source path relative to the base folder."""
        return Path(os.path.relpath(path, self.base_folder))


def load_config(project_root: Path) -> dict[str, Any]:
    """Load build configuration from tessera.yaml.

    Args:
        project_root: Root directory of the project.

    Returns:
        Dictionary containing configuration values, with defaults applied.
    """
    config_path = project_root / CONFIG_FILENAME
    config = DEFAULT_CONFIG.copy()
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            try:
                loaded = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise ConfigError(f"Invalid {CONFIG_FILENAME}: {exc}") from exc
            if isinstance(loaded, dict):
                config.update(loaded)
    return config


def load_build_info(project_root: Path, **overrides: Any) -> BuildInfo:
    """Resolve the configuration of a project into a BuildInfo.

    Args:
        project_root: Root directory of the project.
        **overrides: Configuration keys to override; None values are ignored.

    Returns:
        BuildInfo with absolute paths.

    Raises:
        ConfigError: If the input file is missing or an option is invalid.
    """
    config = load_config(project_root)
    config.update({key: value for key, value in overrides.items() if value is not None})

    input_file = (project_root / str(config["input"])).resolve()
    if not input_file.is_file():
        raise ConfigError(f"Input file not found: {input_file}")

    try:
        jobs = int(config["jobs"])
        ws_port = int(config["ws_port"])
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid numeric option: {exc}") from exc
    if jobs < 1:
        raise ConfigError(f"jobs must be at least 1, got {jobs}")

    return BuildInfo(
        input_file=input_file,
        base_folder=input_file.parent,
        pages_folder=str(config["pages_folder"]).strip("/"),
        output_folder=(project_root / str(config["output_dir"])).resolve(),
        static_folder=str(config["static_folder"]).strip("/"),
        live_reload=bool(config["live_reload"]),
        ws_port=ws_port,
        jobs=jobs,
    )
