"""Site building for Tessera.

Drives a build run: prepares the output directory, compiles the root input document
and every page under the pages folder, and runs each compiled page through asset
copying, link rewriting, live-reload injection and output writing.

A page that cannot be compiled or written is reported as skipped; the other pages
are still built. Only setup problems (configuration, output directory) stop a run.

Key pieces:
- PageResult / BuildResult: Outcome of a page and of a run.
- BuildOrchestrator: Runs the per-page pipeline, sequentially or on a thread pool.
- build_site: Builds a project directory from its configuration.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from . import log
from .assets import StaticAssetCopier
from .cache import CompilationCache
from .compiler import CompileScope, TemplateCompiler
from .config import load_build_info
from .documents import EntryLoader, FileStorage
from .errors import BuildError, DocumentParseError, StorageError
from .links import LinkRewriter
from .livereload import NullInjector, WebSocketReloadInjector
from .output import FileOutputWriter
from .utils import ensure_clean_dir

if TYPE_CHECKING:
    from .config import BuildInfo
    from .protocols import AssetCopier, DocumentReader, LiveReloadInjector, OutputWriter

BUILT = "built"
SKIPPED = "skipped"


@dataclass
class PageResult:
    """Outcome of building one entry document.

    Attributes:
        source: Absolute source path.
        status: "built" or "skipped".
        output: Written file, for built pages.
        reason: Why the page was skipped.
        warnings: Problems recovered from while compiling it.
        links: Source paths of the internal links on the page.
    """

    source: Path
    status: str
    output: Path | None = None
    reason: str = ""
    warnings: list[str] = field(default_factory=list)
    links: list[Path] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == BUILT


@dataclass
class BuildResult:
    """Result of a build run.

    Attributes:
        pages: One result per entry document, in entry order.
        output_dir: Directory the site was built into.
        assets_copied: Whether the static folder was copied.
    """

    pages: list[PageResult]
    output_dir: Path
    assets_copied: bool = False

    @property
    def built(self) -> list[PageResult]:
        return [page for page in self.pages if page.ok]

    @property
    def skipped(self) -> list[PageResult]:
        return [page for page in self.pages if not page.ok]


class BuildOrchestrator:
    """Builds every entry document of a project.

    One orchestrator runs one build; its compilation cache is shared by all pages of
    that run.

    Attributes:
        build_info: Build layout configuration.
        compiler: Template compiler bound to the run's cache.
        asset_copier: Copies static assets once per run.
        injector: Adds live-reload markup (or nothing) to pages.
        writer: Persists compiled pages.
        entry_loader: Lists the entry documents.
    """

    def __init__(
        self,
        build_info: BuildInfo,
        reader: DocumentReader | None = None,
        asset_copier: AssetCopier | None = None,
        injector: LiveReloadInjector | None = None,
        writer: OutputWriter | None = None,
        entry_loader: EntryLoader | None = None,
    ):
        self.build_info = build_info
        self.compiler = TemplateCompiler(build_info, reader or FileStorage(), CompilationCache())
        self.asset_copier = asset_copier or StaticAssetCopier(build_info)
        if injector is None:
            injector = (
                WebSocketReloadInjector(build_info.ws_port)
                if build_info.live_reload
                else NullInjector()
            )
        self.injector = injector
        self.writer = writer or FileOutputWriter(build_info)
        self.entry_loader = entry_loader or EntryLoader(build_info)
        self._assets_copied = False

    def run(self, clean_output: bool = True) -> BuildResult:
        """Build all entry documents.

        Args:
            clean_output: Whether to empty the output directory first.

        Returns:
            BuildResult with one PageResult per entry.

        Raises:
            BuildError: If the output directory cannot be prepared.
        """
        self._prepare_output(clean_output)
        entries = self.entry_loader.iter_entries()
        if self.build_info.jobs > 1 and len(entries) > 1:
            with ThreadPoolExecutor(max_workers=self.build_info.jobs) as pool:
                pages = list(pool.map(self.build_page, entries))
        else:
            pages = [self.build_page(entry) for entry in entries]
        return BuildResult(
            pages=pages,
            output_dir=self.build_info.output_folder,
            assets_copied=self._assets_copied,
        )

    def build_page(self, path: Path) -> PageResult:
        """Compile, post-process and write one entry document."""
        relative = self.build_info.relative_path(path)
        scope = CompileScope()
        rewriter = LinkRewriter(self.build_info)
        log.compiling(relative.as_posix())
        try:
            tree = self.compiler.compile_tree(path, scope)
            if self.asset_copier.copy_assets():
                self._assets_copied = True
            rewriter.rewrite(tree, path.parent)
            self.injector.inject(tree)
            output = self.writer.write(tree, relative)
        except (StorageError, DocumentParseError) as exc:
            log.error(f"Skipped {relative.as_posix()}: {exc}")
            return PageResult(
                source=path,
                status=SKIPPED,
                reason=str(exc),
                warnings=list(scope.warnings),
            )
        except Exception as exc:
            # one broken page must not take the rest of the run down
            reason = f"{type(exc).__name__}: {exc}"
            log.error(f"Skipped {relative.as_posix()}: {reason}")
            return PageResult(
                source=path,
                status=SKIPPED,
                reason=reason,
                warnings=list(scope.warnings),
            )
        finally:
            scope.registry.reset()
        log.done(relative.as_posix())
        return PageResult(
            source=path,
            status=BUILT,
            output=output,
            warnings=list(scope.warnings),
            links=sorted(rewriter.inventory),
        )

    def _prepare_output(self, clean_output: bool) -> None:
        output_dir = self.build_info.output_folder
        base_folder = self.build_info.base_folder
        if output_dir == base_folder or output_dir in base_folder.parents:
            raise BuildError(f"Output directory {output_dir} would overwrite the sources")
        try:
            if clean_output:
                ensure_clean_dir(output_dir)
            else:
                output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise BuildError(f"Cannot prepare output directory {output_dir}: {exc}") from exc


def build_site(project_root: Path, clean_output: bool = True, **overrides: Any) -> BuildResult:
    """Build a project.

    Args:
        project_root: Directory holding tessera.yaml and the sources.
        clean_output: Whether to empty the output directory first.
        **overrides: Configuration keys overriding tessera.yaml (None is ignored).

    Returns:
        BuildResult of the run.

    Raises:
        ConfigError: If the configuration is invalid.
        BuildError: If the output directory cannot be prepared.
    """
    build_info = load_build_info(project_root, **overrides)
    return BuildOrchestrator(build_info).run(clean_output=clean_output)
