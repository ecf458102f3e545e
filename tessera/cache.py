"""Compilation cache for Tessera.

One cache lives for a whole build run. Each document is compiled at most once; later
references reuse the compiled markup. A path is marked before its compilation starts,
so a reference back to a document that is still being compiled (directly or through
other documents) is recognised as a cycle and resolves to nothing.

Pages may be compiled on several worker threads. A worker that needs a document
another worker is compiling waits for it, unless that worker is itself waiting on
something this one is compiling; that wait would never end, so it is treated as a
cycle as well.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class ComponentScript:
    """Scripts belonging to one component.

    Attributes:
        component_id: Resolved source path of the component.
        markup: Serialized `<script>` elements of the component.
    """

    component_id: Path
    markup: str


@dataclass(frozen=True)
class CompiledDocument:
    """A fully resolved document, stored serialized.

    Attributes:
        path: Source path of the document.
        html: Resolved markup. The document's own scripts are left in place; scripts
            of components instanced inside it are listed in `scripts` instead.
        is_document: Whether the markup is a full HTML document rather than a fragment.
        scripts: Component scripts required by the document, in first-use order.
        warnings: Problems recovered from while compiling it.
    """

    path: Path
    html: str
    is_document: bool = False
    scripts: tuple[ComponentScript, ...] = ()
    warnings: tuple[str, ...] = ()


class _Entry:
    def __init__(self, owner: int):
        self.owner = owner
        self.done = threading.Event()
        self.document: CompiledDocument | None = None
        self.error: BaseException | None = None


class CompilationCache:
    """Maps absolute document paths to compiled documents for one build run."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[Path, _Entry] = {}
        # worker thread -> path it is waiting for
        self._waiting: dict[int, Path] = {}

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return path in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, path: Path) -> CompiledDocument | None:
        """Return the compiled document for a path if its compilation finished."""
        with self._lock:
            entry = self._entries.get(path)
        if entry is None or not entry.done.is_set():
            return None
        return entry.document

    def compile_once(
        self, path: Path, compile_fn: Callable[[], CompiledDocument]
    ) -> CompiledDocument | None:
        """Return the compiled document for a path, compiling it on first use.

        Args:
            path: Absolute path of the document.
            compile_fn: Compiles the document; called at most once per path.

        Returns:
            The compiled document, or None when the request closes a cycle.

        Raises:
            Exception: Whatever compile_fn raised, for every request of that path.
        """
        me = threading.get_ident()
        with self._lock:
            entry = self._entries.get(path)
            if entry is None:
                entry = self._entries[path] = _Entry(owner=me)
                owner = True
            else:
                owner = False
                if not entry.done.is_set():
                    if entry.owner == me or self._would_deadlock(entry.owner, me):
                        return None
                    self._waiting[me] = path

        if owner:
            try:
                entry.document = compile_fn()
            except BaseException as exc:
                entry.error = exc
                raise
            finally:
                entry.done.set()
            return entry.document

        entry.done.wait()
        with self._lock:
            self._waiting.pop(me, None)
        if entry.error is not None:
            raise entry.error
        return entry.document

    def _would_deadlock(self, owner: int, me: int) -> bool:
        seen: set[int] = set()
        current = owner
        while current in self._waiting and current not in seen:
            seen.add(current)
            current = self._entries[self._waiting[current]].owner
            if current == me:
                return True
        return False
