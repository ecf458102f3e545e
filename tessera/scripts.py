"""Per-page component script registry for Tessera.

A component's scripts must appear once on a page no matter how many times the
component is instanced there, and again on the next page that uses it. The registry
records which components already had their scripts emitted on the current page.
"""

from __future__ import annotations

from collections.abc import Hashable


class ComponentScriptRegistry:
    """Tracks which component scripts were emitted during one page compile.

    A registry belongs to a single top-level compile. `reset()` is called once that
    page has been resolved and serialized, never in between.
    """

    def __init__(self) -> None:
        self._emitted: dict[Hashable, None] = {}

    def has_emitted(self, component_id: Hashable) -> bool:
        return component_id in self._emitted

    def mark_emitted(self, component_id: Hashable) -> None:
        self._emitted.setdefault(component_id, None)

    def reset(self) -> None:
        self._emitted.clear()

    @property
    def emitted(self) -> tuple[Hashable, ...]:
        """Component identities in emission order."""
        return tuple(self._emitted)

    def __len__(self) -> int:
        return len(self._emitted)
