"""Live-reload snippet injection for Tessera.

Development builds append a small script to every page that listens on a WebSocket
and reloads the page when told to. Serving that socket is left to the development
server; production builds use NullInjector.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .html_utils import append_content

if TYPE_CHECKING:
    from .html_utils import ResolvedTree

RELOAD_SCRIPT_TEMPLATE = """<script>
(() => {{
  const ws = new WebSocket('ws://' + location.hostname + ':{ws_port}');
  ws.onmessage = (event) => {{
    const data = JSON.parse(event.data || '{{}}');
    if (data.type === 'reload') location.reload();
  }};
}})();
</script>"""


class WebSocketReloadInjector:
    """Appends the live-reload script to the end of each page body."""

    def __init__(self, ws_port: int = 4001):
        self.ws_port = ws_port
        self.script = RELOAD_SCRIPT_TEMPLATE.format(ws_port=ws_port)

    def inject(self, tree: ResolvedTree) -> ResolvedTree:
        container = tree.parse_content(self.script)
        container.text = "\n" + (container.text or "")
        append_content(tree.insertion_point(), container)
        return tree


class NullInjector:
    """Leaves pages untouched."""

    def inject(self, tree: ResolvedTree) -> ResolvedTree:
        return tree
