"""Tessera static-site template compiler.

This package compiles a tree of HTML and Markdown source files into finished HTML pages.
Pages are assembled from reusable components: `<include>` references are resolved
recursively, each component's scripts are emitted once per page, internal links are
rewritten for the output layout, and templating expressions survive untouched.

The main entry point is the CLI module, which provides the `build` command.

Architecture:
- compiler: recursive template resolution and component instancing
- renderers: Markdown conversion that shields templating expressions
- links: output-root-relative link rewriting
- build: entry discovery and per-page result collection
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
