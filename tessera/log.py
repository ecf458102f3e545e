"""Console log lines for Tessera.

Build progress goes to stdout, problems go to stderr. Colors come from click so
they are stripped automatically when output is not a terminal.
"""

from __future__ import annotations

import click


def compiling(name: str) -> None:
    click.echo(click.style(f">> Compiling {name}", fg="magenta"))


def done(name: str) -> None:
    click.echo(click.style(f"DONE - {name}", fg="bright_black"))


def warning(message: str) -> None:
    click.echo(click.style(f"Warning: {message}", fg="yellow"), err=True)


def error(message: str) -> None:
    click.echo(click.style(message, fg="red", bold=True), err=True)
