"""Command-line interface for Tessera.

Commands:
- build: Compile the site into the output directory.
"""

from __future__ import annotations

from pathlib import Path

import click

from . import __version__


@click.group()
@click.version_option(version=__version__, prog_name="tessera")
def cli():
    """Tessera static site template compiler."""


@cli.command()
@click.option(
    "--project",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Project directory (default: current directory)",
)
@click.option("--input", "input_file", default=None, help="Root input document")
@click.option("--pages-folder", default=None, help="Pages folder under the base folder")
@click.option("--out", "output_dir", default=None, help="Output directory")
@click.option("--static-folder", default=None, help="Static assets folder")
@click.option("--live-reload", is_flag=True, help="Inject the live-reload script")
@click.option("--jobs", type=click.IntRange(min=1), default=None, help="Pages compiled concurrently")
def build(
    project: Path | None,
    input_file: str | None,
    pages_folder: str | None,
    output_dir: str | None,
    static_folder: str | None,
    live_reload: bool,
    jobs: int | None,
):
    """Build the site into the output directory."""
    from .build import build_site
    from .errors import BuildError, ConfigError

    project_root = (project or Path.cwd()).resolve()
    try:
        result = build_site(
            project_root,
            input=input_file,
            pages_folder=pages_folder,
            output_dir=output_dir,
            static_folder=static_folder,
            live_reload=True if live_reload else None,
            jobs=jobs,
        )
    except (BuildError, ConfigError) as exc:
        click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
        click.echo(click.style(f"  Error: {exc}", fg="white"), err=True)
        raise SystemExit(1) from None

    click.echo(f"Built {len(result.built)} pages into {result.output_dir}")
    if result.skipped:
        click.echo(click.style(f"Skipped {len(result.skipped)} pages", fg="yellow"))
        for page in result.skipped:
            click.echo(click.style(f"  {page.reason}", fg="yellow"))


def main():
    """Entry point for the tessera command."""
    cli()
