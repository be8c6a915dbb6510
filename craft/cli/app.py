from __future__ import annotations

import os

import typer

from craft import __version__
from craft.cli.commands.publish_cmd import publish
from craft.cli.commands.release_cmd import release
from craft.cli.context import DRY_RUN_ENV

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands
app.command()(release)
app.command()(publish)


def _show_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False, "--version", callback=_show_version, is_eager=True, help="Show version and exit."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Print what would happen without changing anything."
    ),
) -> None:
    if dry_run:
        os.environ[DRY_RUN_ENV] = "1"


def main() -> None:
    app()
