"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import NoReturn

import typer

from craft.output.console import ConsoleProtocol, Style
from craft.release.errors import ReleaseError, error_code_for


def exit_release(error: ReleaseError, console: ConsoleProtocol) -> NoReturn:
    """Report ``error`` and exit with the code of its kind."""
    console.error(error.message)
    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)
    raise typer.Exit(code=int(error_code_for(error.kind)))
