"""Tests for craft.core.context module."""

from pathlib import Path

from craft.core.context import DRY_RUN_PREFIX, ExecutionContext
from craft.output.console import MockConsole, Style


def test_skip_prefixes_dry_run() -> None:
    console = MockConsole()
    ctx = ExecutionContext(repo_root=Path("."), console=console, dry_run=True)

    ctx.skip("Not pushing")

    assert console.messages == [f"{DRY_RUN_PREFIX} Not pushing"]
    assert console.outputs[0].style == Style.WARNING


def test_debug_is_dim() -> None:
    console = MockConsole()
    ExecutionContext(repo_root=Path("."), console=console).debug("details")

    assert console.outputs[0].style == Style.DIM


def test_dry_run_defaults_off() -> None:
    assert ExecutionContext(repo_root=Path("."), console=MockConsole()).dry_run is False
