"""Execution context threaded through every mutating operation."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from craft.output.console import ConsoleProtocol, Style

__all__ = ["ExecutionContext", "DRY_RUN_PREFIX"]

DRY_RUN_PREFIX = "[dry-run]"


@dataclass(frozen=True, slots=True)
class ExecutionContext:
    """Run-wide settings for one release or publish invocation.

    Mutating steps consult ``dry_run`` immediately before acting; read-only
    inspection ignores it so simulated runs still reflect the real state.

    Attributes:
        repo_root: Working tree the pipeline operates on
        console: Operator output
        dry_run: Skip every externally visible mutation
    """

    repo_root: Path
    console: ConsoleProtocol
    dry_run: bool = False

    def skip(self, message: str) -> None:
        """Report a mutation skipped because of dry-run mode."""
        self.console.print(f"{DRY_RUN_PREFIX} {message}", Style.WARNING)

    def debug(self, message: str) -> None:
        self.console.print(message, Style.DIM)
