from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from craft.core.config import CONFIG_FILE_NAME, ProjectConfig, load_project_config_or_default
from craft.core.context import ExecutionContext
from craft.core.errors import ErrorCode
from craft.core.result import Err
from craft.git.repository import Repository, RepositoryProtocol
from craft.github.client import GitHubClient, RealGitHubClient, token_from_env
from craft.output.console import ConsoleProtocol, RichConsole

DRY_RUN_ENV = "CRAFT_DRY_RUN"
_TRUTHY = frozenset({"1", "true", "yes", "on"})


def dry_run_from_env() -> bool:
    return os.environ.get(DRY_RUN_ENV, "").strip().lower() in _TRUTHY


@dataclass(frozen=True, slots=True)
class CLIContext:
    repo_root: Path
    project: ProjectConfig
    console: ConsoleProtocol
    repo: RepositoryProtocol
    client: GitHubClient
    dry_run: bool = False

    @property
    def execution(self) -> ExecutionContext:
        return ExecutionContext(repo_root=self.repo_root, console=self.console, dry_run=self.dry_run)


def build_context() -> CLIContext:
    root = Path.cwd()
    config_result = load_project_config_or_default(root / CONFIG_FILE_NAME)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    return CLIContext(
        repo_root=root,
        project=config_result.value,
        console=RichConsole(),
        repo=Repository(root),
        client=RealGitHubClient(token_from_env()),
        dry_run=dry_run_from_env(),
    )
