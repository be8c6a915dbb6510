"""Release command - prepare a release branch, optionally publish it."""

from __future__ import annotations

import typer

from craft.cli.commands._helpers import exit_release
from craft.cli.commands.publish_cmd import run_publish
from craft.cli.context import build_context
from craft.core.result import Err, Result
from craft.release.coordinator import ReleaseCoordinator, ReleaseOptions, resolve_default_branch
from craft.release.errors import ReleaseError


def release(
    version: str = typer.Argument(..., help="New version (e.g. 1.4.0)"),
    skip_push: bool = typer.Option(False, "--skip-push", help="Do not push the release branch"),
    publish: bool = typer.Option(False, "--publish", help="Publish right after preparing"),
) -> None:
    """Prepare a new release branch for VERSION."""
    ctx = build_context()
    execution = ctx.execution

    def publish_step(v: str) -> Result[object, ReleaseError]:
        return run_publish(ctx, v)

    coordinator = ReleaseCoordinator(
        repo=ctx.repo,
        ctx=execution,
        default_branch=resolve_default_branch(project=ctx.project, client=ctx.client, ctx=execution),
        pre_release_command=ctx.project.pre_release_command,
        publish=publish_step,
    )
    result = coordinator.run(version, ReleaseOptions(skip_push=skip_push, publish=publish))
    if isinstance(result, Err):
        exit_release(result.error, ctx.console)
