"""Publish command - ship a prepared release branch to every target."""

from __future__ import annotations

import typer

from craft.artifacts.local import FilesystemArtifactProvider
from craft.cli.commands._helpers import exit_release
from craft.cli.context import CLIContext, build_context
from craft.core.result import Err, Result
from craft.release.coordinator import resolve_default_branch
from craft.release.errors import ReleaseError
from craft.release.publish import PublishOptions, publish_command, publish_release
from craft.release.version import validate_version
from craft.targets import build_targets


def run_publish(
    ctx: CLIContext, version: str, options: PublishOptions = PublishOptions()
) -> Result[str, ReleaseError]:
    """Publish ``version`` with everything taken from ``ctx``."""
    valid = validate_version(version)
    if isinstance(valid, Err):
        return valid

    execution = ctx.execution
    provider = FilesystemArtifactProvider(ctx.repo_root / ctx.project.artifacts.path)
    targets = build_targets(
        project=ctx.project, artifact_provider=provider, ctx=execution, client=ctx.client
    )
    if isinstance(targets, Err):
        return targets

    return publish_release(
        version=valid.value,
        repo=ctx.repo,
        targets=targets.value,
        ctx=execution,
        default_branch=resolve_default_branch(project=ctx.project, client=ctx.client, ctx=execution),
        client=ctx.client,
        github=ctx.project.github,
        options=options,
    )


def publish(
    version: str = typer.Argument(..., help="Version to publish (e.g. 1.4.0)"),
    keep_branch: bool = typer.Option(False, "--keep-branch", help="Do not remove the release branch"),
    keep_downloads: bool = typer.Option(
        False, "--keep-downloads", help="Do not remove the downloaded artifacts"
    ),
    skip_status_check: bool = typer.Option(
        False, "--skip-status-check", help="Do not wait for green commit statuses"
    ),
    skip_merge: bool = typer.Option(
        False, "--skip-merge", help="Do not merge the release branch into the default branch"
    ),
) -> None:
    """Publish a prepared release to the configured targets."""
    ctx = build_context()
    options = PublishOptions(
        keep_branch=keep_branch,
        keep_downloads=keep_downloads,
        skip_status_check=skip_status_check,
        skip_merge=skip_merge,
    )
    result = run_publish(ctx, version, options)
    if isinstance(result, Err):
        ctx.console.print("Fix the issue and rerun the publish step:")
        ctx.console.command(publish_command(version))
        exit_release(result.error, ctx.console)
