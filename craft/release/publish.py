"""Publish coordinator: ship an already prepared release branch to every target."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from craft.core.config import GitHubConfig
from craft.core.context import ExecutionContext
from craft.core.result import Err, Ok, Result
from craft.core.structured import get_str
from craft.git.repository import DEFAULT_REMOTE, RepositoryProtocol
from craft.github.client import GitHubClient
from craft.release.branch import release_branch_name
from craft.release.errors import ReleaseError
from craft.targets.base import BaseTarget


def publish_command(version: str) -> str:
    return f"craft publish {version}"


@dataclass(frozen=True, slots=True)
class PublishOptions:
    """Switches of ``craft publish``.

    Attributes:
        keep_branch: Do not delete the release branch afterwards
        keep_downloads: Leave the downloaded artifacts on disk
        skip_status_check: Publish even if commit statuses are not green
        skip_merge: Do not merge the release branch into the default branch
    """

    keep_branch: bool = False
    keep_downloads: bool = False
    skip_status_check: bool = False
    skip_merge: bool = False


def resolve_release_revision(
    *, repo: RepositoryProtocol, version: str, ctx: ExecutionContext
) -> Result[str, ReleaseError]:
    """Commit sha of ``release/<version>``, remote-tracking ref first."""
    branch = release_branch_name(version)
    for ref in (f"{DEFAULT_REMOTE}/{branch}", branch):
        head = repo.rev_parse(ref)
        match head:
            case Ok(sha):
                ctx.debug(f"Revision of {ref}: {sha}")
                return Ok(sha)
            case Err(e) if e.kind == "unknown_revision":
                continue
            case Err(e):
                return Err(
                    ReleaseError(kind="git_failed", message=f"cannot resolve {ref}", hint=e.message)
                )

    if ctx.dry_run:
        head = repo.rev_parse("HEAD")
        if isinstance(head, Ok):
            ctx.skip(f"Release branch {branch} does not exist, using HEAD ({head.value[:12]})")
            return Ok(head.value)

    return Err(
        ReleaseError(
            kind="git_failed",
            message=f"Release branch not found: {branch}",
            hint=f"craft release {version}",
        )
    )


def check_revision_status(
    *,
    client: GitHubClient,
    github: GitHubConfig,
    revision: str,
    ctx: ExecutionContext,
) -> Result[None, ReleaseError]:
    """Require the combined commit status of ``revision`` to be green."""
    ctx.console.info(f"Checking the status of revision {revision[:12]}...")
    result = client.get_combined_status(github.owner, github.repo, revision)
    if isinstance(result, Err):
        return Err(
            ReleaseError(
                kind="remote_api_failed",
                message=f"cannot fetch commit status for {revision}",
                hint=str(result.error),
            )
        )

    state = get_str(result.value, "state") or "unknown"
    if state != "success":
        return Err(
            ReleaseError(
                kind="status_check_failed",
                message=f"Revision {revision[:12]} has status checks in state: {state}",
                hint="Wait for the checks to pass, or rerun with --skip-status-check",
            )
        )
    return Ok(None)


def merge_release_branch(
    *,
    repo: RepositoryProtocol,
    version: str,
    default_branch: str,
    ctx: ExecutionContext,
) -> Result[None, ReleaseError]:
    branch = release_branch_name(version)
    ctx.console.info(f"Merging {branch} into {default_branch}...")
    if ctx.dry_run:
        ctx.skip(f"Not merging {branch} into {default_branch}")
        return Ok(None)

    for step, action in (
        ("checkout", lambda: repo.checkout(default_branch)),
        ("merge", lambda: repo.merge(branch, message=f"Merge branch '{branch}'")),
        ("push", lambda: repo.push(DEFAULT_REMOTE, default_branch)),
    ):
        outcome = action()
        if isinstance(outcome, Err):
            return Err(
                ReleaseError(
                    kind="git_failed",
                    message=f"{step} failed while merging {branch}",
                    hint=outcome.error.message,
                )
            )
    return Ok(None)


def remove_release_branch(
    *, repo: RepositoryProtocol, version: str, ctx: ExecutionContext
) -> Result[None, ReleaseError]:
    branch = release_branch_name(version)
    ctx.console.info(f"Removing the release branch {branch}...")
    if ctx.dry_run:
        ctx.skip(f"Not deleting {branch}")
        return Ok(None)

    if isinstance(repo.rev_parse(branch), Ok):
        local = repo.delete_branch(branch)
        if isinstance(local, Err):
            return Err(
                ReleaseError(kind="git_failed", message=f"cannot delete {branch}", hint=local.error.message)
            )
    remote = repo.delete_remote_branch(DEFAULT_REMOTE, branch)
    if isinstance(remote, Err):
        return Err(
            ReleaseError(
                kind="git_failed",
                message=f"cannot delete {DEFAULT_REMOTE}/{branch}",
                hint=remote.error.message,
            )
        )
    return Ok(None)


def discard_downloads(*, targets: Sequence[BaseTarget], ctx: ExecutionContext, keep: bool) -> None:
    """Remove the artifacts downloaded by ``targets``, once per provider."""
    if keep:
        ctx.console.info("Keeping the downloaded artifacts")
        return
    providers = {id(t.artifact_provider): t.artifact_provider for t in targets}
    for provider in providers.values():
        try:
            provider.cleanup()
        except OSError as e:
            ctx.console.warning(f"Cannot remove the downloaded artifacts: {e}")


def publish_release(
    *,
    version: str,
    repo: RepositoryProtocol,
    targets: Sequence[BaseTarget],
    ctx: ExecutionContext,
    default_branch: str,
    client: GitHubClient | None = None,
    github: GitHubConfig | None = None,
    options: PublishOptions = PublishOptions(),
) -> Result[str, ReleaseError]:
    """Publish ``version`` to every target, then tidy up the release branch.

    Targets run one after another in configuration order. Returns the
    published revision.
    """
    ctx.console.header(f"Publishing version {version}")
    revision = resolve_release_revision(repo=repo, version=version, ctx=ctx)
    if isinstance(revision, Err):
        return revision
    sha = revision.value

    if options.skip_status_check:
        ctx.console.warning("Skipping the status checks for the revision")
    elif client is None or github is None:
        ctx.console.warning("No [github] configuration, cannot verify status checks")
    else:
        checked = check_revision_status(client=client, github=github, revision=sha, ctx=ctx)
        if isinstance(checked, Err):
            return checked

    try:
        for target in targets:
            published = target.publish(version, sha)
            if isinstance(published, Err):
                return published
    finally:
        discard_downloads(targets=targets, ctx=ctx, keep=options.keep_downloads)

    if not options.skip_merge:
        merged = merge_release_branch(
            repo=repo, version=version, default_branch=default_branch, ctx=ctx
        )
        if isinstance(merged, Err):
            return merged

    if options.keep_branch:
        ctx.console.info(f"Keeping the release branch {release_branch_name(version)}")
    else:
        removed = remove_release_branch(repo=repo, version=version, ctx=ctx)
        if isinstance(removed, Err):
            return removed

    ctx.console.success(f"Version {version} has been published.")
    return Ok(sha)
