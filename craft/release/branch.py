"""Release branch creation, commit and push."""

from __future__ import annotations

from craft.core.context import ExecutionContext
from craft.core.result import Err, Ok, Result
from craft.git.repository import DEFAULT_REMOTE, GitError, RepositoryProtocol
from craft.release.errors import ReleaseError

RELEASE_BRANCH_PREFIX = "release/"


def release_branch_name(version: str) -> str:
    return f"{RELEASE_BRANCH_PREFIX}{version}"


def release_commit_message(version: str) -> str:
    return f"release: {version}"


def push_command(branch: str, remote: str = DEFAULT_REMOTE) -> str:
    return f'git push -u {remote} "{branch}"'


def _git_failed(message: str, error: GitError) -> Err[ReleaseError]:
    return Err(ReleaseError(kind="git_failed", message=message, hint=error.message))


def create_release_branch(
    *,
    repo: RepositoryProtocol,
    version: str,
    ctx: ExecutionContext,
) -> Result[str, ReleaseError]:
    """Create and check out ``release/<version>``.

    An existing branch is a hard stop: releasing on top of it could ship
    content that differs from what is being prepared now. The existence
    check runs in dry-run too; only the checkout is skipped.
    """
    branch = release_branch_name(version)

    head = repo.rev_parse(branch)
    match head:
        case Ok(sha):
            return Err(
                ReleaseError(
                    kind="branch_exists",
                    message=f"Branch already exists: {branch}",
                    hint=f"Delete it or release a different version (points at {sha[:12]})",
                )
            )
        case Err(e) if e.kind != "unknown_revision":
            return _git_failed(f"failed to look up {branch}", e)
        case _:
            pass

    if ctx.dry_run:
        ctx.skip("Not creating a new release branch")
        return Ok(branch)

    created = repo.checkout_new_branch(branch)
    if isinstance(created, Err):
        return _git_failed(f"failed to create {branch}", created.error)
    ctx.console.success(f"Created a new release branch: {branch}")
    return Ok(branch)


def commit_release(
    *,
    repo: RepositoryProtocol,
    version: str,
    ctx: ExecutionContext,
) -> Result[None, ReleaseError]:
    """Commit every tracked modification with ``release: <version>``."""
    message = release_commit_message(version)
    ctx.console.info("Committing the release changes...")
    ctx.debug(f'Commit message: "{message}"')
    if ctx.dry_run:
        ctx.skip("Not committing the changes.")
        return Ok(None)

    committed = repo.commit_all(message)
    if isinstance(committed, Err):
        return _git_failed("failed to commit the release changes", committed.error)
    if not committed.value:
        ctx.console.info("Nothing to commit, the release branch already has the changes.")
    return Ok(None)


def push_release_branch(
    *,
    repo: RepositoryProtocol,
    branch: str,
    ctx: ExecutionContext,
    push: bool = True,
) -> Result[None, ReleaseError]:
    """Push ``branch`` with upstream tracking, or tell the operator how to."""
    if not push:
        ctx.console.info("Not pushing the release branch.")
        ctx.console.print("You can push this branch later using the following command:")
        ctx.console.command(push_command(branch))
        return Ok(None)

    ctx.console.info(f'Pushing the release branch "{branch}"...')
    if ctx.dry_run:
        ctx.skip("Not pushing the release branch.")
        return Ok(None)

    pushed = repo.push(DEFAULT_REMOTE, branch, set_upstream=True)
    if isinstance(pushed, Err):
        return Err(
            ReleaseError(
                kind="git_failed",
                message=f"failed to push {branch}",
                hint=push_command(branch),
            )
        )
    return Ok(None)
