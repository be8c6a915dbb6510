from __future__ import annotations

from craft.core.context import ExecutionContext
from craft.core.result import Err, Ok, Result
from craft.git.repository import RepositoryProtocol, RepositoryState
from craft.release.errors import ReleaseError


def check_releasable(
    *,
    repo: RepositoryProtocol,
    default_branch: str,
    ctx: ExecutionContext,
) -> Result[None, ReleaseError]:
    """Fail fast unless the working tree can safely be branched for a release.

    Checks run in order and the first failure wins: is a repository, is on
    the default branch, has no pending changes, has nothing unpushed. The
    status is read fresh on every call. Dry-run does not skip any of this.
    """
    ctx.console.info("Checking the local repository status...")
    if not repo.is_repository():
        return Err(
            ReleaseError(
                kind="not_a_repository",
                message=f"Not a git repository: {ctx.repo_root}",
                hint="Run craft from the root of the project checkout.",
            )
        )

    status = repo.status()
    if isinstance(status, Err):
        return Err(
            ReleaseError(
                kind="git_failed",
                message="failed to read repository status",
                hint=status.error.message,
            )
        )
    state = status.value
    ctx.debug(f"Repository status: {_describe(state)}")

    if state.current_branch != default_branch:
        return Err(
            ReleaseError(
                kind="wrong_branch",
                message=f"Please switch to your default branch ({default_branch}) first",
                hint=f"git checkout {default_branch}",
            )
        )

    if state.is_dirty:
        return Err(
            ReleaseError(
                kind="dirty_working_tree",
                message="Your repository is in a dirty state.",
                hint="Please stash or commit the pending changes.",
            )
        )

    if state.ahead > 0:
        return Err(
            ReleaseError(
                kind="unpushed_commits",
                message=(
                    "Your repository has unpushed changes: "
                    f"the current branch is {state.ahead} commits ahead."
                ),
                hint=f"git push origin {default_branch}",
            )
        )

    return Ok(None)


def _describe(state: RepositoryState) -> str:
    parts = [f"branch={state.current_branch or '(detached)'}", f"ahead={state.ahead}"]
    for name in ("conflicted", "created", "deleted", "modified", "renamed", "staged"):
        paths: tuple[str, ...] = getattr(state, name)
        if paths:
            parts.append(f"{name}={len(paths)}")
    return " ".join(parts)
