"""Release coordinator: prepare a release branch for a new version.

The run is a strictly linear state machine::

    IDLE -> GUARD_CHECKED -> BRANCH_CREATED -> PRE_RELEASE_RUN
         -> COMMITTED -> PUSHED -> DONE | PUBLISH_HANDOFF

A failing step stops the run where it is. Nothing is rolled back: the branch
and commit stay in place so the operator can inspect and resume by hand.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto

from craft.core.config import ProjectConfig
from craft.core.context import ExecutionContext
from craft.core.result import Err, Ok, Result
from craft.core.structured import get_str
from craft.git.repository import RepositoryProtocol
from craft.github.client import GitHubClient
from craft.platform.process import run_streaming
from craft.release.branch import commit_release, create_release_branch, push_release_branch
from craft.release.errors import ReleaseError
from craft.release.guard import check_releasable
from craft.release.hook import StreamingRunner, run_pre_release_command
from craft.release.publish import publish_command
from craft.release.version import validate_version

SLEEP_BEFORE_PUBLISH_SECONDS = 30
FALLBACK_DEFAULT_BRANCH = "main"

PublishStep = Callable[[str], Result[object, ReleaseError]]


class ReleaseState(Enum):
    IDLE = auto()
    GUARD_CHECKED = auto()
    BRANCH_CREATED = auto()
    PRE_RELEASE_RUN = auto()
    COMMITTED = auto()
    PUSHED = auto()
    DONE = auto()
    PUBLISH_HANDOFF = auto()

    def __str__(self) -> str:
        return self.name.lower()


@dataclass(frozen=True, slots=True)
class ReleaseOptions:
    """Switches of ``craft release``.

    Attributes:
        skip_push: Leave the release branch local and print the push command
        publish: Run the publish step right after preparing the branch
    """

    skip_push: bool = False
    publish: bool = False


def resolve_default_branch(
    *,
    project: ProjectConfig,
    client: GitHubClient | None,
    ctx: ExecutionContext,
) -> str:
    """Configured default branch, else the remote's, else ``main``."""
    if project.default_branch:
        return project.default_branch
    if client is not None and project.github is not None:
        result = client.get_repository(project.github.owner, project.github.repo)
        if isinstance(result, Ok):
            branch = get_str(result.value, "default_branch")
            if branch:
                ctx.debug(f"Default branch for the repo: {branch}")
                return branch
        else:
            ctx.console.warning(f"Cannot fetch the default branch: {result.error}")
    return FALLBACK_DEFAULT_BRANCH


class ReleaseCoordinator:
    """Drive one ``craft release`` run.

    ``publish`` is called with the version when the caller opted into
    immediate publishing; ``sleep`` and ``hook_runner`` are injectable so
    tests do not wait or spawn processes.
    """

    def __init__(
        self,
        *,
        repo: RepositoryProtocol,
        ctx: ExecutionContext,
        default_branch: str,
        pre_release_command: str | None = None,
        publish: PublishStep | None = None,
        sleep: Callable[[float], None] = time.sleep,
        hook_runner: StreamingRunner = run_streaming,
    ) -> None:
        self.repo = repo
        self.ctx = ctx
        self.default_branch = default_branch
        self.pre_release_command = pre_release_command
        self.publish = publish
        self.sleep = sleep
        self.hook_runner = hook_runner
        self.state = ReleaseState.IDLE
        self.history: list[ReleaseState] = [ReleaseState.IDLE]

    def _advance(self, state: ReleaseState) -> None:
        self.state = state
        self.history.append(state)
        self.ctx.debug(f"release state: {state}")

    def run(
        self, version: str, options: ReleaseOptions = ReleaseOptions()
    ) -> Result[ReleaseState, ReleaseError]:
        """Prepare ``version``; returns the final state reached."""
        console = self.ctx.console
        if self.ctx.dry_run:
            self.ctx.skip("Dry-run mode is on!")

        valid = validate_version(version)
        if isinstance(valid, Err):
            return valid
        version = valid.value

        guard = check_releasable(repo=self.repo, default_branch=self.default_branch, ctx=self.ctx)
        if isinstance(guard, Err):
            return guard
        self._advance(ReleaseState.GUARD_CHECKED)

        console.info(f"Preparing to release the version: {version}")
        branch = create_release_branch(repo=self.repo, version=version, ctx=self.ctx)
        if isinstance(branch, Err):
            return branch
        self._advance(ReleaseState.BRANCH_CREATED)

        hook = run_pre_release_command(
            new_version=version,
            ctx=self.ctx,
            command=self.pre_release_command,
            runner=self.hook_runner,
        )
        if isinstance(hook, Err):
            return hook
        self._advance(ReleaseState.PRE_RELEASE_RUN)

        committed = commit_release(repo=self.repo, version=version, ctx=self.ctx)
        if isinstance(committed, Err):
            return committed
        self._advance(ReleaseState.COMMITTED)

        pushed = push_release_branch(
            repo=self.repo, branch=branch.value, ctx=self.ctx, push=not options.skip_push
        )
        if isinstance(pushed, Err):
            return pushed
        self._advance(ReleaseState.PUSHED)

        if not options.publish:
            console.success('Done. Do not forget to run "craft publish" to publish the artifacts:')
            console.command(publish_command(version))
            self._advance(ReleaseState.DONE)
            return Ok(self.state)

        self._advance(ReleaseState.PUBLISH_HANDOFF)
        return self._hand_off(version)

    def _hand_off(self, version: str) -> Result[ReleaseState, ReleaseError]:
        console = self.ctx.console
        console.info('Running the "publish" command...')
        console.info(f"Sleeping for {SLEEP_BEFORE_PUBLISH_SECONDS} seconds before publishing...")
        if self.ctx.dry_run:
            self.ctx.skip("Not wasting time on sleep")
        else:
            self.sleep(SLEEP_BEFORE_PUBLISH_SECONDS)

        if self.publish is None:
            return self._publish_failed(
                version, ReleaseError(kind="publish_failed", message="no publish step configured")
            )

        try:
            result = self.publish(version)
        except Exception as e:  # noqa: BLE001
            result = Err(ReleaseError(kind="publish_failed", message=f"{type(e).__name__}: {e}"))

        if isinstance(result, Err):
            return self._publish_failed(version, result.error)
        return Ok(self.state)

    def _publish_failed(self, version: str, error: ReleaseError) -> Err[ReleaseError]:
        console = self.ctx.console
        console.error(error.pretty())
        console.print(
            'There was an error running "publish". Fix the issue and run the command manually:'
        )
        console.command(publish_command(version))
        return Err(ReleaseError(kind=error.kind, message=error.message, hint=publish_command(version)))
