"""Tests for craft.release.coordinator module."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

from craft.core.config import GitHubConfig, ProjectConfig
from craft.core.context import ExecutionContext
from craft.core.result import Err, Ok, Result
from craft.git.repository import GitError, MockRepository, RepositoryState
from craft.github.client import GitHubApiError, MockGitHubClient
from craft.output.console import MockConsole
from craft.platform.process import ProcessError
from craft.release.coordinator import (
    SLEEP_BEFORE_PUBLISH_SECONDS,
    ReleaseCoordinator,
    ReleaseOptions,
    ReleaseState,
    resolve_default_branch,
)
from craft.release.errors import ReleaseError


class FakeHook:
    def __init__(self, returncode: int = 0) -> None:
        self.returncode = returncode
        self.calls: list[list[str]] = []

    def __call__(
        self, cmd: list[str], cwd: Path, env: Mapping[str, str] | None = None
    ) -> Result[int, ProcessError]:
        self.calls.append(cmd)
        if self.returncode:
            return Err(ProcessError(tuple(cmd), self.returncode, "", ""))
        return Ok(0)


class Harness:
    def __init__(
        self,
        *,
        dry_run: bool = False,
        repo: MockRepository | None = None,
        hook: FakeHook | None = None,
        publish_result: Result[object, ReleaseError] | None = None,
        publish_raises: Exception | None = None,
    ) -> None:
        self.console = MockConsole()
        self.repo = repo or MockRepository()
        self.hook = hook or FakeHook()
        self.sleeps: list[float] = []
        self.published: list[str] = []
        self.publish_result = publish_result or Ok("sha")
        self.publish_raises = publish_raises
        self.ctx = ExecutionContext(repo_root=Path("/work"), console=self.console, dry_run=dry_run)
        self.coordinator = ReleaseCoordinator(
            repo=self.repo,
            ctx=self.ctx,
            default_branch="main",
            publish=self._publish,
            sleep=self.sleeps.append,
            hook_runner=self.hook,
        )

    def _publish(self, version: str) -> Result[object, ReleaseError]:
        self.published.append(version)
        if self.publish_raises is not None:
            raise self.publish_raises
        return self.publish_result


class TestReleaseRun:
    def test_full_release(self) -> None:
        h = Harness()

        result = h.coordinator.run("1.4.0")

        assert result == Ok(ReleaseState.DONE)
        assert h.repo.state.current_branch == "release/1.4.0"
        assert h.repo.commits == ["release: 1.4.0"]
        assert h.repo.pushed == [("origin", "release/1.4.0", True)]
        assert h.hook.calls[0][-2:] == ["", "1.4.0"]
        assert h.coordinator.history == [
            ReleaseState.IDLE,
            ReleaseState.GUARD_CHECKED,
            ReleaseState.BRANCH_CREATED,
            ReleaseState.PRE_RELEASE_RUN,
            ReleaseState.COMMITTED,
            ReleaseState.PUSHED,
            ReleaseState.DONE,
        ]
        assert h.console.commands == ["craft publish 1.4.0"]
        assert h.published == []

    def test_operation_order(self) -> None:
        h = Harness()
        h.coordinator.run("1.4.0")

        mutating = [
            op for op in h.repo.operations if op in {"checkout_new_branch", "commit_all", "push"}
        ]
        assert mutating == ["checkout_new_branch", "commit_all", "push"]

    def test_invalid_version_touches_nothing(self) -> None:
        h = Harness()

        result = h.coordinator.run("1.4")

        assert isinstance(result, Err)
        assert result.error.kind == "invalid_version"
        assert h.repo.calls == []
        assert h.coordinator.state == ReleaseState.IDLE

    def test_version_part_is_unsupported(self) -> None:
        result = Harness().coordinator.run("minor")

        assert isinstance(result, Err)
        assert result.error.kind == "unsupported_version_part"

    def test_dirty_tree_stops_before_branch(self) -> None:
        repo = MockRepository(state=RepositoryState(current_branch="main", modified=("a.py",)))
        h = Harness(repo=repo)

        result = h.coordinator.run("1.4.0")

        assert isinstance(result, Err)
        assert result.error.kind == "dirty_working_tree"
        assert "checkout_new_branch" not in repo.operations
        assert h.hook.calls == []

    def test_existing_branch_stops(self) -> None:
        repo = MockRepository(branches={"main": "a" * 40, "release/1.4.0": "b" * 40})
        h = Harness(repo=repo)

        result = h.coordinator.run("1.4.0")

        assert isinstance(result, Err)
        assert result.error.kind == "branch_exists"
        assert h.coordinator.state == ReleaseState.GUARD_CHECKED
        assert h.hook.calls == []

    def test_hook_failure_stops_without_rollback(self) -> None:
        h = Harness(hook=FakeHook(returncode=1))

        result = h.coordinator.run("1.4.0")

        assert isinstance(result, Err)
        assert result.error.kind == "hook_failed"
        assert h.coordinator.state == ReleaseState.BRANCH_CREATED
        assert h.repo.commits == []
        assert h.repo.state.current_branch == "release/1.4.0"

    def test_push_failure(self) -> None:
        repo = MockRepository()
        repo.fail_on["push"] = GitError(kind="failed", command="push", message="denied")
        h = Harness(repo=repo)

        result = h.coordinator.run("1.4.0")

        assert isinstance(result, Err)
        assert result.error.kind == "git_failed"
        assert h.coordinator.state == ReleaseState.COMMITTED

    def test_skip_push(self) -> None:
        h = Harness()

        result = h.coordinator.run("1.4.0", ReleaseOptions(skip_push=True))

        assert result == Ok(ReleaseState.DONE)
        assert h.repo.pushed == []
        assert h.console.commands == ['git push -u origin "release/1.4.0"', "craft publish 1.4.0"]

    def test_dry_run_mutates_nothing(self) -> None:
        h = Harness(dry_run=True)

        result = h.coordinator.run("1.4.0")

        assert result == Ok(ReleaseState.DONE)
        assert set(h.repo.operations) <= {"is_repository", "status", "rev_parse"}
        assert h.repo.commits == []
        assert h.repo.pushed == []
        assert h.hook.calls == []
        assert h.console.find("[dry-run] Dry-run mode is on!")


class TestPublishHandoff:
    def test_publish_after_sleep(self) -> None:
        h = Harness()

        result = h.coordinator.run("1.4.0", ReleaseOptions(publish=True))

        assert result == Ok(ReleaseState.PUBLISH_HANDOFF)
        assert h.sleeps == [SLEEP_BEFORE_PUBLISH_SECONDS]
        assert h.published == ["1.4.0"]

    def test_dry_run_does_not_sleep(self) -> None:
        h = Harness(dry_run=True)

        result = h.coordinator.run("1.4.0", ReleaseOptions(publish=True))

        assert result == Ok(ReleaseState.PUBLISH_HANDOFF)
        assert h.sleeps == []
        assert h.published == ["1.4.0"]
        assert h.console.find("[dry-run] Not wasting time on sleep")

    def test_publish_error_prints_retry_command(self) -> None:
        failure = ReleaseError(kind="max_retries_reached", message="gave up")
        h = Harness(publish_result=Err(failure))

        result = h.coordinator.run("1.4.0", ReleaseOptions(publish=True))

        assert isinstance(result, Err)
        assert result.error.kind == "max_retries_reached"
        assert result.error.hint == "craft publish 1.4.0"
        assert h.console.commands == ["craft publish 1.4.0"]
        assert h.console.has_error()

    def test_publish_exception_is_reported(self) -> None:
        h = Harness(publish_raises=RuntimeError("network down"))

        result = h.coordinator.run("1.4.0", ReleaseOptions(publish=True))

        assert isinstance(result, Err)
        assert result.error.kind == "publish_failed"
        assert "network down" in result.error.message
        assert h.console.commands == ["craft publish 1.4.0"]

    def test_no_publish_step(self) -> None:
        console = MockConsole()
        coordinator = ReleaseCoordinator(
            repo=MockRepository(),
            ctx=ExecutionContext(repo_root=Path("/work"), console=console),
            default_branch="main",
            sleep=lambda _: None,
            hook_runner=FakeHook(),
        )

        result = coordinator.run("1.4.0", ReleaseOptions(publish=True))

        assert isinstance(result, Err)
        assert result.error.kind == "publish_failed"


class TestResolveDefaultBranch:
    def _ctx(self) -> ExecutionContext:
        return ExecutionContext(repo_root=Path("/work"), console=MockConsole())

    def test_configured_wins(self) -> None:
        client = MockGitHubClient(default_branch="trunk")
        project = ProjectConfig(github=GitHubConfig("acme", "widget"), default_branch="develop")

        assert resolve_default_branch(project=project, client=client, ctx=self._ctx()) == "develop"
        assert client.calls == []

    def test_from_remote(self) -> None:
        client = MockGitHubClient(default_branch="trunk")
        project = ProjectConfig(github=GitHubConfig("acme", "widget"))

        assert resolve_default_branch(project=project, client=client, ctx=self._ctx()) == "trunk"

    def test_fallback(self) -> None:
        client = MockGitHubClient()
        client.fail["get_repository"] = GitHubApiError(url="u", status=500, message="oops")
        project = ProjectConfig(github=GitHubConfig("acme", "widget"))

        assert resolve_default_branch(project=project, client=client, ctx=self._ctx()) == "main"
        assert resolve_default_branch(project=ProjectConfig(), client=None, ctx=self._ctx()) == "main"
