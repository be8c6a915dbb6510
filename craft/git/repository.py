"""Git repository abstraction.

``Repository`` wraps the ``git`` CLI for the handful of operations the
release pipeline needs. Every call returns a Result; failures carry a
``GitError`` whose ``kind`` tells callers *why* git failed (unknown
revision, not a repository, anything else) so nothing above this layer has
to inspect stderr text.

Usage:
    repo = Repository(Path.cwd())
    match repo.status():
        case Ok(state):
            print(state.current_branch, state.ahead)
        case Err(e):
            print(e.message)
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Protocol

from craft.core.result import Err, Ok, Result
from craft.platform.process import ProcessError
from craft.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0

_CONFLICT_CODES = frozenset({"DD", "AU", "UD", "UA", "DU", "AA", "UU"})

__all__ = [
    "DEFAULT_REMOTE",
    "GitError",
    "GitErrorKind",
    "MockRepository",
    "Repository",
    "RepositoryProtocol",
    "RepositoryState",
    "parse_status",
]

DEFAULT_REMOTE = "origin"

GitErrorKind = Literal["unknown_revision", "not_a_repository", "failed"]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        kind: Failure category
        command: The git subcommand that failed
        message: Error message (stderr, or a summary)
        returncode: Process return code
    """

    kind: GitErrorKind
    command: str
    message: str
    returncode: int = 1


@dataclass(frozen=True, slots=True)
class RepositoryState:
    """Snapshot of the working tree, taken fresh before each decision.

    Attributes:
        current_branch: Checked out branch, None on a detached HEAD
        ahead: Commits ahead of the upstream branch
        behind: Commits behind the upstream branch
        conflicted: Paths with unresolved merge conflicts
        created: Paths newly added to the index
        deleted: Deleted paths (staged or not)
        modified: Modified paths (staged or not)
        renamed: Rename targets
        staged: Every path with staged changes
    """

    current_branch: str | None
    ahead: int = 0
    behind: int = 0
    conflicted: tuple[str, ...] = ()
    created: tuple[str, ...] = ()
    deleted: tuple[str, ...] = ()
    modified: tuple[str, ...] = ()
    renamed: tuple[str, ...] = ()
    staged: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_dirty(self) -> bool:
        """True if any tracked change is pending. Untracked files do not count."""
        return bool(
            self.conflicted
            or self.created
            or self.deleted
            or self.modified
            or self.renamed
            or self.staged
        )


class RepositoryProtocol(Protocol):
    """Version-control operations consumed by the release pipeline."""

    def is_repository(self) -> bool: ...

    def status(self) -> Result[RepositoryState, GitError]: ...

    def rev_parse(self, ref: str) -> Result[str, GitError]: ...

    def checkout_new_branch(self, name: str) -> Result[None, GitError]: ...

    def checkout(self, name: str) -> Result[None, GitError]: ...

    def commit_all(self, message: str) -> Result[bool, GitError]: ...

    def push(
        self, remote: str, ref: str, *, set_upstream: bool = False
    ) -> Result[None, GitError]: ...

    def merge(self, ref: str, *, message: str | None = None) -> Result[None, GitError]: ...

    def delete_branch(self, name: str) -> Result[None, GitError]: ...

    def delete_remote_branch(self, remote: str, name: str) -> Result[None, GitError]: ...


class Repository:
    """Git repository at ``path``, driven through the ``git`` CLI."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def is_repository(self) -> bool:
        result = self._run(["rev-parse", "--is-inside-work-tree"])
        return isinstance(result, Ok) and result.value.strip() == "true"

    def status(self) -> Result[RepositoryState, GitError]:
        """Parse ``git status --porcelain=v1 -b``."""
        result = self._run(["status", "--porcelain=v1", "-b"])
        if isinstance(result, Err):
            return Err(self._error("status", result.error))
        return Ok(parse_status(result.value))

    def rev_parse(self, ref: str) -> Result[str, GitError]:
        """Resolve ``ref`` to a commit sha.

        ``--verify --quiet`` makes git exit 1 with no output when the ref does
        not exist, which is reported as ``unknown_revision``.
        """
        result = self._run(["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"])
        match result:
            case Ok(stdout):
                return Ok(stdout.strip())
            case Err(e) if e.returncode == 1 and not e.stderr.strip():
                return Err(
                    GitError(
                        kind="unknown_revision",
                        command="rev-parse",
                        message=f"unknown revision: {ref}",
                        returncode=e.returncode,
                    )
                )
            case Err(e):
                return Err(self._error("rev-parse", e))

    def checkout_new_branch(self, name: str) -> Result[None, GitError]:
        return self._mutate(["checkout", "-b", name])

    def checkout(self, name: str) -> Result[None, GitError]:
        return self._mutate(["checkout", name])

    def commit_all(self, message: str) -> Result[bool, GitError]:
        """Commit every tracked modification.

        Returns False without committing when no tracked file changed, where
        a bare ``git commit --all`` would exit 1.
        """
        pending = self._run(["status", "--porcelain=v1", "--untracked-files=no"])
        if isinstance(pending, Err):
            return Err(self._error("status", pending.error))
        if not pending.value.strip():
            return Ok(False)

        committed = self._mutate(["commit", "--all", "--message", message])
        if isinstance(committed, Err):
            return committed
        return Ok(True)

    def push(self, remote: str, ref: str, *, set_upstream: bool = False) -> Result[None, GitError]:
        args = ["push"]
        if set_upstream:
            args.append("--set-upstream")
        return self._mutate([*args, remote, ref])

    def merge(self, ref: str, *, message: str | None = None) -> Result[None, GitError]:
        args = ["merge", "--no-ff", "--no-edit"]
        if message:
            args.extend(["-m", message])
        return self._mutate([*args, ref])

    def delete_branch(self, name: str) -> Result[None, GitError]:
        return self._mutate(["branch", "-D", name])

    def delete_remote_branch(self, remote: str, name: str) -> Result[None, GitError]:
        return self._mutate(["push", remote, "--delete", name])

    def _mutate(self, args: list[str]) -> Result[None, GitError]:
        result = self._run(args)
        if isinstance(result, Err):
            return Err(self._error(args[0], result.error))
        return Ok(None)

    def _error(self, command: str, e: ProcessError) -> GitError:
        text = e.stderr.strip() or e.stdout.strip()
        kind: GitErrorKind = "failed"
        if e.returncode == 128 and "not a git repository" in text.lower():
            kind = "not_a_repository"
        return GitError(
            kind=kind,
            command=command,
            message=text or f"git {command} failed",
            returncode=e.returncode,
        )

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        command = args[0] if args else ""
        timeout = (
            _GIT_NETWORK_TIMEOUT_SECONDS
            if command in {"fetch", "pull", "push"}
            else _GIT_TIMEOUT_SECONDS
        )
        return run_process(["git", "-C", str(self.path), *args], cwd=self.path, timeout=timeout)


def parse_status(output: str) -> RepositoryState:
    """Parse ``git status --porcelain=v1 -b`` output into categories."""
    lines = [ln for ln in output.splitlines() if ln.strip()]
    if not lines:
        return RepositoryState(current_branch=None)

    branch: str | None = None
    ahead = behind = 0
    if lines[0].startswith("##"):
        branch, ahead, behind = _parse_branch_line(lines[0])
        lines = lines[1:]

    conflicted: list[str] = []
    created: list[str] = []
    deleted: list[str] = []
    modified: list[str] = []
    renamed: list[str] = []
    staged: list[str] = []

    for line in lines:
        if len(line) < 4 or line.startswith("?? ") or line.startswith("!! "):
            continue
        xy, path = line[:2], line[3:]
        if xy in _CONFLICT_CODES:
            conflicted.append(path)
            continue
        if " -> " in path:
            path = path.split(" -> ", 1)[1]
        index = xy[0]
        if index == "A":
            created.append(path)
        if "D" in xy:
            deleted.append(path)
        if "M" in xy:
            modified.append(path)
        if index == "R":
            renamed.append(path)
        if index not in (" ", "?"):
            staged.append(path)

    return RepositoryState(
        current_branch=branch,
        ahead=ahead,
        behind=behind,
        conflicted=tuple(conflicted),
        created=tuple(created),
        deleted=tuple(deleted),
        modified=tuple(modified),
        renamed=tuple(renamed),
        staged=tuple(staged),
    )


def _parse_branch_line(line: str) -> tuple[str | None, int, int]:
    """Parse ``## branch...upstream [ahead N, behind M]``."""
    s = line[2:].strip()
    counts = ""
    if " [" in s:
        s, counts = s.split(" [", 1)

    if s.startswith("No commits yet on "):
        s = s[len("No commits yet on ") :]
    if s.startswith("HEAD (no branch)"):
        branch: str | None = None
    else:
        branch = s.split("...", 1)[0].strip() or None

    ahead_match = re.search(r"ahead\s+(\d+)", counts)
    behind_match = re.search(r"behind\s+(\d+)", counts)
    ahead = int(ahead_match.group(1)) if ahead_match else 0
    behind = int(behind_match.group(1)) if behind_match else 0
    return branch, ahead, behind


class MockRepository:
    """In-memory repository for tests.

    Branches map names to shas; every call is recorded in ``calls`` as
    ``(operation, argument)`` so tests can assert what ran and in which order.
    Set ``fail_on`` to make one operation return a ``GitError``, and clear
    ``has_changes`` for a working tree with nothing to commit.
    """

    def __init__(
        self,
        *,
        state: RepositoryState | None = None,
        branches: dict[str, str] | None = None,
        is_repo: bool = True,
    ) -> None:
        self.state = state or RepositoryState(current_branch="main")
        self.branches: dict[str, str] = dict(branches or {"main": "0" * 40})
        self.is_repo = is_repo
        self.calls: list[tuple[str, str]] = []
        self.commits: list[str] = []
        self.has_changes = True
        self.pushed: list[tuple[str, str, bool]] = []
        self.fail_on: dict[str, GitError] = {}

    def is_repository(self) -> bool:
        self.calls.append(("is_repository", ""))
        return self.is_repo

    def status(self) -> Result[RepositoryState, GitError]:
        self.calls.append(("status", ""))
        return self._maybe_fail("status") or Ok(self.state)

    def rev_parse(self, ref: str) -> Result[str, GitError]:
        self.calls.append(("rev_parse", ref))
        failed = self._maybe_fail("rev_parse")
        if failed is not None:
            return failed
        if ref in self.branches:
            return Ok(self.branches[ref])
        if ref == "HEAD" and self.state.current_branch in self.branches:
            return Ok(self.branches[self.state.current_branch])
        return Err(
            GitError(kind="unknown_revision", command="rev-parse", message=f"unknown revision: {ref}")
        )

    def checkout_new_branch(self, name: str) -> Result[None, GitError]:
        self.calls.append(("checkout_new_branch", name))
        failed = self._maybe_fail("checkout_new_branch")
        if failed is not None:
            return failed
        current = self.state.current_branch or ""
        self.branches[name] = self.branches.get(current, "0" * 40)
        self._switch(name)
        return Ok(None)

    def checkout(self, name: str) -> Result[None, GitError]:
        self.calls.append(("checkout", name))
        failed = self._maybe_fail("checkout")
        if failed is not None:
            return failed
        self._switch(name)
        return Ok(None)

    def commit_all(self, message: str) -> Result[bool, GitError]:
        self.calls.append(("commit_all", message))
        failed = self._maybe_fail("commit_all")
        if failed is not None:
            return failed
        if not self.has_changes:
            return Ok(False)
        self.commits.append(message)
        return Ok(True)

    def push(self, remote: str, ref: str, *, set_upstream: bool = False) -> Result[None, GitError]:
        self.calls.append(("push", f"{remote} {ref}"))
        failed = self._maybe_fail("push")
        if failed is not None:
            return failed
        self.pushed.append((remote, ref, set_upstream))
        return Ok(None)

    def merge(self, ref: str, *, message: str | None = None) -> Result[None, GitError]:
        self.calls.append(("merge", ref))
        return self._maybe_fail("merge") or Ok(None)

    def delete_branch(self, name: str) -> Result[None, GitError]:
        self.calls.append(("delete_branch", name))
        failed = self._maybe_fail("delete_branch")
        if failed is not None:
            return failed
        self.branches.pop(name, None)
        return Ok(None)

    def delete_remote_branch(self, remote: str, name: str) -> Result[None, GitError]:
        self.calls.append(("delete_remote_branch", f"{remote} {name}"))
        return self._maybe_fail("delete_remote_branch") or Ok(None)

    @property
    def operations(self) -> list[str]:
        return [op for op, _ in self.calls]

    def _switch(self, name: str) -> None:
        s = self.state
        self.state = RepositoryState(
            current_branch=name,
            ahead=s.ahead,
            behind=s.behind,
            conflicted=s.conflicted,
            created=s.created,
            deleted=s.deleted,
            modified=s.modified,
            renamed=s.renamed,
            staged=s.staged,
        )

    def _maybe_fail(self, op: str) -> Err[GitError] | None:
        error = self.fail_on.get(op)
        if error is None:
            return None
        return Err(error)
