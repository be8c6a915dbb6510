"""Pre-release hook (version bumping) invocation."""

from __future__ import annotations

import shlex
from collections.abc import Callable, Mapping
from pathlib import Path

from craft.core.context import ExecutionContext
from craft.core.result import Err, Ok, Result
from craft.platform.process import ProcessError, run_streaming
from craft.release.errors import ReleaseError

DEFAULT_BUMP_VERSION_PATH = str(Path("scripts") / "bump-version.sh")

NEW_VERSION_ENV = "CRAFT_NEW_VERSION"
OLD_VERSION_ENV = "CRAFT_OLD_VERSION"

StreamingRunner = Callable[[list[str], Path, Mapping[str, str] | None], Result[int, ProcessError]]


def pre_release_argv(new_version: str, command: str | None = None) -> list[str]:
    """Build the hook argv.

    A configured command is split with shell quoting rules. The previous
    version is always passed as an empty placeholder, followed by the new
    version.
    """
    if command:
        base = shlex.split(command, posix=True)
    else:
        base = ["/bin/bash", DEFAULT_BUMP_VERSION_PATH]
    return [*base, "", new_version]


def pre_release_env(new_version: str) -> dict[str, str]:
    return {NEW_VERSION_ENV: new_version, OLD_VERSION_ENV: ""}


def run_pre_release_command(
    *,
    new_version: str,
    ctx: ExecutionContext,
    command: str | None = None,
    runner: StreamingRunner = run_streaming,
) -> Result[None, ReleaseError]:
    """Run the project's pre-release command with output streamed live."""
    try:
        argv = pre_release_argv(new_version, command)
    except ValueError as e:
        return Err(
            ReleaseError(
                kind="config_invalid",
                message=f"cannot parse pre_release_command: {e}",
                hint=command,
            )
        )

    ctx.console.info("Running a pre-release command...")
    ctx.debug(shlex.join(argv))
    if ctx.dry_run:
        ctx.skip(f"Not spawning process: {shlex.join(argv)}")
        return Ok(None)

    result = runner(argv, ctx.repo_root, pre_release_env(new_version))
    if isinstance(result, Err):
        e = result.error
        if e.spawn_failed:
            message = f"pre-release command could not be started: {argv[0]}"
        else:
            message = f"pre-release command failed (exit {e.returncode})"
        return Err(ReleaseError(kind="hook_failed", message=message, hint=str(e)))
    return Ok(None)
