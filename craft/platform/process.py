"""Subprocess execution with Result-based error handling.

Two flavours:
- ``run`` captures output; used for git plumbing whose stdout we parse.
- ``run_streaming`` inherits the terminal so the operator sees a hook's
  output live; only the exit status is reported back.

Both merge ``env`` onto the current environment instead of replacing it.

Usage:
    result = run(["git", "status", "--porcelain=v1", "-b"], cwd=repo_root)
    match result:
        case Ok(stdout):
            ...
        case Err(error):
            console.error(str(error))
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from craft.core.result import Err, Ok, Result

__all__ = ["ProcessError", "merged_env", "run", "run_streaming"]


@dataclass(frozen=True, slots=True)
class ProcessError:
    """Error from a failed subprocess execution.

    Attributes:
        command: The command that was executed
        returncode: Exit code, or -1 when the process could not be started
        stdout: Captured standard output (empty when streaming)
        stderr: Captured standard error, or the OS error when spawning failed
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def spawn_failed(self) -> bool:
        """True if the executable could not be started at all."""
        return self.returncode == -1

    def __str__(self) -> str:
        cmd_str = " ".join(self.command[:3])
        if len(self.command) > 3:
            cmd_str += " ..."
        if self.spawn_failed:
            return f"{cmd_str} could not be started: {self.stderr}"
        return f"{cmd_str} failed (exit {self.returncode})"


def merged_env(overlay: Mapping[str, str] | None) -> dict[str, str] | None:
    """Current environment with ``overlay`` applied on top, or None if no overlay."""
    if not overlay:
        return None
    env = dict(os.environ)
    env.update(overlay)
    return env


def run(
    cmd: list[str],
    cwd: Path,
    env: Mapping[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Execute a command and return its stdout.

    Args:
        cmd: Command and arguments to execute
        cwd: Working directory for the command
        env: Variables merged onto the current environment
        timeout: Maximum seconds to wait (None for no limit)

    Returns:
        Ok(stdout) on exit 0, Err(ProcessError) otherwise.
    """
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=merged_env(env),
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=-2,
                stdout="",
                stderr=f"Command timed out after {timeout}s",
            )
        )
    except OSError as e:
        return Err(ProcessError(command=tuple(cmd), returncode=-1, stdout="", stderr=str(e)))

    if proc.returncode != 0:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=proc.returncode,
                stdout=proc.stdout,
                stderr=proc.stderr,
            )
        )

    return Ok(proc.stdout)


def run_streaming(
    cmd: list[str],
    cwd: Path,
    env: Mapping[str, str] | None = None,
) -> Result[int, ProcessError]:
    """Execute a command attached to the current terminal.

    Args:
        cmd: Command and arguments to execute
        cwd: Working directory for the command
        env: Variables merged onto the current environment

    Returns:
        Ok(0) on success, Err(ProcessError) on non-zero exit or spawn failure.
    """
    try:
        proc = subprocess.run(cmd, cwd=str(cwd), env=merged_env(env), check=False)
    except OSError as e:
        return Err(ProcessError(command=tuple(cmd), returncode=-1, stdout="", stderr=str(e)))

    if proc.returncode != 0:
        return Err(
            ProcessError(command=tuple(cmd), returncode=proc.returncode, stdout="", stderr="")
        )
    return Ok(proc.returncode)
