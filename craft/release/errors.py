"""Error taxonomy for the release and publish pipelines."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from craft.core.errors import ErrorCode

__all__ = ["ReleaseError", "ReleaseErrorKind", "error_code_for"]

ReleaseErrorKind = Literal[
    # input
    "invalid_version",
    "unsupported_version_part",
    "config_invalid",
    # repository state
    "not_a_repository",
    "wrong_branch",
    "dirty_working_tree",
    "unpushed_commits",
    # conflict
    "branch_exists",
    "git_failed",
    # subprocess
    "hook_failed",
    # remote
    "remote_api_failed",
    "status_check_failed",
    "max_retries_reached",
    "publish_failed",
    "asset_not_found",
    # data
    "upload_size_mismatch",
    "artifact_failed",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Failure reported by any release step.

    Attributes:
        kind: Failure category
        message: Human explanation
        hint: Remediation text or the exact command to run next
    """

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message


def error_code_for(kind: ReleaseErrorKind) -> ErrorCode:
    """Map an error kind onto the process exit code."""
    if kind in {"invalid_version", "unsupported_version_part", "config_invalid"}:
        return ErrorCode.USER_ERROR
    if kind in {
        "not_a_repository",
        "wrong_branch",
        "dirty_working_tree",
        "unpushed_commits",
        "branch_exists",
        "git_failed",
    }:
        return ErrorCode.REPO_ERROR
    if kind == "hook_failed":
        return ErrorCode.HOOK_ERROR
    if kind in {"upload_size_mismatch", "artifact_failed"}:
        return ErrorCode.IO_ERROR
    return ErrorCode.NETWORK_ERROR
