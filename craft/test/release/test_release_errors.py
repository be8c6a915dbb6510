"""Tests for craft.release.errors module."""

from craft.core.errors import ErrorCode
from craft.release.errors import ReleaseError, error_code_for


def test_pretty_includes_hint() -> None:
    assert ReleaseError(kind="hook_failed", message="boom").pretty() == "boom"
    assert (
        ReleaseError(kind="git_failed", message="boom", hint="git push").pretty()
        == "boom (hint: git push)"
    )


def test_error_code_mapping() -> None:
    assert error_code_for("invalid_version") == ErrorCode.USER_ERROR
    assert error_code_for("unsupported_version_part") == ErrorCode.USER_ERROR
    assert error_code_for("config_invalid") == ErrorCode.USER_ERROR
    assert error_code_for("wrong_branch") == ErrorCode.REPO_ERROR
    assert error_code_for("dirty_working_tree") == ErrorCode.REPO_ERROR
    assert error_code_for("branch_exists") == ErrorCode.REPO_ERROR
    assert error_code_for("hook_failed") == ErrorCode.HOOK_ERROR
    assert error_code_for("max_retries_reached") == ErrorCode.NETWORK_ERROR
    assert error_code_for("remote_api_failed") == ErrorCode.NETWORK_ERROR
    assert error_code_for("upload_size_mismatch") == ErrorCode.IO_ERROR
