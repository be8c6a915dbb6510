"""Process exit codes.

Each failure class of the release pipeline maps onto one of these codes so
that wrapping scripts can tell a bad version argument from a dirty
repository or a flaky API without parsing output.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for craft commands.

    The numeric values are part of the CLI contract and should remain stable:
    - 0: Success
    - 1: User error (malformed or unsupported version, bad config)
    - 2: Repository error (wrong branch, dirty tree, branch already exists)
    - 3: Hook error (pre-release command failed)
    - 4: Network error (remote API failure, retries exhausted)
    - 5: I/O error (artifact or data integrity failure)
    """

    OK = 0
    USER_ERROR = 1
    REPO_ERROR = 2
    HOOK_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
