"""Git operations consumed by the release pipeline.

Usage:
    from craft.git import Repository

    repo = Repository(Path.cwd())
    state = repo.status()
"""

from craft.git.repository import (
    DEFAULT_REMOTE,
    GitError,
    GitErrorKind,
    MockRepository,
    Repository,
    RepositoryProtocol,
    RepositoryState,
    parse_status,
)

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
