"""GitHub REST API access."""

from craft.github.client import (
    GitHubApiError,
    GitHubClient,
    GitHubErrorDetail,
    MockGitHubClient,
    RealGitHubClient,
    token_from_env,
)

__all__ = [
    "GitHubApiError",
    "GitHubClient",
    "GitHubErrorDetail",
    "MockGitHubClient",
    "RealGitHubClient",
    "token_from_env",
]
