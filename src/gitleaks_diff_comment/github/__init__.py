"""GitHub REST adapter."""

from gitleaks_diff_comment.github.client import GitHubClient, PullRequestRef, api_base_url

__all__ = [
    "GitHubClient",
    "PullRequestRef",
    "api_base_url",
]
