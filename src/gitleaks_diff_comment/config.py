"""Runtime configuration read from the GitHub Actions environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from gitleaks_diff_comment.sync.markers import DEFAULT_BOT_LOGIN
from gitleaks_diff_comment.sync.models import CommentMode

MAX_PORT = 65_535


@dataclass(slots=True)
class GitHubSettings:
    """Pull request coordinates and API access."""

    token: str = ""
    repository: str = ""
    pr_number: int = 0
    commit_sha: str = ""
    gh_host: str = ""
    request_timeout_seconds: float = 30.0

    @property
    def owner(self) -> str:
        parts = self.repository.split("/")
        return parts[0] if len(parts) == 2 else ""  # noqa: PLR2004

    @property
    def repo(self) -> str:
        parts = self.repository.split("/")
        return parts[1] if len(parts) == 2 else ""  # noqa: PLR2004


@dataclass(slots=True)
class PostingSettings:
    """Post flow settings."""

    comment_mode: str = CommentMode.OVERRIDE.value
    max_concurrency: int = 5


@dataclass(slots=True)
class CommandSettings:
    """Comment command (``/clear``) settings."""

    requester: str = ""
    bot_login: str = DEFAULT_BOT_LOGIN


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    github: GitHubSettings = field(default_factory=GitHubSettings)
    posting: PostingSettings = field(default_factory=PostingSettings)
    command: CommandSettings = field(default_factory=CommandSettings)
    debug: bool = False

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from action inputs (``INPUT_*``) and workflow variables."""

        return cls(
            github=GitHubSettings(
                token=os.getenv("INPUT_GITHUB-TOKEN", ""),
                repository=os.getenv("GITHUB_REPOSITORY", ""),
                pr_number=_env_int("INPUT_PR-NUMBER", default=0, label="PR number"),
                commit_sha=os.getenv("INPUT_COMMIT-SHA") or os.getenv("GITHUB_SHA", ""),
                gh_host=os.getenv("INPUT_GH-HOST", "").strip(),
                request_timeout_seconds=float(
                    os.getenv("GITLEAKS_DIFF_COMMENT_REQUEST_TIMEOUT_SECONDS", "30"),
                ),
            ),
            posting=PostingSettings(
                comment_mode=(
                    os.getenv("INPUT_COMMENT-MODE", "").strip().lower()
                    or CommentMode.OVERRIDE.value
                ),
                max_concurrency=_env_int(
                    "GITLEAKS_DIFF_COMMENT_MAX_CONCURRENCY",
                    default=5,
                    label="max concurrency",
                ),
            ),
            command=CommandSettings(
                requester=os.getenv("INPUT_REQUESTER", "").strip(),
                bot_login=os.getenv("GITLEAKS_DIFF_COMMENT_BOT_LOGIN", DEFAULT_BOT_LOGIN),
            ),
            debug=_env_bool("INPUT_DEBUG", default=False),
        )

    @property
    def mode(self) -> CommentMode:
        return CommentMode(self.posting.comment_mode)

    def validate_common(self) -> None:
        """Raise configuration error for settings shared by every command."""

        if not self.github.token:
            raise ValueError(
                "GitHub token is required (INPUT_GITHUB-TOKEN)\n"
                "  → Action: Set 'github-token' input in your workflow file\n"
                "  → Example: github-token: ${{ secrets.GITHUB_TOKEN }}\n"
                "  → Required scopes: repo (read), pull_requests (write)",
            )
        if self.github.pr_number <= 0:
            raise ValueError(
                "PR number must be positive (INPUT_PR-NUMBER)\n"
                "  → Action: Set 'pr-number' input in your workflow file\n"
                "  → Example: pr-number: ${{ github.event.pull_request.number }}",
            )
        if not self.github.repository:
            raise ValueError(
                "repository is required (GITHUB_REPOSITORY)\n"
                "  → Action: This is automatically set by GitHub Actions\n"
                "  → Ensure the action is running in a GitHub Actions workflow",
            )
        if not self.github.owner or not self.github.repo:
            raise ValueError(
                f"repository must be in format owner/repo, got: {self.github.repository}\n"
                "  → Action: Check GITHUB_REPOSITORY environment variable\n"
                "  → Expected format: owner/repository-name",
            )
        if self.github.request_timeout_seconds <= 0:
            raise ValueError("GITLEAKS_DIFF_COMMENT_REQUEST_TIMEOUT_SECONDS must be > 0.")
        _validate_gh_host(self.github.gh_host)

    def validate_for_post(self) -> None:
        self.validate_common()
        if not self.github.commit_sha:
            raise ValueError(
                "commit SHA is required (GITHUB_SHA)\n"
                "  → Action: This is automatically set by GitHub Actions\n"
                "  → Ensure the action is running in a GitHub Actions workflow",
            )
        if self.posting.comment_mode not in {mode.value for mode in CommentMode}:
            raise ValueError(
                "comment-mode must be 'override' or 'append', "
                f"got: {self.posting.comment_mode}\n"
                "  → Action: Set 'comment-mode' input to either 'override' or 'append'\n"
                "  → Example: comment-mode: override",
            )
        if self.posting.max_concurrency <= 0:
            raise ValueError("GITLEAKS_DIFF_COMMENT_MAX_CONCURRENCY must be a positive integer.")

    def validate_for_clear(self) -> None:
        self.validate_common()
        if not self.command.requester:
            raise ValueError(
                "requester is required for commands (INPUT_REQUESTER)\n"
                "  → Action: Pass the comment author as 'requester'\n"
                "  → Example: requester: ${{ github.event.comment.user.login }}",
            )


def _validate_gh_host(gh_host: str) -> None:
    if not gh_host:
        return
    if "://" in gh_host:
        host_without_protocol = gh_host.split("://", 1)[1]
        raise ValueError(
            "gh-host must not include protocol (http:// or https://)\n"
            "  → Action: Remove protocol prefix from gh-host\n"
            f"  → Example: gh-host: {host_without_protocol}",
        )
    if "/" in gh_host:
        host_without_path = gh_host.split("/", 1)[0]
        raise ValueError(
            "gh-host must not include path\n"
            "  → Action: Remove path from gh-host (e.g., remove /api/v3)\n"
            f"  → Example: gh-host: {host_without_path}",
        )
    if ":" in gh_host:
        parts = gh_host.split(":")
        if len(parts) != 2:  # noqa: PLR2004
            raise ValueError(
                "invalid gh-host format with port\n"
                "  → Action: Use format hostname:port\n"
                "  → Example: gh-host: github.company.com:8443",
            )
        try:
            port = int(parts[1])
        except ValueError:
            port = 0
        if port < 1 or port > MAX_PORT:
            raise ValueError(
                f"invalid port in gh-host: {parts[1]} (must be 1-65535)\n"
                "  → Action: Use valid port number\n"
                "  → Example: gh-host: github.company.com:8443",
            )


def _env_int(name: str, *, default: int, label: str) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as error:
        raise ValueError(f"invalid {label}: {raw!r} ({name})") from error


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
