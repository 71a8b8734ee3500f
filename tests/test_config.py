from __future__ import annotations

import allure
import pytest

from gitleaks_diff_comment.config import GitHubSettings, PostingSettings, Settings
from gitleaks_diff_comment.sync.models import CommentMode

pytestmark = [
    allure.epic("Action Runtime"),
    allure.feature("Configuration"),
]


def _valid(**github_overrides) -> Settings:
    github = GitHubSettings(
        token="ghs_test",
        repository="octo/repo",
        pr_number=7,
        commit_sha="deadbeef",
    )
    for key, value in github_overrides.items():
        setattr(github, key, value)
    return Settings(github=github)


def test_from_env_reads_action_inputs(github_env, monkeypatch) -> None:
    monkeypatch.setenv("INPUT_COMMENT-MODE", " Append ")
    monkeypatch.setenv("INPUT_GH-HOST", "github.example.com")
    monkeypatch.setenv("INPUT_DEBUG", "true")
    monkeypatch.setenv("INPUT_REQUESTER", "alice")
    monkeypatch.setenv("GITLEAKS_DIFF_COMMENT_MAX_CONCURRENCY", "3")

    settings = Settings.from_env()

    assert settings.github.token == "ghs_test"
    assert settings.github.owner == "octo"
    assert settings.github.repo == "repo"
    assert settings.github.pr_number == 42
    assert settings.github.commit_sha == "deadbeef"
    assert settings.github.gh_host == "github.example.com"
    assert settings.mode == CommentMode.APPEND
    assert settings.posting.max_concurrency == 3
    assert settings.command.requester == "alice"
    assert settings.command.bot_login == "github-actions[bot]"
    assert settings.debug is True


def test_commit_sha_input_overrides_workflow_sha(github_env, monkeypatch) -> None:
    monkeypatch.setenv("INPUT_COMMIT-SHA", "cafebabe")

    assert Settings.from_env().github.commit_sha == "cafebabe"


def test_from_env_rejects_non_numeric_pr_number(github_env, monkeypatch) -> None:
    monkeypatch.setenv("INPUT_PR-NUMBER", "abc")

    with pytest.raises(ValueError, match="invalid PR number"):
        Settings.from_env()


def test_from_env_rejects_invalid_boolean(github_env, monkeypatch) -> None:
    monkeypatch.setenv("INPUT_DEBUG", "maybe")

    with pytest.raises(ValueError, match="Invalid boolean value for INPUT_DEBUG"):
        Settings.from_env()


def test_validate_requires_token() -> None:
    with pytest.raises(ValueError, match="GitHub token is required"):
        _valid(token="").validate_for_post()


def test_validate_requires_positive_pr_number() -> None:
    with pytest.raises(ValueError, match="PR number must be positive"):
        _valid(pr_number=0).validate_for_post()


def test_validate_requires_owner_repo_format() -> None:
    with pytest.raises(ValueError, match="owner/repo"):
        _valid(repository="just-a-name").validate_for_post()


def test_validate_requires_commit_sha_for_post_only() -> None:
    settings = _valid(commit_sha="")
    settings.command.requester = "alice"

    with pytest.raises(ValueError, match="commit SHA is required"):
        settings.validate_for_post()
    settings.validate_for_clear()


def test_validate_rejects_unknown_comment_mode() -> None:
    settings = _valid()
    settings.posting = PostingSettings(comment_mode="replace")

    with pytest.raises(ValueError, match="comment-mode must be 'override' or 'append'"):
        settings.validate_for_post()


def test_validate_for_clear_requires_requester() -> None:
    with pytest.raises(ValueError, match="requester is required"):
        _valid().validate_for_clear()


@pytest.mark.parametrize(
    ("gh_host", "message"),
    [
        ("https://github.example.com", "must not include protocol"),
        ("github.example.com/api/v3", "must not include path"),
        ("github.example.com:99999", "invalid port"),
        ("github.example.com:abc", "invalid port"),
        ("a:1:2", "invalid gh-host format"),
    ],
)
def test_validate_rejects_malformed_gh_host(gh_host: str, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        _valid(gh_host=gh_host).validate_for_post()


def test_validate_accepts_gh_host_with_port() -> None:
    _valid(gh_host="github.example.com:8443").validate_for_post()


def test_bot_login_can_be_overridden(github_env, monkeypatch) -> None:
    assert Settings.from_env().command.bot_login == "github-actions[bot]"

    monkeypatch.setenv("GITLEAKS_DIFF_COMMENT_BOT_LOGIN", "secret-bot[bot]")

    assert Settings.from_env().command.bot_login == "secret-bot[bot]"
