"""Controllers for the post and clear CLI commands."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import rich_click as click

from gitleaks_diff_comment.commands.clear import ClearCommand
from gitleaks_diff_comment.config import Settings
from gitleaks_diff_comment.github import GitHubClient, PullRequestRef, api_base_url
from gitleaks_diff_comment.sync.aggregator import render_retraction_lines, render_sync_lines
from gitleaks_diff_comment.sync.cancellation import CancelToken, cancel_on_signals
from gitleaks_diff_comment.sync.dispatcher import CommentDispatcher
from gitleaks_diff_comment.sync.models import SyncReport
from gitleaks_diff_comment.sync.source import load_desired_annotations

logger = logging.getLogger(__name__)

ClientFactory = Callable[[Settings], GitHubClient]


@dataclass(slots=True)
class PostCliCommand:
    """CLI input for one post run."""

    comments_path: Path
    comment_mode: str | None = None
    timeout_seconds: float | None = None


@dataclass(slots=True)
class ClearCliCommand:
    """CLI input for one clear run."""

    requester: str | None = None
    timeout_seconds: float | None = None


@dataclass(slots=True)
class CommandResult:
    """Lines to render plus the process-level verdict."""

    lines: list[str]
    success: bool


class CommentCliController:
    """Wires settings, the GitHub client and the sync core for CLI commands."""

    def __init__(
        self,
        *,
        client_factory: ClientFactory | None = None,
        emit: Callable[[str], None] = click.echo,
    ) -> None:
        self._client_factory = client_factory or _default_client
        self._emit = emit

    def post(self, command: PostCliCommand) -> CommandResult:
        settings = Settings.from_env()
        if command.comment_mode:
            settings.posting.comment_mode = command.comment_mode.lower()
        settings.validate_for_post()
        _log_target(settings)

        desired = load_desired_annotations(
            command.comments_path,
            commit_id=settings.github.commit_sha,
        )
        if not desired:
            report = SyncReport()
            _write_action_outputs(report)
            return CommandResult(lines=["No valid comments generated"], success=True)
        logger.debug("Loaded %d desired comments", len(desired))

        cancel = CancelToken(timeout_seconds=command.timeout_seconds)
        with cancel_on_signals(cancel), self._client(settings) as client:
            dispatcher = CommentDispatcher(
                store=client,
                max_concurrency=settings.posting.max_concurrency,
            )
            report = dispatcher.post(desired, mode=settings.mode, cancel=cancel)

        _write_action_outputs(report)
        lines = render_sync_lines(report)
        lines.append("")
        lines.append("Results:")
        lines.append(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
        return CommandResult(lines=lines, success=report.errors == 0)

    def clear(self, command: ClearCliCommand) -> CommandResult:
        settings = Settings.from_env()
        if command.requester:
            settings.command.requester = command.requester
        settings.validate_for_clear()
        _log_target(settings)

        cancel = CancelToken(timeout_seconds=command.timeout_seconds)
        with cancel_on_signals(cancel), self._client(settings) as client:
            clear = ClearCommand(
                pr_number=settings.github.pr_number,
                requested_by=settings.command.requester,
                store=client,
                permissions=client,
                bot_login=settings.command.bot_login,
                emit=self._emit,
            )
            report = clear.execute(cancel=cancel)

        lines = render_retraction_lines(report)
        lines.append(json.dumps(report.to_dict(), ensure_ascii=False))
        # Partial failures still complete the command.
        return CommandResult(lines=lines, success=True)

    @contextmanager
    def _client(self, settings: Settings) -> Iterator[GitHubClient]:
        client = self._client_factory(settings)
        try:
            yield client
        finally:
            client.close()


def _default_client(settings: Settings) -> GitHubClient:
    return GitHubClient(
        token=settings.github.token,
        pull_request=PullRequestRef.from_repository(
            settings.github.repository,
            settings.github.pr_number,
        ),
        gh_host=settings.github.gh_host,
        timeout_seconds=settings.github.request_timeout_seconds,
    )


def _log_target(settings: Settings) -> None:
    if settings.github.gh_host:
        logger.debug("GitHub Enterprise Server: %s", settings.github.gh_host)
    else:
        logger.debug("GitHub: Using GitHub.com (default)")
    logger.debug("API Base URL: %s", api_base_url(settings.github.gh_host))
    logger.debug(
        "Configuration: PR=%d, Repo=%s, Commit=%s",
        settings.github.pr_number,
        settings.github.repository,
        settings.github.commit_sha,
    )


def _write_action_outputs(report: SyncReport) -> None:
    output_path = os.getenv("GITHUB_OUTPUT")
    if not output_path:
        return
    with Path(output_path).open("a", encoding="utf-8") as handle:
        handle.write(f"posted={report.posted}\n")
        handle.write(f"skipped_duplicates={report.skipped_duplicates}\n")
        handle.write(f"errors={report.errors}\n")
