"""CLI entrypoint for gitleaks-diff-comment."""

import logging
from collections.abc import Callable
from pathlib import Path

import rich_click as click

from gitleaks_diff_comment import __version__
from gitleaks_diff_comment.config import Settings
from gitleaks_diff_comment.controllers import (
    ClearCliCommand,
    CommandResult,
    CommentCliController,
    PostCliCommand,
)
from gitleaks_diff_comment.errors import AuthorizationError, SyncError

click.rich_click.USE_MARKDOWN = True
CONTROLLER = CommentCliController()


@click.group()
@click.version_option(version=__version__, prog_name="gitleaks-diff-comment")
@click.option(
    "--debug/--no-debug",
    default=None,
    help="Verbose logging. Defaults to the INPUT_DEBUG action input.",
)
def gitleaks_diff_comment(debug: bool | None) -> None:
    """Post and clear gitleaks diff review comments on pull requests."""

    _configure_logging(debug)


@gitleaks_diff_comment.command("post")
@click.option(
    "--comments",
    "comments_path",
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    required=True,
    help="JSON file with desired comments (body, path, line, side).",
)
@click.option(
    "--mode",
    "comment_mode",
    type=click.Choice(["override", "append"], case_sensitive=False),
    default=None,
    help="Comment mode. Defaults to INPUT_COMMENT-MODE, then override.",
)
@click.option(
    "--timeout-seconds",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Deadline for the whole run; unfinished comments are reported as errors.",
)
def post(comments_path: Path, comment_mode: str | None, timeout_seconds: float | None) -> None:
    """Reconcile desired comments with the pull request and post them."""

    result = _run(
        lambda: CONTROLLER.post(
            PostCliCommand(
                comments_path=comments_path,
                comment_mode=comment_mode,
                timeout_seconds=timeout_seconds,
            ),
        ),
    )
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Completed with errors.")


@gitleaks_diff_comment.command("clear")
@click.option(
    "--requester",
    default=None,
    help="User who issued the command. Defaults to INPUT_REQUESTER.",
)
@click.option(
    "--timeout-seconds",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Deadline for the whole run.",
)
def clear(requester: str | None, timeout_seconds: float | None) -> None:
    """Delete every review comment posted by the action (requires write access)."""

    result = _run(
        lambda: CONTROLLER.clear(
            ClearCliCommand(requester=requester, timeout_seconds=timeout_seconds),
        ),
    )
    _emit_lines(result.lines)


def _run(action: Callable[[], CommandResult]) -> CommandResult:
    try:
        return action()
    except AuthorizationError as error:
        raise click.ClickException(str(error)) from error
    except SyncError as error:
        raise click.ClickException(f"{error.code}: {error}") from error
    except ValueError as error:
        raise click.ClickException(f"Invalid configuration: {error}") from error


def _configure_logging(debug: bool | None) -> None:
    if debug is None:
        try:
            debug = Settings.from_env().debug
        except ValueError:
            debug = False
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    gitleaks_diff_comment()
