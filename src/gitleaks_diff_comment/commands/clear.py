"""Clear command: authorize the requester, then delete every bot-owned review comment."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

import rich_click as click

from gitleaks_diff_comment.commands.metrics import build_clear_metrics, emit_metrics
from gitleaks_diff_comment.commands.permissions import require_authorization
from gitleaks_diff_comment.errors import NotFoundError, SyncError
from gitleaks_diff_comment.sync.cancellation import CancelToken
from gitleaks_diff_comment.sync.markers import DEFAULT_BOT_LOGIN, is_automation_owned
from gitleaks_diff_comment.sync.models import (
    ExistingAnnotation,
    RetractionReport,
    RetractionState,
)
from gitleaks_diff_comment.sync.retry import ResilientExecutor, retraction_policy
from gitleaks_diff_comment.sync.store import AnnotationStore, PermissionLookup

logger = logging.getLogger(__name__)

MAX_OWNED_COMMENTS = 100

_ALLOWED_TRANSITIONS: dict[RetractionState, frozenset[RetractionState]] = {
    RetractionState.PENDING: frozenset({RetractionState.RUNNING, RetractionState.FAILED}),
    RetractionState.RUNNING: frozenset({RetractionState.COMPLETED, RetractionState.FAILED}),
    RetractionState.COMPLETED: frozenset(),
    RetractionState.FAILED: frozenset(),
}


@dataclass(slots=True)
class ClearOperation:
    """Mutable execution state of one clear command."""

    command_id: str
    pr_number: int
    requested_by: str
    started_at: datetime
    started_monotonic: float
    state: RetractionState = RetractionState.PENDING
    completed_at: datetime | None = None
    comments_found: int = 0
    comments_deleted: int = 0
    comments_failed: int = 0
    retry_count: int = 0
    duration_seconds: float = 0.0
    errors: list[str] = field(default_factory=list)

    def transition(self, target: RetractionState) -> None:
        if target not in _ALLOWED_TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Illegal clear state transition: {self.state.value} -> {target.value}",
            )
        self.state = target

    def to_report(self) -> RetractionReport:
        return RetractionReport(
            found_count=self.comments_found,
            deleted_count=self.comments_deleted,
            failed_count=self.comments_failed,
            duration_seconds=self.duration_seconds,
            retry_attempts=self.retry_count,
            state=self.state,
            errors=list(self.errors),
        )


def is_bot_comment(annotation: ExistingAnnotation, *, bot_login: str = DEFAULT_BOT_LOGIN) -> bool:
    return is_automation_owned(body=annotation.body, author=annotation.author, bot_login=bot_login)


def filter_bot_comments(
    annotations: list[ExistingAnnotation],
    *,
    bot_login: str = DEFAULT_BOT_LOGIN,
) -> list[ExistingAnnotation]:
    return [item for item in annotations if is_bot_comment(item, bot_login=bot_login)]


class ClearCommand:
    """Executes one ``/clear`` request against a pull request."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        pr_number: int,
        requested_by: str,
        store: AnnotationStore,
        permissions: PermissionLookup,
        executor: ResilientExecutor | None = None,
        bot_login: str = DEFAULT_BOT_LOGIN,
        emit: Callable[[str], None] = click.echo,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.permissions = permissions
        self.executor = executor or ResilientExecutor(retraction_policy())
        self.bot_login = bot_login
        self._emit = emit
        self._clock = clock
        started_at = datetime.now(tz=UTC)
        self.operation = ClearOperation(
            command_id=f"clear-{pr_number}-{int(started_at.timestamp())}",
            pr_number=pr_number,
            requested_by=requested_by,
            started_at=started_at,
            started_monotonic=clock(),
        )

    def execute(self, *, cancel: CancelToken) -> RetractionReport:
        """Run the command.

        Raises ``AuthorizationError`` (no mutation attempted) or the error of
        the permission lookup / comment listing. Per-comment delete failures do
        not raise; they are counted in the returned report.
        """

        operation = self.operation
        logger.info(
            "Starting clear command for PR #%d (requested by %s)",
            operation.pr_number,
            operation.requested_by,
        )

        try:
            require_authorization(self.permissions, operation.requested_by, cancel=cancel)
        except SyncError as exc:
            self._fail(exc)
            raise

        operation.transition(RetractionState.RUNNING)
        try:
            comments = self.store.list_annotations(cancel=cancel)
        except SyncError as exc:
            logger.error("Failed to fetch review comments: %s", exc)
            self._fail(exc)
            self._log_metrics()
            raise

        owned = filter_bot_comments(comments, bot_login=self.bot_login)
        operation.comments_found = len(owned)
        logger.info("Found %d bot review comments to delete", len(owned))
        if len(owned) > MAX_OWNED_COMMENTS:
            logger.warning(
                "Found %d bot comments, more than the expected maximum of %d",
                len(owned),
                MAX_OWNED_COMMENTS,
            )

        for annotation in owned:
            self._delete_one(annotation, cancel=cancel)

        operation.transition(RetractionState.COMPLETED)
        self._finalize()
        self._log_metrics()

        if operation.comments_failed:
            logger.info(
                "Cleared %d comments with %d failures in %.2fs",
                operation.comments_deleted,
                operation.comments_failed,
                operation.duration_seconds,
            )
        elif owned:
            logger.info(
                "Successfully cleared %d comments in %.2fs",
                operation.comments_deleted,
                operation.duration_seconds,
            )
        else:
            logger.info("No bot comments found to delete")
        return operation.to_report()

    def _delete_one(self, annotation: ExistingAnnotation, *, cancel: CancelToken) -> None:
        operation = self.operation
        remote_id = annotation.remote_id
        result = self.executor.execute(
            lambda: self.store.delete_annotation(remote_id, cancel=cancel),
            cancel=cancel,
            label=f"delete comment {remote_id}",
        )
        operation.retry_count += result.retries

        if result.error is None or isinstance(result.error, NotFoundError):
            operation.comments_deleted += 1
            if isinstance(result.error, NotFoundError):
                logger.info("Comment %d was already deleted", remote_id)
            elif result.retries:
                logger.info("Deleted comment %d (after %d retries)", remote_id, result.retries)
            else:
                logger.info("Deleted comment %d", remote_id)
            return

        message = (
            f"Failed to delete comment {remote_id} after {result.retries} retries: {result.error}"
        )
        logger.warning("%s", message)
        operation.errors.append(message)
        operation.comments_failed += 1

    def _fail(self, error: SyncError) -> None:
        self.operation.transition(RetractionState.FAILED)
        self.operation.errors.append(str(error))
        self._finalize()

    def _finalize(self) -> None:
        self.operation.completed_at = datetime.now(tz=UTC)
        self.operation.duration_seconds = self._clock() - self.operation.started_monotonic

    def _log_metrics(self) -> None:
        operation = self.operation
        report = operation.to_report()
        emit_metrics(
            build_clear_metrics(
                completed_at=operation.completed_at or datetime.now(tz=UTC),
                pr_number=operation.pr_number,
                requested_by=operation.requested_by,
                deleted=operation.comments_deleted,
                failed=operation.comments_failed,
                duration_seconds=operation.duration_seconds,
                retry_attempts=operation.retry_count,
                success=report.success,
            ),
            self._emit,
        )
