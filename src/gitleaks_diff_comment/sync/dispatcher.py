"""Post flow: reconcile desired comments and apply them with bounded concurrency."""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed

from gitleaks_diff_comment.sync.aggregator import aggregate_outcomes
from gitleaks_diff_comment.sync.cancellation import CancelToken
from gitleaks_diff_comment.sync.models import (
    ActionKind,
    CommentMode,
    DesiredAnnotation,
    OperationOutcome,
    OperationStatus,
    PostedAnnotation,
    SyncReport,
)
from gitleaks_diff_comment.sync.reconciler import PlannedAction, plan_actions
from gitleaks_diff_comment.sync.retry import ExecutionResult, ResilientExecutor, posting_policy
from gitleaks_diff_comment.sync.store import AnnotationStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 5
PROGRESS_BATCH_THRESHOLD = 20
PROGRESS_EVERY = 10
_SEMAPHORE_POLL_SECONDS = 0.05


class CommentDispatcher:
    """Runs one reconciled post pass against the remote store.

    Every desired comment gets its own thread; a bounded semaphore keeps at
    most ``max_concurrency`` remote mutations in flight at once.
    """

    def __init__(
        self,
        *,
        store: AnnotationStore,
        executor: ResilientExecutor | None = None,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ) -> None:
        if max_concurrency <= 0:
            raise ValueError("max_concurrency must be a positive integer.")
        self.store = store
        self.executor = executor or ResilientExecutor(posting_policy())
        self.max_concurrency = max_concurrency

    def post(
        self,
        desired: Sequence[DesiredAnnotation],
        *,
        mode: CommentMode,
        cancel: CancelToken,
    ) -> SyncReport:
        """Reconcile and apply ``desired``.

        Failing to list existing comments aborts the run before any mutation
        and propagates. Per-item failures end up in the report instead.
        """

        existing = self.store.list_annotations(cancel=cancel)
        logger.debug("Fetched %d existing review comments", len(existing))
        self._log_quota(cancel)
        logger.debug("Comment mode: %s", mode.value)

        plan = plan_actions(desired, existing, mode=mode)
        outcomes = self._dispatch(plan, cancel=cancel)
        report = aggregate_outcomes(outcomes)
        logger.info(
            "Summary: Posted=%d, Skipped=%d, Errors=%d",
            report.posted,
            report.skipped_duplicates,
            report.errors,
        )
        return report

    def _log_quota(self, cancel: CancelToken) -> None:
        try:
            remaining = self.store.check_quota(cancel=cancel)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to check rate limit: %s", exc)
            return
        logger.debug("GitHub API rate limit remaining: %d calls", remaining)

    def _dispatch(
        self,
        plan: list[PlannedAction],
        *,
        cancel: CancelToken,
    ) -> list[OperationOutcome]:
        if not plan:
            return []

        total = len(plan)
        semaphore = threading.BoundedSemaphore(self.max_concurrency)
        outcomes: list[OperationOutcome] = []
        posted = 0
        with ThreadPoolExecutor(max_workers=total, thread_name_prefix="comment") as pool:
            futures = [
                pool.submit(self._run_item, action, total, semaphore, cancel) for action in plan
            ]
            for future in as_completed(futures):
                outcome = future.result()
                outcomes.append(outcome)
                if outcome.status == OperationStatus.CREATED:
                    posted += 1
                if total >= PROGRESS_BATCH_THRESHOLD and len(outcomes) % PROGRESS_EVERY == 0:
                    logger.info(
                        "Progress: %d/%d comments processed, %d posted",
                        len(outcomes),
                        total,
                        posted,
                    )

        if total >= PROGRESS_BATCH_THRESHOLD:
            logger.info(
                "Completed: %d/%d comments processed, %d posted",
                len(outcomes),
                total,
                posted,
            )
        return outcomes

    def _run_item(
        self,
        action: PlannedAction,
        total: int,
        semaphore: threading.BoundedSemaphore,
        cancel: CancelToken,
    ) -> OperationOutcome:
        tag = f"[{action.index + 1}/{total}]"
        if action.kind == ActionKind.SKIP_DUPLICATE:
            logger.debug("%s Skipping duplicate comment at %s", tag, action.desired.location)
            return OperationOutcome(
                status=OperationStatus.SKIPPED_DUPLICATE,
                action=action.kind,
                body_preview=action.desired.preview,
            )

        if not _acquire(semaphore, cancel):
            return _cancelled_outcome(action, cancel)
        try:
            return self._apply(action, tag=tag, cancel=cancel)
        finally:
            semaphore.release()

    def _apply(self, action: PlannedAction, *, tag: str, cancel: CancelToken) -> OperationOutcome:
        desired = action.desired
        existing = action.existing

        if action.kind == ActionKind.UPDATE and existing is not None:
            logger.debug("%s Updating existing comment at %s", tag, desired.location)
            result = self.executor.execute(
                lambda: self.store.update_annotation(
                    existing.remote_id,
                    desired.body,
                    cancel=cancel,
                ),
                cancel=cancel,
                label=f"{tag} update comment {existing.remote_id}",
            )
            return _outcome_from_result(result, action, success=OperationStatus.UPDATED)

        if action.kind == ActionKind.RELOCATE and existing is not None:
            logger.debug(
                "%s Line shifted (%s → %s), replacing comment",
                tag,
                existing.location,
                desired.location,
            )
            try:
                self.store.delete_annotation(existing.remote_id, cancel=cancel)
            except Exception as exc:  # noqa: BLE001
                # Best effort: the stale comment may be left behind.
                logger.debug("%s Ignoring failure to delete stale comment: %s", tag, exc)

        result = self.executor.execute(
            lambda: self.store.create_annotation(desired, cancel=cancel),
            cancel=cancel,
            label=f"{tag} post comment",
        )
        return _outcome_from_result(result, action, success=OperationStatus.CREATED)


def _acquire(semaphore: threading.BoundedSemaphore, cancel: CancelToken) -> bool:
    while not semaphore.acquire(timeout=_SEMAPHORE_POLL_SECONDS):
        if cancel.cancelled:
            return False
    if cancel.cancelled:
        semaphore.release()
        return False
    return True


def _outcome_from_result(
    result: ExecutionResult[PostedAnnotation],
    action: PlannedAction,
    *,
    success: OperationStatus,
) -> OperationOutcome:
    if result.error is not None:
        logger.warning(
            "Failed to %s comment at %s: %s",
            action.kind.value,
            action.desired.location,
            result.error,
        )
        return OperationOutcome(
            status=OperationStatus.ERROR,
            action=action.kind,
            attempts=result.attempts,
            error=str(result.error),
            body_preview=action.desired.preview,
        )

    posted = result.value
    return OperationOutcome(
        status=success,
        action=action.kind,
        attempts=result.attempts,
        remote_id=posted.remote_id if posted is not None else None,
        url=posted.url if posted is not None else None,
        body_preview=action.desired.preview,
    )


def _cancelled_outcome(action: PlannedAction, cancel: CancelToken) -> OperationOutcome:
    return OperationOutcome(
        status=OperationStatus.ERROR,
        action=action.kind,
        attempts=0,
        error=f"operation cancelled before dispatch: {cancel.reason}",
        body_preview=action.desired.preview,
    )
