"""Retry policies and the resilient executor wrapping single remote mutations.

Posting uses a fixed delay schedule and retries rate limits only. Retraction
uses exponential backoff with jitter and also retries transport failures.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Generic, Protocol, TypeVar

from gitleaks_diff_comment.errors import (
    OperationCancelledError,
    RetryExhaustedError,
    SyncError,
    UnclassifiedError,
)
from gitleaks_diff_comment.sync.cancellation import CancelToken
from gitleaks_diff_comment.sync.failure_classifier import (
    FailureClassification,
    classify_failure,
)
from gitleaks_diff_comment.sync.models import FailureClass

logger = logging.getLogger(__name__)

T = TypeVar("T")

POSTING_DELAYS_SECONDS: tuple[float, ...] = (1.0, 2.0, 4.0)
RETRACTION_BASE_DELAY_SECONDS = 2.0
RETRACTION_MULTIPLIER = 2.0
RETRACTION_MAX_DELAY_SECONDS = 32.0
RETRACTION_MAX_RETRIES = 3


class RetryPolicy(Protocol):
    """Decides whether and when a failed attempt is retried."""

    name: str

    @property
    def max_retries(self) -> int:
        """Retries allowed after the first attempt."""

    def should_retry(self, classification: FailureClassification) -> bool:
        """Return True if this failure class is retryable under the policy."""

    def delay_for(self, retry_number: int) -> float:
        """Delay in seconds before retry ``retry_number`` (1-based)."""


@dataclass(slots=True)
class FixedDelayRetryPolicy:
    """Posting-path policy: fixed 1s/2s/4s schedule, no jitter, rate limits only."""

    name: str = "posting"
    delays_seconds: tuple[float, ...] = POSTING_DELAYS_SECONDS
    retryable: frozenset[FailureClass] = frozenset({FailureClass.RATE_LIMITED})

    @property
    def max_retries(self) -> int:
        return len(self.delays_seconds)

    def should_retry(self, classification: FailureClassification) -> bool:
        return classification.failure_class in self.retryable

    def delay_for(self, retry_number: int) -> float:
        return self.delays_seconds[retry_number - 1]


@dataclass(slots=True)
class ExponentialBackoffRetryPolicy:
    """Retraction-path policy: 2s doubling up to 32s plus jitter in [0, delay/2)."""

    name: str = "retraction"
    base_delay_seconds: float = RETRACTION_BASE_DELAY_SECONDS
    multiplier: float = RETRACTION_MULTIPLIER
    max_delay_seconds: float = RETRACTION_MAX_DELAY_SECONDS
    retries: int = RETRACTION_MAX_RETRIES
    retryable: frozenset[FailureClass] = frozenset(
        {FailureClass.RATE_LIMITED, FailureClass.TRANSPORT},
    )
    rng: random.Random = field(default_factory=random.Random)

    @property
    def max_retries(self) -> int:
        return self.retries

    def should_retry(self, classification: FailureClassification) -> bool:
        return classification.failure_class in self.retryable

    def base_delay_for(self, retry_number: int) -> float:
        return min(
            self.max_delay_seconds,
            self.base_delay_seconds * self.multiplier ** max(retry_number - 1, 0),
        )

    def delay_for(self, retry_number: int) -> float:
        delay = self.base_delay_for(retry_number)
        return delay + self.rng.random() * (delay / 2)


def posting_policy() -> FixedDelayRetryPolicy:
    return FixedDelayRetryPolicy()


def retraction_policy(*, rng: random.Random | None = None) -> ExponentialBackoffRetryPolicy:
    if rng is None:
        return ExponentialBackoffRetryPolicy()
    return ExponentialBackoffRetryPolicy(rng=rng)


@dataclass(slots=True)
class ExecutionResult(Generic[T]):
    """Attempts used and the value or terminal error of one executed operation."""

    attempts: int
    value: T | None = None
    error: SyncError | None = None
    classification: FailureClassification | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def retries(self) -> int:
        return max(self.attempts - 1, 0)


class ResilientExecutor:
    """Runs one remote operation under a retry policy."""

    def __init__(
        self,
        policy: RetryPolicy,
        *,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.policy = policy
        self._sleep = sleep

    def execute(
        self,
        operation: Callable[[], T],
        *,
        cancel: CancelToken,
        label: str = "operation",
    ) -> ExecutionResult[T]:
        """Call ``operation`` until it succeeds, fails terminally, or retries run out.

        Only failures the policy classifies as retryable are retried. Any other
        error is returned after the attempt that raised it. An operation that
        keeps failing with a retryable error is attempted ``1 + max_retries``
        times and then reported as ``RetryExhaustedError``.
        """

        attempts = 0
        while True:
            if cancel.cancelled:
                return ExecutionResult(
                    attempts=attempts,
                    error=OperationCancelledError(
                        message=f"{label} cancelled before completion: {cancel.reason}",
                    ),
                )

            attempts += 1
            value, exc = _attempt(operation, label=label)
            if exc is None:
                return ExecutionResult(attempts=attempts, value=value)

            classification = classify_failure(exc)
            if not self.policy.should_retry(classification):
                return ExecutionResult(
                    attempts=attempts,
                    error=exc,
                    classification=classification,
                )
            if attempts > self.policy.max_retries:
                logger.warning(
                    "%s: giving up after %d attempts (%s policy): %s",
                    label,
                    attempts,
                    self.policy.name,
                    exc,
                )
                return ExecutionResult(
                    attempts=attempts,
                    error=RetryExhaustedError(
                        message=(
                            f"max retries ({self.policy.max_retries}) exceeded "
                            f"after {attempts} attempts: {exc}"
                        ),
                        attempts=attempts,
                        cause=exc,
                    ),
                    classification=classification,
                )

            delay = self.policy.delay_for(attempts)
            logger.info(
                "%s: %s (%s), retry %d/%d in %.1fs",
                label,
                classification.failure_class.value,
                classification.matched_rule,
                attempts,
                self.policy.max_retries,
                delay,
            )
            if self._wait(delay, cancel):
                return ExecutionResult(
                    attempts=attempts,
                    error=OperationCancelledError(
                        message=f"{label} cancelled during retry backoff: {cancel.reason}",
                    ),
                    classification=classification,
                )

    def _wait(self, seconds: float, cancel: CancelToken) -> bool:
        if self._sleep is None:
            return cancel.wait(seconds)
        self._sleep(seconds)
        return cancel.cancelled


def _attempt(operation: Callable[[], T], *, label: str) -> tuple[T | None, SyncError | None]:
    """Run one attempt; unexpected exceptions become a non-retryable ``UnclassifiedError``."""

    try:
        return operation(), None
    except SyncError as exc:
        return None, exc
    except Exception as error:  # noqa: BLE001
        logger.warning("%s: unexpected %s: %s", label, type(error).__name__, error)
        return None, UnclassifiedError(message=f"{type(error).__name__}: {error}")
