"""Deterministic failure classification for remote comment operations."""

from __future__ import annotations

from dataclasses import dataclass

from gitleaks_diff_comment.errors import (
    AuthorizationError,
    NotFoundError,
    OperationCancelledError,
    RateLimitError,
    TransportError,
    ValidationError,
)
from gitleaks_diff_comment.sync.models import FailureClass

FAILURE_CLASSIFIER_VERSION = 1

_RATE_LIMIT_PATTERNS: tuple[str, ...] = (
    "rate limit",
    "abuse",
)


@dataclass(slots=True)
class FailureClassification:
    """Normalized failure classification result."""

    failure_class: FailureClass
    matched_rule: str
    matched_pattern: str | None = None

    def to_details(self) -> dict[str, object]:
        return {
            "classifier_version": FAILURE_CLASSIFIER_VERSION,
            "failure_class": self.failure_class.value,
            "matched_rule": self.matched_rule,
            "matched_pattern": self.matched_pattern,
        }


def classify_failure(error: Exception) -> FailureClassification:
    """Classify an operation error into a retry class.

    Rate limiting is recognised either by type or by message text, and the
    text rule runs before the other typed rules so that, for example, a
    transport error mentioning abuse detection is still treated as throttling.
    """

    if isinstance(error, OperationCancelledError):
        return FailureClassification(
            failure_class=FailureClass.CANCELLED,
            matched_rule="cancelled",
        )

    if isinstance(error, RateLimitError):
        return FailureClassification(
            failure_class=FailureClass.RATE_LIMITED,
            matched_rule="typed_rate_limit",
        )

    pattern = _first_match(str(error).lower(), _RATE_LIMIT_PATTERNS)
    if pattern is not None:
        return FailureClassification(
            failure_class=FailureClass.RATE_LIMITED,
            matched_rule="rate_limit_text",
            matched_pattern=pattern,
        )

    if isinstance(error, NotFoundError):
        return FailureClassification(
            failure_class=FailureClass.NOT_FOUND,
            matched_rule="not_found",
        )

    if isinstance(error, AuthorizationError):
        return FailureClassification(
            failure_class=FailureClass.ACCESS_OR_AUTH,
            matched_rule="access_or_auth",
        )

    if isinstance(error, ValidationError):
        return FailureClassification(
            failure_class=FailureClass.VALIDATION,
            matched_rule="validation",
        )

    if isinstance(error, TransportError):
        return FailureClassification(
            failure_class=FailureClass.TRANSPORT,
            matched_rule="transport",
        )

    return FailureClassification(
        failure_class=FailureClass.UNCLASSIFIED,
        matched_rule="fallback_unclassified",
    )


def _first_match(haystack: str, patterns: tuple[str, ...]) -> str | None:
    for pattern in patterns:
        if pattern in haystack:
            return pattern
    return None
