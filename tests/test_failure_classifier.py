from __future__ import annotations

import allure

from gitleaks_diff_comment.errors import (
    AuthorizationError,
    NotFoundError,
    OperationCancelledError,
    RateLimitError,
    SyncError,
    TransportError,
    UnclassifiedError,
    ValidationError,
)
from gitleaks_diff_comment.sync.failure_classifier import (
    FAILURE_CLASSIFIER_VERSION,
    classify_failure,
)
from gitleaks_diff_comment.sync.models import FailureClass

pytestmark = [
    allure.epic("Comment Sync"),
    allure.feature("Retries & Failures"),
]


def test_classifier_version_is_stable() -> None:
    assert FAILURE_CLASSIFIER_VERSION == 1


def test_classifier_maps_typed_rate_limit() -> None:
    classified = classify_failure(RateLimitError(message="HTTP 429"))
    assert classified.failure_class == FailureClass.RATE_LIMITED
    assert classified.matched_rule == "typed_rate_limit"


def test_classifier_prefers_rate_limit_text_over_transport_type() -> None:
    classified = classify_failure(TransportError(message="Abuse detection mechanism triggered"))
    assert classified.failure_class == FailureClass.RATE_LIMITED
    assert classified.matched_rule == "rate_limit_text"
    assert classified.matched_pattern == "abuse"


def test_classifier_maps_typed_errors() -> None:
    assert classify_failure(NotFoundError(message="gone")).failure_class == FailureClass.NOT_FOUND
    assert (
        classify_failure(AuthorizationError(message="bad credentials")).failure_class
        == FailureClass.ACCESS_OR_AUTH
    )
    assert (
        classify_failure(ValidationError(message="line must be part of the diff")).failure_class
        == FailureClass.VALIDATION
    )
    assert (
        classify_failure(TransportError(message="connection reset")).failure_class
        == FailureClass.TRANSPORT
    )


def test_classifier_maps_cancellation_first() -> None:
    classified = classify_failure(OperationCancelledError(message="rate limit wait cancelled"))
    assert classified.failure_class == FailureClass.CANCELLED


def test_classifier_falls_back_to_unclassified() -> None:
    for error in (UnclassifiedError(message="HTTP 500"), SyncError(message="boom")):
        classified = classify_failure(error)
        assert classified.failure_class == FailureClass.UNCLASSIFIED
        assert classified.matched_rule == "fallback_unclassified"


def test_classification_details_carry_version() -> None:
    details = classify_failure(NotFoundError(message="gone")).to_details()
    assert details == {
        "classifier_version": 1,
        "failure_class": "not_found",
        "matched_rule": "not_found",
        "matched_pattern": None,
    }
