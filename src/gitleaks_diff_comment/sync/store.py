"""Remote store and permission lookup contracts consumed by the sync core."""

from __future__ import annotations

from typing import Protocol

from gitleaks_diff_comment.sync.cancellation import CancelToken
from gitleaks_diff_comment.sync.models import (
    DesiredAnnotation,
    ExistingAnnotation,
    PostedAnnotation,
)


class AnnotationStore(Protocol):
    """Review comments of one pull request.

    Implementations raise ``gitleaks_diff_comment.errors.SyncError`` subclasses;
    ``delete_annotation`` raises ``NotFoundError`` when the comment is gone.
    """

    def list_annotations(self, *, cancel: CancelToken) -> list[ExistingAnnotation]:
        """Return every review comment on the pull request, across all pages."""

    def create_annotation(
        self,
        desired: DesiredAnnotation,
        *,
        cancel: CancelToken,
    ) -> PostedAnnotation:
        """Post a new line comment."""

    def update_annotation(
        self,
        remote_id: int,
        body: str,
        *,
        cancel: CancelToken,
    ) -> PostedAnnotation:
        """Replace the body of an existing comment."""

    def delete_annotation(self, remote_id: int, *, cancel: CancelToken) -> None:
        """Delete a comment."""

    def check_quota(self, *, cancel: CancelToken) -> int:
        """Return the remaining API call budget."""


class PermissionLookup(Protocol):
    """Repository permission level of a user."""

    def get_permission_level(self, username: str, *, cancel: CancelToken) -> str:
        """Return one of none/read/triage/write/maintain/admin."""
