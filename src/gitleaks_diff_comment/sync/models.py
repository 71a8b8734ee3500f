"""Domain models for comment reconciliation, delivery and retraction."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from gitleaks_diff_comment.sync.markers import body_preview, extract_marker


class CommentMode(str, Enum):
    """How desired comments are reconciled against existing ones."""

    OVERRIDE = "override"
    APPEND = "append"


class Side(str, Enum):
    """Diff side a line comment is anchored to."""

    LEFT = "LEFT"
    RIGHT = "RIGHT"


class ActionKind(str, Enum):
    """Reconciler decision for one desired comment."""

    CREATE = "create"
    UPDATE = "update"
    RELOCATE = "relocate"
    SKIP_DUPLICATE = "skip_duplicate"


class OperationStatus(str, Enum):
    """Final per-item outcome."""

    CREATED = "created"
    UPDATED = "updated"
    SKIPPED_DUPLICATE = "skipped_duplicate"
    DELETED = "deleted"
    ERROR = "error"


class FailureClass(str, Enum):
    """Normalized failure classes used by retry policies."""

    RATE_LIMITED = "rate_limited"
    TRANSPORT = "transport"
    NOT_FOUND = "not_found"
    ACCESS_OR_AUTH = "access_or_auth"
    VALIDATION = "validation"
    CANCELLED = "cancelled"
    UNCLASSIFIED = "unclassified"


class RetractionState(str, Enum):
    """Clear command lifecycle. Transitions only move forward."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class Location:
    """Anchor of a line comment in the pull request diff."""

    path: str
    line: int
    side: str = Side.RIGHT.value

    def __str__(self) -> str:
        return f"{self.path}:{self.line} ({self.side})"


@dataclass(slots=True)
class DesiredAnnotation:
    """Comment state a run wants to exist on the pull request."""

    location: Location
    body: str
    commit_id: str = ""
    position: int = 0
    marker: str | None = field(init=False, default=None)

    def __post_init__(self) -> None:
        self.marker = extract_marker(self.body)

    @property
    def preview(self) -> str:
        return body_preview(self.body)


@dataclass(slots=True)
class ExistingAnnotation:
    """Review comment currently present on the pull request."""

    remote_id: int
    location: Location
    body: str
    author: str = ""
    marker: str | None = field(init=False, default=None)

    def __post_init__(self) -> None:
        self.marker = extract_marker(self.body)


@dataclass(slots=True)
class PostedAnnotation:
    """Remote handle returned by create/update calls."""

    remote_id: int
    url: str = ""


@dataclass(slots=True)
class OperationOutcome:
    """Result of applying one reconciler action (or one retraction delete)."""

    status: OperationStatus
    action: ActionKind | None = None
    attempts: int = 0
    remote_id: int | None = None
    url: str | None = None
    error: str | None = None
    body_preview: str = ""

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "status": self.status.value,
            "attempts": self.attempts,
        }
        if self.action is not None:
            payload["action"] = self.action.value
        if self.remote_id is not None:
            payload["comment_id"] = self.remote_id
        if self.url:
            payload["comment_url"] = self.url
        if self.error:
            payload["error"] = self.error
        if self.body_preview:
            payload["body_preview"] = self.body_preview
        return payload


@dataclass(slots=True)
class SyncReport:
    """Aggregate counters and per-item results of one post run."""

    created: int = 0
    updated: int = 0
    skipped_duplicates: int = 0
    errors: int = 0
    results: list[OperationOutcome] = field(default_factory=list)

    @property
    def posted(self) -> int:
        """Updates count as posted, matching the action outputs."""

        return self.created + self.updated

    @property
    def total(self) -> int:
        return self.posted + self.skipped_duplicates + self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "posted": self.posted,
            "skipped_duplicates": self.skipped_duplicates,
            "errors": self.errors,
            "results": [result.to_dict() for result in self.results],
        }


@dataclass(slots=True)
class RetractionReport:
    """Summary of one clear command run."""

    found_count: int
    deleted_count: int
    failed_count: int
    duration_seconds: float
    retry_attempts: int
    state: RetractionState
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.state == RetractionState.COMPLETED and self.failed_count == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "found": self.found_count,
            "deleted": self.deleted_count,
            "failed": self.failed_count,
            "duration_seconds": round(self.duration_seconds, 3),
            "retry_attempts": self.retry_attempts,
            "state": self.state.value,
            "success": self.success,
            "errors": list(self.errors),
        }
