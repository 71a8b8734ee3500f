"""Error taxonomy for remote comment operations."""

from __future__ import annotations

from dataclasses import dataclass

AUTHORIZED_LEVELS_TEXT = "write, admin, or maintain"


@dataclass(slots=True)
class SyncError(Exception):
    """Base error raised by remote store and permission adapters."""

    message: str
    code: str = "sync_error"

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class ValidationError(SyncError):
    """Malformed input detected before any mutation is attempted."""

    code: str = "validation"


@dataclass(slots=True)
class AuthorizationError(SyncError):
    """Requester or token lacks the permission needed for the operation."""

    code: str = "unauthorized"
    username: str | None = None
    permission_level: str | None = None

    @classmethod
    def for_user(cls, username: str, permission_level: str) -> AuthorizationError:
        """Build the permission-denied error shown to the command requester."""

        return cls(
            message=(
                f"permission denied: user '{username}' does not have required permissions\n"
                f"  → Current permission level: {permission_level}\n"
                f"  → Required: {AUTHORIZED_LEVELS_TEXT} access to repository"
            ),
            username=username,
            permission_level=permission_level,
        )


@dataclass(slots=True)
class RateLimitError(SyncError):
    """Remote store throttled the caller (primary or secondary rate limit)."""

    code: str = "rate_limited"
    retry_after_seconds: float | None = None


@dataclass(slots=True)
class NotFoundError(SyncError):
    """Remote object does not exist (or no longer exists)."""

    code: str = "not_found"


@dataclass(slots=True)
class TransportError(SyncError):
    """Network, DNS or TLS failure before a response was received."""

    code: str = "transport"


@dataclass(slots=True)
class UnclassifiedError(SyncError):
    """Any other remote failure. Never retried."""

    code: str = "unclassified"


@dataclass(slots=True)
class RetryExhaustedError(SyncError):
    """Retryable failure that persisted through every allowed retry."""

    code: str = "retry_exhausted"
    attempts: int = 0
    cause: SyncError | None = None


@dataclass(slots=True)
class OperationCancelledError(SyncError):
    """Run was cancelled or its deadline passed before the operation finished."""

    code: str = "cancelled"
