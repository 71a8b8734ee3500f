"""Authorization gate for comment commands."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from gitleaks_diff_comment.errors import AuthorizationError, NotFoundError
from gitleaks_diff_comment.sync.cancellation import CancelToken
from gitleaks_diff_comment.sync.store import PermissionLookup

logger = logging.getLogger(__name__)

AUTHORIZED_LEVELS = frozenset({"write", "admin", "maintain"})


@dataclass(slots=True)
class Authorization:
    """Permission check result for a command requester."""

    username: str
    permission_level: str
    is_authorized: bool
    checked_at: datetime
    reason: str = ""


def check_authorization(
    lookup: PermissionLookup,
    username: str,
    *,
    cancel: CancelToken,
) -> Authorization:
    """Look up ``username`` and decide whether it may run commands.

    Transport and other lookup failures propagate to the caller. Unknown users
    resolve to ``none`` and are rejected.
    """

    if not username:
        return Authorization(
            username=username,
            permission_level="none",
            is_authorized=False,
            checked_at=datetime.now(tz=UTC),
            reason="requester is empty",
        )

    try:
        level = lookup.get_permission_level(username, cancel=cancel)
    except NotFoundError:
        level = "none"
    level = (level or "none").strip().lower()

    authorized = level in AUTHORIZED_LEVELS
    return Authorization(
        username=username,
        permission_level=level,
        is_authorized=authorized,
        checked_at=datetime.now(tz=UTC),
        reason="" if authorized else f"permission level '{level}' is below write",
    )


def require_authorization(
    lookup: PermissionLookup,
    username: str,
    *,
    cancel: CancelToken,
) -> Authorization:
    """Return the authorization or raise ``AuthorizationError``."""

    authorization = check_authorization(lookup, username, cancel=cancel)
    if not authorization.is_authorized:
        raise AuthorizationError.for_user(username, authorization.permission_level)
    logger.info(
        "Permission check passed: %s has %s access",
        username,
        authorization.permission_level,
    )
    return authorization
