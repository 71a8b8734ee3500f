"""GitHub REST client for pull request review comments and permissions."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import httpx

from gitleaks_diff_comment import __version__
from gitleaks_diff_comment.errors import (
    AuthorizationError,
    NotFoundError,
    RateLimitError,
    SyncError,
    TransportError,
    UnclassifiedError,
    ValidationError,
)
from gitleaks_diff_comment.sync.cancellation import CancelToken
from gitleaks_diff_comment.sync.models import (
    DesiredAnnotation,
    ExistingAnnotation,
    Location,
    PostedAnnotation,
    Side,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

GITHUB_API_URL = "https://api.github.com"
DEFAULT_TIMEOUT_SECONDS = 30.0
PER_PAGE = 100
DEFAULT_USER_AGENT = f"gitleaks-diff-comment/{__version__}"
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_UNPROCESSABLE = 422
HTTP_TOO_MANY_REQUESTS = 429
_RATE_LIMIT_MESSAGE_PATTERNS = ("rate limit", "abuse")


@dataclass(slots=True)
class PullRequestRef:
    """Repository and pull request the client operates on."""

    owner: str
    repo: str
    number: int

    @classmethod
    def from_repository(cls, repository: str, number: int) -> PullRequestRef:
        owner, _, repo = repository.partition("/")
        if not owner or not repo or "/" in repo:
            raise ValueError(f"repository must be in format owner/repo, got: {repository}")
        if number <= 0:
            raise ValueError("PR number must be positive")
        return cls(owner=owner, repo=repo, number=number)


def api_base_url(gh_host: str = "") -> str:
    """GitHub.com API root, or the Enterprise Server API root for ``gh_host``."""

    if not gh_host:
        return GITHUB_API_URL
    return f"https://{gh_host}/api/v3"


class GitHubClient:
    """httpx wrapper implementing the annotation store and permission lookup."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        token: str,
        pull_request: PullRequestRef,
        gh_host: str = "",
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not token:
            raise ValueError("GitHub token is required")
        self.pull_request = pull_request
        self.gh_host = gh_host
        self._timeout_seconds = timeout_seconds
        self._client = httpx.Client(
            base_url=api_base_url(gh_host),
            timeout=httpx.Timeout(timeout_seconds, connect=10.0),
            headers={
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {token}",
                "User-Agent": user_agent,
                "X-GitHub-Api-Version": "2022-11-28",
            },
            transport=transport,
        )

    @property
    def _repo_path(self) -> str:
        return f"/repos/{self.pull_request.owner}/{self.pull_request.repo}"

    def list_annotations(self, *, cancel: CancelToken) -> list[ExistingAnnotation]:
        """Fetch all review comments of the pull request, following pagination."""

        items = self._get_paginated(
            f"{self._repo_path}/pulls/{self.pull_request.number}/comments",
            cancel=cancel,
        )
        return [
            _decode_item(item, _existing_from_payload, what="review comment") for item in items
        ]

    def create_annotation(
        self,
        desired: DesiredAnnotation,
        *,
        cancel: CancelToken,
    ) -> PostedAnnotation:
        payload: dict[str, Any] = {
            "body": desired.body,
            "commit_id": desired.commit_id,
            "path": desired.location.path,
        }
        if desired.location.line > 0 and desired.location.side:
            payload["line"] = desired.location.line
            payload["side"] = desired.location.side
        else:
            payload["position"] = desired.position
        response = self._request(
            "POST",
            f"{self._repo_path}/pulls/{self.pull_request.number}/comments",
            cancel=cancel,
            json=payload,
        )
        return _decode(response, _posted_from_payload, what="review comment")

    def update_annotation(
        self,
        remote_id: int,
        body: str,
        *,
        cancel: CancelToken,
    ) -> PostedAnnotation:
        response = self._request(
            "PATCH",
            f"{self._repo_path}/pulls/comments/{remote_id}",
            cancel=cancel,
            json={"body": body},
        )
        return _decode(response, _posted_from_payload, what="review comment")

    def delete_annotation(self, remote_id: int, *, cancel: CancelToken) -> None:
        self._request("DELETE", f"{self._repo_path}/pulls/comments/{remote_id}", cancel=cancel)

    def check_quota(self, *, cancel: CancelToken) -> int:
        response = self._request("GET", "/rate_limit", cancel=cancel)
        return _decode(response, _quota_from_payload, what="rate limit")

    def get_permission_level(self, username: str, *, cancel: CancelToken) -> str:
        """Return the collaborator permission level; unknown users map to ``none``."""

        try:
            response = self._request(
                "GET",
                f"{self._repo_path}/collaborators/{username}/permission",
                cancel=cancel,
            )
        except NotFoundError:
            return "none"
        return _decode(response, _permission_from_payload, what="collaborator permission")

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> GitHubClient:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def _get_paginated(self, path: str, *, cancel: CancelToken) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        url: str | None = path
        params: dict[str, Any] | None = {"per_page": PER_PAGE}
        while url is not None:
            response = self._request("GET", url, cancel=cancel, params=params)
            page = _decode(response, _json_list, what=f"{path} page")
            items.extend(page)
            url = response.links.get("next", {}).get("url")
            # The next link already carries per_page and page.
            params = None
        return items

    def _request(
        self,
        method: str,
        url: str,
        *,
        cancel: CancelToken,
        **kwargs: Any,
    ) -> httpx.Response:
        cancel.raise_if_cancelled()
        remaining = cancel.remaining()
        if remaining is not None:
            kwargs["timeout"] = min(self._timeout_seconds, max(remaining, 0.001))
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            raise self._transport_error(exc) from exc
        except httpx.RequestError as exc:
            raise UnclassifiedError(message=f"{method} {url}: {type(exc).__name__}: {exc}") from exc
        if response.is_success:
            return response
        raise self._status_error(response, method=method, url=url)

    def _transport_error(self, error: httpx.TransportError) -> TransportError:
        if self.gh_host:
            message = (
                f"cannot connect to GitHub Enterprise Server at {self.gh_host}\n"
                "  → Action: Verify hostname is correct and server is reachable\n"
                "  → Check: Network connectivity, firewall rules, DNS resolution\n"
                f"  → Original error: {error}"
            )
        else:
            message = (
                "cannot connect to GitHub.com\n"
                "  → Action: Check network connectivity\n"
                f"  → Original error: {error}"
            )
        return TransportError(message=message)

    def _status_error(self, response: httpx.Response, *, method: str, url: str) -> SyncError:
        status = response.status_code
        detail = _error_message(response)
        summary = f"{method} {url}: HTTP {status}: {detail}"

        if status == HTTP_TOO_MANY_REQUESTS or (
            status == HTTP_FORBIDDEN and _is_rate_limited(response, detail)
        ):
            return RateLimitError(
                message=f"API rate limit exceeded ({summary})",
                code=str(status),
                retry_after_seconds=_retry_after(response),
            )
        if status == HTTP_NOT_FOUND:
            return NotFoundError(message=summary, code=str(status))
        if status in {HTTP_UNAUTHORIZED, HTTP_FORBIDDEN}:
            target = (
                f"GitHub Enterprise Server at {self.gh_host}" if self.gh_host else "GitHub.com"
            )
            return AuthorizationError(
                message=(
                    f"authentication failed for {target}\n"
                    "  → Action: Verify token has required permissions (repo, pull_requests)\n"
                    "  → Check: Token is valid and not expired\n"
                    f"  → Original error: {summary}"
                ),
                code=str(status),
            )
        if status == HTTP_UNPROCESSABLE:
            return ValidationError(message=summary, code=str(status))
        return UnclassifiedError(message=summary, code=str(status))


def _is_rate_limited(response: httpx.Response, detail: str) -> bool:
    if response.headers.get("x-ratelimit-remaining") == "0":
        return True
    lowered = detail.lower()
    return any(pattern in lowered for pattern in _RATE_LIMIT_MESSAGE_PATTERNS)


def _retry_after(response: httpx.Response) -> float | None:
    raw = response.headers.get("retry-after")
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        # HTTP-date form is not used by GitHub.
        return None


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return response.reason_phrase


def _existing_from_payload(item: dict[str, Any]) -> ExistingAnnotation:
    user = item.get("user") or {}
    line = item.get("line") or item.get("original_line") or 0
    return ExistingAnnotation(
        remote_id=int(item["id"]),
        location=Location(
            path=str(item.get("path") or ""),
            line=int(line),
            side=str(item.get("side") or Side.RIGHT.value),
        ),
        body=str(item.get("body") or ""),
        author=str(user.get("login") or ""),
    )


def _posted_from_payload(item: dict[str, Any]) -> PostedAnnotation:
    return PostedAnnotation(remote_id=int(item["id"]), url=str(item.get("html_url") or ""))


def _quota_from_payload(payload: Any) -> int:
    return int(payload["resources"]["core"]["remaining"])


def _permission_from_payload(payload: Any) -> str:
    return str(payload.get("permission") or "none")


def _json_list(payload: Any) -> list[dict[str, Any]]:
    if not isinstance(payload, list):
        raise TypeError(f"expected a JSON list, got {type(payload).__name__}")
    return payload


def _decode(response: httpx.Response, parse: Callable[[Any], T], *, what: str) -> T:
    """Parse a successful response body; malformed payloads become ``UnclassifiedError``."""

    try:
        return parse(response.json())
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        raise UnclassifiedError(
            message=f"Malformed {what} response (HTTP {response.status_code}): {exc!r}",
        ) from exc


def _decode_item(item: Any, parse: Callable[[Any], T], *, what: str) -> T:
    try:
        return parse(item)
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        raise UnclassifiedError(message=f"Malformed {what} in response: {exc!r}") from exc
