"""Shared test fixtures."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from itertools import count

import pytest

from gitleaks_diff_comment.errors import NotFoundError
from gitleaks_diff_comment.sync.cancellation import CancelToken
from gitleaks_diff_comment.sync.markers import build_marker
from gitleaks_diff_comment.sync.models import (
    DesiredAnnotation,
    ExistingAnnotation,
    Location,
    PostedAnnotation,
)

GITHUB_ENV_VARS = (
    "INPUT_GITHUB-TOKEN",
    "GITHUB_REPOSITORY",
    "INPUT_PR-NUMBER",
    "INPUT_COMMIT-SHA",
    "GITHUB_SHA",
    "INPUT_COMMENT-MODE",
    "INPUT_GH-HOST",
    "INPUT_DEBUG",
    "INPUT_REQUESTER",
    "GITHUB_OUTPUT",
    "GITLEAKS_DIFF_COMMENT_MAX_CONCURRENCY",
    "GITLEAKS_DIFF_COMMENT_REQUEST_TIMEOUT_SECONDS",
    "GITLEAKS_DIFF_COMMENT_BOT_LOGIN",
)


def make_body(path: str, content: str, side: str = "RIGHT", text: str = "Secret ignored") -> str:
    return f"{build_marker(path, content, side)}\n{text}"


def make_desired(
    path: str = "src/app.py",
    line: int = 10,
    *,
    content: str = "abc123:src/app.py:generic-api-key:10",
    side: str = "RIGHT",
    text: str = "Secret ignored",
) -> DesiredAnnotation:
    return DesiredAnnotation(
        location=Location(path=path, line=line, side=side),
        body=make_body(path, content, side, text),
        commit_id="deadbeef",
    )


class FakeStore:
    """In-memory annotation store and permission lookup.

    ``failures`` maps an operation name to a callable deciding per call whether
    to raise; it receives the call argument (remote id or desired annotation).
    """

    def __init__(
        self,
        existing: list[ExistingAnnotation] | None = None,
        *,
        permission: str = "write",
        delay_seconds: float = 0.0,
    ) -> None:
        self.existing = list(existing or [])
        self.permission = permission
        self.delay_seconds = delay_seconds
        self.failures: dict[str, Callable[[object], Exception | None]] = {}
        self.created: list[DesiredAnnotation] = []
        self.updated: list[tuple[int, str]] = []
        self.deleted: list[int] = []
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._ids = count(1000)
        self._lock = threading.Lock()

    def list_annotations(self, *, cancel: CancelToken) -> list[ExistingAnnotation]:
        self._record("list", None)
        return list(self.existing)

    def create_annotation(
        self,
        desired: DesiredAnnotation,
        *,
        cancel: CancelToken,
    ) -> PostedAnnotation:
        self._enter()
        try:
            self._record("create", desired)
            remote_id = next(self._ids)
            with self._lock:
                self.created.append(desired)
                self.existing.append(
                    ExistingAnnotation(
                        remote_id=remote_id,
                        location=desired.location,
                        body=desired.body,
                        author="github-actions[bot]",
                    ),
                )
            return PostedAnnotation(remote_id=remote_id, url=f"https://example.test/c/{remote_id}")
        finally:
            self._leave()

    def update_annotation(
        self,
        remote_id: int,
        body: str,
        *,
        cancel: CancelToken,
    ) -> PostedAnnotation:
        self._enter()
        try:
            self._record("update", remote_id)
            with self._lock:
                self.updated.append((remote_id, body))
            return PostedAnnotation(remote_id=remote_id, url=f"https://example.test/c/{remote_id}")
        finally:
            self._leave()

    def delete_annotation(self, remote_id: int, *, cancel: CancelToken) -> None:
        self._record("delete", remote_id)
        with self._lock:
            remaining = [item for item in self.existing if item.remote_id != remote_id]
            if len(remaining) == len(self.existing):
                raise NotFoundError(message=f"comment {remote_id} not found")
            self.existing = remaining
            self.deleted.append(remote_id)

    def check_quota(self, *, cancel: CancelToken) -> int:
        self._record("quota", None)
        return 5000

    def get_permission_level(self, username: str, *, cancel: CancelToken) -> str:
        self._record("permission", username)
        return self.permission

    def _record(self, operation: str, argument: object) -> None:
        with self._lock:
            self.calls.append(operation)
        decide = self.failures.get(operation)
        if decide is None:
            return
        error = decide(argument)
        if error is not None:
            raise error

    def _enter(self) -> None:
        with self._lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        if self.delay_seconds:
            time.sleep(self.delay_seconds)

    def _leave(self) -> None:
        with self._lock:
            self.in_flight -= 1


@pytest.fixture()
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture()
def cancel() -> CancelToken:
    return CancelToken()


@pytest.fixture()
def github_env(monkeypatch) -> None:
    """Minimal valid action environment."""

    for name in GITHUB_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("INPUT_GITHUB-TOKEN", "ghs_test")
    monkeypatch.setenv("GITHUB_REPOSITORY", "octo/repo")
    monkeypatch.setenv("INPUT_PR-NUMBER", "42")
    monkeypatch.setenv("GITHUB_SHA", "deadbeef")
