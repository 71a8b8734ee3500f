from __future__ import annotations

import json
from pathlib import Path

import allure
import pytest
from click.testing import CliRunner

from conftest import FakeStore, make_body
from gitleaks_diff_comment import main
from gitleaks_diff_comment.controllers import CommentCliController
from gitleaks_diff_comment.errors import ValidationError
from gitleaks_diff_comment.sync.models import ExistingAnnotation, Location

pytestmark = [
    allure.epic("Action Runtime"),
    allure.feature("CLI"),
]


class _ClosableStore(FakeStore):
    closed = False

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def store(monkeypatch) -> _ClosableStore:
    fake = _ClosableStore()
    monkeypatch.setattr(
        main,
        "CONTROLLER",
        CommentCliController(client_factory=lambda _settings: fake),
    )
    return fake


def _write_comments(tmp_path: Path, count: int = 2) -> Path:
    items = [
        {
            "body": make_body(".gitleaksignore", f"sha:src/f{n}.py:rule:{n}"),
            "path": ".gitleaksignore",
            "line": n + 1,
            "side": "RIGHT",
        }
        for n in range(count)
    ]
    path = tmp_path / "comments.json"
    path.write_text(json.dumps(items), encoding="utf-8")
    return path


def test_post_reports_counts_and_writes_action_outputs(
    github_env,
    monkeypatch,
    store: _ClosableStore,
    tmp_path: Path,
) -> None:
    output_file = tmp_path / "github_output"
    monkeypatch.setenv("GITHUB_OUTPUT", str(output_file))

    result = CliRunner().invoke(
        main.gitleaks_diff_comment,
        ["post", "--comments", str(_write_comments(tmp_path))],
    )

    assert result.exit_code == 0, result.output
    assert "✓ Posted: 2 comments (2 new, 0 updated)" in result.output
    assert "⊘ Skipped: 0 duplicates" in result.output
    assert output_file.read_text("utf-8") == "posted=2\nskipped_duplicates=0\nerrors=0\n"
    assert len(store.created) == 2
    assert store.closed


def test_post_with_item_errors_exits_non_zero(
    github_env,
    store: _ClosableStore,
    tmp_path: Path,
) -> None:
    store.failures["create"] = lambda _: ValidationError(message="line must be part of the diff")

    result = CliRunner().invoke(
        main.gitleaks_diff_comment,
        ["post", "--comments", str(_write_comments(tmp_path, count=1))],
    )

    assert result.exit_code == 1
    assert "✗ Errors: 1" in result.output
    assert "Completed with errors." in result.output


def test_post_append_mode_skips_existing_duplicates(
    github_env,
    store: _ClosableStore,
    tmp_path: Path,
) -> None:
    comments = _write_comments(tmp_path, count=1)
    item = json.loads(comments.read_text("utf-8"))[0]
    store.existing.append(
        ExistingAnnotation(
            remote_id=1,
            location=Location(item["path"], item["line"], item["side"]),
            body=item["body"],
        ),
    )

    result = CliRunner().invoke(
        main.gitleaks_diff_comment,
        ["post", "--comments", str(comments), "--mode", "append"],
    )

    assert result.exit_code == 0, result.output
    assert "⊘ Skipped: 1 duplicates" in result.output
    assert store.created == []


def test_post_requires_token(github_env, monkeypatch, store, tmp_path: Path) -> None:
    monkeypatch.delenv("INPUT_GITHUB-TOKEN")

    result = CliRunner().invoke(
        main.gitleaks_diff_comment,
        ["post", "--comments", str(_write_comments(tmp_path))],
    )

    assert result.exit_code == 1
    assert "Invalid configuration" in result.output
    assert "GitHub token is required" in result.output
    assert store.calls == []


def test_clear_deletes_bot_comments_and_prints_metrics(
    github_env,
    monkeypatch,
    store: _ClosableStore,
) -> None:
    monkeypatch.setenv("INPUT_REQUESTER", "maintainer")
    store.existing.extend(
        [
            ExistingAnnotation(
                remote_id=1,
                location=Location("a.py", 1),
                body=make_body("a.py", "x"),
            ),
            ExistingAnnotation(
                remote_id=2,
                location=Location("a.py", 2),
                body="human review",
                author="alice",
            ),
        ],
    )

    result = CliRunner().invoke(main.gitleaks_diff_comment, ["clear"])

    assert result.exit_code == 0, result.output
    assert "::notice::METRICS:" in result.output
    assert "✓ Successfully cleared 1 comments" in result.output
    assert store.deleted == [1]


def test_clear_rejects_unauthorized_requester(github_env, store: _ClosableStore) -> None:
    store.permission = "read"

    result = CliRunner().invoke(main.gitleaks_diff_comment, ["clear", "--requester", "drive-by"])

    assert result.exit_code == 1
    assert "permission denied" in result.output
    assert "drive-by" in result.output
    assert store.deleted == []
