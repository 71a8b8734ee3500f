from __future__ import annotations

import json
from pathlib import Path

import allure
import pytest

from conftest import make_body
from gitleaks_diff_comment.errors import ValidationError
from gitleaks_diff_comment.sync.source import load_desired_annotations, parse_desired_annotations

pytestmark = [
    allure.epic("Comment Sync"),
    allure.feature("Desired Comments Input"),
]


def test_load_accepts_object_with_comments_list(tmp_path: Path) -> None:
    body = make_body(".gitleaksignore", "sha:a.py:rule:1")
    path = tmp_path / "comments.json"
    path.write_text(
        json.dumps({"comments": [{"body": body, "path": ".gitleaksignore", "line": 3}]}),
        encoding="utf-8",
    )

    desired = load_desired_annotations(path, commit_id="deadbeef")

    assert len(desired) == 1
    assert desired[0].location.line == 3
    assert desired[0].location.side == "RIGHT"
    assert desired[0].commit_id == "deadbeef"
    assert desired[0].marker is not None


def test_parse_accepts_plain_list_and_lowercase_side() -> None:
    desired = parse_desired_annotations(
        [{"body": "x", "path": "a", "line": 1, "side": "left", "commit_id": "abc"}],
        commit_id="fallback",
    )

    assert desired[0].location.side == "LEFT"
    assert desired[0].commit_id == "abc"


@pytest.mark.parametrize(
    ("item", "message"),
    [
        ({"path": "a", "line": 1}, "'body' must be a non-empty string"),
        ({"body": "   ", "path": "a", "line": 1}, "'body' must be a non-empty string"),
        ({"body": "x", "line": 1}, "'path' must be a non-empty string"),
        ({"body": "x", "path": "a", "line": -1}, "'line' must be an integer"),
        ({"body": "x", "path": "a", "line": True}, "'line' must be an integer"),
        ({"body": "x", "path": "a", "line": 1, "side": "UP"}, "'side' must be LEFT or RIGHT"),
        ("not an object", "expected an object"),
    ],
)
def test_parse_rejects_malformed_items(item, message: str) -> None:
    with pytest.raises(ValidationError, match=message):
        parse_desired_annotations([item])


def test_parse_rejects_non_list_payload() -> None:
    with pytest.raises(ValidationError, match="JSON list"):
        parse_desired_annotations({"items": []})


def test_load_reports_missing_file_and_bad_json(tmp_path: Path) -> None:
    with pytest.raises(ValidationError, match="not found"):
        load_desired_annotations(tmp_path / "missing.json")

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValidationError, match="Invalid JSON"):
        load_desired_annotations(broken)
