"""Load desired comments produced by the diff/template stage."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from gitleaks_diff_comment.errors import ValidationError
from gitleaks_diff_comment.sync.models import DesiredAnnotation, Location, Side

_VALID_SIDES = {side.value for side in Side}


def load_desired_annotations(path: Path, *, commit_id: str = "") -> list[DesiredAnnotation]:
    """Read desired comments from a JSON file.

    Accepts either a top-level list or an object with a ``comments`` list. Each
    item needs ``body``, ``path``, ``line`` and ``side``; ``commit_id`` falls
    back to the run's commit when omitted.
    """

    try:
        payload = json.loads(path.read_text("utf-8"))
    except FileNotFoundError as error:
        raise ValidationError(message=f"Desired comments file not found: {path}") from error
    except json.JSONDecodeError as error:
        raise ValidationError(message=f"Invalid JSON in {path}: {error}") from error
    return parse_desired_annotations(payload, commit_id=commit_id)


def parse_desired_annotations(payload: Any, *, commit_id: str = "") -> list[DesiredAnnotation]:
    items = payload.get("comments") if isinstance(payload, dict) else payload
    if not isinstance(items, list):
        raise ValidationError(
            message="Desired comments must be a JSON list or an object with a 'comments' list.",
        )
    return [_parse_item(item, position, commit_id=commit_id) for position, item in enumerate(items)]


def _parse_item(item: Any, position: int, *, commit_id: str) -> DesiredAnnotation:
    if not isinstance(item, dict):
        raise ValidationError(message=f"Comment #{position}: expected an object, got {item!r}")

    body = item.get("body")
    if not isinstance(body, str) or not body.strip():
        raise ValidationError(message=f"Comment #{position}: 'body' must be a non-empty string")

    path = item.get("path")
    if not isinstance(path, str) or not path:
        raise ValidationError(message=f"Comment #{position}: 'path' must be a non-empty string")

    line = item.get("line", 0)
    if isinstance(line, bool) or not isinstance(line, int) or line < 0:
        raise ValidationError(message=f"Comment #{position}: 'line' must be an integer >= 0")

    side = str(item.get("side", Side.RIGHT.value)).upper()
    if side not in _VALID_SIDES:
        raise ValidationError(
            message=f"Comment #{position}: 'side' must be LEFT or RIGHT, got {side!r}",
        )

    position_value = item.get("position", 0)
    if isinstance(position_value, bool) or not isinstance(position_value, int):
        raise ValidationError(message=f"Comment #{position}: 'position' must be an integer")

    return DesiredAnnotation(
        location=Location(path=path, line=line, side=side),
        body=body,
        commit_id=str(item.get("commit_id") or commit_id),
        position=position_value,
    )
