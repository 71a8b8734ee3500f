"""Identity markers embedded in comment bodies.

Every comment posted by the action starts with an invisible HTML marker:

    <!-- gitleaks-diff-comment: {path}:{content}:{side} -->

The marker is keyed on the ``.gitleaksignore`` entry rather than on the line
number, so the same logical comment is recognised after the file is edited
and the entry moves. Two comments are the same logical comment iff their
extracted markers are identical.
"""

from __future__ import annotations

MARKER_START = "<!-- gitleaks-diff-comment: "
MARKER_END = " -->"
DEFAULT_BOT_LOGIN = "github-actions[bot]"
BODY_PREVIEW_MAX_CHARS = 80


def build_marker(path: str, content: str, side: str) -> str:
    """Render the marker for one ignore-file entry on one diff side."""

    return f"{MARKER_START}{path}:{content}:{side}{MARKER_END}"


def extract_marker(body: str) -> str | None:
    """Return the first complete marker in ``body`` including both sentinels."""

    start = body.find(MARKER_START)
    if start == -1:
        return None
    end = body.find(MARKER_END, start + len(MARKER_START))
    if end == -1:
        return None
    return body[start : end + len(MARKER_END)]


def has_marker_sentinel(body: str) -> bool:
    return MARKER_START.rstrip() in body


def is_automation_owned(*, body: str, author: str, bot_login: str = DEFAULT_BOT_LOGIN) -> bool:
    """Decide whether a comment belongs to the action.

    Checked in a fixed order: the marker sentinel first, then the author login
    for legacy comments posted before markers existed.
    """

    if has_marker_sentinel(body):
        return True
    return bool(author) and author == bot_login


def normalize_whitespace(text: str) -> str:
    return " ".join(text.split())


def body_preview(body: str, *, max_chars: int = BODY_PREVIEW_MAX_CHARS) -> str:
    flat = body.replace("\n", " ")
    if len(flat) > max_chars:
        return flat[:max_chars] + "..."
    return flat
