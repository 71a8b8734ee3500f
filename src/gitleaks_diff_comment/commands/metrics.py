"""Structured metrics record emitted once per clear command."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

METRICS_PREFIX = "::notice::METRICS:"
CLEAR_EVENT_TYPE = "clear_command_executed"


@dataclass(slots=True)
class MetricsEvent:
    """Flat metrics payload picked up by external log scrapers."""

    event_type: str
    timestamp: str
    pr_number: int
    requested_by: str
    comments_cleared: int
    error_count: int
    duration_seconds: float
    retry_attempts: int
    success: bool

    def to_json(self) -> str:
        return json.dumps(asdict(self), separators=(",", ":"))

    def to_line(self) -> str:
        return f"{METRICS_PREFIX}{self.to_json()}"


def build_clear_metrics(  # noqa: PLR0913
    *,
    completed_at: datetime,
    pr_number: int,
    requested_by: str,
    deleted: int,
    failed: int,
    duration_seconds: float,
    retry_attempts: int,
    success: bool,
) -> MetricsEvent:
    return MetricsEvent(
        event_type=CLEAR_EVENT_TYPE,
        timestamp=completed_at.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
        pr_number=pr_number,
        requested_by=requested_by,
        comments_cleared=deleted,
        error_count=failed,
        duration_seconds=round(duration_seconds, 3),
        retry_attempts=retry_attempts,
        success=success,
    )


def parse_metrics_line(line: str) -> dict[str, object] | None:
    """Inverse of ``MetricsEvent.to_line`` for scrapers and tests."""

    if not line.startswith(METRICS_PREFIX):
        return None
    payload = json.loads(line[len(METRICS_PREFIX) :])
    if not isinstance(payload, dict):
        return None
    return payload


def emit_metrics(event: MetricsEvent, emit: Callable[[str], None]) -> None:
    emit(event.to_line())
