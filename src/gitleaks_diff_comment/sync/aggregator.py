"""Collect per-item outcomes into summary counts and report lines."""

from __future__ import annotations

from collections.abc import Iterable

from gitleaks_diff_comment.sync.models import (
    OperationOutcome,
    OperationStatus,
    RetractionReport,
    SyncReport,
)


def aggregate_outcomes(outcomes: Iterable[OperationOutcome]) -> SyncReport:
    """Count completed outcomes. Order of ``outcomes`` does not affect the counts."""

    report = SyncReport()
    for outcome in outcomes:
        report.results.append(outcome)
        if outcome.status == OperationStatus.CREATED:
            report.created += 1
        elif outcome.status == OperationStatus.UPDATED:
            report.updated += 1
        elif outcome.status == OperationStatus.SKIPPED_DUPLICATE:
            report.skipped_duplicates += 1
        elif outcome.status == OperationStatus.ERROR:
            report.errors += 1
        else:
            raise ValueError(f"Unexpected outcome status in post run: {outcome.status.value}")
    return report


def render_sync_lines(report: SyncReport) -> list[str]:
    lines = [
        f"✓ Posted: {report.posted} comments ({report.created} new, {report.updated} updated)",
        f"⊘ Skipped: {report.skipped_duplicates} duplicates",
    ]
    if report.errors:
        lines.append(f"✗ Errors: {report.errors}")
        lines.extend(
            f"  - {result.body_preview or '<no preview>'}: {result.error}"
            for result in report.results
            if result.status == OperationStatus.ERROR
        )
    return lines


def render_retraction_lines(report: RetractionReport) -> list[str]:
    if report.found_count == 0 and report.failed_count == 0:
        return ["No bot comments found to delete"]
    if report.failed_count:
        lines = [
            f"✓ Cleared {report.deleted_count} comments with {report.failed_count} failures "
            f"in {report.duration_seconds:.2f}s",
        ]
        lines.extend(f"  - {error}" for error in report.errors)
        return lines
    return [
        f"✓ Successfully cleared {report.deleted_count} comments "
        f"in {report.duration_seconds:.2f}s",
    ]
