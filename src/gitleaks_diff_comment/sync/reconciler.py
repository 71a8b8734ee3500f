"""Diff desired comments against existing ones into create/update/relocate/skip actions."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from gitleaks_diff_comment.sync.markers import normalize_whitespace
from gitleaks_diff_comment.sync.models import (
    ActionKind,
    CommentMode,
    DesiredAnnotation,
    ExistingAnnotation,
    Location,
)


@dataclass(slots=True)
class PlannedAction:
    """One reconciler decision, tied to the desired comment's input position."""

    index: int
    kind: ActionKind
    desired: DesiredAnnotation
    existing: ExistingAnnotation | None = None


@dataclass(slots=True)
class ExistingIndex:
    """Lookup tables built once per reconciliation pass."""

    by_marker: dict[str, ExistingAnnotation] = field(default_factory=dict)
    bodies_by_location: dict[Location, set[str]] = field(default_factory=dict)

    @classmethod
    def build(cls, existing: Sequence[ExistingAnnotation]) -> ExistingIndex:
        index = cls()
        for annotation in existing:
            # First occurrence wins when the same marker was posted twice.
            if annotation.marker is not None:
                index.by_marker.setdefault(annotation.marker, annotation)
            index.bodies_by_location.setdefault(annotation.location, set()).add(
                normalize_whitespace(annotation.body),
            )
        return index

    def match(self, desired: DesiredAnnotation) -> ExistingAnnotation | None:
        if desired.marker is None:
            return None
        return self.by_marker.get(desired.marker)

    def has_duplicate_at_location(self, desired: DesiredAnnotation) -> bool:
        bodies = self.bodies_by_location.get(desired.location)
        if not bodies:
            return False
        return normalize_whitespace(desired.body) in bodies


def plan_actions(
    desired: Sequence[DesiredAnnotation],
    existing: Sequence[ExistingAnnotation],
    *,
    mode: CommentMode,
) -> list[PlannedAction]:
    """Classify every desired comment; the result has one action per input item."""

    index = ExistingIndex.build(existing)
    return [
        _plan_one(position, annotation, index, mode=mode)
        for position, annotation in enumerate(desired)
    ]


def _plan_one(
    position: int,
    desired: DesiredAnnotation,
    index: ExistingIndex,
    *,
    mode: CommentMode,
) -> PlannedAction:
    if mode == CommentMode.APPEND:
        if index.has_duplicate_at_location(desired):
            return PlannedAction(
                index=position,
                kind=ActionKind.SKIP_DUPLICATE,
                desired=desired,
                existing=index.match(desired),
            )
        return PlannedAction(index=position, kind=ActionKind.CREATE, desired=desired)

    match = index.match(desired)
    if match is None:
        return PlannedAction(index=position, kind=ActionKind.CREATE, desired=desired)
    if match.location != desired.location:
        return PlannedAction(
            index=position,
            kind=ActionKind.RELOCATE,
            desired=desired,
            existing=match,
        )
    return PlannedAction(index=position, kind=ActionKind.UPDATE, desired=desired, existing=match)
