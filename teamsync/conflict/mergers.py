"""Domain-aware reconciliation for task and project patches.

These go further than the structural merge in policy.py: they know which
value of a field should win when several actors wrote it.  Inputs must be in
chronological order (oldest first); "last" below means last in that order.

Task rules:
  priority     highest severity  (Critical > High > Medium > Low)
  status       most advanced     (Done > InProgress > ToDo); never regresses
  assigned_to  last written value, an explicit unassign included
  description  longest non-empty value (a heuristic: more detail wins)
  effort       highest estimate  (High > Medium > Low)

Project rules:
  name                  last non-empty value
  demo_mode             True if any input set it True
  github_repo/demo_url  last non-empty value, per field

Fields no input wrote are left out of the result.
"""

from __future__ import annotations

from collections.abc import Sequence

from teamsync.models import ProjectPatch, TaskEffort, TaskPatch, TaskPriority, TaskStatus

_PRIORITY_RANK = {
    TaskPriority.LOW: 0,
    TaskPriority.MEDIUM: 1,
    TaskPriority.HIGH: 2,
    TaskPriority.CRITICAL: 3,
}

_STATUS_RANK = {
    TaskStatus.TODO: 0,
    TaskStatus.IN_PROGRESS: 1,
    TaskStatus.DONE: 2,
}

_EFFORT_RANK = {
    TaskEffort.LOW: 0,
    TaskEffort.MEDIUM: 1,
    TaskEffort.HIGH: 2,
}


def _written(patches: Sequence, field: str) -> list:
    """Values of ``field`` from the patches that wrote it, in input order."""
    return [getattr(p, field) for p in patches if field in p.changed_fields()]


def _non_empty(values: list) -> list:
    return [v for v in values if v]


def merge_task_patches(patches: Sequence[TaskPatch]) -> TaskPatch | None:
    """Reconcile conflicting task patches into one.

    Args:
        patches: Conflicting partial task updates, oldest first.

    Returns:
        The reconciled TaskPatch, or None when no input wrote a field these
        rules cover.
    """
    merged: dict = {}

    priorities = _non_empty(_written(patches, "priority"))
    if priorities:
        merged["priority"] = max(priorities, key=_PRIORITY_RANK.__getitem__)

    statuses = _non_empty(_written(patches, "status"))
    if statuses:
        merged["status"] = max(statuses, key=_STATUS_RANK.__getitem__)

    assignments = _written(patches, "assigned_to")
    if assignments:
        merged["assigned_to"] = assignments[-1]

    descriptions = _non_empty(_written(patches, "description"))
    if descriptions:
        # max() keeps the first of equally long values
        merged["description"] = max(descriptions, key=len)

    efforts = _non_empty(_written(patches, "effort"))
    if efforts:
        merged["effort"] = max(efforts, key=_EFFORT_RANK.__getitem__)

    return TaskPatch(**merged) if merged else None


def merge_project_patches(patches: Sequence[ProjectPatch]) -> ProjectPatch | None:
    """Reconcile conflicting project-settings patches into one.

    Disabling demo mode is easy to redo later, but a member who made the
    project public should not be silently overridden, so True wins.

    Args:
        patches: Conflicting partial project updates, oldest first.

    Returns:
        The reconciled ProjectPatch, or None when nothing applicable was written.
    """
    merged: dict = {}

    for field in ("name", "github_repo", "demo_url"):
        values = _non_empty(_written(patches, field))
        if values:
            merged[field] = values[-1]

    demo_modes = [v for v in _written(patches, "demo_mode") if v is not None]
    if demo_modes:
        merged["demo_mode"] = any(demo_modes)

    return ProjectPatch(**merged) if merged else None
