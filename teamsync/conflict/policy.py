"""Resolution policy: pick a mode for a conflict and compute its payload.

Decision table:
  concurrent_edit      → merge if exactly two resource_update task patches
                         write disjoint fields, otherwise manual
  assignment_conflict  → override (last writer by timestamp wins)
  permission_conflict  → manual (membership actions are never auto-resolved)
  data_inconsistency   → merge

Three or more simultaneous edits always go to manual.  There is no
defined N-way merge order, so the engine does not guess one.  Project
settings and membership edits are never merged automatically: two
disjoint member patches would combine into an action nobody issued.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from teamsync.models import (
    ConflictKind,
    Event,
    EventKind,
    Patch,
    ResolutionMode,
    RollbackMarker,
    TaskPatch,
)

logger = logging.getLogger(__name__)


def _chronological(events: Sequence[Event]) -> list[Event]:
    return sorted(events, key=lambda e: (e.timestamp, e.version))


def can_merge(events: Sequence[Event]) -> bool:
    """True when exactly two task updates write disjoint fields."""
    if len(events) != 2:
        return False
    if any(e.kind != EventKind.RESOURCE_UPDATE for e in events):
        return False

    first, second = events[0].payload, events[1].payload
    if not (isinstance(first, TaskPatch) and isinstance(second, TaskPatch)):
        return False
    return first.changed_fields().isdisjoint(second.changed_fields())


def decide(kind: ConflictKind, events: Sequence[Event]) -> ResolutionMode:
    """Map a conflict kind and its participants to a resolution mode."""
    if kind == ConflictKind.CONCURRENT_EDIT:
        return ResolutionMode.MERGE if can_merge(events) else ResolutionMode.MANUAL
    if kind == ConflictKind.ASSIGNMENT_CONFLICT:
        return ResolutionMode.OVERRIDE
    if kind == ConflictKind.DATA_INCONSISTENCY:
        return ResolutionMode.MERGE
    return ResolutionMode.MANUAL


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


def merge_payloads(events: Sequence[Event]) -> Patch | None:
    """Replay payloads oldest first; later writes to a field win.

    Returns None when the payloads have different shapes (e.g. a task patch
    and a membership action). There is no sound way to combine them.
    """
    ordered = _chronological(events)
    shapes = {type(e.payload) for e in ordered}
    if len(shapes) != 1:
        logger.warning(
            "Policy: cannot merge %d payloads of mixed shapes (%s)",
            len(ordered),
            ", ".join(sorted(s.__name__ for s in shapes)),
        )
        return None

    merged: dict = {}
    for event in ordered:
        merged.update(event.payload.changes())
    return shapes.pop()(**merged)


def override_payload(events: Sequence[Event]) -> Patch:
    """The payload of the latest event (highest version breaks timestamp ties)."""
    return _chronological(events)[-1].payload


def rollback_payload(events: Sequence[Event]) -> RollbackMarker:
    """Sentinel telling the persistence layer to revert the resource."""
    earliest = _chronological(events)[0]
    return RollbackMarker(resource_id=earliest.resource_id)


def execute(mode: ResolutionMode, events: Sequence[Event]) -> Patch | RollbackMarker | None:
    """Compute the payload ``mode`` produces for ``events``.

    Returns None for manual mode and for merges that cannot be performed.
    """
    if mode == ResolutionMode.MERGE:
        return merge_payloads(events)
    if mode == ResolutionMode.OVERRIDE:
        return override_payload(events)
    if mode == ResolutionMode.ROLLBACK:
        return rollback_payload(events)
    return None
