"""In-memory conflict table.

Conflicts are immutable snapshots; ``replace`` swaps in the resolved copy.
The store refuses to replace a conflict that is already resolved, which is
what makes resolution final.

Not thread-safe on its own; the engine holds its lock around every call.
"""

from __future__ import annotations

import datetime
from collections.abc import Iterator

from teamsync.models import Conflict, ResolutionMode


class ConflictStore:
    """Conflicts keyed by id, insertion-ordered."""

    def __init__(self) -> None:
        self._conflicts: dict[str, Conflict] = {}

    def __len__(self) -> int:
        return len(self._conflicts)

    def __iter__(self) -> Iterator[Conflict]:
        return iter(list(self._conflicts.values()))

    def add(self, conflict: Conflict) -> None:
        if conflict.id in self._conflicts:
            raise ValueError(f"Conflict {conflict.id} already stored")
        self._conflicts[conflict.id] = conflict

    def get(self, conflict_id: str) -> Conflict | None:
        return self._conflicts.get(conflict_id)

    def replace(self, conflict: Conflict) -> None:
        """Store the resolved snapshot of an existing, still-open conflict."""
        current = self._conflicts.get(conflict.id)
        if current is None:
            raise KeyError(conflict.id)
        if current.is_resolved:
            raise ValueError(f"Conflict {conflict.id} is already resolved")
        self._conflicts[conflict.id] = conflict

    def unresolved(self) -> list[Conflict]:
        """Conflicts waiting on a manual decision."""
        return [
            c for c in self._conflicts.values()
            if c.resolution == ResolutionMode.MANUAL and not c.is_resolved
        ]

    def for_resource(self, resource_id: str) -> list[Conflict]:
        """Conflicts with at least one participating event on ``resource_id``."""
        return [
            c for c in self._conflicts.values()
            if any(e.resource_id == resource_id for e in c.events)
        ]

    def evict_resolved_before(self, cutoff: datetime.datetime) -> int:
        """Drop resolved conflicts with ``resolved_at < cutoff``.

        Open conflicts are never dropped, however old.
        """
        stale = [
            conflict_id
            for conflict_id, c in self._conflicts.items()
            if c.resolved_at is not None and c.resolved_at < cutoff
        ]
        for conflict_id in stale:
            del self._conflicts[conflict_id]
        return len(stale)
