"""Aggregate counters over the conflict store.

auto_resolved counts conflicts the policy settled at detection time;
manual_resolved counts conflicts that were escalated and later decided by a
person.  A growing ``pending`` is the signal that manual conflicts are
piling up.
"""

from __future__ import annotations

from collections.abc import Iterable

from teamsync.models import Conflict, ConflictKind, ConflictStats


def compute_stats(conflicts: Iterable[Conflict]) -> ConflictStats:
    """Summarise ``conflicts`` into a ConflictStats snapshot."""
    conflicts = list(conflicts)
    by_kind = {kind: 0 for kind in ConflictKind}
    for c in conflicts:
        by_kind[c.kind] += 1

    resolved = [c for c in conflicts if c.is_resolved]
    return ConflictStats(
        total=len(conflicts),
        resolved=len(resolved),
        pending=len(conflicts) - len(resolved),
        by_kind=by_kind,
        auto_resolved=sum(1 for c in resolved if not c.escalated),
        manual_resolved=sum(1 for c in resolved if c.escalated),
    )
