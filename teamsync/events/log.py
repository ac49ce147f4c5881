"""Append-only, resource-indexed event log with per-resource versioning.

Events are bucketed by resource_id so the detection window scan only touches
one resource's history instead of the whole log.  Version counters live
outside the buckets: evicting old events never lets a resource reuse a
version number.

Not thread-safe on its own; the engine serialises every call under its lock.
"""

from __future__ import annotations

import datetime
import uuid
from collections import defaultdict
from collections.abc import Iterator

from teamsync.models import Event, EventKind, Patch


class EventLog:
    """In-memory event log keyed by resource."""

    def __init__(self) -> None:
        self._by_resource: dict[str, list[Event]] = defaultdict(list)
        self._versions: dict[str, int] = {}

    def __len__(self) -> int:
        return sum(len(events) for events in self._by_resource.values())

    def __iter__(self) -> Iterator[Event]:
        for events in self._by_resource.values():
            yield from events

    def next_version(self, resource_id: str) -> int:
        """Return the version the next event on ``resource_id`` will receive."""
        return self._versions.get(resource_id, 0) + 1

    def append(
        self,
        kind: EventKind,
        resource_id: str,
        actor_id: str,
        payload: Patch,
        timestamp: datetime.datetime,
    ) -> Event:
        """Create, version and append an event.

        Args:
            kind:        Mutation kind.
            resource_id: Resource the mutation targets.
            actor_id:    User who issued the mutation.
            payload:     Validated partial update.
            timestamp:   Log time, taken from the engine clock.

        Returns:
            The stored, immutable Event.
        """
        version = self.next_version(resource_id)
        event = Event(
            id=f"evt_{uuid.uuid4().hex}",
            kind=kind,
            resource_id=resource_id,
            actor_id=actor_id,
            timestamp=timestamp,
            payload=payload,
            version=version,
        )
        self._by_resource[resource_id].append(event)
        self._versions[resource_id] = version
        return event

    def for_resource(self, resource_id: str) -> list[Event]:
        """Events on ``resource_id`` in log order (a copy)."""
        return list(self._by_resource.get(resource_id, ()))

    def recent(
        self,
        resource_id: str,
        at: datetime.datetime,
        window: datetime.timedelta,
        exclude_id: str | None = None,
    ) -> list[Event]:
        """Events on ``resource_id`` logged less than ``window`` before ``at``.

        The comparison is ``at - event.timestamp < window``, so an event
        exactly ``window`` old is outside it.  Events stamped after ``at``
        (clock skew) count as inside.
        """
        return [
            event
            for event in self._by_resource.get(resource_id, ())
            if event.id != exclude_id and at - event.timestamp < window
        ]

    def evict_older_than(self, cutoff: datetime.datetime) -> int:
        """Drop events with ``timestamp < cutoff``.  Returns how many were dropped."""
        removed = 0
        for resource_id in list(self._by_resource):
            events = self._by_resource[resource_id]
            kept = [event for event in events if event.timestamp >= cutoff]
            removed += len(events) - len(kept)
            if kept:
                self._by_resource[resource_id] = kept
            else:
                del self._by_resource[resource_id]
        return removed
