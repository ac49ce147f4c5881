"""Concurrent-edit reconciliation engine.

The optimistic-UI layer calls log_event() every time it applies a local
mutation.  Each call, under one engine-wide lock:

  1. validates the input and appends a versioned Event to the log
  2. scans the resource's recent events for collisions
  3. classifies any collision and opens a Conflict
  4. settles the conflict immediately unless the policy says manual

Manual conflicts stay open until resolve_conflict() is called with an
explicit mode.  Resolution happens at most once per conflict; repeated calls
return the stored result without changing anything, so a retried request
never applies a merge twice.

Usage:
    from teamsync.engine import ReconciliationEngine
    from teamsync.models import EventKind

    engine = ReconciliationEngine()
    engine.log_event(EventKind.RESOURCE_UPDATE, "task-1", "alice", {"status": "Done"})
    engine.log_event(EventKind.RESOURCE_UPDATE, "task-1", "bob", {"description": "x"})
    engine.get_resource_conflicts("task-1")[0].merged_payload
"""

from __future__ import annotations

import datetime
import logging
import threading
import uuid
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from teamsync.config import settings
from teamsync.conflict.detector import classify, find_candidates
from teamsync.conflict.mergers import merge_project_patches, merge_task_patches
from teamsync.conflict.policy import decide, execute
from teamsync.conflict.stats import compute_stats
from teamsync.conflict.store import ConflictStore
from teamsync.events.log import EventLog
from teamsync.models import (
    CleanupReport,
    Conflict,
    ConflictKind,
    ConflictStats,
    Event,
    EventKind,
    Patch,
    ProjectPatch,
    ResolutionMode,
    RollbackMarker,
    TaskPatch,
    coerce_payload,
)

logger = logging.getLogger(__name__)

_UTC = datetime.timezone.utc

Clock = Callable[[], datetime.datetime]


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(_UTC)


class ReconciliationEngine:
    """Event log, conflict table and resolution policy behind one lock.

    Args:
        clock:          Returns the current time; injected so tests and the
                        replay CLI control timestamps.
        window_seconds: Look-back window for detection.  Defaults to
                        settings.lookback_window_seconds.
    """

    def __init__(
        self,
        clock: Clock = utc_now,
        window_seconds: float | None = None,
    ) -> None:
        if window_seconds is None:
            window_seconds = settings.lookback_window_seconds
        self._clock = clock
        self._window = datetime.timedelta(seconds=window_seconds)
        # Reentrant: reconcile_* and auto-resolution re-enter while held
        self._lock = threading.RLock()
        self._log = EventLog()
        self._store = ConflictStore()

    @property
    def window(self) -> datetime.timedelta:
        return self._window

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def log_event(
        self,
        kind: EventKind | str,
        resource_id: str,
        actor_id: str,
        payload: Patch | Mapping[str, Any],
    ) -> Event:
        """Record a mutation attempt and run conflict detection on it.

        Args:
            kind:        Event kind (enum or its string value).
            resource_id: Resource being mutated; must be non-blank.
            actor_id:    User issuing the mutation; must be non-blank.
            payload:     Patch model or mapping of the fields being changed.

        Returns:
            The recorded Event, with its version assigned.

        Raises:
            ValueError: On blank ids or an empty/invalid payload.  Nothing
                        is recorded in that case.
        """
        kind = EventKind(kind)
        if not isinstance(resource_id, str) or not resource_id.strip():
            raise ValueError("resource_id must be a non-empty string")
        if not isinstance(actor_id, str) or not actor_id.strip():
            raise ValueError("actor_id must be a non-empty string")
        patch = coerce_payload(kind, payload)

        with self._lock:
            event = self._log.append(kind, resource_id, actor_id, patch, self._clock())
            self._detect(event)
        return event

    def resolve_conflict(
        self,
        conflict_id: str,
        mode: ResolutionMode | str,
        actor_id: str | None = None,
    ) -> Patch | RollbackMarker | Conflict | None:
        """Settle a conflict with ``mode``.

        Returns:
            - None if ``conflict_id`` is unknown.
            - The stored merged payload if the conflict is already resolved
              (nothing changes).
            - The Conflict itself for manual mode, or when a merge is not
              possible; it stays open.
            - Otherwise the merged payload, after recording resolution,
              resolved_by, resolved_at and merged_payload.
        """
        mode = ResolutionMode(mode)
        with self._lock:
            conflict = self._store.get(conflict_id)
            if conflict is None:
                logger.warning("Engine: resolve requested for unknown conflict %s", conflict_id)
                return None

            if conflict.is_resolved:
                logger.debug(
                    "Engine: conflict %s already resolved (%s), no-op",
                    conflict_id,
                    conflict.resolution.value,
                )
                return conflict.merged_payload

            if mode == ResolutionMode.MANUAL:
                return conflict

            merged = execute(mode, conflict.events)
            if merged is None:
                logger.warning(
                    "Engine: %s not applicable to conflict %s, left open",
                    mode.value,
                    conflict_id,
                )
                return conflict

            resolved = conflict.model_copy(
                update={
                    "resolution": mode,
                    "resolved_by": actor_id,
                    "resolved_at": self._clock(),
                    "merged_payload": merged,
                }
            )
            self._store.replace(resolved)

        logger.info(
            "Engine: conflict %s (%s) resolved by %s via %s",
            conflict_id,
            conflict.kind.value,
            actor_id or "engine",
            mode.value,
        )
        return merged

    # ------------------------------------------------------------------
    # Domain reconciliation
    # ------------------------------------------------------------------

    def reconcile_task(
        self,
        task_id: str,
        payloads: Sequence[TaskPatch | Mapping[str, Any]],
        actor_id: str,
    ) -> TaskPatch | None:
        """Reconcile conflicting task updates and log the result as an audit event.

        Args:
            task_id:  Task the updates target.
            payloads: Conflicting partial updates, oldest first.
            actor_id: Who is performing the reconciliation.

        Returns:
            The reconciled TaskPatch, or None if nothing could be reconciled
            (no audit event is logged then).

        Raises:
            ValueError: A payload is invalid or is not a task patch.
        """
        patches = [coerce_payload(EventKind.RESOURCE_UPDATE, p) for p in payloads]
        merged = merge_task_patches(patches)
        if merged is not None:
            self.log_event(EventKind.RESOURCE_UPDATE, task_id, actor_id, merged)
        return merged

    def reconcile_project(
        self,
        project_id: str,
        payloads: Sequence[ProjectPatch | Mapping[str, Any]],
        actor_id: str,
    ) -> ProjectPatch | None:
        """Project-settings counterpart of reconcile_task().

        Raises:
            ValueError: A payload is invalid or is not a project patch.
        """
        patches = [coerce_payload(EventKind.SETTINGS_CHANGE, p) for p in payloads]
        merged = merge_project_patches(patches)
        if merged is not None:
            self.log_event(EventKind.SETTINGS_CHANGE, project_id, actor_id, merged)
        return merged

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_conflict(self, conflict_id: str) -> Conflict | None:
        with self._lock:
            return self._store.get(conflict_id)

    def get_unresolved_conflicts(self) -> list[Conflict]:
        """Open conflicts waiting for a manual decision."""
        with self._lock:
            return self._store.unresolved()

    def get_resource_conflicts(self, resource_id: str) -> list[Conflict]:
        with self._lock:
            return self._store.for_resource(resource_id)

    def get_events(self, resource_id: str) -> list[Event]:
        """Logged events on ``resource_id``, oldest first."""
        with self._lock:
            return self._log.for_resource(resource_id)

    def get_conflict_stats(self) -> ConflictStats:
        with self._lock:
            return compute_stats(self._store)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def cleanup(self, older_than_hours: float | None = None) -> CleanupReport:
        """Drop resolved conflicts and events strictly older than the cutoff.

        Open conflicts survive regardless of age; they keep their own copies
        of the participating events.

        Args:
            older_than_hours: Age cutoff.  Defaults to settings.cleanup_after_hours.
        """
        if older_than_hours is None:
            older_than_hours = settings.cleanup_after_hours

        with self._lock:
            cutoff = self._clock() - datetime.timedelta(hours=older_than_hours)
            conflicts_removed = self._store.evict_resolved_before(cutoff)
            events_removed = self._log.evict_older_than(cutoff)

        logger.info(
            "Engine: cleanup before %s removed %d conflict(s), %d event(s)",
            cutoff.isoformat(),
            conflicts_removed,
            events_removed,
        )
        return CleanupReport(
            cutoff=cutoff,
            conflicts_removed=conflicts_removed,
            events_removed=events_removed,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _detect(self, event: Event) -> None:
        """Open (and possibly settle) a conflict for a freshly logged event."""
        candidates = find_candidates(self._log, event, self._window)
        if not candidates:
            return

        kind = classify(event, candidates)
        if kind is None:
            return

        self._open_conflict(kind, [event, *candidates])

    def _open_conflict(self, kind: ConflictKind, events: list[Event]) -> Conflict:
        mode = decide(kind, events)
        conflict = Conflict(
            id=f"cfl_{uuid.uuid4().hex}",
            kind=kind,
            events=tuple(events),
            resolution=mode,
            escalated=mode == ResolutionMode.MANUAL,
        )
        self._store.add(conflict)
        logger.info(
            "Engine: %s on %s between %d event(s), resolution %s",
            kind.value,
            conflict.resource_id,
            len(events),
            mode.value,
        )

        if mode != ResolutionMode.MANUAL:
            result = self.resolve_conflict(conflict.id, mode)
            if isinstance(result, Conflict):
                # Chosen mode was not applicable: hand it to a person
                conflict = result.model_copy(
                    update={"resolution": ResolutionMode.MANUAL, "escalated": True}
                )
                self._store.replace(conflict)
        return conflict


# ---------------------------------------------------------------------------
# Process-wide default
# ---------------------------------------------------------------------------

_default_engine: ReconciliationEngine | None = None
_default_lock = threading.Lock()


def get_engine() -> ReconciliationEngine:
    """Return the lazily created process-wide engine.

    Prefer constructing a ReconciliationEngine directly where the caller owns
    its lifetime (tests, the CLI).
    """
    global _default_engine

    with _default_lock:
        if _default_engine is None:
            _default_engine = ReconciliationEngine()
        return _default_engine
