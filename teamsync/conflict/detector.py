"""Collision detection and classification for newly logged events.

Detection looks back a fixed window (30 s by default) on the new event's
resource.  Classification rules are checked in order, first match wins:

  concurrent_edit      - a candidate has the same kind but a different actor
  assignment_conflict  - assignment_change colliding with assignment_change
  permission_conflict  - member_action colliding with member_action

Candidates that match none of the rules raise no conflict.
data_inconsistency is never produced here; it exists for callers that open
conflicts through other means.
"""

from __future__ import annotations

import datetime
import logging

from teamsync.events.log import EventLog
from teamsync.models import ConflictKind, Event, EventKind

logger = logging.getLogger(__name__)


def find_candidates(
    log: EventLog,
    event: Event,
    window: datetime.timedelta,
) -> list[Event]:
    """Return events colliding in time with ``event``, newest first.

    Args:
        log:    The event log ``event`` was appended to.
        event:  The newly recorded event.
        window: Look-back window.

    Returns:
        Other events on the same resource inside the window, sorted by
        timestamp descending (version breaks ties).
    """
    candidates = log.recent(
        event.resource_id,
        at=event.timestamp,
        window=window,
        exclude_id=event.id,
    )
    candidates.sort(key=lambda e: (e.timestamp, e.version), reverse=True)
    return candidates


def classify(event: Event, candidates: list[Event]) -> ConflictKind | None:
    """Classify a collision between ``event`` and ``candidates``.

    Returns:
        The first matching ConflictKind, or None when no rule applies.
    """
    if not candidates:
        return None

    if any(c.kind == event.kind and c.actor_id != event.actor_id for c in candidates):
        return ConflictKind.CONCURRENT_EDIT

    if event.kind == EventKind.ASSIGNMENT_CHANGE and any(
        c.kind == EventKind.ASSIGNMENT_CHANGE for c in candidates
    ):
        return ConflictKind.ASSIGNMENT_CONFLICT

    if event.kind == EventKind.MEMBER_ACTION and any(
        c.kind == EventKind.MEMBER_ACTION for c in candidates
    ):
        return ConflictKind.PERMISSION_CONFLICT

    logger.debug(
        "Detector: %d candidate(s) on %s but no rule matched for %s",
        len(candidates),
        event.resource_id,
        event.kind.value,
    )
    return None
