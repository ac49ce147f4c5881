"""Load recorded event history and replay it through a fresh engine.

History files are JSON Lines, one mutation per line:

    {"kind": "resource_update", "resource_id": "task-1", "actor_id": "alice",
     "timestamp": "2026-10-19T12:00:10Z", "payload": {"priority": "High"}}

Timestamps without a UTC offset are read as UTC.  Replay runs in timestamp
order (file order breaks ties) and drives the engine with a ReplayClock, so
the 30-second window applies to the recorded times, not wall-clock time.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError, field_validator

from teamsync.engine import ReconciliationEngine
from teamsync.models import Event, EventKind

logger = logging.getLogger(__name__)

_UTC = datetime.timezone.utc


class EventRecord(BaseModel):
    """One line of a history file."""

    kind: EventKind
    resource_id: str
    actor_id: str
    timestamp: datetime.datetime
    payload: dict[str, Any]

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime.datetime) -> datetime.datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=_UTC)
        return value


class ReplayClock:
    """Clock that reports whatever instant it was last set to."""

    def __init__(self, start: datetime.datetime | None = None) -> None:
        self._now = start or datetime.datetime.now(_UTC)

    def set(self, instant: datetime.datetime) -> None:
        self._now = instant

    def __call__(self) -> datetime.datetime:
        return self._now


@dataclass
class ReplayResult:
    """Engine state after a replay, plus the lines the engine refused."""

    engine: ReconciliationEngine
    clock: ReplayClock
    events: list[Event] = field(default_factory=list)
    rejected: list[tuple[int, str]] = field(default_factory=list)


def load_history(path: Path) -> list[tuple[int, EventRecord]]:
    """Parse a JSON Lines history file.

    Args:
        path: File to read.

    Returns:
        (line number, record) pairs; blank lines are skipped.

    Raises:
        ValueError: A line is not a valid record.  The message names the line.
    """
    records: list[tuple[int, EventRecord]] = []
    with path.open(encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, start=1):
            if not line.strip():
                continue
            try:
                records.append((lineno, EventRecord.model_validate_json(line)))
            except ValidationError as exc:
                raise ValueError(f"{path}:{lineno}: {exc}") from exc
    return records


def replay_history(
    records: list[tuple[int, EventRecord]],
    window_seconds: float | None = None,
) -> ReplayResult:
    """Replay records through a new engine in timestamp order.

    Records the engine rejects (blank ids, empty payload) are collected in
    ``rejected`` rather than aborting the replay.
    """
    ordered = sorted(records, key=lambda pair: pair[1].timestamp)
    clock = ReplayClock(ordered[0][1].timestamp if ordered else None)
    engine = ReconciliationEngine(clock=clock, window_seconds=window_seconds)
    result = ReplayResult(engine=engine, clock=clock)

    for lineno, record in ordered:
        clock.set(record.timestamp)
        try:
            event = engine.log_event(
                record.kind,
                record.resource_id,
                record.actor_id,
                record.payload,
            )
        except ValueError as exc:
            logger.warning("Replay: line %d rejected: %s", lineno, exc)
            result.rejected.append((lineno, str(exc)))
            continue
        result.events.append(event)

    return result
