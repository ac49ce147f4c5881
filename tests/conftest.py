"""Shared fixtures: a controllable clock and an engine driven by it."""

import datetime

import pytest

from teamsync.engine import ReconciliationEngine

T0 = datetime.datetime(2026, 10, 19, 12, 0, 0, tzinfo=datetime.timezone.utc)


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime.datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime.datetime:
        return self.now

    def at(self, seconds: float) -> "FakeClock":
        """Jump to ``seconds`` after T0."""
        self.now = T0 + datetime.timedelta(seconds=seconds)
        return self

    def advance(self, seconds: float = 0, hours: float = 0) -> None:
        self.now += datetime.timedelta(seconds=seconds, hours=hours)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def engine(clock) -> ReconciliationEngine:
    return ReconciliationEngine(clock=clock, window_seconds=30)
