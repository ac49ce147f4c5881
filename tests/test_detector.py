"""Detector and classifier: window scan and rule precedence."""

import datetime

import pytest

from teamsync.conflict.detector import classify, find_candidates
from teamsync.events.log import EventLog
from teamsync.models import ConflictKind, EventKind, MemberPatch, ProjectPatch, TaskPatch

T0 = datetime.datetime(2026, 10, 19, 12, 0, 0, tzinfo=datetime.timezone.utc)
WINDOW = datetime.timedelta(seconds=30)

_PAYLOADS = {
    EventKind.RESOURCE_UPDATE: TaskPatch(status="Done"),
    EventKind.ASSIGNMENT_CHANGE: TaskPatch(assigned_to="dana"),
    EventKind.SETTINGS_CHANGE: ProjectPatch(name="Hive"),
    EventKind.MEMBER_ACTION: MemberPatch(member_id="erin", action="remove"),
}


@pytest.fixture
def log():
    return EventLog()


def _log(log, kind, actor, seconds, resource_id="task-1"):
    return log.append(
        kind,
        resource_id,
        actor,
        _PAYLOADS[kind],
        T0 + datetime.timedelta(seconds=seconds),
    )


class TestFindCandidates:
    def test_newest_first(self, log):
        first = _log(log, EventKind.RESOURCE_UPDATE, "alice", 0)
        second = _log(log, EventKind.RESOURCE_UPDATE, "bob", 5)
        new = _log(log, EventKind.RESOURCE_UPDATE, "carol", 10)
        assert find_candidates(log, new, WINDOW) == [second, first]

    def test_29_seconds_apart_is_a_candidate(self, log):
        old = _log(log, EventKind.RESOURCE_UPDATE, "alice", 0)
        new = _log(log, EventKind.RESOURCE_UPDATE, "bob", 29)
        assert find_candidates(log, new, WINDOW) == [old]

    def test_31_seconds_apart_is_not(self, log):
        _log(log, EventKind.RESOURCE_UPDATE, "alice", 0)
        new = _log(log, EventKind.RESOURCE_UPDATE, "bob", 31)
        assert find_candidates(log, new, WINDOW) == []

    def test_other_resources_are_ignored(self, log):
        _log(log, EventKind.RESOURCE_UPDATE, "alice", 0, resource_id="task-2")
        new = _log(log, EventKind.RESOURCE_UPDATE, "bob", 1)
        assert find_candidates(log, new, WINDOW) == []


class TestClassify:
    def test_no_candidates(self, log):
        new = _log(log, EventKind.RESOURCE_UPDATE, "alice", 0)
        assert classify(new, []) is None

    def test_same_kind_different_actor_is_concurrent_edit(self, log):
        old = _log(log, EventKind.RESOURCE_UPDATE, "alice", 0)
        new = _log(log, EventKind.RESOURCE_UPDATE, "bob", 1)
        assert classify(new, [old]) == ConflictKind.CONCURRENT_EDIT

    def test_same_actor_same_kind_is_not_a_conflict(self, log):
        old = _log(log, EventKind.RESOURCE_UPDATE, "alice", 0)
        new = _log(log, EventKind.RESOURCE_UPDATE, "alice", 1)
        assert classify(new, [old]) is None

    def test_assignment_by_same_actor_is_assignment_conflict(self, log):
        old = _log(log, EventKind.ASSIGNMENT_CHANGE, "alice", 0)
        new = _log(log, EventKind.ASSIGNMENT_CHANGE, "alice", 1)
        assert classify(new, [old]) == ConflictKind.ASSIGNMENT_CONFLICT

    def test_concurrent_edit_takes_precedence_over_assignment(self, log):
        old = _log(log, EventKind.ASSIGNMENT_CHANGE, "alice", 0)
        new = _log(log, EventKind.ASSIGNMENT_CHANGE, "bob", 1)
        assert classify(new, [old]) == ConflictKind.CONCURRENT_EDIT

    def test_member_actions_by_same_actor_are_permission_conflict(self, log):
        old = _log(log, EventKind.MEMBER_ACTION, "alice", 0, resource_id="project-1")
        new = _log(log, EventKind.MEMBER_ACTION, "alice", 1, resource_id="project-1")
        assert classify(new, [old]) == ConflictKind.PERMISSION_CONFLICT

    def test_mixed_kinds_without_rule_raise_nothing(self, log):
        old = _log(log, EventKind.RESOURCE_UPDATE, "alice", 0)
        new = _log(log, EventKind.ASSIGNMENT_CHANGE, "bob", 1)
        assert classify(new, [old]) is None

    def test_data_inconsistency_is_never_produced(self, log):
        events = [
            _log(log, kind, actor, i)
            for i, (kind, actor) in enumerate(
                [
                    (EventKind.RESOURCE_UPDATE, "alice"),
                    (EventKind.SETTINGS_CHANGE, "bob"),
                    (EventKind.MEMBER_ACTION, "carol"),
                ]
            )
        ]
        assert classify(events[-1], events[:-1]) != ConflictKind.DATA_INCONSISTENCY
