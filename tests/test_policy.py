"""Resolution policy: mode decisions and payload computation."""

import datetime

import pytest

from teamsync.conflict.policy import can_merge, decide, execute, merge_payloads
from teamsync.events.log import EventLog
from teamsync.models import (
    ConflictKind,
    EventKind,
    MemberPatch,
    ProjectPatch,
    ResolutionMode,
    RollbackMarker,
    TaskPatch,
)

T0 = datetime.datetime(2026, 10, 19, 12, 0, 0, tzinfo=datetime.timezone.utc)


@pytest.fixture
def log():
    return EventLog()


def _event(log, payload, seconds, actor="alice", kind=EventKind.RESOURCE_UPDATE, resource_id="task-1"):
    return log.append(kind, resource_id, actor, payload, T0 + datetime.timedelta(seconds=seconds))


class TestCanMerge:
    def test_disjoint_fields_merge(self, log):
        events = [
            _event(log, TaskPatch(status="Done"), 0),
            _event(log, TaskPatch(description="x"), 1, actor="bob"),
        ]
        assert can_merge(events)

    def test_overlapping_fields_do_not(self, log):
        events = [
            _event(log, TaskPatch(status="Done"), 0),
            _event(log, TaskPatch(status="ToDo"), 1, actor="bob"),
        ]
        assert not can_merge(events)

    def test_three_events_never_merge(self, log):
        events = [
            _event(log, TaskPatch(status="Done"), 0),
            _event(log, TaskPatch(description="x"), 1, actor="bob"),
            _event(log, TaskPatch(priority="Low"), 2, actor="carol"),
        ]
        assert not can_merge(events)

    def test_different_shapes_do_not(self, log):
        events = [
            _event(log, TaskPatch(status="Done"), 0),
            _event(log, ProjectPatch(name="Hive"), 1, actor="bob"),
        ]
        assert not can_merge(events)

    def test_explicit_unassign_counts_as_a_write(self, log):
        events = [
            _event(log, TaskPatch(assigned_to=None), 0),
            _event(log, TaskPatch(assigned_to="bob"), 1, actor="bob"),
        ]
        assert not can_merge(events)

    def test_disjoint_member_patches_do_not(self, log):
        events = [
            _event(log, MemberPatch(member_id="erin", action="remove"), 0,
                   kind=EventKind.MEMBER_ACTION, resource_id="project-1"),
            _event(log, MemberPatch(role="admin"), 2, actor="bob",
                   kind=EventKind.MEMBER_ACTION, resource_id="project-1"),
        ]
        assert not can_merge(events)

    def test_disjoint_project_settings_do_not(self, log):
        events = [
            _event(log, ProjectPatch(privacy="public"), 0,
                   kind=EventKind.SETTINGS_CHANGE, resource_id="project-1"),
            _event(log, ProjectPatch(name="x"), 1, actor="bob",
                   kind=EventKind.SETTINGS_CHANGE, resource_id="project-1"),
        ]
        assert not can_merge(events)

    def test_only_resource_updates_merge(self, log):
        events = [
            _event(log, TaskPatch(assigned_to="A"), 0, kind=EventKind.ASSIGNMENT_CHANGE),
            _event(log, TaskPatch(status="Done"), 1, actor="bob"),
        ]
        assert not can_merge(events)


class TestDecide:
    def test_concurrent_edit_disjoint_is_merge(self, log):
        events = [
            _event(log, TaskPatch(status="Done"), 0),
            _event(log, TaskPatch(description="x"), 1, actor="bob"),
        ]
        assert decide(ConflictKind.CONCURRENT_EDIT, events) == ResolutionMode.MERGE

    def test_concurrent_edit_overlapping_is_manual(self, log):
        events = [
            _event(log, TaskPatch(status="Done"), 0),
            _event(log, TaskPatch(status="ToDo"), 1, actor="bob"),
        ]
        assert decide(ConflictKind.CONCURRENT_EDIT, events) == ResolutionMode.MANUAL

    @pytest.mark.parametrize(
        "kind, expected",
        [
            (ConflictKind.ASSIGNMENT_CONFLICT, ResolutionMode.OVERRIDE),
            (ConflictKind.PERMISSION_CONFLICT, ResolutionMode.MANUAL),
            (ConflictKind.DATA_INCONSISTENCY, ResolutionMode.MERGE),
        ],
    )
    def test_fixed_modes(self, log, kind, expected):
        events = [
            _event(log, TaskPatch(status="Done"), 0),
            _event(log, TaskPatch(status="ToDo"), 1),
        ]
        assert decide(kind, events) == expected


class TestExecute:
    def test_merge_replays_oldest_first(self, log):
        newer = _event(log, TaskPatch(status="Done", title="new"), 5, actor="bob")
        older = _event(log, TaskPatch(status="ToDo", priority="High"), 1)
        # Passed newest first, as conflicts store them
        merged = execute(ResolutionMode.MERGE, [newer, older])
        assert merged == TaskPatch(status="Done", title="new", priority="High")

    def test_merge_of_mixed_shapes_is_refused(self, log):
        events = [
            _event(log, TaskPatch(status="Done"), 0),
            _event(log, MemberPatch(member_id="erin", action="join"), 1),
        ]
        assert merge_payloads(events) is None

    def test_override_takes_latest_timestamp(self, log):
        first = _event(log, TaskPatch(assigned_to="A"), 0, kind=EventKind.ASSIGNMENT_CHANGE)
        last = _event(log, TaskPatch(assigned_to="B"), 5, kind=EventKind.ASSIGNMENT_CHANGE)
        assert execute(ResolutionMode.OVERRIDE, [last, first]) == last.payload

    def test_override_breaks_timestamp_ties_by_version(self, log):
        first = _event(log, TaskPatch(assigned_to="A"), 0)
        second = _event(log, TaskPatch(assigned_to="B"), 0)
        assert execute(ResolutionMode.OVERRIDE, [first, second]) == second.payload

    def test_rollback_references_earliest_resource(self, log):
        events = [
            _event(log, TaskPatch(status="Done"), 3),
            _event(log, TaskPatch(status="ToDo"), 1),
        ]
        assert execute(ResolutionMode.ROLLBACK, events) == RollbackMarker(resource_id="task-1")

    def test_manual_yields_nothing(self, log):
        events = [
            _event(log, TaskPatch(status="Done"), 0),
            _event(log, TaskPatch(status="ToDo"), 1),
        ]
        assert execute(ResolutionMode.MANUAL, events) is None
