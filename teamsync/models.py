"""Data model for the TeamSync reconciliation engine.

Everything the engine hands out is an immutable pydantic model:

  Event     - one recorded mutation attempt on a resource (append-only)
  Conflict  - a detected collision between two or more events; the store
              swaps in a new snapshot when it is resolved, never edits in place

Payloads are a tagged union keyed on ``entity`` rather than an open dict:

  TaskPatch       - partial update of a kanban task
  ProjectPatch    - partial update of a project's settings
  MemberPatch     - a team membership action
  RollbackMarker  - merged payload only; tells the persistence layer to revert

Only fields the actor explicitly set count as written (``model_fields_set``),
so ``TaskPatch(assigned_to=None)`` is a real unassign while ``TaskPatch(status=...)``
leaves ``assigned_to`` untouched.
"""

from __future__ import annotations

import datetime
import enum
from collections.abc import Mapping
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator


# ---------------------------------------------------------------------------
# Vocabularies
# ---------------------------------------------------------------------------


class EventKind(str, enum.Enum):
    """What sort of mutation an event records."""

    RESOURCE_UPDATE = "resource_update"
    ASSIGNMENT_CHANGE = "assignment_change"
    SETTINGS_CHANGE = "settings_change"
    MEMBER_ACTION = "member_action"


class ConflictKind(str, enum.Enum):
    """Classification of a collision between events."""

    CONCURRENT_EDIT = "concurrent_edit"
    ASSIGNMENT_CONFLICT = "assignment_conflict"
    PERMISSION_CONFLICT = "permission_conflict"
    DATA_INCONSISTENCY = "data_inconsistency"


class ResolutionMode(str, enum.Enum):
    """Strategy used to settle a conflict."""

    MERGE = "merge"
    OVERRIDE = "override"
    ROLLBACK = "rollback"
    MANUAL = "manual"


class TaskStatus(str, enum.Enum):
    TODO = "ToDo"
    IN_PROGRESS = "InProgress"
    DONE = "Done"


class TaskPriority(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class TaskEffort(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class ProjectPrivacy(str, enum.Enum):
    PRIVATE = "private"
    TEAM = "team"
    PUBLIC = "public"


class ProjectStatus(str, enum.Enum):
    PLANNING = "planning"
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class MemberActionType(str, enum.Enum):
    JOIN = "join"
    LEAVE = "leave"
    REMOVE = "remove"
    ROLE_CHANGE = "role_change"


class MemberRole(str, enum.Enum):
    LEAD = "lead"
    DEVELOPER = "developer"
    DESIGNER = "designer"
    RESEARCHER = "researcher"
    ADMIN = "admin"


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------


class _Patch(BaseModel):
    """Base for partial updates: frozen, strict about unknown fields, never empty."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    def changed_fields(self) -> frozenset[str]:
        """Names of the fields this patch writes (the ``entity`` tag excluded)."""
        return frozenset(self.model_fields_set - {"entity"})

    def changes(self) -> dict[str, Any]:
        """The written fields and their values."""
        return self.model_dump(include=set(self.changed_fields()))

    @model_validator(mode="after")
    def _require_changes(self):
        if not self.changed_fields():
            raise ValueError(f"{type(self).__name__} must set at least one field")
        return self


class TaskPatch(_Patch):
    """Partial update of a kanban task."""

    entity: Literal["task"] = "task"
    title: str | None = None
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    effort: TaskEffort | None = None
    assigned_to: str | None = None  # None = unassigned
    due_date: datetime.datetime | None = None
    tags: tuple[str, ...] | None = None
    time_spent: int | None = Field(default=None, ge=0)  # minutes


class ProjectPatch(_Patch):
    """Partial update of a project's settings."""

    entity: Literal["project"] = "project"
    name: str | None = None
    description: str | None = None
    demo_mode: bool | None = None
    github_repo: str | None = None
    demo_url: str | None = None
    pitch_deck_url: str | None = None
    privacy: ProjectPrivacy | None = None
    status: ProjectStatus | None = None


class MemberPatch(_Patch):
    """A membership action against a project's team."""

    entity: Literal["member"] = "member"
    member_id: str | None = None
    action: MemberActionType | None = None
    role: MemberRole | None = None


class RollbackMarker(BaseModel):
    """Sentinel merged payload: revert ``resource_id`` to its pre-conflict state.

    The concrete prior state belongs to the persistence layer.
    """

    model_config = ConfigDict(frozen=True)

    entity: Literal["rollback"] = "rollback"
    rollback: Literal[True] = True
    resource_id: str


Patch = Union[TaskPatch, ProjectPatch, MemberPatch]

Payload = Annotated[Patch, Field(discriminator="entity")]

MergedPayload = Annotated[
    Union[TaskPatch, ProjectPatch, MemberPatch, RollbackMarker],
    Field(discriminator="entity"),
]

_PAYLOAD_ADAPTER: TypeAdapter = TypeAdapter(Payload)

# Payload shape each event kind carries
ENTITY_FOR_KIND: dict[EventKind, str] = {
    EventKind.RESOURCE_UPDATE: "task",
    EventKind.ASSIGNMENT_CHANGE: "task",
    EventKind.SETTINGS_CHANGE: "project",
    EventKind.MEMBER_ACTION: "member",
}


def coerce_payload(kind: EventKind, payload: Patch | Mapping[str, Any]) -> Patch:
    """Validate ``payload`` into one of the patch models.

    Mappings are validated against the tagged union; a mapping without an
    ``entity`` key is tagged from ``kind``.  Whatever the source, the patch
    shape must be the one ``kind`` carries (see ENTITY_FOR_KIND).

    Raises:
        ValueError: payload is empty, has unknown fields, is not a mapping,
            or its shape does not belong to ``kind``.
    """
    expected = ENTITY_FOR_KIND[kind]
    if isinstance(payload, (TaskPatch, ProjectPatch, MemberPatch)):
        patch = payload
    elif isinstance(payload, Mapping):
        data = dict(payload)
        data.setdefault("entity", expected)
        patch = _PAYLOAD_ADAPTER.validate_python(data)
    else:
        raise ValueError(f"payload must be a mapping or a patch, got {type(payload).__name__}")

    if patch.entity != expected:
        raise ValueError(f"{kind.value} events carry {expected} payloads, got {patch.entity}")
    return patch


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class Event(BaseModel):
    """One recorded mutation attempt.  Never changed after creation."""

    model_config = ConfigDict(frozen=True)

    id: str
    kind: EventKind
    resource_id: str
    actor_id: str
    timestamp: datetime.datetime
    payload: Payload
    version: int = Field(ge=1)


class Conflict(BaseModel):
    """A collision between two or more events on the same resource.

    ``events`` is ordered newest first.  ``escalated`` records that the policy
    could not decide at detection time and handed the conflict to a human;
    it stays True after the conflict is eventually resolved.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    kind: ConflictKind
    events: tuple[Event, ...] = Field(min_length=2)
    resolution: ResolutionMode
    escalated: bool = False
    resolved_by: str | None = None
    resolved_at: datetime.datetime | None = None
    merged_payload: Optional[MergedPayload] = None

    @property
    def is_resolved(self) -> bool:
        return self.resolved_at is not None

    @property
    def resource_id(self) -> str:
        return self.events[0].resource_id


class ConflictStats(BaseModel):
    """Aggregate counters over the conflict store."""

    total: int
    resolved: int
    pending: int
    by_kind: dict[ConflictKind, int]
    auto_resolved: int
    manual_resolved: int


class CleanupReport(BaseModel):
    """What a cleanup pass removed."""

    cutoff: datetime.datetime
    conflicts_removed: int
    events_removed: int
