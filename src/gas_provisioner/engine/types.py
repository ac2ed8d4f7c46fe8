"""Engine types (diff/deploy states, plan, results)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from gas_provisioner.core.state import DeploySnapshot
    from gas_provisioner.engine.graph import DependencyGraph
    from gas_provisioner.resources.base import Resource


class DiffState(str, Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    DELETED = "DELETED"
    UNCHANGED = "UNCHANGED"

    @property
    def action(self) -> Action | None:
        return _DIFF_TO_ACTION.get(self)


class Action(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


_DIFF_TO_ACTION: dict[DiffState, Action] = {
    DiffState.CREATED: Action.CREATE,
    DiffState.UPDATED: Action.UPDATE,
    DiffState.DELETED: Action.DELETE,
}


class DeployState(str, Enum):
    PENDING = "PENDING"
    CREATE_IN_PROGRESS = "CREATE_IN_PROGRESS"
    CREATE_COMPLETE = "CREATE_COMPLETE"
    CREATE_FAILED = "CREATE_FAILED"
    UPDATE_IN_PROGRESS = "UPDATE_IN_PROGRESS"
    UPDATE_COMPLETE = "UPDATE_COMPLETE"
    UPDATE_FAILED = "UPDATE_FAILED"
    DELETE_IN_PROGRESS = "DELETE_IN_PROGRESS"
    DELETE_COMPLETE = "DELETE_COMPLETE"
    DELETE_FAILED = "DELETE_FAILED"
    CANCELED = "CANCELED"

    @classmethod
    def in_progress(cls, action: Action) -> DeployState:
        return cls(f"{action.name}_IN_PROGRESS")

    @classmethod
    def complete(cls, action: Action) -> DeployState:
        return cls(f"{action.name}_COMPLETE")

    @classmethod
    def failed(cls, action: Action) -> DeployState:
        return cls(f"{action.name}_FAILED")

    @property
    def is_active(self) -> bool:
        """PENDING or in progress: the resource may still change the cloud."""
        return self is DeployState.PENDING or self.name.endswith("_IN_PROGRESS")

    @property
    def is_terminal(self) -> bool:
        return not self.is_active

    @property
    def is_complete(self) -> bool:
        return self.name.endswith("_COMPLETE")

    @property
    def is_failed(self) -> bool:
        return self.name.endswith("_FAILED")


@dataclass(frozen=True)
class DeployEvent:
    """A single deploy state transition, as logged and reported to progress callbacks."""

    resource_id: str
    state: DeployState
    group: int
    depth: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    error: str | None = None


@dataclass(frozen=True)
class DeployPlan:
    """Everything ``deploy`` needs: the current resources, prior snapshot, graph and diff."""

    resources: dict[str, Resource]
    snapshot: DeploySnapshot
    graph: DependencyGraph
    diff: dict[str, DiffState]

    def changes(self) -> dict[str, DiffState]:
        """Resources that need provisioning, in deterministic order."""
        return {rid: s for rid, s in sorted(self.diff.items()) if s is not DiffState.UNCHANGED}

    def has_changes(self) -> bool:
        return any(s is not DiffState.UNCHANGED for s in self.diff.values())

    def summary(self) -> dict[str, int]:
        """Count changes by action (create/update/delete)."""
        counts = {a.value: 0 for a in Action}
        for s in self.diff.values():
            if s.action is not None:
                counts[s.action.value] += 1
        return counts


class GroupResult(BaseModel):
    group: int
    completed: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    canceled: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class DeployResult(BaseModel):
    states: dict[str, DeployState] = Field(default_factory=dict)
    outputs: dict[str, Any] = Field(default_factory=dict)
    errors: dict[str, str] = Field(default_factory=dict)
    groups: list[GroupResult] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(g.ok for g in self.groups)

    def failed_groups(self) -> list[GroupResult]:
        return [g for g in self.groups if not g.ok]

    def summary(self) -> dict[str, int]:
        counts = {"create": 0, "update": 0, "delete": 0, "failed": 0, "canceled": 0}
        for state in self.states.values():
            if state.is_complete:
                counts[state.name.split("_", 1)[0].lower()] += 1
            elif state.is_failed:
                counts["failed"] += 1
            elif state is DeployState.CANCELED:
                counts["canceled"] += 1
        return counts
