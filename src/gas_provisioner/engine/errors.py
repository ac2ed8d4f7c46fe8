"""Engine error types."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gas_provisioner.engine.types import Action, DeployResult


class EngineError(Exception):
    """Base exception for engine errors."""


class GraphError(EngineError):
    """Raised when the dependency graph cannot be deployed."""


class DependencyCycleError(GraphError):
    """Raised when dependencies contain a cycle."""

    def __init__(self, resource_ids: list[str]) -> None:
        msg = "Dependency cycle detected"
        if resource_ids:
            msg += f": {', '.join(resource_ids)}"
        super().__init__(msg)
        self.resource_ids = resource_ids


class DanglingDependencyError(GraphError):
    """Raised when a resource depends on an ID that is not declared."""

    def __init__(self, dangling: dict[str, list[str]]) -> None:
        self.dangling = dangling
        lines = [
            f"  - {rid} depends on unknown {', '.join(deps)}"
            for rid, deps in sorted(dangling.items())
        ]
        super().__init__("Unresolved dependencies:\n" + "\n".join(lines))


class DuplicateResourceError(EngineError):
    """Raised when multiple resources share the same ID."""

    def __init__(self, resource_id: str) -> None:
        super().__init__(f"Duplicate resource ID: {resource_id}")
        self.resource_id = resource_id


class ConfigResolutionError(EngineError):
    """Raised when a resource's configuration cannot be resolved."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source


class UnknownResourceTypeError(EngineError):
    """Raised when a resource type has no registration/handler."""

    def __init__(self, resource_type: str) -> None:
        super().__init__(f"Unknown resource type: {resource_type}")
        self.resource_type = resource_type


class UnsupportedActionError(EngineError):
    """Raised when a handler does not implement the action a change needs."""

    def __init__(self, resource_type: str, action: Action) -> None:
        super().__init__(f"Resource type {resource_type} does not support {action.value}")
        self.resource_type = resource_type
        self.action = action


class ProvisioningError(EngineError):
    """A single resource failed to provision.

    Never raised out of the orchestrator; recorded against the resource and
    surfaced through :class:`AggregateDeployError`.
    """

    def __init__(self, resource_id: str, message: str) -> None:
        super().__init__(f"{resource_id}: {message}")
        self.resource_id = resource_id
        self.message = message


class AggregateDeployError(EngineError):
    """Raised after a deploy in which one or more groups failed.

    Carries the full :class:`DeployResult` so callers can see which resources
    failed, which were canceled, and what was applied.
    """

    def __init__(self, result: DeployResult) -> None:
        self.result = result
        lines = []
        for group in result.failed_groups():
            for rid in group.failed:
                lines.append(f"  - group {group.group}: {rid} failed: {result.errors.get(rid)}")
            for rid in group.canceled:
                lines.append(f"  - group {group.group}: {rid} canceled")
        super().__init__("Deployment failed:\n" + "\n".join(lines))
