"""Engine-facing handler interfaces."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from gas_provisioner.engine.types import Action
from gas_provisioner.resources.base import ResourceConfig

if TYPE_CHECKING:
    from gas_provisioner.core.provider import CloudflareProvider

C = TypeVar("C", bound=ResourceConfig)

_ACTION_METHODS: dict[Action, str] = {
    Action.CREATE: "create",
    Action.UPDATE: "update",
    Action.DELETE: "delete",
}


@dataclass(frozen=True)
class EngineContext:
    """Context passed to handlers."""

    provider: CloudflareProvider
    project: str


class ResourceHandler(Generic[C]):
    """Base class for resource handlers.

    Handlers translate one resource change into backend API calls. Subclass
    and override the methods for the actions the resource type supports; an
    action whose method is not overridden is rejected before any deploy starts.

    Handlers are called concurrently for distinct resources and must not keep
    per-call state on ``self``.
    """

    def create(self, ctx: EngineContext, desired: C) -> dict[str, Any]:
        """Create the resource. Return the output to persist."""
        raise NotImplementedError

    def update(
        self, ctx: EngineContext, desired: C, prior_output: dict[str, Any]
    ) -> dict[str, Any]:
        """Update the resource in place. Return the new output to persist."""
        raise NotImplementedError

    def delete(self, ctx: EngineContext, prior: C, prior_output: dict[str, Any]) -> None:
        """Delete the resource."""
        raise NotImplementedError

    def supports(self, action: Action) -> bool:
        """True if this handler overrides the method implementing *action*."""
        method = _ACTION_METHODS[action]
        return getattr(type(self), method) is not getattr(ResourceHandler, method)

    def apply(
        self,
        action: Action,
        ctx: EngineContext,
        config: C,
        prior_output: dict[str, Any],
    ) -> dict[str, Any]:
        """Dispatch *action*, returning the output to persist (empty for deletes)."""
        match action:
            case Action.CREATE:
                return self.create(ctx, config)
            case Action.UPDATE:
                return self.update(ctx, config, prior_output)
            case Action.DELETE:
                self.delete(ctx, config, prior_output)
                return {}
            case _:
                raise ValueError(f"Unknown action: {action}")
