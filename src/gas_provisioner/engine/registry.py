"""Resource type registry for handler dispatch."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from gas_provisioner.engine.errors import UnknownResourceTypeError, UnsupportedActionError

if TYPE_CHECKING:
    from gas_provisioner.engine.handlers import ResourceHandler
    from gas_provisioner.engine.types import Action
    from gas_provisioner.resources.base import ResourceConfig


@dataclass(frozen=True)
class ResourceTypeRegistration:
    resource_type: str
    model: type[ResourceConfig]
    handler: ResourceHandler[Any]


class ResourceTypeRegistry:
    """Registry mapping resource_type -> (config model, handler)."""

    def __init__(self) -> None:
        self._registrations: dict[str, ResourceTypeRegistration] = {}

    def register(self, model: type[ResourceConfig], handler: ResourceHandler[Any]) -> None:
        resource_type = getattr(model, "resource_type", None)
        if not isinstance(resource_type, str) or not resource_type:
            raise ValueError("Resource config must define a non-empty classvar `resource_type`")

        if resource_type in self._registrations:
            raise ValueError(f"Resource type already registered: {resource_type}")

        self._registrations[resource_type] = ResourceTypeRegistration(
            resource_type=resource_type,
            model=model,
            handler=handler,
        )

    def get(self, resource_type: str) -> ResourceTypeRegistration:
        try:
            return self._registrations[resource_type]
        except KeyError as e:
            raise UnknownResourceTypeError(resource_type) from e

    def check(self, resource_type: str, action: Action) -> ResourceTypeRegistration:
        """Fail fast if no handler can perform *action* on *resource_type*."""
        reg = self.get(resource_type)
        if not reg.handler.supports(action):
            raise UnsupportedActionError(resource_type, action)
        return reg

    def __contains__(self, resource_type: object) -> bool:
        return resource_type in self._registrations
