from typing import Any, ClassVar

import pytest

from gas_provisioner.engine.errors import UnknownResourceTypeError, UnsupportedActionError
from gas_provisioner.engine.handlers import EngineContext, ResourceHandler
from gas_provisioner.engine.registry import ResourceTypeRegistry
from gas_provisioner.engine.types import Action
from gas_provisioner.resources.base import ResourceConfig


class DummyConfig(ResourceConfig):
    resource_type: ClassVar[str] = "dummy"


class CreateOnlyHandler(ResourceHandler["DummyConfig"]):
    def create(self, ctx: EngineContext, desired: DummyConfig) -> dict[str, Any]:
        return {"id": desired.name}


def test_registry_register_and_get() -> None:
    registry = ResourceTypeRegistry()
    handler = CreateOnlyHandler()

    registry.register(DummyConfig, handler)
    reg = registry.get("dummy")

    assert reg.resource_type == "dummy"
    assert reg.model is DummyConfig
    assert reg.handler is handler
    assert "dummy" in registry


def test_registry_duplicate_registration() -> None:
    registry = ResourceTypeRegistry()
    handler = CreateOnlyHandler()

    registry.register(DummyConfig, handler)
    with pytest.raises(ValueError):
        registry.register(DummyConfig, handler)


def test_registry_requires_resource_type() -> None:
    registry = ResourceTypeRegistry()
    with pytest.raises(ValueError, match="resource_type"):
        registry.register(ResourceConfig, CreateOnlyHandler())


def test_registry_unknown_type() -> None:
    with pytest.raises(UnknownResourceTypeError):
        ResourceTypeRegistry().get("nope")


def test_check_rejects_unsupported_actions() -> None:
    registry = ResourceTypeRegistry()
    registry.register(DummyConfig, CreateOnlyHandler())

    assert registry.check("dummy", Action.CREATE).resource_type == "dummy"
    with pytest.raises(UnsupportedActionError, match="update"):
        registry.check("dummy", Action.UPDATE)
    with pytest.raises(UnsupportedActionError, match="delete"):
        registry.check("dummy", Action.DELETE)
    with pytest.raises(UnknownResourceTypeError):
        registry.check("other", Action.CREATE)


def test_handler_supports_only_overridden_actions() -> None:
    handler = CreateOnlyHandler()
    assert handler.supports(Action.CREATE)
    assert not handler.supports(Action.UPDATE)
    assert not handler.supports(Action.DELETE)
