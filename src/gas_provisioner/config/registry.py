"""Default resource type registry factory."""

from __future__ import annotations

from gas_provisioner.engine.kv_handler import CloudflareKvHandler
from gas_provisioner.engine.registry import ResourceTypeRegistry
from gas_provisioner.resources.cloudflare import CloudflareKvConfig


def default_registry() -> ResourceTypeRegistry:
    """Create a fresh registry with all built-in resource types and handlers."""
    registry = ResourceTypeRegistry()
    registry.register(CloudflareKvConfig, CloudflareKvHandler())
    return registry
