"""Resource definitions."""

from gas_provisioner.resources.base import (
    InvalidResourceIDError,
    Resource,
    ResourceConfig,
    resource_type_from_id,
)
from gas_provisioner.resources.cloudflare import CloudflareKvConfig

__all__ = [
    "CloudflareKvConfig",
    "InvalidResourceIDError",
    "Resource",
    "ResourceConfig",
    "resource_type_from_id",
]
