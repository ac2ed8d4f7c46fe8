"""Core infrastructure components for gas-provisioner."""

from gas_provisioner.core.provider import CloudflareAPIError, CloudflareProvider
from gas_provisioner.core.state import DeploySnapshot, SnapshotEntry, SnapshotIOError

__all__ = [
    "CloudflareAPIError",
    "CloudflareProvider",
    "DeploySnapshot",
    "SnapshotEntry",
    "SnapshotIOError",
]
