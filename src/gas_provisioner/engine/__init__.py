"""Plan and deploy engine for gas resources."""

from gas_provisioner.engine.engine import GasEngine, build_snapshot
from gas_provisioner.engine.errors import (
    AggregateDeployError,
    ConfigResolutionError,
    DanglingDependencyError,
    DependencyCycleError,
    DuplicateResourceError,
    EngineError,
    GraphError,
    ProvisioningError,
    UnknownResourceTypeError,
    UnsupportedActionError,
)
from gas_provisioner.engine.graph import DependencyGraph
from gas_provisioner.engine.handlers import EngineContext, ResourceHandler
from gas_provisioner.engine.orchestrator import DeployOrchestrator
from gas_provisioner.engine.registry import ResourceTypeRegistration, ResourceTypeRegistry
from gas_provisioner.engine.types import (
    Action,
    DeployEvent,
    DeployPlan,
    DeployResult,
    DeployState,
    DiffState,
    GroupResult,
)

__all__ = [
    "Action",
    "AggregateDeployError",
    "ConfigResolutionError",
    "DanglingDependencyError",
    "DependencyCycleError",
    "DependencyGraph",
    "DeployEvent",
    "DeployOrchestrator",
    "DeployPlan",
    "DeployResult",
    "DeployState",
    "DiffState",
    "DuplicateResourceError",
    "EngineContext",
    "EngineError",
    "GasEngine",
    "GraphError",
    "GroupResult",
    "ProvisioningError",
    "ResourceHandler",
    "ResourceTypeRegistration",
    "ResourceTypeRegistry",
    "UnknownResourceTypeError",
    "UnsupportedActionError",
    "build_snapshot",
]
