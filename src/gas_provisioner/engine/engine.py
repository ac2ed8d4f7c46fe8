"""Plan/deploy engine."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from gas_provisioner.core.state import DeploySnapshot, SnapshotEntry
from gas_provisioner.engine.diff import deploy_dependencies, diff_resources
from gas_provisioner.engine.errors import (
    AggregateDeployError,
    ConfigResolutionError,
    DuplicateResourceError,
)
from gas_provisioner.engine.graph import DependencyGraph
from gas_provisioner.engine.handlers import EngineContext
from gas_provisioner.engine.orchestrator import DeployOrchestrator, ProgressCallback
from gas_provisioner.engine.types import DeployPlan, DeployResult, DeployState, DiffState
from gas_provisioner.resources.base import resource_type_from_id

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from gas_provisioner.core.provider import CloudflareProvider
    from gas_provisioner.engine.registry import ResourceTypeRegistry
    from gas_provisioner.resources.base import Resource

logger = logging.getLogger(__name__)


def build_snapshot(plan: DeployPlan, result: DeployResult) -> DeploySnapshot:
    """Build the snapshot to persist after a deploy.

    Completed creates/updates record their current config, dependencies and
    output; completed deletes drop out. Everything else (unchanged, failed,
    canceled) keeps its prior entry, or stays absent if it never had one.
    """
    entries: dict[str, SnapshotEntry] = {}
    for rid, diff_state in plan.diff.items():
        prior = plan.snapshot.get(rid)
        state = result.states.get(rid)
        if diff_state is DiffState.UNCHANGED or state is None or not state.is_complete:
            if prior is not None:
                entries[rid] = prior.model_copy(deep=True)
            continue
        if state is DeployState.DELETE_COMPLETE:
            continue
        resource = plan.resources[rid]
        entries[rid] = SnapshotEntry(
            config=resource.config,
            dependencies=list(resource.dependencies),
            output=result.outputs.get(rid, {}),
        )
    return DeploySnapshot(dict(sorted(entries.items())))


class GasEngine:
    """Diff-and-deploy engine for declared resources."""

    def __init__(
        self,
        *,
        provider: CloudflareProvider,
        project: str,
        snapshot_path: Path,
        registry: ResourceTypeRegistry,
        max_workers: int | None = None,
    ) -> None:
        self._provider = provider
        self._project = project
        self._snapshot_path = snapshot_path
        self._registry = registry
        self._max_workers = max_workers

    @property
    def project(self) -> str:
        return self._project

    @property
    def snapshot_path(self) -> Path:
        return self._snapshot_path

    def _ctx(self) -> EngineContext:
        return EngineContext(provider=self._provider, project=self._project)

    def _validate_changes(self, plan: DeployPlan) -> None:
        """Fail fast on changes no handler can perform or configs that do not validate."""
        errors: list[str] = []
        for rid, diff_state in plan.changes().items():
            action = diff_state.action
            if action is None:
                continue
            reg = self._registry.check(resource_type_from_id(rid), action)
            resource = plan.resources.get(rid)
            prior = plan.snapshot.get(rid)
            config = resource.config if resource is not None else prior.config if prior else {}
            try:
                reg.model.model_validate(config)
            except ValidationError as e:
                errors.append(f"{rid}: {e}")
        if errors:
            raise ConfigResolutionError("resource configs", "\n".join(errors))

    def plan(self, resources: Sequence[Resource]) -> DeployPlan:
        """Diff *resources* against the snapshot and build the deploy graph.

        Raises before anything is provisioned if the graph has a cycle or a
        dangling dependency, or if a change has no capable handler.
        """
        logger.info("Planning %d resources", len(resources))

        by_id: dict[str, Resource] = {}
        for r in resources:
            if r.id in by_id:
                raise DuplicateResourceError(r.id)
            by_id[r.id] = r

        # Declared dependencies must resolve among the current resources.
        DependencyGraph({rid: r.dependencies for rid, r in by_id.items()}).validate()

        snapshot = DeploySnapshot.load_or_create(self._snapshot_path)
        diff = diff_resources(by_id, snapshot)
        graph = DependencyGraph(deploy_dependencies(by_id, snapshot, diff))
        graph.validate()

        plan = DeployPlan(resources=by_id, snapshot=snapshot, graph=graph, diff=diff)
        self._validate_changes(plan)
        logger.debug("Plan summary: %s", plan.summary())
        return plan

    def deploy(self, plan: DeployPlan, *, progress: ProgressCallback | None = None) -> DeployResult:
        """Run the plan and write the new snapshot once everything has settled.

        Raises:
            AggregateDeployError: One or more groups had a failed resource. The
                snapshot is still written, recording whatever completed.
        """
        if not plan.has_changes():
            logger.info("No resource changes to deploy")
            return DeployResult()

        orchestrator = DeployOrchestrator(
            registry=self._registry,
            context=self._ctx(),
            max_workers=self._max_workers,
            progress=progress,
        )
        result = orchestrator.run(plan)

        build_snapshot(plan, result).save(self._snapshot_path)

        if not result.ok:
            raise AggregateDeployError(result)
        return result
