"""Concurrent, dependency-gated deploy orchestration.

Each group of connected resources is deployed by its own coordinator thread;
within a group, every resource whose gates have settled runs in its own task.
A create/update is gated on the changed resources it transitively depends on;
a delete is gated on the changed resources that transitively depend on it, so
dependents are torn down first. A failure cancels everything in the same group
that has not started yet, and never reaches into other groups.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from gas_provisioner.engine.errors import ProvisioningError
from gas_provisioner.engine.store import DeployStateStore
from gas_provisioner.engine.types import (
    Action,
    DeployEvent,
    DeployPlan,
    DeployResult,
    DeployState,
    GroupResult,
)
from gas_provisioner.resources.base import resource_type_from_id

if TYPE_CHECKING:
    from gas_provisioner.engine.graph import DependencyGraph
    from gas_provisioner.engine.handlers import EngineContext
    from gas_provisioner.engine.registry import ResourceTypeRegistry
    from gas_provisioner.resources.base import ResourceConfig

logger = logging.getLogger(__name__)

# Called from worker threads; implementations must be thread-safe.
ProgressCallback = Callable[[DeployEvent], None]


@dataclass
class _DeployRun:
    graph: DependencyGraph
    store: DeployStateStore
    actions: dict[str, Action]
    gates: dict[str, list[str]]
    configs: dict[str, ResourceConfig]
    prior_outputs: dict[str, dict[str, Any]]
    members: dict[int, list[str]]


def compute_gates(graph: DependencyGraph, actions: dict[str, Action]) -> dict[str, list[str]]:
    """``resource_id -> [changed resource ids that must settle before it starts]``.

    Unchanged resources are looked through rather than waited on, so a resource
    still waits for a changed dependency reached via an unchanged one.
    """
    gates: dict[str, list[str]] = {}
    for rid, action in actions.items():
        if action is Action.DELETE:
            related = graph.ancestors(rid)
            gates[rid] = sorted(r for r in related if r in actions)
        else:
            related = graph.intermediates[rid]
            gates[rid] = sorted(
                r for r in related if r in actions and actions[r] is not Action.DELETE
            )
    return gates


class DeployOrchestrator:
    """Runs every change in a :class:`DeployPlan` against the registered handlers.

    ``max_workers`` caps concurrent resource tasks per group; ``None`` gives
    every eligible resource its own worker.
    """

    def __init__(
        self,
        *,
        registry: ResourceTypeRegistry,
        context: EngineContext,
        max_workers: int | None = None,
        progress: ProgressCallback | None = None,
    ) -> None:
        if max_workers is not None and max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._registry = registry
        self._ctx = context
        self._max_workers = max_workers
        self._progress = progress

    def _prepare(self, plan: DeployPlan) -> _DeployRun:
        actions: dict[str, Action] = {}
        configs: dict[str, ResourceConfig] = {}
        prior_outputs: dict[str, dict[str, Any]] = {}
        for rid, diff_state in plan.changes().items():
            action = diff_state.action
            if action is None:
                continue
            resource = plan.resources.get(rid)
            prior = plan.snapshot.get(rid)
            if resource is not None:
                raw_config = resource.config
            elif prior is not None:
                raw_config = prior.config
            else:
                raise ValueError(f"{rid} is neither declared nor in the snapshot")
            reg = self._registry.check(resource_type_from_id(rid), action)
            actions[rid] = action
            configs[rid] = reg.model.model_validate(raw_config)
            prior_outputs[rid] = dict(prior.output) if prior is not None else {}

        members: dict[int, list[str]] = {}
        for rid in actions:
            members.setdefault(plan.graph.groups[rid], []).append(rid)
        # Deepest first: the initial wave always holds the group's highest pending depth.
        for group_members in members.values():
            group_members.sort(key=lambda rid: (-plan.graph.depth[rid], rid))

        return _DeployRun(
            graph=plan.graph,
            store=DeployStateStore(actions),
            actions=actions,
            gates=compute_gates(plan.graph, actions),
            configs=configs,
            prior_outputs=prior_outputs,
            members=members,
        )

    def run(self, plan: DeployPlan) -> DeployResult:
        """Deploy every changed resource; returns once all groups have finished."""
        run = self._prepare(plan)
        if not run.actions:
            logger.info("No resource changes to deploy")
            return DeployResult()

        groups = sorted(run.members)
        self._log_pre_deploy(run, groups)

        with ThreadPoolExecutor(max_workers=len(groups), thread_name_prefix="gas-group") as pool:
            futures = [pool.submit(self._deploy_group, run, group) for group in groups]
            group_results = [f.result() for f in futures]

        result = DeployResult(
            states=run.store.states(),
            outputs=run.store.outputs(),
            errors=run.store.errors(),
            groups=group_results,
        )
        failed = len(result.failed_groups())
        logger.info("Deploy finished: %d/%d groups ok", len(groups) - failed, len(groups))
        return result

    def _deploy_group(self, run: _DeployRun, group: int) -> GroupResult:
        members = run.members[group]
        logger.info(
            "Group %d: deploying %d resources from depth %d",
            group,
            len(members),
            run.graph.depth[members[0]],
        )
        workers = self._max_workers or len(members)

        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix=f"gas-group-{group}"
        ) as pool:
            running: set[Future[None]] = set()

            def launch() -> None:
                # Claim only what can start now; the rest stays PENDING and cancelable.
                free = workers - len(running)
                for rid in run.store.claim_ready(members, run.gates, run.actions, limit=free):
                    running.add(pool.submit(self._deploy_resource, run, group, rid))

            launch()
            while running:
                done, _ = wait(running, return_when=FIRST_COMPLETED)
                for future in done:
                    running.discard(future)
                    future.result()
                launch()

        states = run.store.states()
        stuck = [rid for rid in members if states[rid].is_active]
        if stuck:
            raise RuntimeError(f"Group {group} stalled with unsettled resources: {stuck}")

        return GroupResult(
            group=group,
            completed=[rid for rid in members if states[rid].is_complete],
            failed=[rid for rid in members if states[rid].is_failed],
            canceled=[rid for rid in members if states[rid] is DeployState.CANCELED],
        )

    def _deploy_resource(self, run: _DeployRun, group: int, rid: str) -> None:
        """Provision one claimed resource. Never raises for backend failures.

        A failure is recorded together with the cancellation of every resource
        in the group that has not started yet.
        """
        action = run.actions[rid]
        self._emit(run, rid, DeployState.in_progress(action))
        try:
            handler = self._registry.get(run.configs[rid].resource_type).handler
            output = handler.apply(action, self._ctx, run.configs[rid], run.prior_outputs[rid])
            if not isinstance(output, Mapping):
                raise TypeError(f"handler returned {type(output).__name__}, expected a mapping")
        except Exception as e:
            error = ProvisioningError(rid, str(e) or type(e).__name__)
            logger.debug("Provisioning %s failed", rid, exc_info=True)
            state, canceled = run.store.fail(
                rid, action, error.message, cancel=run.members[group]
            )
            self._emit(run, rid, state, error=error.message)
            for other in canceled:
                self._emit(run, other, DeployState.CANCELED)
            return

        state = run.store.complete(rid, action, output)
        self._emit(run, rid, state)

    def _emit(
        self, run: _DeployRun, rid: str, state: DeployState, *, error: str | None = None
    ) -> None:
        event = DeployEvent(
            resource_id=rid,
            state=state,
            group=run.graph.groups[rid],
            depth=run.graph.depth[rid],
            error=error,
        )
        level = logging.ERROR if state.is_failed else logging.INFO
        logger.log(
            level,
            "[%s] Group %d -> Depth %d -> %s -> %s%s",
            event.timestamp.strftime("%H:%M:%S"),
            event.group,
            event.depth,
            rid,
            state.value,
            f": {error}" if error else "",
        )
        if self._progress is None:
            return
        try:
            self._progress(event)
        except Exception:
            logger.exception("Progress callback failed on %s -> %s", rid, state.value)

    @staticmethod
    def _log_pre_deploy(run: _DeployRun, groups: list[int]) -> None:
        for group in groups:
            for depth, rids in run.graph.depth_levels(group).items():
                for rid in rids:
                    if rid in run.actions:
                        logger.debug(
                            "Group %d -> Depth %d -> %s -> %s",
                            group,
                            depth,
                            rid,
                            run.actions[rid].value,
                        )
