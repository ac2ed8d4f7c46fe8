"""Classify resources against the previous deploy snapshot."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from gas_provisioner.engine.types import DiffState

if TYPE_CHECKING:
    from collections.abc import Mapping

    from gas_provisioner.core.state import DeploySnapshot
    from gas_provisioner.resources.base import Resource

logger = logging.getLogger(__name__)


def diff_resources(
    resources: Mapping[str, Resource], snapshot: DeploySnapshot
) -> dict[str, DiffState]:
    """Return ``resource_id -> DiffState`` for every current and previously deployed resource.

    Configs are compared structurally (deep equality of their JSON values) and
    dependency lists are compared as lists.
    """
    result: dict[str, DiffState] = {}

    for rid in snapshot.root:
        if rid not in resources:
            result[rid] = DiffState.DELETED

    for rid, resource in resources.items():
        prior = snapshot.root.get(rid)
        if prior is None:
            result[rid] = DiffState.CREATED
        elif prior.config != resource.config or prior.dependencies != resource.dependencies:
            result[rid] = DiffState.UPDATED
        else:
            result[rid] = DiffState.UNCHANGED

    logger.debug(
        "Diffed %d resources against %d snapshot entries", len(resources), len(snapshot.root)
    )
    return dict(sorted(result.items()))


def deploy_dependencies(
    resources: Mapping[str, Resource],
    snapshot: DeploySnapshot,
    diff: Mapping[str, DiffState],
) -> dict[str, list[str]]:
    """Build the dependency map a deploy's graph is built from.

    Current resources keep their declared dependencies, plus any snapshot edge
    to a resource that is being deleted (it must outlive its former dependents).
    Deleted resources keep their snapshot dependencies on IDs that still exist
    in either the current map or the snapshot.
    """
    known = set(resources) | set(snapshot.root)
    deleted = {rid for rid, s in diff.items() if s is DiffState.DELETED}

    result: dict[str, list[str]] = {}
    for rid, resource in resources.items():
        deps = list(resource.dependencies)
        prior = snapshot.root.get(rid)
        if prior is not None:
            deps.extend(d for d in prior.dependencies if d in deleted and d not in deps)
        result[rid] = deps

    for rid in deleted:
        result[rid] = [d for d in snapshot.root[rid].dependencies if d in known]

    return result
