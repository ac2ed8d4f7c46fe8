"""Dependency graph utilities.

Edges point from a resource to the resources it depends on. Roots are the
resources nothing depends on (top-level resources); depth grows toward the
most fundamental dependencies, which are deployed first.
"""

from __future__ import annotations

import heapq
from functools import cached_property
from typing import TYPE_CHECKING

from gas_provisioner.engine.errors import DanglingDependencyError, DependencyCycleError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


class DependencyGraph:
    """A read-only view of a ``resource_id -> [dependency_id]`` map.

    Construction never raises. Cycles surface from :attr:`depth` (and
    :meth:`validate`), dangling references from :meth:`validate`.
    """

    def __init__(self, dependencies: Mapping[str, Iterable[str]]) -> None:
        self._nodes: list[str] = sorted(dependencies)
        node_set = set(self._nodes)
        # node -> de-duplicated deps within graph, first occurrence wins
        self._deps: dict[str, list[str]] = {}
        self._dependents: dict[str, list[str]] = {n: [] for n in self._nodes}
        self.dangling: dict[str, list[str]] = {}
        for node in self._nodes:
            deps = list(dict.fromkeys(dependencies[node]))
            self._deps[node] = [d for d in deps if d in node_set]
            missing = [d for d in deps if d not in node_set]
            if missing:
                self.dangling[node] = missing
            for dep in self._deps[node]:
                self._dependents[dep].append(node)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node: object) -> bool:
        return node in self._deps

    @property
    def nodes(self) -> list[str]:
        return list(self._nodes)

    def dependencies(self, node: str) -> list[str]:
        return list(self._deps[node])

    def dependents(self, node: str) -> list[str]:
        return list(self._dependents[node])

    @cached_property
    def in_degree(self) -> dict[str, int]:
        """Number of distinct resources that list each node as a dependency."""
        return {n: len(self._dependents[n]) for n in self._nodes}

    @cached_property
    def roots(self) -> list[str]:
        return [n for n, deg in self.in_degree.items() if deg == 0]

    @cached_property
    def intermediates(self) -> dict[str, frozenset[str]]:
        """Transitive dependency closure of every node.

        Iterative post-order DFS with memoization, so each node and edge is
        visited once. Nodes on a cycle get a partial closure; the cycle itself
        is reported by :attr:`depth`.
        """
        memo: dict[str, frozenset[str]] = {}
        for start in self._nodes:
            if start in memo:
                continue
            on_path = {start}
            stack = [(start, iter(self._deps[start]))]
            while stack:
                node, children = stack[-1]
                child = next((c for c in children if c not in memo and c not in on_path), None)
                if child is not None:
                    on_path.add(child)
                    stack.append((child, iter(self._deps[child])))
                    continue
                stack.pop()
                on_path.discard(node)
                closure: set[str] = set()
                for dep in self._deps[node]:
                    closure.add(dep)
                    closure |= memo.get(dep, frozenset())
                memo[node] = frozenset(closure)
        return memo

    def ancestors(self, node: str) -> set[str]:
        """Every node that transitively depends on *node*."""
        seen: set[str] = set()
        stack = list(self._dependents[node])
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self._dependents[current])
        return seen

    @cached_property
    def groups(self) -> dict[str, int]:
        """Weakly-connected components, numbered in root order.

        Two roots that share any transitive dependency land in the same group,
        and so does every intermediate of either root.
        """
        parent = {n: n for n in self._nodes}

        def find(n: str) -> str:
            while parent[n] != n:
                parent[n] = parent[parent[n]]
                n = parent[n]
            return n

        for node, deps in self._deps.items():
            for dep in deps:
                a, b = find(node), find(dep)
                if a != b:
                    parent[max(a, b)] = min(a, b)

        numbers: dict[str, int] = {}
        # Roots first so numbering follows the top-level resources; cycle-only
        # components (no root) are numbered last.
        for node in [*self.roots, *self._nodes]:
            numbers.setdefault(find(node), len(numbers))
        return {n: numbers[find(n)] for n in self._nodes}

    @cached_property
    def depth(self) -> dict[str, int]:
        """Longest distance from a root, finalized once per node.

        Topological relaxation: a node is finalized when all of its dependents
        are, and its dependencies are pushed at least one level deeper.
        """
        remaining = dict(self.in_degree)
        depth = dict.fromkeys(self.roots, 0)
        ready = list(self.roots)
        finalized: list[str] = []
        while ready:
            node = ready.pop()
            finalized.append(node)
            for dep in self._deps[node]:
                depth[dep] = max(depth.get(dep, 0), depth[node] + 1)
                remaining[dep] -= 1
                if remaining[dep] == 0:
                    ready.append(dep)

        if len(finalized) != len(self._nodes):
            done = set(finalized)
            raise DependencyCycleError([n for n in self._nodes if n not in done])
        return depth

    def validate(self) -> None:
        """Raise if the graph is not deployable (dangling references or cycles)."""
        if self.dangling:
            raise DanglingDependencyError(self.dangling)
        _ = self.depth

    def group_members(self, group: int) -> list[str]:
        return [n for n in self._nodes if self.groups[n] == group]

    def depth_levels(self, group: int) -> dict[int, list[str]]:
        """``depth -> [node]`` for one group, deepest level last."""
        levels: dict[int, list[str]] = {}
        for node in self.group_members(group):
            levels.setdefault(self.depth[node], []).append(node)
        return dict(sorted(levels.items()))

    def topological_order(self) -> list[str]:
        """Return a deterministic order in which every dependency precedes its dependents."""
        remaining = {n: len(deps) for n, deps in self._deps.items()}
        ready = [n for n, deg in remaining.items() if deg == 0]
        heapq.heapify(ready)

        order: list[str] = []
        while ready:
            node = heapq.heappop(ready)
            order.append(node)
            for dependent in self._dependents[node]:
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    heapq.heappush(ready, dependent)

        if len(order) != len(self._nodes):
            done = set(order)
            raise DependencyCycleError([n for n in self._nodes if n not in done])
        return order
