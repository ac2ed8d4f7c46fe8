"""Per-run deploy state shared by concurrently running resource tasks."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any

from gas_provisioner.engine.types import Action, DeployState

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


class DeployStateStore:
    """Deploy states, outputs and errors for one deploy run.

    All access goes through methods that hold the store's lock, and only
    copies ever leave the store. Transitions are checked: a resource moves
    PENDING -> *_IN_PROGRESS -> *_COMPLETE | *_FAILED, or PENDING -> CANCELED.
    Resources the store does not track (unchanged ones) count as settled.
    """

    def __init__(self, resource_ids: Iterable[str]) -> None:
        self._lock = threading.Lock()
        self._states: dict[str, DeployState] = dict.fromkeys(resource_ids, DeployState.PENDING)
        self._outputs: dict[str, dict[str, Any]] = {}
        self._errors: dict[str, str] = {}

    def __contains__(self, resource_id: object) -> bool:
        with self._lock:
            return resource_id in self._states

    def get(self, resource_id: str) -> DeployState | None:
        with self._lock:
            return self._states.get(resource_id)

    def _is_blocking(self, resource_id: str) -> bool:
        """Must hold lock."""
        state = self._states.get(resource_id)
        return state is not None and state.is_active

    def claim_ready(
        self,
        candidates: Iterable[str],
        gates: Mapping[str, Iterable[str]],
        actions: Mapping[str, Action],
        *,
        limit: int | None = None,
    ) -> list[str]:
        """Atomically move PENDING candidates whose gates are settled to *_IN_PROGRESS.

        Candidates are taken in the given order, at most *limit* of them.
        Returns the claimed IDs; only the caller that claimed a resource may run it.
        """
        with self._lock:
            ready: list[str] = []
            for rid in candidates:
                if limit is not None and len(ready) >= limit:
                    break
                if self._states.get(rid) is DeployState.PENDING and not any(
                    self._is_blocking(g) for g in gates.get(rid, ())
                ):
                    ready.append(rid)
            for rid in ready:
                self._states[rid] = DeployState.in_progress(actions[rid])
            return ready

    def _finish(self, resource_id: str, action: Action, new_state: DeployState) -> None:
        """Must hold lock."""
        current = self._states.get(resource_id)
        if current is not DeployState.in_progress(action):
            raise RuntimeError(f"{resource_id} cannot move from {current} to {new_state.value}")
        self._states[resource_id] = new_state

    def complete(
        self, resource_id: str, action: Action, output: Mapping[str, Any]
    ) -> DeployState:
        output = dict(output)
        with self._lock:
            state = DeployState.complete(action)
            self._finish(resource_id, action, state)
            self._outputs[resource_id] = output
            return state

    def fail(
        self,
        resource_id: str,
        action: Action,
        error: str,
        *,
        cancel: Iterable[str] = (),
    ) -> tuple[DeployState, list[str]]:
        """Mark *resource_id* failed and cancel the PENDING resources in *cancel*.

        Both happen under one lock hold, so nothing in *cancel* can be claimed
        between the failure and the cancellation.
        """
        with self._lock:
            state = DeployState.failed(action)
            self._finish(resource_id, action, state)
            self._errors[resource_id] = error
            return state, self._cancel_locked(cancel)

    def _cancel_locked(self, resource_ids: Iterable[str]) -> list[str]:
        """Must hold lock."""
        canceled = [rid for rid in resource_ids if self._states.get(rid) is DeployState.PENDING]
        for rid in canceled:
            self._states[rid] = DeployState.CANCELED
        return canceled

    def cancel_pending(self, resource_ids: Iterable[str]) -> list[str]:
        """Move every still-PENDING resource among *resource_ids* to CANCELED.

        Idempotent: a second call finds nothing left to cancel.
        """
        with self._lock:
            return self._cancel_locked(resource_ids)

    def states(self) -> dict[str, DeployState]:
        with self._lock:
            return dict(self._states)

    def outputs(self) -> dict[str, dict[str, Any]]:
        with self._lock:
            return {rid: dict(out) for rid, out in self._outputs.items()}

    def errors(self) -> dict[str, str]:
        with self._lock:
            return dict(self._errors)
