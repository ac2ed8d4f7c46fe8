from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, ClassVar
from unittest.mock import MagicMock

import pytest

from gas_provisioner.core.provider import CloudflareProvider
from gas_provisioner.core.state import DeploySnapshot, SnapshotEntry
from gas_provisioner.engine import GasEngine, build_snapshot
from gas_provisioner.engine.errors import (
    AggregateDeployError,
    ConfigResolutionError,
    DanglingDependencyError,
    DependencyCycleError,
    DuplicateResourceError,
    UnknownResourceTypeError,
    UnsupportedActionError,
)
from gas_provisioner.engine.handlers import EngineContext, ResourceHandler
from gas_provisioner.engine.registry import ResourceTypeRegistry
from gas_provisioner.engine.types import DeployResult, DeployState, DiffState
from gas_provisioner.resources.base import Resource, ResourceConfig


class DummyConfig(ResourceConfig):
    resource_type: ClassVar[str] = "dummy"
    value: int = 0


class CreateOnlyConfig(ResourceConfig):
    resource_type: ClassVar[str] = "create-only"


class InMemoryHandler(ResourceHandler[DummyConfig]):
    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []
        self.prior_outputs: dict[str, dict[str, Any]] = {}
        self.fail: set[str] = set()
        self.no_output: set[str] = set()
        self._lock = threading.Lock()
        self._counter = 0

    def _record(self, action: str, config: DummyConfig) -> None:
        with self._lock:
            self.calls.append((action, config.name))
        if config.name in self.fail:
            raise RuntimeError(f"{action} {config.name} rejected")

    def create(self, ctx: EngineContext, desired: DummyConfig) -> dict[str, Any]:
        self._record("create", desired)
        if desired.name in self.no_output:
            return None  # type: ignore[return-value]
        with self._lock:
            self._counter += 1
            return {"id": f"{ctx.project}-{self._counter}"}

    def update(
        self, ctx: EngineContext, desired: DummyConfig, prior_output: dict[str, Any]
    ) -> dict[str, Any]:
        self._record("update", desired)
        self.prior_outputs[desired.name] = dict(prior_output)
        return {**prior_output, "value": desired.value}

    def delete(self, ctx: EngineContext, prior: DummyConfig, prior_output: dict[str, Any]) -> None:
        self._record("delete", prior)
        self.prior_outputs[prior.name] = dict(prior_output)


class CreateOnlyHandler(ResourceHandler[CreateOnlyConfig]):
    def create(self, ctx: EngineContext, desired: CreateOnlyConfig) -> dict[str, Any]:
        return {"id": desired.name}


def _rid(name: str, resource_type: str = "dummy") -> str:
    return f"core:base:{resource_type}:{name}"


def _resource(name: str, *deps: str, value: int = 0) -> Resource:
    return Resource(
        id=_rid(name),
        config={"id": _rid(name), "name": name, "value": value},
        dependencies=[_rid(d) for d in deps],
    )


def _engine(tmp_path: Path) -> tuple[GasEngine, InMemoryHandler]:
    registry = ResourceTypeRegistry()
    handler = InMemoryHandler()
    registry.register(DummyConfig, handler)
    registry.register(CreateOnlyConfig, CreateOnlyHandler())
    engine = GasEngine(
        provider=CloudflareProvider.from_session(MagicMock()),
        project="shop",
        snapshot_path=tmp_path / "gas.up.json",
        registry=registry,
    )
    return engine, handler


def _read_snapshot(path: Path) -> dict[str, Any]:
    return json.loads(path.read_text())


def test_create_update_delete_lifecycle(tmp_path: Path) -> None:
    engine, handler = _engine(tmp_path)

    plan1 = engine.plan([_resource("api", "kv"), _resource("kv")])
    assert plan1.changes() == {_rid("api"): DiffState.CREATED, _rid("kv"): DiffState.CREATED}
    result1 = engine.deploy(plan1)
    assert result1.summary()["create"] == 2
    assert handler.calls == [("create", "kv"), ("create", "api")]

    data = _read_snapshot(engine.snapshot_path)
    assert data[_rid("api")] == {
        "config": {"id": _rid("api"), "name": "api", "value": 0},
        "dependencies": [_rid("kv")],
        "output": {"id": "shop-2"},
    }
    assert data[_rid("kv")]["output"] == {"id": "shop-1"}

    plan2 = engine.plan([_resource("api", "kv", value=5), _resource("kv")])
    assert plan2.changes() == {_rid("api"): DiffState.UPDATED}
    engine.deploy(plan2)
    assert handler.prior_outputs["api"] == {"id": "shop-2"}
    assert _read_snapshot(engine.snapshot_path)[_rid("api")]["output"] == {
        "id": "shop-2",
        "value": 5,
    }

    plan3 = engine.plan([_resource("kv")])
    assert plan3.changes() == {_rid("api"): DiffState.DELETED}
    engine.deploy(plan3)
    assert handler.calls[-1] == ("delete", "api")
    assert handler.prior_outputs["api"] == {"id": "shop-2", "value": 5}
    assert list(_read_snapshot(engine.snapshot_path)) == [_rid("kv")]


def test_no_changes_makes_no_calls_and_leaves_snapshot_untouched(tmp_path: Path) -> None:
    engine, handler = _engine(tmp_path)
    resources = [_resource("api", "kv"), _resource("kv")]
    engine.deploy(engine.plan(resources))
    before = engine.snapshot_path.read_bytes()
    calls = list(handler.calls)

    plan = engine.plan(resources)
    assert not plan.has_changes()
    result = engine.deploy(plan)

    assert result == DeployResult()
    assert handler.calls == calls
    assert engine.snapshot_path.read_bytes() == before
    assert not Path(str(engine.snapshot_path) + ".backup").exists()


def test_redeploy_keeps_backup(tmp_path: Path) -> None:
    engine, _ = _engine(tmp_path)
    engine.deploy(engine.plan([_resource("a")]))
    first = engine.snapshot_path.read_text()

    engine.deploy(engine.plan([_resource("a", value=1)]))

    backup = Path(str(engine.snapshot_path) + ".backup")
    assert backup.read_text() == first


def test_failed_deploy_raises_after_writing_snapshot(tmp_path: Path) -> None:
    engine, handler = _engine(tmp_path)
    handler.fail = {"db"}
    plan = engine.plan(
        [_resource("app", "db"), _resource("db"), _resource("cache")],
    )

    with pytest.raises(AggregateDeployError) as exc_info:
        engine.deploy(plan)

    result = exc_info.value.result
    assert result.states[_rid("db")] is DeployState.CREATE_FAILED
    assert result.states[_rid("app")] is DeployState.CANCELED
    assert result.states[_rid("cache")] is DeployState.CREATE_COMPLETE
    message = str(exc_info.value)
    assert f"{_rid('db')} failed: create db rejected" in message
    assert f"{_rid('app')} canceled" in message

    # Only the independent group's work is recorded.
    assert list(_read_snapshot(engine.snapshot_path)) == [_rid("cache")]


def test_failed_update_keeps_prior_entry(tmp_path: Path) -> None:
    engine, handler = _engine(tmp_path)
    engine.deploy(engine.plan([_resource("a")]))
    prior = _read_snapshot(engine.snapshot_path)[_rid("a")]

    handler.fail = {"a"}
    with pytest.raises(AggregateDeployError):
        engine.deploy(engine.plan([_resource("a", value=7)]))

    assert _read_snapshot(engine.snapshot_path)[_rid("a")] == prior
    # The failed change is retried on the next plan.
    assert engine.plan([_resource("a", value=7)]).changes() == {_rid("a"): DiffState.UPDATED}


def test_duplicate_ids_rejected(tmp_path: Path) -> None:
    engine, _ = _engine(tmp_path)
    with pytest.raises(DuplicateResourceError):
        engine.plan([_resource("a"), _resource("a", value=1)])


def test_dangling_dependency_rejected_before_any_call(tmp_path: Path) -> None:
    engine, handler = _engine(tmp_path)
    with pytest.raises(DanglingDependencyError):
        engine.plan([_resource("a", "ghost")])
    assert handler.calls == []
    assert not engine.snapshot_path.exists()


def test_cycle_rejected_before_any_call(tmp_path: Path) -> None:
    engine, handler = _engine(tmp_path)
    with pytest.raises(DependencyCycleError):
        engine.plan([_resource("a", "b"), _resource("b", "a")])
    assert handler.calls == []


def test_unknown_resource_type_fails_fast(tmp_path: Path) -> None:
    engine, _ = _engine(tmp_path)
    rid = _rid("w", "cloudflare-worker")
    with pytest.raises(UnknownResourceTypeError, match="cloudflare-worker"):
        engine.plan([Resource(id=rid, config={"id": rid, "name": "w"})])


def test_unsupported_action_fails_fast(tmp_path: Path) -> None:
    engine, _ = _engine(tmp_path)
    rid = _rid("c", "create-only")
    engine.deploy(engine.plan([Resource(id=rid, config={"id": rid, "name": "c"})]))

    with pytest.raises(UnsupportedActionError, match="delete"):
        engine.plan([])


def test_invalid_config_fails_fast(tmp_path: Path) -> None:
    engine, handler = _engine(tmp_path)
    bad = Resource(id=_rid("a"), config={"id": _rid("a"), "name": "a", "unexpected": True})
    with pytest.raises(ConfigResolutionError, match=_rid("a")):
        engine.plan([bad])
    assert handler.calls == []


def test_build_snapshot_merges_outcomes(tmp_path: Path) -> None:
    engine, handler = _engine(tmp_path)
    a, b = _resource("a"), _resource("b")
    engine.snapshot_path.write_text(
        DeploySnapshot(
            {
                a.id: SnapshotEntry(config=a.config, output={"id": "a-old"}),
                b.id: SnapshotEntry(config=b.config, output={"id": "b-old"}),
            }
        ).dumps()
    )
    plan = engine.plan([_resource("a", value=1), _resource("c")])
    result = DeployResult(
        states={
            a.id: DeployState.UPDATE_FAILED,
            b.id: DeployState.DELETE_COMPLETE,
            _rid("c"): DeployState.CREATE_COMPLETE,
        },
        outputs={b.id: {}, _rid("c"): {"id": "c-new"}},
    )

    snapshot = build_snapshot(plan, result)

    assert list(snapshot.root) == [a.id, _rid("c")]
    assert snapshot.root[a.id].output == {"id": "a-old"}
    assert snapshot.root[_rid("c")].output == {"id": "c-new"}
    assert handler.calls == []


def test_handler_without_output_still_writes_snapshot(tmp_path: Path) -> None:
    engine, handler = _engine(tmp_path)
    handler.no_output = {"broken"}
    plan = engine.plan([_resource("broken"), _resource("fine")])

    with pytest.raises(AggregateDeployError) as exc_info:
        engine.deploy(plan)

    assert exc_info.value.result.states[_rid("broken")] is DeployState.CREATE_FAILED
    assert list(_read_snapshot(engine.snapshot_path)) == [_rid("fine")]
