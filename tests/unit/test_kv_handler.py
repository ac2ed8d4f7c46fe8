from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from gas_provisioner.core.provider import CloudflareAPIError, CloudflareProvider
from gas_provisioner.engine.handlers import EngineContext
from gas_provisioner.engine.kv_handler import (
    CloudflareKvHandler,
    capital_snake_case_to_train_case,
    namespace_title,
)
from gas_provisioner.engine.types import Action
from gas_provisioner.resources.cloudflare import CloudflareKvConfig

_URL = "https://api.cloudflare.com/client/v4/accounts/acc/storage/kv/namespaces"


def _ctx(session: MagicMock) -> EngineContext:
    return EngineContext(
        provider=CloudflareProvider.from_session(session, account_id="acc"), project="shop"
    )


def _ok(result: object = None) -> MagicMock:
    response = MagicMock()
    response.ok = True
    response.status_code = 200
    response.json.return_value = {"success": True, "result": result, "errors": []}
    return response


def _error(status: int) -> MagicMock:
    response = MagicMock()
    response.ok = False
    response.status_code = status
    response.json.return_value = {"success": False, "errors": [{"code": 10013, "message": "x"}]}
    return response


def _config(name: str = "CORE_BASE_KV") -> CloudflareKvConfig:
    return CloudflareKvConfig(id="core:base:cloudflare-kv:12345", name=name)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("CORE_BASE_KV", "Core-Base-Kv"),
        ("KV", "Kv"),
        ("CORE__CACHE_", "Core-Cache"),
    ],
)
def test_capital_snake_case_to_train_case(name: str, expected: str) -> None:
    assert capital_snake_case_to_train_case(name) == expected


def test_namespace_title_is_project_scoped() -> None:
    assert namespace_title(_ctx(MagicMock()), _config()) == "shop-Core-Base-Kv"


def test_create_posts_title() -> None:
    session = MagicMock()
    session.request.return_value = _ok({"id": "ns-1", "title": "shop-Core-Base-Kv"})

    output = CloudflareKvHandler().create(_ctx(session), _config())

    assert output == {"id": "ns-1", "title": "shop-Core-Base-Kv"}
    session.request.assert_called_once_with(
        "POST", _URL, timeout=30.0, json={"title": "shop-Core-Base-Kv"}
    )


def test_update_renames_when_title_changes() -> None:
    session = MagicMock()
    session.request.return_value = _ok()

    output = CloudflareKvHandler().update(
        _ctx(session), _config("CORE_CACHE_KV"), {"id": "ns-1", "title": "shop-Core-Base-Kv"}
    )

    assert output == {"id": "ns-1", "title": "shop-Core-Cache-Kv"}
    session.request.assert_called_once_with(
        "PUT", f"{_URL}/ns-1", timeout=30.0, json={"title": "shop-Core-Cache-Kv"}
    )


def test_update_without_title_change_makes_no_call() -> None:
    session = MagicMock()

    output = CloudflareKvHandler().update(
        _ctx(session), _config(), {"id": "ns-1", "title": "shop-Core-Base-Kv"}
    )

    assert output == {"id": "ns-1", "title": "shop-Core-Base-Kv"}
    session.request.assert_not_called()


def test_update_requires_recorded_namespace_id() -> None:
    with pytest.raises(ValueError, match="No namespace id"):
        CloudflareKvHandler().update(_ctx(MagicMock()), _config(), {})


def test_delete_removes_namespace() -> None:
    session = MagicMock()
    session.request.return_value = _ok()

    CloudflareKvHandler().delete(_ctx(session), _config(), {"id": "ns-1"})

    session.request.assert_called_once_with("DELETE", f"{_URL}/ns-1", timeout=30.0)


def test_delete_of_missing_namespace_succeeds() -> None:
    session = MagicMock()
    session.request.return_value = _error(404)

    CloudflareKvHandler().delete(_ctx(session), _config(), {"id": "ns-1"})


def test_delete_propagates_other_errors() -> None:
    session = MagicMock()
    session.request.return_value = _error(500)

    with pytest.raises(CloudflareAPIError):
        CloudflareKvHandler().delete(_ctx(session), _config(), {"id": "ns-1"})


def test_handler_supports_every_action() -> None:
    handler = CloudflareKvHandler()
    assert all(handler.supports(action) for action in Action)


def test_apply_dispatches_delete_with_empty_output() -> None:
    session = MagicMock()
    session.request.return_value = _ok()

    output = CloudflareKvHandler().apply(Action.DELETE, _ctx(session), _config(), {"id": "ns-1"})

    assert output == {}
