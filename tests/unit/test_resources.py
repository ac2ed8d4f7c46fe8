import pytest
from pydantic import ValidationError

from gas_provisioner.resources import (
    CloudflareKvConfig,
    InvalidResourceIDError,
    Resource,
    resource_type_from_id,
)


def test_resource_type_is_third_segment() -> None:
    assert resource_type_from_id("core:base:cloudflare-kv:12345") == "cloudflare-kv"
    assert resource_type_from_id("a:b:c") == "c"


@pytest.mark.parametrize("rid", ["", "core", "core:base", "core::cloudflare-kv:1", ":a:b"])
def test_invalid_resource_ids(rid: str) -> None:
    with pytest.raises(InvalidResourceIDError):
        resource_type_from_id(rid)


def test_resource_derives_type_and_dedupes_dependencies() -> None:
    resource = Resource(
        id="core:base:cloudflare-worker:1",
        config={"name": "API"},
        dependencies=["core:base:cloudflare-kv:2", "core:base:cloudflare-kv:2"],
    )
    assert resource.resource_type == "cloudflare-worker"
    assert resource.dependencies == ["core:base:cloudflare-kv:2"]


def test_resource_rejects_invalid_id() -> None:
    with pytest.raises(ValidationError):
        Resource(id="not-an-id")


def test_resource_is_immutable() -> None:
    resource = Resource(id="core:base:cloudflare-kv:1")
    with pytest.raises(ValidationError):
        resource.id = "core:base:cloudflare-kv:2"  # type: ignore[misc]


def test_kv_config_validates_id_type() -> None:
    config = CloudflareKvConfig(id="core:base:cloudflare-kv:1", name="CORE_BASE_KV")
    assert config.resource_type == "cloudflare-kv"

    with pytest.raises(ValidationError, match="does not name resource type"):
        CloudflareKvConfig(id="core:base:cloudflare-worker:1", name="CORE_BASE_KV")


def test_kv_config_rejects_unknown_fields_and_empty_name() -> None:
    with pytest.raises(ValidationError):
        CloudflareKvConfig(id="core:base:cloudflare-kv:1", name="KV", binding="X")
    with pytest.raises(ValidationError):
        CloudflareKvConfig(id="core:base:cloudflare-kv:1", name="")
