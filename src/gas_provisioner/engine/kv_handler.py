"""Handler for Cloudflare Workers KV namespaces."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from gas_provisioner.core.provider import CloudflareAPIError
from gas_provisioner.engine.handlers import EngineContext, ResourceHandler
from gas_provisioner.resources.cloudflare import CloudflareKvConfig

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

_NAMESPACES = "/storage/kv/namespaces"


def capital_snake_case_to_train_case(name: str) -> str:
    """``CORE_BASE_KV`` -> ``Core-Base-Kv``."""
    return "-".join(part.capitalize() for part in name.split("_") if part)


def namespace_title(ctx: EngineContext, config: CloudflareKvConfig) -> str:
    return f"{ctx.project}-{capital_snake_case_to_train_case(config.name)}"


def _namespace_id(config: CloudflareKvConfig, prior_output: Mapping[str, Any]) -> str:
    namespace_id = prior_output.get("id")
    if not isinstance(namespace_id, str) or not namespace_id:
        raise ValueError(f"No namespace id recorded for {config.id}")
    return namespace_id


class CloudflareKvHandler(ResourceHandler[CloudflareKvConfig]):
    def create(self, ctx: EngineContext, desired: CloudflareKvConfig) -> dict[str, Any]:
        title = namespace_title(ctx, desired)
        response = ctx.provider.request("POST", _NAMESPACES, json={"title": title})
        result = response.json()["result"]
        logger.debug("Created KV namespace %s (%s)", title, result["id"])
        return {"id": result["id"], "title": result["title"]}

    def update(
        self,
        ctx: EngineContext,
        desired: CloudflareKvConfig,
        prior_output: dict[str, Any],
    ) -> dict[str, Any]:
        namespace_id = _namespace_id(desired, prior_output)
        title = namespace_title(ctx, desired)
        if prior_output.get("title") != title:
            ctx.provider.request("PUT", f"{_NAMESPACES}/{namespace_id}", json={"title": title})
            logger.debug("Renamed KV namespace %s to %s", namespace_id, title)
        return {"id": namespace_id, "title": title}

    def delete(
        self,
        ctx: EngineContext,
        prior: CloudflareKvConfig,
        prior_output: dict[str, Any],
    ) -> None:
        namespace_id = _namespace_id(prior, prior_output)
        try:
            ctx.provider.request("DELETE", f"{_NAMESPACES}/{namespace_id}")
        except CloudflareAPIError as e:
            if e.status_code != 404:
                raise
            logger.debug("KV namespace %s already gone", namespace_id)
